#!/usr/bin/env python3
"""
DIA - voice and text assistant
Entry point for running the assistant.

Usage:
    python run.py                    # Wake word listening ("DIA")
    python run.py --no-wake-word     # Start with wake word listening off
    python run.py --no-voice         # No microphone: simulated listening
    python run.py --offline          # Answer from the offline corpus only
    python run.py --list-devices     # List audio devices

While running, type a line to chat. Commands:
    /listen          start or stop command capture
    /wake on|off     toggle wake word listening
    /quit            exit
"""
import sys
import threading
import argparse
from typing import Optional
from dia.core.logger import init_logger, get_logger
from dia.core.config import Config


def parse_args():
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="DIA - Voice and Text Assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py                     # Normal mode with wake word
  python run.py --no-voice          # Type only; /listen simulates capture
  python run.py --model medium      # Use Whisper medium for commands
  python run.py --device 1          # Use specific audio device
  python run.py --list-devices      # List available audio devices
        """
    )

    parser.add_argument(
        "--no-wake-word",
        action="store_true",
        help="Start with wake word listening disabled (saved preference)"
    )

    parser.add_argument(
        "--offline",
        action="store_true",
        help="Stay offline: no connectivity probe, offline replies only"
    )

    parser.add_argument(
        "--model",
        type=str,
        default=Config.WHISPER_MODEL,
        choices=["tiny", "base", "small", "medium", "large"],
        help=f"Whisper model for command capture (default: {Config.WHISPER_MODEL})"
    )

    parser.add_argument(
        "--background-model",
        type=str,
        default=Config.WHISPER_BACKGROUND_MODEL,
        choices=["tiny", "base", "small", "medium", "large"],
        help=f"Whisper model for wake word listening (default: {Config.WHISPER_BACKGROUND_MODEL})"
    )

    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="Audio input device index"
    )

    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List available audio devices and exit"
    )

    parser.add_argument(
        "--voices-dir",
        type=str,
        default=Config.PIPER_VOICES_DIR,
        help=f"Directory with Piper voice models (default: {Config.PIPER_VOICES_DIR})"
    )

    parser.add_argument(
        "--storage",
        type=str,
        default=Config.STORAGE_PATH,
        help=f"Conversation storage file (default: {Config.STORAGE_PATH})"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=Config.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {Config.LOG_LEVEL})"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Hide noisy debug-style log lines"
    )

    parser.add_argument(
        "--no-voice",
        action="store_true",
        help="Do not open the microphone; /listen uses simulated listening"
    )

    return parser.parse_args()


def create_recognition(loop, args, audio_device: Optional[int]):
    """Live recognition engine, or None to fall back to simulated listening"""
    logger = get_logger()
    if args.no_voice:
        return None
    try:
        from dia.stt.live_engine import WhisperRecognitionEngine
        return WhisperRecognitionEngine(
            loop,
            device=audio_device,
            background_model=args.background_model,
            active_model=args.model
        )
    except Exception as e:
        logger.warning(f"[STT] Speech recognition unavailable: {e}")
        return None


def create_synthesis(loop, args):
    """Piper synthesis engine, or None to run silently"""
    logger = get_logger()
    if not Config.TTS_ENABLED:
        return None
    try:
        from dia.tts.piper_engine import PiperSynthesisEngine
        return PiperSynthesisEngine(loop, voices_dir=args.voices_dir)
    except Exception as e:
        logger.warning(f"[TTS] Speech output unavailable: {e}")
        return None


def handle_line(assistant, loop, line: str) -> None:
    """Run one line of console input (on the event loop)"""
    logger = get_logger()
    text = line.strip()
    if not text:
        return

    if text == "/quit":
        loop.stop()
    elif text == "/listen":
        listening = assistant.toggle_listening()
        logger.info(f"[LISTEN] {'Listening...' if listening else 'Stopped listening'}")
    elif text.startswith("/wake"):
        arg = text[len("/wake"):].strip().lower()
        if arg not in ("on", "off"):
            logger.warning("Usage: /wake on|off")
            return
        assistant.set_wake_word_enabled(arg == "on")
    else:
        assistant.submit_text(text)


def read_console(assistant, loop) -> None:
    """Forward stdin lines to the event loop until EOF"""
    for line in sys.stdin:
        loop.post(handle_line, assistant, loop, line)
    loop.stop()


def main():
    """Main entry point"""
    args = parse_args()

    # Initialize logger
    init_logger(args.log_level, quiet_mode=args.quiet or Config.QUIET_MODE)
    logger = get_logger()

    # List devices if requested
    if args.list_devices:
        from dia.audio.mic_stream import MicStream
        MicStream.list_devices()
        return 0

    # Parse audio device
    audio_device = None
    if args.device:
        try:
            audio_device = int(args.device)
        except ValueError:
            logger.error(f"Invalid device index: {args.device}")
            logger.info("Use --list-devices to see available devices")
            return 1

    # Print startup banner
    print("\n" + "=" * 60)
    print(f"  {Config.ASSISTANT_NAME} - Voice and Text Assistant")
    print("=" * 60)
    print(f"  Voice Input: {'simulated' if args.no_voice else 'microphone'}")
    if not args.no_voice:
        print(f"  Whisper Models: {args.background_model} (wake) / {args.model} (commands)")
    print(f"  Wake Words: {', '.join(Config.WAKE_WORDS)}")
    print(f"  Connectivity: {'offline' if args.offline else 'probing ' + Config.CONNECTIVITY_PROBE_URL}")
    print(f"  Storage: {args.storage}")
    print(f"  Log Level: {args.log_level}")
    print("=" * 60)
    print("  Type to chat, /listen, /wake on|off, /quit")
    print("=" * 60 + "\n")

    from dia.core.assistant import DiaAssistant
    from dia.core.connectivity import ConnectivityMonitor
    from dia.core.event_loop import EventLoop
    from dia.memory.kv_store import JsonFileStore
    from dia.memory.transcript_store import save_wake_word_enabled
    from dia.tools.action_sink import WebBrowserActionSink

    loop = EventLoop()
    storage = JsonFileStore(args.storage)
    if args.no_wake_word:
        save_wake_word_enabled(storage, False)

    connectivity = ConnectivityMonitor(loop, online=not args.offline)
    assistant = DiaAssistant(
        loop,
        storage=storage,
        recognition=create_recognition(loop, args, audio_device),
        synthesis=create_synthesis(loop, args),
        action_sink=WebBrowserActionSink(),
        connectivity=connectivity
    )

    try:
        assistant.start()
        if not args.offline:
            connectivity.start_probe()
        threading.Thread(
            target=read_console, args=(assistant, loop), name="ConsoleInput", daemon=True
        ).start()

        logger.info("Starting assistant... (Press Ctrl+C to stop)")
        loop.run_forever()
        return 0

    except KeyboardInterrupt:
        logger.info("\nShutdown requested by user")
        return 0

    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1

    finally:
        connectivity.stop_probe()
        assistant.shutdown()


if __name__ == "__main__":
    sys.exit(main())
