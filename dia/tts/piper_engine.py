"""
Piper TTS engine for local, fast speech synthesis.
Uses the Piper executable via subprocess and plays through AudioPlayer.

Voices are the `*.onnx` models found in the voices directory; each model's
`*.onnx.json` sidecar supplies its language. The directory is scanned on a
background thread, so the voice list starts empty and `on_voices_changed`
fires once the scan is done.
"""
import json
import os
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import List, Optional

from dia.core.config import Config
from dia.core.event_loop import EventLoop
from dia.core.logger import get_logger
from dia.tts.audio_player import AudioPlayer
from dia.tts.speech_output import SynthesisEngine, Utterance, Voice


class SynthesisError(Exception):
    """Piper could not produce audio"""


def _voice_language(config_path: Path) -> str:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            meta = json.load(f)
    except (OSError, json.JSONDecodeError):
        return ""
    language = meta.get("language") or {}
    if isinstance(language, dict) and language.get("code"):
        return str(language["code"])
    espeak = meta.get("espeak") or {}
    if isinstance(espeak, dict) and espeak.get("voice"):
        return str(espeak["voice"])
    return ""


def scan_voices(voices_dir: str) -> List[Voice]:
    """List Piper voices in a directory (sorted by name)"""
    root = Path(voices_dir)
    if not root.is_dir():
        return []
    voices = []
    for model in sorted(root.rglob("*.onnx")):
        lang = _voice_language(model.with_name(model.name + ".json"))
        if not lang:
            # en_US-amy-medium.onnx -> en_US
            lang = model.stem.split("-")[0]
        voices.append(Voice(name=model.stem, lang=lang, model_path=str(model)))
    return voices


class PiperSynthesisEngine(SynthesisEngine):
    """Piper synthesis with lazy voice enumeration and interruptible playback"""

    def __init__(
        self,
        loop: EventLoop,
        voices_dir: str = Config.PIPER_VOICES_DIR,
        exe_path: str = Config.PIPER_EXE_PATH,
        output_device: Optional[int] = Config.TTS_OUTPUT_DEVICE,
        timeout: float = Config.PIPER_TIMEOUT_SEC
    ):
        """
        Initialize Piper engine

        Args:
            loop: Event loop that receives utterance callbacks
            voices_dir: Directory holding Piper voice models
            exe_path: Path to the Piper executable (or "piper" on PATH)
            output_device: Optional sounddevice output device index
            timeout: Synthesis timeout in seconds
        """
        super().__init__()
        self.logger = get_logger()
        self.loop = loop
        self.voices_dir = voices_dir
        self.exe_path = exe_path
        self.timeout = timeout
        self.player = AudioPlayer(device=output_device)

        self._voices: List[Voice] = []
        self._stop_event: Optional[threading.Event] = None
        self._worker: Optional[threading.Thread] = None

        threading.Thread(target=self._scan, name="PiperVoiceScan", daemon=True).start()

    # ------------------------------------------------------------------ #
    # Voices
    # ------------------------------------------------------------------ #
    def get_voices(self) -> List[Voice]:
        return list(self._voices)

    def _scan(self) -> None:
        voices = scan_voices(self.voices_dir)
        self.loop.post(self._set_voices, voices)

    def _set_voices(self, voices: List[Voice]) -> None:
        self._voices = voices
        if voices:
            self.logger.info(f"[TTS] {len(voices)} Piper voice(s) available in {self.voices_dir}")
        else:
            self.logger.warning(f"[TTS] No Piper voices found in {self.voices_dir}")
        if self.on_voices_changed:
            self.on_voices_changed()

    # ------------------------------------------------------------------ #
    # Speaking
    # ------------------------------------------------------------------ #
    def speak(self, utterance: Utterance) -> None:
        self.cancel()
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._worker = threading.Thread(
            target=self._run,
            args=(utterance, stop_event),
            name="PiperSpeak",
            daemon=True
        )
        self._worker.start()

    def cancel(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None

    def shutdown(self) -> None:
        self.cancel()
        self.player.stop()

    def _run(self, utterance: Utterance, stop_event: threading.Event) -> None:
        wav_path = ""
        try:
            wav_path = self.synthesize_to_wav(utterance)
            if stop_event.is_set():
                return
            self.loop.post(utterance.on_start)
            completed = self.player.play_wav(wav_path, stop_event, pitch=utterance.pitch)
            if completed:
                self.loop.post(utterance.on_end)
        except Exception as e:
            if not stop_event.is_set():
                self.loop.post(utterance.on_error, str(e))
        finally:
            if wav_path:
                try:
                    os.unlink(wav_path)
                except OSError:
                    pass

    def synthesize_to_wav(self, utterance: Utterance) -> str:
        """
        Synthesize an utterance to a temporary WAV file

        Length scale stretches the audio by pitch/rate so that playback at
        pitch times the sample rate keeps the requested speaking rate.

        Returns:
            Path to the WAV file (caller deletes it)

        Raises:
            SynthesisError: if no voice is available or Piper fails
        """
        if utterance.voice is None or not utterance.voice.model_path:
            raise SynthesisError("no Piper voice model available")

        temp_wav = tempfile.NamedTemporaryFile(suffix=".wav", delete=False, mode="wb")
        temp_wav.close()
        output_path = temp_wav.name

        length_scale = max(0.25, min(4.0, utterance.pitch / max(0.1, utterance.rate)))
        cmd = [
            self.exe_path,
            "-m", utterance.voice.model_path,
            "-f", output_path,
            "--length_scale", f"{length_scale:.3f}",
        ]
        self.logger.debug(f"[TTS] Running Piper: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                input=utterance.text.encode("utf-8"),
                capture_output=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            os.unlink(output_path)
            raise SynthesisError("Piper synthesis timed out")
        except FileNotFoundError:
            os.unlink(output_path)
            raise SynthesisError(f"Piper executable not found: {self.exe_path}")

        if result.returncode != 0:
            os.unlink(output_path)
            stderr = result.stderr.decode("utf-8", errors="ignore").strip()
            raise SynthesisError(f"Piper synthesis failed: {stderr}")

        if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
            if os.path.exists(output_path):
                os.unlink(output_path)
            raise SynthesisError("Piper produced no output")

        return output_path
