"""
Live recognition engine: microphone + energy VAD + faster-whisper.

Each stream owns a worker thread while it runs. The worker pulls frames from
the shared microphone, segments them into utterances and transcribes them.
Results reach the stream callbacks through the event loop, tagged with the
session they belong to; anything from an aborted or restarted session is
dropped on delivery.
"""
import threading
from queue import Empty, Queue
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from dia.audio.audio_utils import concat_audio_frames
from dia.audio.vad import SegmentEvent, UtteranceSegmenter
from dia.core.config import Config
from dia.core.event_loop import EventLoop
from dia.core.logger import get_logger
from dia.stt.base import (
    RecognitionBusyError,
    RecognitionEngine,
    RecognitionError,
    RecognitionStream,
    StreamOptions,
)

if TYPE_CHECKING:
    from dia.audio.mic_stream import MicStream
    from dia.stt.whisper_engine import WhisperEngine


class WhisperRecognitionStream(RecognitionStream):
    """One recognition stream on the shared microphone"""

    def __init__(self, engine: "WhisperRecognitionEngine", options: StreamOptions):
        super().__init__(options)
        self.logger = get_logger()
        self.engine = engine
        self._session = 0
        self._running = False
        self._halt: Optional[threading.Event] = None
        self._flush: Optional[threading.Event] = None
        self._worker: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def worker(self) -> Optional[threading.Thread]:
        return self._worker

    def start(self) -> None:
        if self._running:
            return
        self.engine.acquire(self)
        try:
            frames = self.engine.mic.claim(self)
        except RuntimeError as e:
            self.engine.release(self)
            raise RecognitionError(f"microphone unavailable: {e}") from e

        self._session += 1
        self._running = True
        self._flush = threading.Event()
        self._halt = threading.Event()
        self._worker = threading.Thread(
            target=self._run,
            args=(self._session, frames, self._halt, self._flush),
            name=f"STT-{self.name}",
            daemon=True
        )
        self._worker.start()
        self.logger.debug(f"[STT] {self.name} stream started (session {self._session})")

    def stop(self) -> None:
        """Stop capture; speech already captured is still transcribed and delivered"""
        if not self._running:
            return
        self._flush.set()
        self._finish()

    def abort(self) -> None:
        if not self._running:
            return
        self._session += 1
        self._finish()

    def _finish(self) -> None:
        self._running = False
        if self._halt is not None:
            self._halt.set()
        self.engine.mic.release(self)
        self.engine.release(self)

    # ------------------------------------------------------------------ #
    # Worker thread
    # ------------------------------------------------------------------ #
    def _post(self, session: int, callback_name: str, *args: Any) -> None:
        self.engine.loop.post(self._deliver, session, callback_name, args)

    def _deliver(self, session: int, callback_name: str, args: tuple) -> None:
        if session != self._session:
            return
        callback: Optional[Callable[..., None]] = getattr(self, callback_name)
        if callback_name == "on_end" and self._running:
            self._finish()
        if callback:
            callback(*args)

    def _run(self, session: int, frames: Queue, halt: threading.Event, flush: threading.Event) -> None:
        transcriber = self.engine.transcriber_for(self.options.fidelity)
        beam_size = 5 if self.options.fidelity == "high" else 1
        segmenter = UtteranceSegmenter()
        interim_every = Config.get_interim_frames()

        try:
            while not halt.is_set():
                try:
                    frame = frames.get(timeout=0.1)
                except Empty:
                    continue

                event = segmenter.push(frame)
                if event is SegmentEvent.ENDED:
                    text = transcriber.transcribe(segmenter.take(), beam_size=beam_size)
                    if text:
                        self._post(session, "on_result", text, True)
                        if not self.options.continuous:
                            break
                elif (event is SegmentEvent.CONTINUED and self.options.interim_results
                      and len(segmenter.frames) % interim_every == 0):
                    text = transcriber.transcribe(concat_audio_frames(segmenter.frames), beam_size=1)
                    if text:
                        self._post(session, "on_result", text, False)

            if flush.is_set():
                # Frames captured before the stop still belong to this utterance
                while True:
                    try:
                        segmenter.push(frames.get_nowait())
                    except Empty:
                        break
                if segmenter.has_audio:
                    text = transcriber.transcribe(segmenter.take(), beam_size=beam_size)
                    if text:
                        self._post(session, "on_result", text, True)
        except RecognitionError as e:
            self.logger.error(f"[STT] {self.name} stream failed: {e}")
            self._post(session, "on_error", str(e))
        finally:
            self._post(session, "on_end")


class WhisperRecognitionEngine(RecognitionEngine):
    """Microphone recognition with a fast background model and an accurate active model"""

    def __init__(
        self,
        loop: EventLoop,
        device: Optional[int] = None,
        background_model: str = Config.WHISPER_BACKGROUND_MODEL,
        active_model: str = Config.WHISPER_MODEL,
        mic: Optional["MicStream"] = None,
        transcribers: Optional[Dict[str, "WhisperEngine"]] = None
    ):
        """
        Initialize the engine and load both Whisper models

        Args:
            loop: Event loop that receives stream callbacks
            device: Optional input device index
            background_model: Model size for low-fidelity (wake word) streams
            active_model: Model size for high-fidelity (command) streams
            mic: Shared microphone (opened on `device` if None)
            transcribers: Transcriber per fidelity, "low" and "high" (loaded if None)

        Raises:
            RecognitionError: if a model cannot be loaded
        """
        self.logger = get_logger()
        self.loop = loop
        if mic is None:
            from dia.audio.mic_stream import MicStream
            mic = MicStream(device=device)
        self.mic = mic
        self._transcribers = transcribers or self._load_transcribers(background_model, active_model)
        self._holder: Optional[WhisperRecognitionStream] = None
        self._lock = threading.Lock()

    @staticmethod
    def _load_transcribers(background_model: str, active_model: str) -> Dict[str, "WhisperEngine"]:
        from dia.stt.whisper_engine import WhisperEngine

        low = WhisperEngine(model_size=background_model)
        high = low if active_model == background_model else WhisperEngine(model_size=active_model)
        return {"low": low, "high": high}

    @property
    def holder(self) -> Optional[WhisperRecognitionStream]:
        return self._holder

    def create_stream(self, options: StreamOptions) -> WhisperRecognitionStream:
        return WhisperRecognitionStream(self, options)

    def transcriber_for(self, fidelity: str) -> "WhisperEngine":
        return self._transcribers.get(fidelity, self._transcribers["high"])

    def acquire(self, stream: WhisperRecognitionStream) -> None:
        """Reserve the engine for `stream`; only one stream runs at a time"""
        with self._lock:
            if self._holder is not None and self._holder is not stream:
                raise RecognitionBusyError(
                    f"cannot start {stream.name}: {self._holder.name} stream is running"
                )
            self._holder = stream

    def release(self, stream: WhisperRecognitionStream) -> None:
        with self._lock:
            if self._holder is stream:
                self._holder = None

    def shutdown(self) -> None:
        holder = self._holder
        if holder is not None:
            holder.abort()
        self.mic.shutdown()
