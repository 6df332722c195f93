"""
Speech output driver for DIA.

Turns reply text into one spoken utterance at a time. A new utterance cancels
the one in flight, and a cancelled utterance never reports its end. Engine
failures resolve as an immediate end, without retry.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from dia.core.config import Config
from dia.core.logger import get_logger


# Known female-sounding voice names (matched case-insensitively)
FEMALE_VOICE_NAMES = ("Samantha", "Karen", "Alice", "Victoria", "Fiona", "Amy", "Kristin", "Jenny")


@dataclass(frozen=True)
class Voice:
    """A synthesis voice offered by the engine"""
    name: str
    lang: str
    model_path: Optional[str] = None


@dataclass(eq=False)
class Utterance:
    """One request to the synthesis engine; callbacks fire on the event loop"""
    text: str
    voice: Optional[Voice] = None
    rate: float = 1.0
    pitch: float = 1.0
    on_start: Optional[Callable[[], None]] = field(default=None, repr=False)
    on_end: Optional[Callable[[], None]] = field(default=None, repr=False)
    on_error: Optional[Callable[[str], None]] = field(default=None, repr=False)
    cancelled: bool = False
    finished: bool = False


class SynthesisEngine(ABC):
    """Speech synthesis engine interface"""

    def __init__(self):
        self.on_voices_changed: Optional[Callable[[], None]] = None

    @abstractmethod
    def get_voices(self) -> List[Voice]:
        """Voices available now (may be empty until the engine has loaded them)"""

    @abstractmethod
    def speak(self, utterance: Utterance) -> None:
        """Start speaking; report through the utterance callbacks"""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the current utterance"""

    def shutdown(self) -> None:
        """Release engine resources"""
        self.cancel()


def _lang_matches(voice: Voice, language: str) -> bool:
    prefix = language.replace("_", "-").split("-")[0].lower()
    return prefix in voice.lang.replace("_", "-").lower()


def select_voice(voices: List[Voice], language: str = Config.VOICE_LANG) -> Optional[Voice]:
    """
    Pick the voice for an utterance.

    Among voices of the configured language: one whose name says "female",
    then one with a known female name, then the first one. None means the
    engine default.
    """
    candidates = [v for v in voices if _lang_matches(v, language)]

    for voice in candidates:
        if "female" in voice.name.lower():
            return voice

    for voice in candidates:
        lowered = voice.name.lower()
        if any(name.lower() in lowered for name in FEMALE_VOICE_NAMES):
            return voice

    if candidates:
        return candidates[0]
    return None


class SpeechOutput:
    """Single-utterance speech driver with cancellation and voice selection"""

    def __init__(
        self,
        engine: Optional[SynthesisEngine],
        language: str = Config.VOICE_LANG,
        rate: float = Config.SPEECH_RATE,
        pitch: float = Config.SPEECH_PITCH
    ):
        """
        Initialize speech output

        Args:
            engine: Synthesis engine, or None to disable speech (utterances end at once)
            language: Preferred voice language (e.g. "en-US")
            rate: Speech rate applied to every utterance
            pitch: Pitch factor applied to every utterance
        """
        self.logger = get_logger()
        self.engine = engine
        self.language = language
        self.rate = rate
        self.pitch = pitch
        self._current: Optional[Utterance] = None
        self._pending: Optional[Utterance] = None
        self._voices_loaded = False
        if engine is not None:
            engine.on_voices_changed = self._on_voices_changed

    @property
    def is_speaking(self) -> bool:
        return self._current is not None

    def speak(
        self,
        text: str,
        on_start: Optional[Callable[[], None]] = None,
        on_end: Optional[Callable[[], None]] = None
    ) -> Optional[Utterance]:
        """
        Speak `text`, cancelling anything already playing

        Returns:
            The utterance handle, or None for empty text
        """
        if not text or not text.strip():
            return None

        self.cancel()

        utterance = Utterance(text=text, rate=self.rate, pitch=self.pitch)
        utterance.on_start = lambda: self._handle_start(utterance, on_start)
        utterance.on_end = lambda: self._handle_end(utterance, on_end)
        utterance.on_error = lambda reason: self._handle_error(utterance, reason, on_end)
        self._current = utterance

        if self.engine is None:
            self.logger.debug("[TTS] Speech disabled")
            self._handle_end(utterance, on_end)
            return utterance

        if not self.engine.get_voices() and not self._voices_loaded:
            self.logger.debug("[TTS] Waiting for voices to load")
            self._pending = utterance
            return utterance

        self._dispatch(utterance)
        return utterance

    def cancel(self) -> None:
        """Cancel the current utterance outright; its end callback never fires"""
        utterance = self._current
        self._current = None
        self._pending = None
        if utterance is None:
            return
        utterance.cancelled = True
        if self.engine is not None:
            try:
                self.engine.cancel()
            except Exception as e:
                self.logger.warning(f"[TTS] Cancel failed: {e}")

    def shutdown(self) -> None:
        self.cancel()
        if self.engine is not None:
            self.engine.shutdown()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _on_voices_changed(self) -> None:
        self._voices_loaded = True
        pending = self._pending
        self._pending = None
        if pending is not None and not pending.cancelled:
            self._dispatch(pending)

    def _dispatch(self, utterance: Utterance) -> None:
        utterance.voice = select_voice(self.engine.get_voices(), self.language)
        voice_name = utterance.voice.name if utterance.voice else "default"
        self.logger.debug(f"[TTS] Speaking with voice {voice_name}: {utterance.text[:50]}")
        try:
            self.engine.speak(utterance)
        except Exception as e:
            self.logger.error(f"[TTS] Speech synthesis error: {e}")
            utterance.on_end()

    def _handle_start(self, utterance: Utterance, callback: Optional[Callable[[], None]]) -> None:
        if utterance.cancelled or utterance.finished:
            return
        if callback:
            callback()

    def _handle_end(self, utterance: Utterance, callback: Optional[Callable[[], None]]) -> None:
        if utterance.cancelled or utterance.finished:
            return
        utterance.finished = True
        if self._current is utterance:
            self._current = None
        if callback:
            callback()

    def _handle_error(self, utterance: Utterance, reason: str, callback: Optional[Callable[[], None]]) -> None:
        if not utterance.cancelled:
            self.logger.error(f"[TTS] Speech synthesis error: {reason}")
        self._handle_end(utterance, callback)
