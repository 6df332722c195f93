"""
Whisper STT engine using faster-whisper.
Transcribes audio with repetition/garbage filtering.
"""
import numpy as np
from collections import Counter
from typing import Optional

from faster_whisper import WhisperModel

from dia.core.config import Config
from dia.core.logger import get_logger
from dia.stt.base import RecognitionError


class WhisperEngine:
    """Faster-Whisper transcriber for one model size"""

    def __init__(
        self,
        model_size: str = Config.WHISPER_MODEL,
        device: str = Config.WHISPER_DEVICE,
        compute_type: str = Config.WHISPER_COMPUTE_TYPE,
        language: str = Config.STT_LANGUAGE
    ):
        """
        Initialize Whisper engine

        Args:
            model_size: Model size (tiny, base, small, medium, large)
            device: Device to use (cpu, cuda)
            compute_type: Compute type (int8, int16, float16, float32)
            language: Transcription language code
        """
        self.logger = get_logger()
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.language = language
        self.model: Optional[WhisperModel] = None
        self._load_model()

    def _load_model(self) -> None:
        try:
            self.logger.info(
                f"[STT] Loading Whisper model: {self.model_size} "
                f"(device={self.device}, compute_type={self.compute_type})"
            )
            self.model = WhisperModel(
                self.model_size,
                device=self.device,
                compute_type=self.compute_type
            )
            self.logger.info(f"[STT] Whisper model '{self.model_size}' loaded")
        except Exception as e:
            self.logger.error(f"[STT] Failed to load Whisper model: {e}")
            raise RecognitionError(f"could not load Whisper model '{self.model_size}': {e}") from e

    def transcribe(self, audio: np.ndarray, beam_size: int = 5) -> str:
        """
        Transcribe audio to text

        Args:
            audio: Audio data as float32 mono at 16kHz
            beam_size: Beam size (1 is greedy and fastest)

        Returns:
            Transcribed text, or empty string if no speech/garbage

        Raises:
            RecognitionError: if the model fails
        """
        if len(audio) == 0:
            return ""

        try:
            segments, _info = self.model.transcribe(
                audio,
                language=self.language,
                beam_size=beam_size,
                vad_filter=False,
                word_timestamps=False
            )
            full_text = " ".join(segment.text.strip() for segment in segments).strip()
        except Exception as e:
            raise RecognitionError(f"transcription failed: {e}") from e

        if not self._is_valid_transcript(full_text):
            return ""
        return full_text

    def _is_valid_transcript(self, text: str) -> bool:
        if len(text) < Config.MIN_TRANSCRIPT_LENGTH:
            return False

        if is_repetition_spam(text):
            self.logger.debug(f"[STT] Repetition spam dropped: '{text}'")
            return False

        # Mostly non-alphabetic output is noise
        alpha_count = sum(c.isalpha() for c in text)
        if alpha_count / len(text) < 0.3:
            self.logger.debug(f"[STT] Too few alphabetic characters: '{text}'")
            return False

        return True


def _max_consecutive_chars(s: str) -> int:
    if not s:
        return 0
    max_count = current = 1
    for prev, char in zip(s, s[1:]):
        current = current + 1 if char == prev else 1
        max_count = max(max_count, current)
    return max_count


def is_repetition_spam(text: str, max_repeats: int = Config.MAX_TOKEN_REPEATS) -> bool:
    """Detect Whisper hallucination loops ("the the the ...", "aaaaaa")"""
    tokens = text.lower().split()
    if not tokens:
        return False

    if max(Counter(tokens).values()) > max_repeats:
        return True

    return any(len(token) > 3 and _max_consecutive_chars(token) > 4 for token in tokens)
