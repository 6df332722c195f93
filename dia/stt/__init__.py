"""
STT (speech-to-text) module for DIA.
Recognition engine interface plus a live faster-whisper engine.
"""
from dia.stt.base import (
    RecognitionEngine,
    RecognitionStream,
    RecognitionError,
    RecognitionBusyError,
    StreamOptions,
)

__all__ = [
    "RecognitionEngine",
    "RecognitionStream",
    "RecognitionError",
    "RecognitionBusyError",
    "StreamOptions",
]
