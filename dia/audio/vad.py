"""
Energy-based voice activity detection and utterance segmentation.

The segmenter consumes fixed-size frames and reports when an utterance
starts, keeps growing, and ends (after a run of silent frames or when the
maximum length is reached).
"""
import numpy as np
from enum import Enum
from typing import List, Optional

from dia.audio.audio_utils import concat_audio_frames, get_rms_energy
from dia.core.config import Config


class SegmentEvent(Enum):
    """What a frame did to the current segment"""
    NONE = "none"
    STARTED = "started"
    CONTINUED = "continued"
    ENDED = "ended"


class EnergyVad:
    """RMS threshold speech detector"""
    
    def __init__(self, threshold: float = Config.VAD_THRESHOLD):
        self.threshold = threshold
    
    def is_speech(self, frame: np.ndarray) -> bool:
        return get_rms_energy(frame) >= self.threshold


class UtteranceSegmenter:
    """Groups speech frames into utterances"""
    
    def __init__(
        self,
        vad: Optional[EnergyVad] = None,
        silence_frames: Optional[int] = None,
        max_frames: Optional[int] = None
    ):
        """
        Initialize segmenter
        
        Args:
            vad: Speech detector
            silence_frames: Silent frames that close an utterance
            max_frames: Frames after which an utterance is force-closed
        """
        self.vad = vad or EnergyVad()
        self.silence_frames = silence_frames or Config.get_silence_timeout_frames()
        self.max_frames = max_frames or Config.get_max_utterance_frames()
        self.frames: List[np.ndarray] = []
        self.in_speech = False
        self._silent_run = 0
    
    def reset(self) -> None:
        self.frames = []
        self.in_speech = False
        self._silent_run = 0
    
    def push(self, frame: np.ndarray) -> SegmentEvent:
        """Feed one frame"""
        speech = self.vad.is_speech(frame)
        
        if not self.in_speech:
            if not speech:
                return SegmentEvent.NONE
            self.in_speech = True
            self._silent_run = 0
            self.frames = [frame]
            return SegmentEvent.STARTED
        
        self.frames.append(frame)
        self._silent_run = 0 if speech else self._silent_run + 1
        
        if self._silent_run >= self.silence_frames or len(self.frames) >= self.max_frames:
            return SegmentEvent.ENDED
        return SegmentEvent.CONTINUED
    
    def take(self) -> np.ndarray:
        """Return the buffered utterance audio and reset"""
        audio = concat_audio_frames(self.frames)
        self.reset()
        return audio
    
    @property
    def has_audio(self) -> bool:
        return self.in_speech and bool(self.frames)
