"""
Audio utility functions for DIA.
"""
import numpy as np
from typing import List


def concat_audio_frames(frames: List[np.ndarray]) -> np.ndarray:
    """
    Concatenate multiple audio frames into single array
    
    Args:
        frames: List of audio frame arrays
        
    Returns:
        Single concatenated float32 array
    """
    if not frames:
        return np.array([], dtype=np.float32)
    
    return np.concatenate(frames, axis=0).astype(np.float32, copy=False)


def get_rms_energy(audio: np.ndarray) -> float:
    """
    Calculate RMS (Root Mean Square) energy of audio
    
    Args:
        audio: Input audio array
        
    Returns:
        RMS energy value
    """
    if len(audio) == 0:
        return 0.0
    
    return float(np.sqrt(np.mean(np.square(audio, dtype=np.float64))))
