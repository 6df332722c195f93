"""
Configuration module for DIA.
Centralizes all settings with environment variable overrides.
"""
import os
from typing import List, Optional


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


class Config:
    """Central configuration for DIA"""
    
    # Identity
    ASSISTANT_NAME: str = os.environ.get("DIA_ASSISTANT_NAME", "DIA")
    
    # Wake word settings
    # Substrings tested against each background transcript (lower-cased).
    WAKE_WORDS: List[str] = [
        w.strip().lower()
        for w in os.environ.get("DIA_WAKE_WORDS", "dia,dear,deer,diya,d i a").split(",")
        if w.strip()
    ]
    WAKE_DEBOUNCE_MS: int = int(os.environ.get("DIA_WAKE_DEBOUNCE_MS", "3000"))
    WAKE_WORD_DEFAULT: bool = _env_bool("DIA_WAKE_WORD_DEFAULT", "true")
    
    # Simulated delays (seconds)
    ONLINE_LATENCY_SEC: float = float(os.environ.get("DIA_ONLINE_LATENCY_SEC", "1.0"))
    SIMULATED_LISTEN_SEC: float = float(os.environ.get("DIA_SIMULATED_LISTEN_SEC", "3.0"))
    SIMULATED_SUBMIT_DELAY_SEC: float = float(os.environ.get("DIA_SIMULATED_SUBMIT_DELAY_SEC", "0.5"))
    SIMULATED_PHRASE: str = os.environ.get("DIA_SIMULATED_PHRASE", "What can you help me with?")
    
    # Command recognition
    COMMANDS_ENABLED: bool = _env_bool("DIA_COMMANDS_ENABLED", "true")
    
    # Speech output
    TTS_ENABLED: bool = _env_bool("DIA_TTS_ENABLED", "true")
    SPEECH_RATE: float = float(os.environ.get("DIA_SPEECH_RATE", "1.0"))
    SPEECH_PITCH: float = float(os.environ.get("DIA_SPEECH_PITCH", "1.1"))
    VOICE_LANG: str = os.environ.get("DIA_VOICE_LANG", "en-US")
    PIPER_EXE_PATH: str = os.environ.get("DIA_PIPER_EXE_PATH", "piper")
    PIPER_VOICES_DIR: str = os.environ.get("DIA_PIPER_VOICES_DIR", "./assets/voices")
    PIPER_TIMEOUT_SEC: float = float(os.environ.get("DIA_PIPER_TIMEOUT_SEC", "15"))
    TTS_OUTPUT_DEVICE: Optional[int] = None if not os.environ.get("DIA_TTS_OUTPUT_DEVICE") else int(os.environ.get("DIA_TTS_OUTPUT_DEVICE"))
    
    # Audio settings
    SAMPLE_RATE: int = int(os.environ.get("DIA_SAMPLE_RATE", "16000"))
    CHANNELS: int = 1
    CHUNK_MS: int = int(os.environ.get("DIA_CHUNK_MS", "20"))
    CHUNK_SAMPLES: int = SAMPLE_RATE * CHUNK_MS // 1000
    AUDIO_QUEUE_MAX_SIZE: int = int(os.environ.get("DIA_AUDIO_QUEUE_MAX_SIZE", "200"))
    
    # VAD settings (energy based)
    VAD_THRESHOLD: float = float(os.environ.get("DIA_VAD_THRESHOLD", "0.015"))
    VAD_SILENCE_TIMEOUT: float = float(os.environ.get("DIA_VAD_SILENCE_TIMEOUT", "0.9"))
    MAX_UTTERANCE_SECONDS: float = float(os.environ.get("DIA_MAX_UTTERANCE_SECONDS", "12.0"))
    INTERIM_INTERVAL_SEC: float = float(os.environ.get("DIA_INTERIM_INTERVAL_SEC", "0.8"))
    
    # STT settings
    # Background stream is low fidelity, active stream high fidelity.
    WHISPER_BACKGROUND_MODEL: str = os.environ.get("DIA_WHISPER_BACKGROUND_MODEL", "tiny")
    WHISPER_MODEL: str = os.environ.get("DIA_WHISPER_MODEL", "small")
    WHISPER_DEVICE: str = os.environ.get("DIA_WHISPER_DEVICE", "cpu")
    WHISPER_COMPUTE_TYPE: str = os.environ.get("DIA_WHISPER_COMPUTE_TYPE", "int8")
    STT_LANGUAGE: str = os.environ.get("DIA_STT_LANGUAGE", "en")
    MAX_TOKEN_REPEATS: int = int(os.environ.get("DIA_MAX_TOKEN_REPEATS", "6"))
    MIN_TRANSCRIPT_LENGTH: int = int(os.environ.get("DIA_MIN_TRANSCRIPT_LENGTH", "2"))
    
    # Persistence
    STORAGE_PATH: str = os.environ.get("DIA_STORAGE_PATH", "dia/data/storage.json")
    
    # Connectivity probe
    CONNECTIVITY_PROBE_URL: str = os.environ.get("DIA_CONNECTIVITY_PROBE_URL", "https://www.google.com/generate_204")
    CONNECTIVITY_PROBE_INTERVAL_SEC: float = float(os.environ.get("DIA_CONNECTIVITY_PROBE_INTERVAL_SEC", "15.0"))
    CONNECTIVITY_PROBE_TIMEOUT_SEC: float = float(os.environ.get("DIA_CONNECTIVITY_PROBE_TIMEOUT_SEC", "3.0"))
    
    # Logging
    LOG_LEVEL: str = os.environ.get("DIA_LOG_LEVEL", "INFO")
    QUIET_MODE: bool = _env_bool("DIA_QUIET_MODE", "false")
    
    @classmethod
    def get_silence_timeout_frames(cls) -> int:
        """Get number of frames for silence timeout"""
        return int(cls.VAD_SILENCE_TIMEOUT * cls.SAMPLE_RATE / cls.CHUNK_SAMPLES)
    
    @classmethod
    def get_max_utterance_frames(cls) -> int:
        """Get maximum number of frames buffered for one utterance"""
        return int(cls.MAX_UTTERANCE_SECONDS * cls.SAMPLE_RATE / cls.CHUNK_SAMPLES)
    
    @classmethod
    def get_interim_frames(cls) -> int:
        """Get number of frames between interim transcriptions"""
        return max(1, int(cls.INTERIM_INTERVAL_SEC * cls.SAMPLE_RATE / cls.CHUNK_SAMPLES))
