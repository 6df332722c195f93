"""
Audio player for TTS output.
Supports interruptible playback with stop events and pitch shifting.
"""
import wave
import numpy as np
import sounddevice as sd
import threading
from typing import Optional
from dia.core.logger import get_logger


class AudioPlayer:
    """Interruptible audio player for TTS output"""
    
    def __init__(self, device: Optional[int] = None):
        """
        Initialize audio player
        
        Args:
            device: Optional sounddevice output device index
        """
        self.logger = get_logger()
        self.device = device
        self.current_stream: Optional[sd.OutputStream] = None
        self.stream_lock = threading.Lock()
    
    @staticmethod
    def read_wav(wav_path: str):
        """
        Read a PCM WAV file
        
        Returns:
            (float32 samples in [-1, 1] shaped (n, channels), sample_rate, channels)
        """
        with wave.open(wav_path, 'rb') as wf:
            sample_rate = wf.getframerate()
            channels = wf.getnchannels()
            sample_width = wf.getsampwidth()
            frames = wf.readframes(wf.getnframes())
        
        if sample_width == 2:
            audio_data = np.frombuffer(frames, dtype=np.int16).astype(np.float32) / 32768.0
        elif sample_width == 1:
            audio_data = (np.frombuffer(frames, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
        elif sample_width == 4:
            audio_data = np.frombuffer(frames, dtype=np.int32).astype(np.float32) / 2147483648.0
        else:
            raise ValueError(f"Unsupported sample width: {sample_width}")
        
        return audio_data.reshape(-1, channels), sample_rate, channels
    
    def play_wav(self, wav_path: str, stop_event: threading.Event, pitch: float = 1.0) -> bool:
        """
        Play WAV file with interruptible streaming
        
        Playing at `pitch` times the native sample rate raises the pitch;
        the synthesizer compensates duration by stretching the audio first.
        
        Args:
            wav_path: Path to WAV file
            stop_event: Event to signal stop
            pitch: Pitch factor (1.0 = unchanged)
            
        Returns:
            True if played to completion, False if interrupted
        """
        audio_data, sample_rate, channels = self.read_wav(wav_path)
        playback_rate = int(sample_rate * max(0.5, min(2.0, pitch)))
        
        chunk_size = int(playback_rate * 0.05)  # 50ms chunks
        total_samples = len(audio_data)
        position = 0
        
        with self.stream_lock:
            self.current_stream = sd.OutputStream(
                samplerate=playback_rate,
                channels=channels,
                dtype='float32',
                device=self.device
            )
            self.current_stream.start()
        
        try:
            while position < total_samples:
                if stop_event.is_set():
                    self.logger.debug("[TTS] Audio playback interrupted")
                    return False
                
                end_pos = min(position + chunk_size, total_samples)
                stream = self.current_stream
                if stream is None:
                    return False
                stream.write(audio_data[position:end_pos])
                position = end_pos
            
            self.logger.debug("[TTS] Audio playback completed")
            return True
        
        finally:
            self._close_stream()
    
    def _close_stream(self) -> None:
        with self.stream_lock:
            if self.current_stream:
                try:
                    self.current_stream.stop()
                    self.current_stream.close()
                except sd.PortAudioError as e:
                    self.logger.debug(f"[TTS] Error closing output stream: {e}")
                self.current_stream = None
    
    def stop(self) -> None:
        """Stop current playback immediately"""
        self._close_stream()
