"""
Microphone stream module using sounddevice.
Captures audio in float32 mono at 16kHz and pushes to the queue of whichever
recognition stream currently holds the microphone.
"""
import sounddevice as sd
import numpy as np
from queue import Queue, Full
from threading import Lock
from typing import Optional
from dia.core.config import Config
from dia.core.logger import get_logger


class MicStream:
    """Microphone shared by recognition streams, one consumer at a time"""

    def __init__(
        self,
        sample_rate: int = Config.SAMPLE_RATE,
        channels: int = Config.CHANNELS,
        chunk_samples: int = Config.CHUNK_SAMPLES,
        device: Optional[int] = None
    ):
        """
        Initialize microphone stream

        Args:
            sample_rate: Audio sample rate (Hz)
            channels: Number of audio channels (1 for mono)
            chunk_samples: Number of samples per chunk
            device: Optional specific device index
        """
        self.logger = get_logger()
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_samples = chunk_samples
        self.device = device
        self.stream: Optional[sd.InputStream] = None
        self._consumer: Optional[Queue] = None
        self._owner: Optional[object] = None
        self._lock = Lock()

        if device is not None:
            self._verify_device()

    def _verify_device(self) -> None:
        """Verify device capabilities"""
        try:
            device_info = sd.query_devices(self.device, 'input')
            self.logger.debug(f"[STT] Using audio device: {device_info['name']}")
            if device_info['max_input_channels'] < self.channels:
                self.logger.warning(
                    f"Device supports {device_info['max_input_channels']} channels, requested {self.channels}"
                )
        except Exception as e:
            self.logger.error(f"Error verifying device: {e}")

    @property
    def owner(self) -> Optional[object]:
        return self._owner

    @property
    def is_running(self) -> bool:
        return self.stream is not None

    def _audio_callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        if status:
            self.logger.debug(f"Audio callback status: {status}")

        consumer = self._consumer
        if consumer is None:
            return

        # Convert to mono if needed
        if indata.shape[1] > 1:
            audio_data = np.mean(indata, axis=1)
        else:
            audio_data = indata[:, 0]

        try:
            consumer.put_nowait(audio_data.astype(np.float32).copy())
        except Full:
            self.logger.warning("Audio queue full, dropping frame")

    def claim(self, owner: object) -> Queue:
        """
        Route microphone audio to a fresh queue for `owner`

        Raises:
            RuntimeError: if another owner holds the microphone or the input
                stream cannot be opened
        """
        with self._lock:
            if self._owner is not None and self._owner is not owner:
                raise RuntimeError("microphone is in use")
            queue: Queue = Queue(maxsize=Config.AUDIO_QUEUE_MAX_SIZE)
            self._owner = owner
            self._consumer = queue
            if self.stream is None:
                try:
                    self._open()
                except (sd.PortAudioError, ValueError) as e:
                    self._owner = None
                    self._consumer = None
                    raise RuntimeError(f"cannot open input stream: {e}") from e
            return queue

    def release(self, owner: object) -> None:
        """Stop routing audio to `owner`; the input stream is closed"""
        with self._lock:
            if self._owner is not owner:
                return
            self._owner = None
            self._consumer = None
            self._close()

    def _open(self) -> None:
        self.logger.debug(
            f"Starting audio stream: {self.sample_rate}Hz, "
            f"{self.channels}ch, {self.chunk_samples} samples/chunk"
        )
        self.stream = sd.InputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype=np.float32,
            blocksize=self.chunk_samples,
            device=self.device,
            callback=self._audio_callback
        )
        self.stream.start()

    def _close(self) -> None:
        if self.stream is None:
            return
        try:
            self.stream.stop()
            self.stream.close()
        except Exception as e:
            self.logger.error(f"Error stopping audio stream: {e}")
        finally:
            self.stream = None

    def shutdown(self) -> None:
        with self._lock:
            self._owner = None
            self._consumer = None
            self._close()

    @staticmethod
    def list_devices() -> None:
        """List all available audio devices"""
        print("\n=== Available Audio Devices ===")
        print(sd.query_devices())
        print()
