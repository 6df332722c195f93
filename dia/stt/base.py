"""
Recognition engine interface.

An engine hands out streams. A stream is started, stopped (pending audio is
flushed as a final result) or aborted (pending audio is discarded), and
reports back through three callbacks, always invoked on the event loop:

    on_result(transcript, is_final)
    on_error(reason)
    on_end()
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional


class RecognitionError(Exception):
    """Recognition engine failure (start rejected, capture or transcription error)"""


class RecognitionBusyError(RecognitionError):
    """Raised when a stream is started while another stream of the engine runs"""


@dataclass
class StreamOptions:
    """Options for one recognition stream"""
    continuous: bool = True
    interim_results: bool = False
    fidelity: str = "low"           # "low" (background) or "high" (active)
    name: str = "stream"


ResultCallback = Callable[[str, bool], None]
ErrorCallback = Callable[[str], None]
EndCallback = Callable[[], None]


class RecognitionStream(ABC):
    """One continuous recognition stream"""
    
    def __init__(self, options: StreamOptions):
        self.options = options
        self.on_result: Optional[ResultCallback] = None
        self.on_error: Optional[ErrorCallback] = None
        self.on_end: Optional[EndCallback] = None
    
    def bind(
        self,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_end: Optional[EndCallback] = None
    ) -> None:
        """Attach event callbacks"""
        self.on_result = on_result
        self.on_error = on_error
        self.on_end = on_end
    
    @property
    def name(self) -> str:
        return self.options.name
    
    @property
    @abstractmethod
    def is_running(self) -> bool:
        """True between a successful start() and the end of the stream"""
    
    @abstractmethod
    def start(self) -> None:
        """Start recognition. Raises RecognitionError if the engine refuses."""
    
    @abstractmethod
    def stop(self) -> None:
        """Stop recognition, delivering any pending final result"""
    
    @abstractmethod
    def abort(self) -> None:
        """Stop recognition immediately; nothing is delivered afterwards"""


class RecognitionEngine(ABC):
    """Factory for recognition streams sharing one audio source"""
    
    @abstractmethod
    def create_stream(self, options: StreamOptions) -> RecognitionStream:
        """Create a new (not yet started) stream"""
    
    def shutdown(self) -> None:
        """Release engine resources"""
