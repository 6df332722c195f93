"""
Shared fakes and fixtures for the DIA test suite.

Nothing here touches real audio, the network or the filesystem: recognition
and synthesis engines are scripted fakes, time is a manual clock and storage
is in memory.
"""

from typing import List, Optional

import pytest

from dia.core.event_loop import EventLoop
from dia.core.state import WakeWordGate
from dia.memory.kv_store import MemoryStore
from dia.stt.base import (
    RecognitionBusyError,
    RecognitionEngine,
    RecognitionError,
    RecognitionStream,
    StreamOptions,
)
from dia.tools.action_sink import ActionSink
from dia.tts.speech_output import SynthesisEngine, Utterance, Voice


# ============================================================================
# CLOCK
# ============================================================================

class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ============================================================================
# RECOGNITION
# ============================================================================

class FakeRecognitionStream(RecognitionStream):
    """Scripted stream; emit_* helpers play the engine's role."""

    def __init__(self, engine: "FakeRecognitionEngine", options: StreamOptions):
        super().__init__(options)
        self.engine = engine
        self._running = False
        self.starts = 0
        self.stops = 0
        self.aborts = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self.engine.fail_starts:
            raise RecognitionError("not-allowed")
        for other in self.engine.streams:
            if other is not self and other.is_running:
                raise RecognitionBusyError(f"{other.name} is running")
        self._running = True
        self.starts += 1

    def stop(self) -> None:
        self._running = False
        self.stops += 1

    def abort(self) -> None:
        self._running = False
        self.aborts += 1

    def emit_result(self, text: str, is_final: bool = True) -> None:
        if self.on_result:
            self.on_result(text, is_final)

    def emit_error(self, reason: str = "network") -> None:
        if self.on_error:
            self.on_error(reason)

    def emit_end(self) -> None:
        self._running = False
        if self.on_end:
            self.on_end()


class FakeRecognitionEngine(RecognitionEngine):
    """Engine handing out FakeRecognitionStreams, refusing overlapping starts."""

    def __init__(self):
        self.streams: List[FakeRecognitionStream] = []
        self.fail_starts = False
        self.shut_down = False

    def create_stream(self, options: StreamOptions) -> FakeRecognitionStream:
        stream = FakeRecognitionStream(self, options)
        self.streams.append(stream)
        return stream

    def stream(self, name: str) -> FakeRecognitionStream:
        for s in self.streams:
            if s.name == name:
                return s
        raise KeyError(name)

    @property
    def running(self) -> List[FakeRecognitionStream]:
        return [s for s in self.streams if s.is_running]

    def shutdown(self) -> None:
        self.shut_down = True


# ============================================================================
# SYNTHESIS
# ============================================================================

class FakeSynthesisEngine(SynthesisEngine):
    """Records utterances; tests decide when they start, end or fail."""

    def __init__(self, voices: Optional[List[Voice]] = None):
        super().__init__()
        self.voices: List[Voice] = list(voices or [])
        self.spoken: List[Utterance] = []
        self.cancels = 0
        self.raise_on_speak = False

    def get_voices(self) -> List[Voice]:
        return list(self.voices)

    def speak(self, utterance: Utterance) -> None:
        if self.raise_on_speak:
            raise RuntimeError("synthesis backend crashed")
        self.spoken.append(utterance)

    def cancel(self) -> None:
        self.cancels += 1

    def load_voices(self, voices: List[Voice]) -> None:
        self.voices = list(voices)
        if self.on_voices_changed:
            self.on_voices_changed()

    def finish(self, index: int = -1) -> None:
        utterance = self.spoken[index]
        utterance.on_start()
        utterance.on_end()


# ============================================================================
# ACTION SINK
# ============================================================================

class RecordingActionSink(ActionSink):
    """Collects requested side effects."""

    def __init__(self):
        self.urls: List[str] = []
        self.searches: List[str] = []

    def open_url(self, url: str) -> None:
        self.urls.append(url)

    def open_search(self, query: str) -> None:
        self.searches.append(query)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def loop(clock):
    return EventLoop(clock=clock)


@pytest.fixture
def gate(clock):
    return WakeWordGate(debounce_window_ms=3000, clock_ms=lambda: int(clock() * 1000))


@pytest.fixture
def recognition():
    return FakeRecognitionEngine()


@pytest.fixture
def synthesis():
    return FakeSynthesisEngine(voices=[Voice(name="en_US-amy-medium", lang="en_US")])


@pytest.fixture
def storage():
    return MemoryStore()


@pytest.fixture
def sink():
    return RecordingActionSink()


@pytest.fixture
def silent_synthesis():
    """Synthesis engine whose voice list has not loaded yet."""
    return FakeSynthesisEngine(voices=[])
