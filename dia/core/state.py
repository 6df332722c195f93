"""
State management for DIA.
Defines the listening state machine, its events and the wake-word gate.
"""
from enum import Enum
from dataclasses import dataclass, field
from typing import Callable, Optional
import time


class ListeningMode(Enum):
    """Listening controller states"""
    IDLE = "IDLE"
    BACKGROUND_LISTENING = "BACKGROUND_LISTENING"
    ACTIVE_LISTENING = "ACTIVE_LISTENING"
    COOLDOWN = "COOLDOWN"


class ControllerEvent(Enum):
    """Events that drive listening mode transitions"""
    START = "START"                         # session start, preference read
    WAKE_ENABLED = "WAKE_ENABLED"
    WAKE_DISABLED = "WAKE_DISABLED"
    WAKE_TRIGGERED = "WAKE_TRIGGERED"       # wake phrase heard and gate open
    ACTIVATE_REQUESTED = "ACTIVATE_REQUESTED"
    STOP_REQUESTED = "STOP_REQUESTED"
    FINAL_RESULT = "FINAL_RESULT"
    ACTIVE_ENDED = "ACTIVE_ENDED"
    ACTIVE_ERROR = "ACTIVE_ERROR"
    BACKGROUND_ENDED = "BACKGROUND_ENDED"
    BACKGROUND_ERROR = "BACKGROUND_ERROR"
    RESUME = "RESUME"                       # external restart trigger
    UNAVAILABLE = "UNAVAILABLE"             # recognition could not start


# Events that close an active session
_SESSION_END_EVENTS = {
    ControllerEvent.FINAL_RESULT,
    ControllerEvent.ACTIVE_ENDED,
    ControllerEvent.ACTIVE_ERROR,
    ControllerEvent.STOP_REQUESTED,
}


def _resting_mode(wake_enabled: bool) -> ListeningMode:
    return ListeningMode.BACKGROUND_LISTENING if wake_enabled else ListeningMode.IDLE


def transition(mode: ListeningMode, event: ControllerEvent, wake_enabled: bool) -> ListeningMode:
    """
    Pure transition function of the listening state machine.
    
    COOLDOWN is never stored; it is reported by the controller while
    background listening runs and the wake-word gate is still closed.
    
    Args:
        mode: Current stored mode
        event: Incoming event
        wake_enabled: Current wake-word preference
        
    Returns:
        Next mode
    """
    if event is ControllerEvent.UNAVAILABLE:
        return ListeningMode.IDLE
    
    if mode is ListeningMode.ACTIVE_LISTENING:
        # Preference changes never interrupt an active session
        if event in _SESSION_END_EVENTS:
            return _resting_mode(wake_enabled)
        return mode
    
    if event is ControllerEvent.ACTIVATE_REQUESTED:
        return ListeningMode.ACTIVE_LISTENING
    
    if mode is ListeningMode.BACKGROUND_LISTENING:
        if event is ControllerEvent.WAKE_TRIGGERED:
            return ListeningMode.ACTIVE_LISTENING
        if event in (ControllerEvent.WAKE_DISABLED, ControllerEvent.BACKGROUND_ENDED,
                     ControllerEvent.BACKGROUND_ERROR):
            return _resting_mode(wake_enabled)
        return mode
    
    # IDLE (and any stale COOLDOWN value)
    if event in (ControllerEvent.START, ControllerEvent.WAKE_ENABLED, ControllerEvent.RESUME,
                 ControllerEvent.BACKGROUND_ENDED):
        return _resting_mode(wake_enabled)
    return ListeningMode.IDLE


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class WakeWordGate:
    """
    Debounce gate for wake-word activations.
    
    Owned by the listening controller; only its own methods mutate it.
    The event loop is single-threaded, so check-and-update needs no lock.
    """
    debounce_window_ms: int = 3000
    clock_ms: Callable[[], int] = field(default=_now_ms, repr=False)
    last_trigger_time: Optional[int] = None
    
    def should_process_wake_word(self) -> bool:
        """Return True and record the trigger if the debounce window has elapsed"""
        now = self.clock_ms()
        if self.last_trigger_time is not None and now - self.last_trigger_time < self.debounce_window_ms:
            return False
        self.last_trigger_time = now
        return True
    
    def refresh(self) -> None:
        """Restart the debounce window (after an active session finishes)"""
        self.last_trigger_time = self.clock_ms()
    
    def is_open(self) -> bool:
        """Peek whether a trigger would be honored now, without recording it"""
        if self.last_trigger_time is None:
            return True
        return self.clock_ms() - self.last_trigger_time >= self.debounce_window_ms
