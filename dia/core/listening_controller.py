"""
Listening controller for DIA.

Owns the listening state machine:

    IDLE -> BACKGROUND_LISTENING <-> ACTIVE_LISTENING -> (cooldown) -> BACKGROUND_LISTENING

- BACKGROUND_LISTENING runs a low-fidelity continuous stream and watches each
  transcript for a wake word. A match that passes the wake-word gate promotes
  the controller to ACTIVE_LISTENING.
- ACTIVE_LISTENING runs a high-fidelity stream with interim results. Interim
  text is published as the visible input; the first final transcript closes
  the session and is handed to the utterance callback.
- Cooldown is the debounce window of the gate. Background listening may
  already be running again, but no wake word is honored until it elapses.
- While the assistant speaks, background listening is held in IDLE so the
  assistant cannot wake itself with its own reply.

Only one stream runs at a time: the other one is always stopped first.
All handlers run on the event loop thread.
"""
from typing import Callable, Dict, List, Optional

from dia.core.config import Config
from dia.core.event_loop import EventLoop, Timer
from dia.core.logger import get_logger
from dia.core.state import ControllerEvent, ListeningMode, WakeWordGate, transition
from dia.stt.base import RecognitionEngine, RecognitionError, RecognitionStream, StreamOptions


BACKGROUND = "background"
ACTIVE = "active"


def matches_wake_word(text: str, wake_words: Optional[List[str]] = None) -> bool:
    """Literal substring test of a transcript against the wake words"""
    lowered = (text or "").lower()
    for word in (wake_words if wake_words is not None else Config.WAKE_WORDS):
        if word and word in lowered:
            return True
    return False


class ListeningController:
    """Background wake-word listening, active command capture and their transitions"""

    def __init__(
        self,
        loop: EventLoop,
        engine: Optional[RecognitionEngine] = None,
        gate: Optional[WakeWordGate] = None,
        wake_words: Optional[List[str]] = None,
        wake_word_enabled: bool = True,
        simulated_listen_sec: float = Config.SIMULATED_LISTEN_SEC,
        simulated_submit_delay_sec: float = Config.SIMULATED_SUBMIT_DELAY_SEC,
        simulated_phrase: str = Config.SIMULATED_PHRASE
    ):
        """
        Initialize listening controller

        Args:
            loop: Event loop all callbacks run on
            engine: Recognition engine, or None when the platform has no recognition
            gate: Wake-word debounce gate (shared by reference)
            wake_words: Wake-word substrings
            wake_word_enabled: Initial wake-word preference
            simulated_listen_sec: Duration of the simulated listening window
            simulated_submit_delay_sec: Delay between simulated recognition and submission
            simulated_phrase: Phrase "recognized" by the simulated path
        """
        self.logger = get_logger()
        self.loop = loop
        self.engine = engine
        self.gate = gate or WakeWordGate(
            debounce_window_ms=Config.WAKE_DEBOUNCE_MS,
            clock_ms=lambda: int(loop.clock() * 1000)
        )
        self.wake_words = wake_words if wake_words is not None else list(Config.WAKE_WORDS)
        self.simulated_listen_sec = simulated_listen_sec
        self.simulated_submit_delay_sec = simulated_submit_delay_sec
        self.simulated_phrase = simulated_phrase

        self._wake_enabled = wake_word_enabled
        self._mode = ListeningMode.IDLE
        self._started = False
        self._held = False

        self._streams: Dict[str, RecognitionStream] = {}
        self._current: Optional[RecognitionStream] = None
        if engine is not None:
            self._streams[BACKGROUND] = engine.create_stream(
                StreamOptions(continuous=True, interim_results=False, fidelity="low", name=BACKGROUND)
            )
            self._streams[ACTIVE] = engine.create_stream(
                StreamOptions(continuous=True, interim_results=True, fidelity="high", name=ACTIVE)
            )
            self._bind(self._streams[BACKGROUND], self._streams[ACTIVE])

        self._simulated_timer: Optional[Timer] = None
        self._simulated_submit_timer: Optional[Timer] = None

        # Outbound hooks
        self.on_utterance: Optional[Callable[[str], None]] = None
        self.on_interim: Optional[Callable[[str], None]] = None
        self.on_mode_change: Optional[Callable[[ListeningMode], None]] = None
        self.on_wake: Optional[Callable[[], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    @property
    def recognition_available(self) -> bool:
        return self.engine is not None

    @property
    def wake_word_enabled(self) -> bool:
        return self._wake_enabled

    @property
    def mode(self) -> ListeningMode:
        """Observable mode; background listening inside the debounce window reads as COOLDOWN"""
        if self._mode is ListeningMode.BACKGROUND_LISTENING and not self.gate.is_open():
            return ListeningMode.COOLDOWN
        return self._mode

    @property
    def is_listening(self) -> bool:
        """True while an active (command capture) session runs"""
        return self._mode is ListeningMode.ACTIVE_LISTENING

    @property
    def is_background_listening(self) -> bool:
        return self._mode is ListeningMode.BACKGROUND_LISTENING

    def start(self) -> None:
        """Leave IDLE according to the wake-word preference"""
        self._started = True
        if not self.recognition_available:
            self.logger.info("[LISTEN] Speech recognition unavailable - using simulated listening")
            return
        self.logger.info(
            f"[LISTEN] Controller started (wake word {'enabled' if self._wake_enabled else 'disabled'})"
        )
        self.dispatch(ControllerEvent.START)

    def set_wake_word_enabled(self, enabled: bool) -> None:
        """Change the wake-word preference; an active session is never interrupted"""
        if enabled == self._wake_enabled:
            return
        self._wake_enabled = enabled
        self.logger.info(f"[WAKE] Wake word listening {'enabled' if enabled else 'disabled'}")
        if not self._started:
            return
        self.dispatch(ControllerEvent.WAKE_ENABLED if enabled else ControllerEvent.WAKE_DISABLED)

    def activate(self) -> bool:
        """
        User-initiated start of command capture

        Returns:
            True if an active (or simulated) session is running afterwards
        """
        if self._mode is ListeningMode.ACTIVE_LISTENING:
            return True
        if not self.recognition_available:
            return self._start_simulated()
        self.dispatch(ControllerEvent.ACTIVATE_REQUESTED)
        return self._mode is ListeningMode.ACTIVE_LISTENING

    def stop(self) -> None:
        """User-initiated stop of command capture"""
        if self._simulated_timer is not None and self._simulated_timer.pending:
            self._simulated_timer.cancel()
            self._simulated_timer = None
            self.logger.info("[LISTEN] Simulated listening cancelled")
            self._emit_interim("")
            self._set_mode(ListeningMode.IDLE)
            return
        if self._mode is not ListeningMode.ACTIVE_LISTENING:
            return
        self.logger.info("[LISTEN] Listening stopped by user")
        self._emit_interim("")
        self.dispatch(ControllerEvent.STOP_REQUESTED)

    def toggle(self) -> bool:
        """Start capture if idle, stop it if running. Returns the new listening flag."""
        if self.is_listening:
            self.stop()
        else:
            self.activate()
        return self.is_listening

    def resume(self) -> None:
        """External restart trigger: bring background listening back if it should run"""
        if not self._started or not self.recognition_available:
            return
        if self._mode is ListeningMode.IDLE and self._wake_enabled:
            self.logger.debug("[LISTEN] Resume requested")
            self.dispatch(ControllerEvent.RESUME)

    def hold_background(self) -> None:
        """
        Keep background listening off while the assistant speaks

        A running background stream is aborted and the controller rests in
        IDLE until `release_background`. Active sessions are not affected.
        """
        self._held = True
        if self._mode is not ListeningMode.BACKGROUND_LISTENING:
            return
        self.logger.debug("[WAKE] Background listening held while speaking")
        if self._current is not None:
            self._abort(self._current)
        self._set_mode(ListeningMode.IDLE)

    def release_background(self) -> None:
        """Lift the hold and bring background listening back if it should run"""
        self._held = False
        self.resume()

    def shutdown(self) -> None:
        """Abort any stream and return to IDLE"""
        for timer in (self._simulated_timer, self._simulated_submit_timer):
            if timer is not None:
                timer.cancel()
        self._simulated_timer = None
        self._simulated_submit_timer = None
        if self._current is not None:
            self._abort(self._current)
        self._started = False
        self._set_mode(ListeningMode.IDLE)

    # ------------------------------------------------------------------ #
    # State machine
    # ------------------------------------------------------------------ #
    def dispatch(self, event: ControllerEvent) -> ListeningMode:
        """Apply one event: compute the next mode, then run the transition's side effects"""
        old = self._mode
        new = transition(old, event, self._wake_enabled and self.recognition_available)
        if self._held and new is ListeningMode.BACKGROUND_LISTENING:
            new = ListeningMode.IDLE
        self.logger.debug(f"[LISTEN] {old.value} --{event.value}--> {new.value}")

        if old is new:
            # Platform ended the background stream: restart it in place
            if new is ListeningMode.BACKGROUND_LISTENING and event is ControllerEvent.BACKGROUND_ENDED:
                self._current = None
                self.logger.info("[LISTEN] Background stream ended - restarting")
                self._start_stream(BACKGROUND)
            return self._mode

        if old is ListeningMode.ACTIVE_LISTENING:
            self._close_active(event)
            self.gate.refresh()
        elif old is ListeningMode.BACKGROUND_LISTENING:
            if event in (ControllerEvent.BACKGROUND_ENDED, ControllerEvent.BACKGROUND_ERROR):
                self._current = None
            elif self._current is not None:
                self._abort(self._current)

        self._set_mode(new)

        if new is ListeningMode.ACTIVE_LISTENING:
            self._start_stream(ACTIVE)
        elif new is ListeningMode.BACKGROUND_LISTENING:
            self._start_stream(BACKGROUND)

        return self._mode

    def _set_mode(self, mode: ListeningMode) -> None:
        if mode is self._mode:
            return
        self._mode = mode
        if self.on_mode_change:
            try:
                self.on_mode_change(mode)
            except Exception:
                self.logger.exception("[LISTEN] Mode change listener failed")

    def _close_active(self, event: ControllerEvent) -> None:
        stream = self._current
        self._current = None
        if stream is None:
            return
        if event is ControllerEvent.ACTIVE_ENDED:
            return
        if event is ControllerEvent.FINAL_RESULT:
            self._stop(stream)
        else:
            self._abort(stream)

    # ------------------------------------------------------------------ #
    # Stream management
    # ------------------------------------------------------------------ #
    def _bind(self, background: RecognitionStream, active: RecognitionStream) -> None:
        background.bind(
            on_result=lambda text, is_final: self._on_background_result(background, text, is_final),
            on_error=lambda reason: self._on_background_error(background, reason),
            on_end=lambda: self._on_background_end(background)
        )
        active.bind(
            on_result=lambda text, is_final: self._on_active_result(active, text, is_final),
            on_error=lambda reason: self._on_active_error(active, reason),
            on_end=lambda: self._on_active_end(active)
        )

    def _start_stream(self, kind: str) -> bool:
        stream = self._streams[kind]
        # Never two streams at once: the engine rejects overlapping starts
        for other in self._streams.values():
            if other is not stream and other.is_running:
                self._abort(other)
        try:
            stream.start()
        except RecognitionError as e:
            self.logger.warning(f"[LISTEN] Could not start {kind} stream: {e}")
            self._current = None
            self._set_mode(ListeningMode.IDLE)
            return False
        self._current = stream
        if kind == BACKGROUND:
            self.logger.info(f"[WAKE] Listening for wake word: {self.wake_words}")
        else:
            self.logger.info("[LISTEN] Listening... (speak now)")
        return True

    def _stop(self, stream: RecognitionStream) -> None:
        try:
            stream.stop()
        except RecognitionError as e:
            self.logger.warning(f"[LISTEN] Error stopping {stream.name} stream: {e}")

    def _abort(self, stream: RecognitionStream) -> None:
        if self._current is stream:
            self._current = None
        try:
            stream.abort()
        except RecognitionError as e:
            self.logger.warning(f"[LISTEN] Error aborting {stream.name} stream: {e}")

    def _is_current(self, stream: RecognitionStream, mode: ListeningMode) -> bool:
        return self._current is stream and self._mode is mode

    # ------------------------------------------------------------------ #
    # Background stream events
    # ------------------------------------------------------------------ #
    def _on_background_result(self, stream: RecognitionStream, text: str, is_final: bool) -> None:
        if not self._is_current(stream, ListeningMode.BACKGROUND_LISTENING):
            return
        if not matches_wake_word(text, self.wake_words):
            self.logger.debug(f"[WAKE] Background heard: '{text}'")
            return
        if not self.gate.should_process_wake_word():
            self.logger.debug(f"[WAKE] Wake word ignored during cooldown: '{text}'")
            return
        self.logger.info(f"[WAKE] Wake word detected in: '{text}'")
        self.dispatch(ControllerEvent.WAKE_TRIGGERED)
        if self.on_wake:
            self.on_wake()

    def _on_background_error(self, stream: RecognitionStream, reason: str) -> None:
        if not self._is_current(stream, ListeningMode.BACKGROUND_LISTENING):
            return
        # The stream still reports its end; the restart happens there
        self.logger.warning(f"[WAKE] Background recognition error: {reason}")
        self.dispatch(ControllerEvent.BACKGROUND_ERROR)

    def _on_background_end(self, stream: RecognitionStream) -> None:
        if not self._is_current(stream, ListeningMode.BACKGROUND_LISTENING):
            return
        self.dispatch(ControllerEvent.BACKGROUND_ENDED)

    # ------------------------------------------------------------------ #
    # Active stream events
    # ------------------------------------------------------------------ #
    def _on_active_result(self, stream: RecognitionStream, text: str, is_final: bool) -> None:
        if not self._is_current(stream, ListeningMode.ACTIVE_LISTENING):
            return
        self._emit_interim(text)
        if not is_final:
            self.logger.debug(f"[LISTEN] Interim: '{text}'")
            return
        utterance = text.strip()
        if not utterance:
            return
        self.logger.info(f"[LISTEN] Heard: '{utterance}'")
        self.dispatch(ControllerEvent.FINAL_RESULT)
        self._emit_utterance(utterance)

    def _on_active_error(self, stream: RecognitionStream, reason: str) -> None:
        if not self._is_current(stream, ListeningMode.ACTIVE_LISTENING):
            return
        self.logger.warning(f"[LISTEN] Recognition error: {reason}")
        self._emit_interim("")
        if self.on_error:
            self.on_error(reason)
        self.dispatch(ControllerEvent.ACTIVE_ERROR)

    def _on_active_end(self, stream: RecognitionStream) -> None:
        if not self._is_current(stream, ListeningMode.ACTIVE_LISTENING):
            return
        self.logger.info("[LISTEN] Active stream ended without a final result")
        self.dispatch(ControllerEvent.ACTIVE_ENDED)

    # ------------------------------------------------------------------ #
    # Simulated listening (no recognition capability)
    # ------------------------------------------------------------------ #
    def _start_simulated(self) -> bool:
        if self._simulated_timer is not None and self._simulated_timer.pending:
            return True
        self.logger.info(f"[LISTEN] Simulated listening for {self.simulated_listen_sec:.1f}s")
        self._set_mode(ListeningMode.ACTIVE_LISTENING)
        self._simulated_timer = self.loop.call_later(self.simulated_listen_sec, self._finish_simulated)
        return True

    def _finish_simulated(self) -> None:
        self._simulated_timer = None
        self._set_mode(ListeningMode.IDLE)
        phrase = self.simulated_phrase
        self.logger.info(f"[LISTEN] Simulated recognition: '{phrase}'")
        self._emit_interim(phrase)
        self._simulated_submit_timer = self.loop.call_later(
            self.simulated_submit_delay_sec, self._submit_simulated, phrase
        )

    def _submit_simulated(self, phrase: str) -> None:
        self._simulated_submit_timer = None
        self._emit_utterance(phrase)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _emit_interim(self, text: str) -> None:
        if self.on_interim:
            self.on_interim(text)

    def _emit_utterance(self, text: str) -> None:
        if self.on_utterance:
            self.on_utterance(text)
