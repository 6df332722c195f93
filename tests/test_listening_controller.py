"""
Tests for the listening controller: wake-word activation, debounce, active
capture, preference changes, stream restarts, errors and the simulated path.

Run with: python -m pytest tests/test_listening_controller.py -v
"""

import pytest
from unittest.mock import MagicMock

from dia.core.listening_controller import ListeningController, matches_wake_word
from dia.core.state import ListeningMode


@pytest.fixture
def controller(loop, recognition, gate):
    ctl = ListeningController(loop, engine=recognition, gate=gate, wake_words=["dia", "deer"])
    ctl.on_utterance = MagicMock()
    ctl.on_interim = MagicMock()
    ctl.on_wake = MagicMock()
    ctl.on_error = MagicMock()
    return ctl


def _wake(recognition, phrase="hey dia"):
    recognition.stream("background").emit_result(phrase, True)


def _assert_single_stream(recognition):
    assert len(recognition.running) <= 1


# ============================================================================
# WAKE WORD MATCHING
# ============================================================================

class TestMatchesWakeWord:

    @pytest.mark.parametrize("text", ["Dia", "hey DIA what's up", "oh deer", "media player"])
    def test_substring_match(self, text):
        assert matches_wake_word(text, ["dia", "deer"]) is True

    def test_no_match(self):
        assert matches_wake_word("hello there", ["dia"]) is False


# ============================================================================
# BACKGROUND -> ACTIVE
# ============================================================================

class TestWakeActivation:

    def test_start_runs_background_stream(self, controller, recognition):
        controller.start()

        assert controller.mode is ListeningMode.BACKGROUND_LISTENING
        assert recognition.stream("background").is_running
        assert not recognition.stream("active").is_running

    def test_wake_word_starts_active_session(self, controller, recognition):
        controller.start()

        _wake(recognition)

        assert controller.mode is ListeningMode.ACTIVE_LISTENING
        assert controller.is_listening
        assert recognition.stream("background").aborts == 1
        assert recognition.stream("active").is_running
        controller.on_wake.assert_called_once()
        _assert_single_stream(recognition)

    def test_phrase_without_wake_word_is_discarded(self, controller, recognition):
        controller.start()

        _wake(recognition, "what a nice day")

        assert controller.mode is ListeningMode.BACKGROUND_LISTENING
        controller.on_wake.assert_not_called()

    def test_wake_word_disabled_at_start(self, loop, recognition, gate):
        ctl = ListeningController(loop, engine=recognition, gate=gate, wake_word_enabled=False)

        ctl.start()

        assert ctl.mode is ListeningMode.IDLE
        assert recognition.running == []


# ============================================================================
# ACTIVE SESSION
# ============================================================================

class TestActiveSession:

    def test_interim_then_final(self, controller, recognition):
        controller.start()
        _wake(recognition)
        active = recognition.stream("active")

        active.emit_result("what is", False)
        active.emit_result("what is the time", True)

        controller.on_interim.assert_any_call("what is")
        controller.on_utterance.assert_called_once_with("what is the time")
        assert controller.mode is ListeningMode.COOLDOWN
        assert active.stops == 1
        assert recognition.stream("background").is_running
        _assert_single_stream(recognition)

    def test_blank_final_is_ignored(self, controller, recognition):
        controller.start()
        _wake(recognition)

        recognition.stream("active").emit_result("   ", True)

        controller.on_utterance.assert_not_called()
        assert controller.is_listening

    def test_user_stop(self, controller, recognition):
        controller.start()
        _wake(recognition)

        controller.stop()

        assert recognition.stream("active").aborts == 1
        assert controller.mode is ListeningMode.COOLDOWN
        controller.on_interim.assert_called_with("")
        controller.on_error.assert_not_called()
        controller.on_utterance.assert_not_called()

    def test_recognition_error_resets(self, controller, recognition):
        controller.start()
        _wake(recognition)

        recognition.stream("active").emit_error("network")

        controller.on_error.assert_called_once_with("network")
        controller.on_interim.assert_called_with("")
        assert recognition.stream("active").aborts == 1
        assert controller.is_background_listening
        _assert_single_stream(recognition)

    def test_active_end_without_result(self, controller, recognition):
        controller.start()
        _wake(recognition)

        recognition.stream("active").emit_end()

        assert controller.is_background_listening
        assert recognition.stream("background").is_running

    def test_manual_activation_from_idle(self, loop, recognition, gate):
        ctl = ListeningController(loop, engine=recognition, gate=gate, wake_word_enabled=False)
        ctl.start()

        assert ctl.activate() is True
        assert recognition.stream("active").is_running

        ctl.stop()
        assert ctl.mode is ListeningMode.IDLE
        assert recognition.running == []

    def test_toggle(self, controller, recognition):
        controller.start()

        assert controller.toggle() is True
        assert recognition.stream("background").aborts == 1
        assert controller.toggle() is False
        _assert_single_stream(recognition)


# ============================================================================
# DEBOUNCE / COOLDOWN
# ============================================================================

class TestCooldown:

    def test_wake_ignored_until_window_elapses(self, controller, recognition, clock):
        controller.start()
        _wake(recognition)
        recognition.stream("active").emit_result("hello", True)

        clock.advance(2.0)
        _wake(recognition)
        assert controller.mode is ListeningMode.COOLDOWN

        clock.advance(1.0)
        assert controller.mode is ListeningMode.BACKGROUND_LISTENING
        _wake(recognition)
        assert controller.mode is ListeningMode.ACTIVE_LISTENING
        assert controller.on_wake.call_count == 2


# ============================================================================
# PREFERENCE CHANGES
# ============================================================================

class TestWakePreference:

    def test_enabling_during_active_session_does_not_interrupt(self, loop, recognition, gate):
        ctl = ListeningController(loop, engine=recognition, gate=gate, wake_word_enabled=False)
        ctl.start()
        ctl.activate()
        active = recognition.stream("active")

        ctl.set_wake_word_enabled(True)

        assert active.is_running
        assert active.aborts == 0 and active.stops == 0
        assert not recognition.stream("background").is_running

        active.emit_result("open youtube", True)

        assert recognition.stream("background").is_running
        assert ctl.is_background_listening

    def test_disabling_during_active_session_goes_idle_after(self, controller, recognition):
        controller.start()
        _wake(recognition)

        controller.set_wake_word_enabled(False)
        assert recognition.stream("active").is_running

        recognition.stream("active").emit_result("thanks", True)
        assert controller.mode is ListeningMode.IDLE
        assert recognition.running == []

    def test_disabling_stops_background(self, controller, recognition):
        controller.start()

        controller.set_wake_word_enabled(False)

        assert controller.mode is ListeningMode.IDLE
        assert recognition.stream("background").aborts == 1

    def test_enabling_from_idle_starts_background(self, loop, recognition, gate):
        ctl = ListeningController(loop, engine=recognition, gate=gate, wake_word_enabled=False)
        ctl.start()

        ctl.set_wake_word_enabled(True)

        assert recognition.stream("background").is_running


# ============================================================================
# RESTARTS AND FAILURES
# ============================================================================

class TestRestarts:

    def test_background_end_restarts(self, controller, recognition):
        controller.start()
        background = recognition.stream("background")

        background.emit_end()

        assert background.starts == 2
        assert background.is_running

    def test_background_error_waits_for_end(self, controller, recognition):
        controller.start()
        background = recognition.stream("background")

        background.emit_error("no-speech")
        assert background.starts == 1

        background.emit_end()
        assert background.starts == 2

    def test_start_failure_is_not_fatal(self, controller, recognition):
        recognition.fail_starts = True

        controller.start()
        assert controller.mode is ListeningMode.IDLE

        recognition.fail_starts = False
        controller.resume()
        assert controller.is_background_listening

    def test_stale_events_are_ignored(self, controller, recognition):
        controller.start()
        background = recognition.stream("background")
        controller.set_wake_word_enabled(False)

        background.emit_result("dia", True)
        background.emit_end()

        assert controller.mode is ListeningMode.IDLE
        controller.on_wake.assert_not_called()
        assert background.starts == 1

    def test_shutdown_aborts_everything(self, controller, recognition):
        controller.start()
        _wake(recognition)

        controller.shutdown()

        assert recognition.running == []
        assert controller.mode is ListeningMode.IDLE


# ============================================================================
# SPEAKING HOLD
# ============================================================================

class TestSpeakingHold:

    def test_hold_stops_background_until_release(self, controller, recognition):
        controller.start()
        background = recognition.stream("background")

        controller.hold_background()

        assert background.aborts == 1
        assert controller.mode is ListeningMode.IDLE

        controller.resume()
        assert recognition.running == []

        controller.release_background()
        assert background.is_running
        assert controller.is_background_listening

    def test_hold_leaves_active_session_alone(self, controller, recognition):
        controller.start()
        _wake(recognition)
        active = recognition.stream("active")

        controller.hold_background()
        assert active.is_running

        active.emit_result("what time is it", True)
        assert controller.mode is ListeningMode.IDLE
        assert recognition.running == []

        controller.release_background()
        assert recognition.stream("background").is_running

    def test_background_end_while_held_does_not_restart(self, controller, recognition):
        controller.start()
        background = recognition.stream("background")
        controller.hold_background()

        background.emit_end()

        assert background.starts == 1


# ============================================================================
# SIMULATED LISTENING
# ============================================================================

class TestSimulatedListening:

    @pytest.fixture
    def simulated(self, loop, gate):
        ctl = ListeningController(loop, engine=None, gate=gate)
        ctl.on_utterance = MagicMock()
        ctl.on_interim = MagicMock()
        ctl.start()
        return ctl

    def test_phrase_is_recognized_then_submitted(self, simulated, loop, clock):
        assert simulated.activate() is True
        assert simulated.is_listening

        clock.advance(3.0)
        loop.run_until_idle()
        simulated.on_interim.assert_called_with("What can you help me with?")
        simulated.on_utterance.assert_not_called()
        assert not simulated.is_listening

        clock.advance(0.5)
        loop.run_until_idle()
        simulated.on_utterance.assert_called_once_with("What can you help me with?")

    def test_toggle_before_expiry_cancels(self, simulated, loop, clock):
        simulated.toggle()
        simulated.toggle()

        clock.advance(5.0)
        loop.run_until_idle()

        simulated.on_utterance.assert_not_called()
        assert simulated.mode is ListeningMode.IDLE
