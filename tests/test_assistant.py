"""
End-to-end tests for the session orchestrator: typed and voice turns,
welcome seeding, display state, preference persistence and connectivity.

Run with: python -m pytest tests/test_assistant.py -v
"""

import json
import urllib.error

import pytest
from unittest.mock import MagicMock, patch

from dia.brain import responses
from dia.core.assistant import WELCOME_ID, DiaAssistant
from dia.core.connectivity import ConnectivityMonitor
from dia.core.state import ListeningMode
from dia.memory.kv_store import MemoryStore
from dia.memory.transcript_store import TRANSCRIPT_KEY, WAKE_WORD_KEY


@pytest.fixture
def offline(loop):
    return ConnectivityMonitor(loop, online=False)


@pytest.fixture
def assistant(loop, storage, recognition, synthesis, sink, offline, gate):
    dia = DiaAssistant(
        loop,
        storage=storage,
        recognition=recognition,
        synthesis=synthesis,
        action_sink=sink,
        connectivity=offline,
        gate=gate,
        wake_words=["dia"]
    )
    dia.start()
    return dia


def _texts(assistant):
    return [(m.sender, m.text) for m in assistant.messages]


# ============================================================================
# STARTUP
# ============================================================================

class TestStartup:

    def test_cold_start_seeds_welcome(self, assistant, storage):
        first = assistant.messages[0]

        assert len(assistant.messages) == 1
        assert first.id == WELCOME_ID
        assert first.sender == "assistant"
        assert first.text == responses.WELCOME_MESSAGE
        assert first.emotion == "happy"
        assert json.loads(storage.get(TRANSCRIPT_KEY))[0]["id"] == WELCOME_ID

    def test_existing_transcript_is_not_reseeded(self, loop, recognition):
        stored = [{"id": "m1", "text": "hi", "sender": "user", "timestamp": 5}]
        storage = MemoryStore({TRANSCRIPT_KEY: json.dumps(stored)})
        dia = DiaAssistant(loop, storage=storage, recognition=recognition)

        dia.start()

        assert [m.id for m in dia.messages] == ["m1"]

    def test_corrupted_transcript_reseeds_welcome(self, loop, recognition):
        storage = MemoryStore({TRANSCRIPT_KEY: "[oops"})
        dia = DiaAssistant(loop, storage=storage, recognition=recognition)

        dia.start()

        assert [m.id for m in dia.messages] == [WELCOME_ID]

    def test_wake_preference_read_from_storage(self, loop, recognition):
        storage = MemoryStore({WAKE_WORD_KEY: "false"})
        dia = DiaAssistant(loop, storage=storage, recognition=recognition)

        dia.start()

        assert dia.wake_word_enabled is False
        assert dia.mode is ListeningMode.IDLE

    def test_background_listening_by_default(self, assistant, recognition):
        assert assistant.mode is ListeningMode.BACKGROUND_LISTENING
        assert recognition.stream("background").is_running


# ============================================================================
# TYPED TURNS
# ============================================================================

class TestTypedTurn:

    def test_offline_sad_turn(self, assistant, synthesis):
        assistant.submit_text("I am so sad today")

        user, reply = assistant.messages[-2:]
        assert user.sender == "user" and user.emotion == "sad"
        assert reply.sender == "assistant"
        assert reply.text == responses.OFFLINE_EMOTION_REPLIES["sad"]
        assert reply.emotion == "empathetic"
        assert assistant.emotion == "empathetic"
        assert assistant.is_speaking
        assert synthesis.spoken[-1].text == reply.text

    def test_search_command_turn(self, assistant, sink):
        assistant.submit_text("search for cats")

        assert assistant.messages[-1].text == 'Searching for "cats" for you.'
        assert sink.searches == ["cats"]

    def test_speech_end_returns_to_idle(self, assistant, synthesis):
        assistant.submit_text("hello")

        synthesis.finish()

        assert assistant.is_speaking is False
        assert assistant.emotion == "idle"

    def test_blank_input_ignored(self, assistant):
        assert assistant.submit_text("   ") is None
        assert len(assistant.messages) == 1

    def test_online_turn_thinks_first(self, loop, clock, storage, recognition, synthesis, gate):
        dia = DiaAssistant(loop, storage=storage, recognition=recognition, synthesis=synthesis,
                           connectivity=ConnectivityMonitor(loop, online=True), gate=gate)
        dia.start()

        dia.submit_text("hello")
        assert dia.emotion == "thinking"
        assert dia.messages[-1].sender == "user"

        clock.advance(1.0)
        loop.run_until_idle()

        assert dia.messages[-1].text == responses.ONLINE_REPLIES["greeting"]
        assert dia.is_speaking

    def test_overlapping_online_turns_each_get_a_reply(self, loop, clock, storage, recognition, synthesis, gate):
        dia = DiaAssistant(loop, storage=storage, recognition=recognition, synthesis=synthesis,
                           connectivity=ConnectivityMonitor(loop, online=True), gate=gate)
        dia.start()

        dia.submit_text("hello")
        clock.advance(0.2)
        loop.run_until_idle()
        dia.submit_text("tell me a joke")
        clock.advance(2.0)
        loop.run_until_idle()

        assert [m.sender for m in dia.messages] == ["assistant", "user", "user", "assistant", "assistant"]
        assert dia.messages[3].text == responses.ONLINE_REPLIES["greeting"]
        assert dia.messages[4].text == responses.ONLINE_REPLIES["joke"]

    def test_shutdown_drops_pending_online_replies(self, loop, clock, storage, recognition, gate):
        dia = DiaAssistant(loop, storage=storage, recognition=recognition,
                           connectivity=ConnectivityMonitor(loop, online=True), gate=gate)
        dia.start()
        dia.submit_text("hello")
        dia.submit_text("how are you")

        dia.shutdown()
        clock.advance(2.0)
        loop.run_until_idle()

        assert [m.sender for m in dia.messages] == ["assistant", "user", "user"]

    def test_persisted_after_each_message(self, assistant, storage):
        assistant.submit_text("hello")

        stored = json.loads(storage.get(TRANSCRIPT_KEY))
        assert [m["sender"] for m in stored] == ["assistant", "user", "assistant"]


# ============================================================================
# VOICE TURNS
# ============================================================================

class TestVoiceTurn:

    def test_wake_then_command(self, assistant, recognition, sink):
        recognition.stream("background").emit_result("hey dia", True)
        assert assistant.is_listening
        assert assistant.emotion == "listening"

        active = recognition.stream("active")
        active.emit_result("open", False)
        assert assistant.input_text == "open"

        active.emit_result("open youtube", True)

        assert ("user", "open youtube") in _texts(assistant)
        assert assistant.messages[-1].text == "Opening youtube for you."
        assert sink.urls == ["https://www.youtube.com"]
        assert assistant.input_text == ""
        assert not assistant.is_listening

    def test_recognition_error_clears_input(self, assistant, recognition):
        recognition.stream("background").emit_result("dia", True)
        recognition.stream("active").emit_result("half a sen", False)

        recognition.stream("active").emit_error("audio-capture")

        assert assistant.input_text == ""
        assert assistant.mode is not ListeningMode.ACTIVE_LISTENING
        assert len(assistant.messages) == 1

    def test_toggle_listening(self, assistant, recognition):
        assert assistant.toggle_listening() is True
        assert recognition.stream("active").is_running

        assert assistant.toggle_listening() is False
        assert not recognition.stream("active").is_running

    def test_background_held_while_speaking(self, assistant, recognition, synthesis):
        assistant.submit_text("hello")

        assert assistant.is_speaking
        assert recognition.running == []
        assert assistant.mode is ListeningMode.IDLE

        synthesis.finish()

        assert recognition.stream("background").is_running
        assert assistant.mode is not ListeningMode.IDLE

    def test_voice_turn_reply_does_not_reopen_background(self, assistant, recognition, synthesis):
        recognition.stream("background").emit_result("dia", True)
        recognition.stream("active").emit_result("who are you", True)

        assert assistant.is_speaking
        assert recognition.running == []

        synthesis.finish()
        assert recognition.stream("background").is_running

    def test_listening_while_speaking_releases_hold(self, assistant, recognition):
        assistant.submit_text("hello")

        assert assistant.toggle_listening() is True
        assert assistant.is_speaking is False
        assert assistant.toggle_listening() is False

        assert recognition.stream("background").is_running


# ============================================================================
# SETTINGS, CONNECTIVITY AND SHUTDOWN
# ============================================================================

class TestSettings:

    def test_wake_preference_persisted(self, assistant, storage, recognition):
        assistant.set_wake_word_enabled(False)

        assert storage.get(WAKE_WORD_KEY) == "false"
        assert assistant.mode is ListeningMode.IDLE
        assert recognition.running == []

    def test_subscribers_notified(self, assistant):
        listener = MagicMock()
        unsubscribe = assistant.subscribe(listener)

        assistant.submit_text("hello")
        assert listener.called

        listener.reset_mock()
        unsubscribe()
        assistant.submit_text("hello again")
        listener.assert_not_called()

    def test_failing_subscriber_does_not_break_turn(self, assistant):
        assistant.subscribe(MagicMock(side_effect=RuntimeError("ui crashed")))

        assistant.submit_text("hello")

        assert assistant.messages[-1].sender == "assistant"

    def test_connectivity_switch_changes_path(self, assistant, offline, loop):
        offline.set_online(True)

        assistant.submit_text("hello")
        assert assistant.messages[-1].sender == "user"

    def test_shutdown(self, assistant, recognition):
        assistant.submit_text("hello")

        assistant.shutdown()

        assert recognition.running == []
        assert recognition.shut_down is True
        assert assistant.is_speaking is False


class TestConnectivityMonitor:

    def test_notifies_only_on_change(self, loop):
        monitor = ConnectivityMonitor(loop, online=True)
        listener = MagicMock()
        monitor.subscribe(listener)

        monitor.set_online(True)
        monitor.set_online(False)
        monitor.set_online(False)

        listener.assert_called_once_with(False)
        assert monitor.is_online is False

    def test_probe_reports_failure(self, loop):
        monitor = ConnectivityMonitor(loop)

        with patch("dia.core.connectivity.urllib.request.urlopen",
                   side_effect=urllib.error.URLError("unreachable")):
            assert monitor.probe() is False

    def test_probe_reports_success(self, loop):
        monitor = ConnectivityMonitor(loop)

        with patch("dia.core.connectivity.urllib.request.urlopen", return_value=MagicMock()):
            assert monitor.probe() is True
