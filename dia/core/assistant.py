"""
Session orchestrator for DIA.

Wires one conversational turn end to end:

    text or voice -> classify -> reply -> speak -> persist

and exposes the display state the UI layer renders (listening/speaking
flags, assistant emotion, interim input text, transcript). Everything here
runs on the event loop thread.
"""
from typing import Callable, List, Optional

from dia.brain import responses
from dia.brain.classifier import detect_emotion
from dia.brain.reply_policy import Reply, ReplyPolicy
from dia.core.config import Config
from dia.core.connectivity import ConnectivityMonitor
from dia.core.event_loop import EventLoop, Timer
from dia.core.listening_controller import ListeningController
from dia.core.logger import get_logger
from dia.core.state import ListeningMode, WakeWordGate
from dia.memory.kv_store import KeyValueStore, MemoryStore
from dia.memory.messages import Message, new_message, now_ms
from dia.memory.transcript_store import TranscriptStore, load_wake_word_enabled, save_wake_word_enabled
from dia.stt.base import RecognitionEngine
from dia.tools.action_sink import ActionSink
from dia.tts.speech_output import SpeechOutput, SynthesisEngine


WELCOME_ID = "welcome"


class DiaAssistant:
    """DIA assistant session: one controller, one policy, one speech driver, one transcript"""

    def __init__(
        self,
        loop: EventLoop,
        storage: Optional[KeyValueStore] = None,
        recognition: Optional[RecognitionEngine] = None,
        synthesis: Optional[SynthesisEngine] = None,
        action_sink: Optional[ActionSink] = None,
        connectivity: Optional[ConnectivityMonitor] = None,
        policy: Optional[ReplyPolicy] = None,
        gate: Optional[WakeWordGate] = None,
        wake_words: Optional[List[str]] = None
    ):
        """
        Initialize the assistant

        Args:
            loop: Event loop driving the session
            storage: Key-value persistence (in-memory if None)
            recognition: Speech recognition engine (None selects simulated listening)
            synthesis: Speech synthesis engine (None disables speech)
            action_sink: Receiver of command side effects
            connectivity: Online/offline signal (always online if None)
            policy: Reply policy (built from action_sink if None)
            gate: Wake-word gate shared with the controller
            wake_words: Wake-word substrings
        """
        self.logger = get_logger()
        self.loop = loop
        self.storage = storage if storage is not None else MemoryStore()
        self.transcript = TranscriptStore(self.storage)
        self.connectivity = connectivity or ConnectivityMonitor(loop)
        self.policy = policy or ReplyPolicy(action_sink=action_sink)
        self.speech = SpeechOutput(synthesis)
        self.controller = ListeningController(
            loop,
            engine=recognition,
            gate=gate,
            wake_words=wake_words,
            wake_word_enabled=Config.WAKE_WORD_DEFAULT
        )

        self._emotion = "idle"
        self._input_text = ""
        self._is_speaking = False
        self._pending_replies: List[Timer] = []
        self._listeners: List[Callable[["DiaAssistant"], None]] = []
        self._unsubscribe_net: Optional[Callable[[], None]] = None

        self.controller.on_utterance = self.submit_text
        self.controller.on_interim = self._set_input_text
        self.controller.on_mode_change = self._on_mode_change
        self.controller.on_error = self._on_recognition_error

    # ------------------------------------------------------------------ #
    # Display state
    # ------------------------------------------------------------------ #
    @property
    def is_listening(self) -> bool:
        return self.controller.is_listening

    @property
    def is_speaking(self) -> bool:
        return self._is_speaking

    @property
    def emotion(self) -> str:
        return self._emotion

    @property
    def input_text(self) -> str:
        return self._input_text

    @property
    def messages(self) -> List[Message]:
        return self.transcript.messages

    @property
    def mode(self) -> ListeningMode:
        return self.controller.mode

    @property
    def wake_word_enabled(self) -> bool:
        return self.controller.wake_word_enabled

    def subscribe(self, listener: Callable[["DiaAssistant"], None]) -> Callable[[], None]:
        """Register a display-state listener; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                self.logger.exception("[DIA] Display listener failed")

    def _set_emotion(self, emotion: str) -> None:
        if emotion != self._emotion:
            self._emotion = emotion
            self._notify()

    def _set_input_text(self, text: str) -> None:
        if text != self._input_text:
            self._input_text = text
            self._notify()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def start(self) -> None:
        """Load the transcript, seed the welcome message and start listening"""
        messages = self.transcript.load_all()
        if messages:
            self.logger.info(f"[STORE] Loaded {len(messages)} stored message(s)")
        else:
            self.transcript.append(Message(
                id=WELCOME_ID,
                text=responses.WELCOME_MESSAGE,
                sender="assistant",
                timestamp=now_ms(),
                emotion="happy"
            ))

        self._unsubscribe_net = self.connectivity.subscribe(self._on_connectivity_change)
        self.controller.set_wake_word_enabled(load_wake_word_enabled(self.storage))
        self.controller.start()
        self._notify()

    def shutdown(self) -> None:
        """Stop listening, silence speech and drop any pending reply"""
        self.logger.info("[DIA] Shutting down")
        for timer in self._pending_replies:
            timer.cancel()
        self._pending_replies = []
        if self._unsubscribe_net is not None:
            self._unsubscribe_net()
            self._unsubscribe_net = None
        self.controller.shutdown()
        if self.controller.engine is not None:
            self.controller.engine.shutdown()
        self.speech.shutdown()
        self._is_speaking = False

    # ------------------------------------------------------------------ #
    # Input
    # ------------------------------------------------------------------ #
    def submit_text(self, text: str) -> Optional[Message]:
        """
        Submit typed or recognized input for one conversational turn

        Returns:
            The stored user message, or None for blank input
        """
        text = (text or "").strip()
        if not text:
            return None

        user_emotion = detect_emotion(text)
        user_message = new_message(text, "user", emotion=user_emotion)
        self.transcript.append(user_message)
        self._input_text = ""
        self._emotion = "thinking"
        self._notify()

        # One timer per turn
        timer = self.policy.respond(
            self.loop,
            text,
            self.connectivity.is_online,
            self._on_reply,
            user_emotion=user_emotion
        )
        if timer is not None:
            self._pending_replies.append(timer)
        return user_message

    def toggle_listening(self) -> bool:
        """Start or stop command capture; returns the new listening flag"""
        self.speech.cancel()
        self._is_speaking = False
        listening = self.controller.toggle()
        self.controller.release_background()
        self._notify()
        return listening

    def set_wake_word_enabled(self, enabled: bool) -> None:
        """Change and persist the wake-word preference"""
        save_wake_word_enabled(self.storage, enabled)
        self.controller.set_wake_word_enabled(enabled)
        self._notify()

    # ------------------------------------------------------------------ #
    # Turn pipeline
    # ------------------------------------------------------------------ #
    def _on_reply(self, reply: Reply) -> None:
        self._pending_replies = [t for t in self._pending_replies if t.pending]
        self.controller.hold_background()
        self.transcript.append(new_message(reply.text, "assistant", emotion=reply.emotion))
        self._emotion = reply.emotion
        self._is_speaking = True
        self._notify()

        handle = self.speech.speak(reply.text, on_end=self._on_speech_end)
        if handle is None:
            self._on_speech_end()

    def _on_speech_end(self) -> None:
        self._is_speaking = False
        self._emotion = "idle"
        self._notify()
        self.controller.release_background()

    # ------------------------------------------------------------------ #
    # Collaborator events
    # ------------------------------------------------------------------ #
    def _on_mode_change(self, mode: ListeningMode) -> None:
        if mode is ListeningMode.ACTIVE_LISTENING:
            # Capture overrides whatever is being said. A cancelled utterance
            # never reports its end, so the background hold is released here.
            self.speech.cancel()
            self._is_speaking = False
            self.controller.release_background()
            self._set_emotion("listening")
        elif self._emotion == "listening":
            self._set_emotion("idle")
        self._notify()

    def _on_recognition_error(self, reason: str) -> None:
        self.logger.warning(f"[LISTEN] Speech recognition error: {reason}")
        self._set_input_text("")

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            self.logger.info("[NET] Back online - using the online reply path")
        else:
            self.logger.info("[NET] You're offline - DIA will answer from the offline corpus")
        self._notify()
