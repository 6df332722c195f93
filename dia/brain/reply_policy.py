"""
Reply policy for DIA.

Given a user utterance and the connectivity state, produce the reply text
and the emotion the assistant displays while speaking it:

1. A recognized command gets its command template and triggers the matching
   external action.
2. Otherwise the reply comes from a decision table keyed first by the
   detected user emotion, then by keyword triggers, then a fallback line.
   Offline uses the local corpus immediately; online waits a fixed latency
   (where a remote reply service would be called) and uses the richer table.

The reply emotion is derived from the final reply text, never classified
separately.
"""
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from dia.brain import responses
from dia.brain.classifier import CommandAction, detect_emotion, recognize_command
from dia.core.config import Config
from dia.core.event_loop import EventLoop, Timer
from dia.core.logger import get_logger
from dia.tools.action_sink import ActionSink, resolve_open_target, video_search_url


@dataclass
class Reply:
    """Outcome of one turn of the reply policy"""
    text: str
    emotion: str
    user_emotion: str = "neutral"
    command: Optional[CommandAction] = None
    online: bool = False


def derive_reply_emotion(reply_text: str) -> str:
    """
    Assistant display emotion from sentinel substrings of the reply.

    Priority: apology -> thinking, empathy -> empathetic,
    positivity -> excited, otherwise happy.
    """
    lowered = (reply_text or "").lower()
    if responses.APOLOGY_MARKER in lowered:
        return "thinking"
    if any(p in lowered for p in responses.EMPATHY_PHRASES):
        return "empathetic"
    if any(p in lowered for p in responses.POSITIVITY_PHRASES):
        return "excited"
    return "happy"


def _first_trigger(text: str, triggers: List[Tuple[str, Tuple[str, ...]]]) -> Optional[str]:
    for name, needles in triggers:
        if any(needle in text for needle in needles):
            return name
    return None


class ReplyPolicy:
    """Command, emotion and keyword driven reply selection"""

    def __init__(
        self,
        action_sink: Optional[ActionSink] = None,
        rng: Optional[random.Random] = None,
        now: Callable[[], datetime] = datetime.now,
        commands_enabled: bool = Config.COMMANDS_ENABLED,
        online_latency_sec: float = Config.ONLINE_LATENCY_SEC
    ):
        """
        Initialize reply policy

        Args:
            action_sink: Receiver of command side effects (None disables them)
            rng: Random source for joke selection
            now: Clock used for time-of-day replies
            commands_enabled: Whether command recognition runs at all
            online_latency_sec: Simulated latency of the online path
        """
        self.logger = get_logger()
        self.action_sink = action_sink
        self.rng = rng or random.Random()
        self.now = now
        self.commands_enabled = commands_enabled
        self.online_latency_sec = online_latency_sec

    # ------------------------------------------------------------------ #
    # Synchronous composition
    # ------------------------------------------------------------------ #
    def compose(self, text: str, online: bool, user_emotion: Optional[str] = None) -> Reply:
        """
        Compose the reply for `text` without any delay.

        Command side effects are triggered here.
        """
        if user_emotion is None:
            user_emotion = detect_emotion(text)

        command = recognize_command(text) if self.commands_enabled else None
        if command is not None:
            reply_text = self._handle_command(command)
        elif online:
            reply_text = self._online_reply(text, user_emotion)
        else:
            reply_text = self._offline_reply(text, user_emotion)

        reply = Reply(
            text=reply_text,
            emotion=derive_reply_emotion(reply_text),
            user_emotion=user_emotion,
            command=command,
            online=online
        )
        self.logger.info(
            f"[REPLY] ({'online' if online else 'offline'}, user={user_emotion}, "
            f"reply={reply.emotion}) {reply_text}"
        )
        return reply

    # ------------------------------------------------------------------ #
    # Event-loop driven reply
    # ------------------------------------------------------------------ #
    def respond(
        self,
        loop: EventLoop,
        text: str,
        online: bool,
        on_reply: Callable[[Reply], None],
        user_emotion: Optional[str] = None
    ) -> Optional[Timer]:
        """
        Produce a reply and hand it to `on_reply` on the event loop.

        Commands and offline replies are delivered immediately; online replies
        after the simulated latency.

        Returns:
            The pending latency timer for online replies, else None
        """
        if user_emotion is None:
            user_emotion = detect_emotion(text)

        immediate = not online or (self.commands_enabled and recognize_command(text) is not None)
        if immediate:
            on_reply(self.compose(text, online, user_emotion))
            return None

        self.logger.debug(f"[REPLY] Waiting {self.online_latency_sec:.1f}s for online reply")
        return loop.call_later(
            self.online_latency_sec,
            lambda: on_reply(self.compose(text, online, user_emotion))
        )

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #
    def _handle_command(self, command: CommandAction) -> str:
        if command.action == "open":
            url = resolve_open_target(command.target)
            if url is None:
                self.logger.info(f"[REPLY] Unknown open target: '{command.target}'")
                return responses.OPEN_UNKNOWN_TEMPLATE.format(target=command.target)
            self._fire(lambda sink: sink.open_url(url))
            return responses.OPEN_TEMPLATE.format(target=command.target)

        if command.action == "search":
            self._fire(lambda sink: sink.open_search(command.query))
            return responses.SEARCH_TEMPLATE.format(query=command.query)

        if command.action == "play":
            self._fire(lambda sink: sink.open_url(video_search_url(command.target)))
            return responses.PLAY_TEMPLATE.format(target=command.target)

        # "call": no calling capability
        return responses.CALL_TEMPLATE.format(target=command.target)

    def _fire(self, action: Callable[[ActionSink], None]) -> None:
        if self.action_sink is None:
            return
        try:
            action(self.action_sink)
        except Exception as e:
            self.logger.error(f"[REPLY] Action failed: {e}")

    # ------------------------------------------------------------------ #
    # Decision tables
    # ------------------------------------------------------------------ #
    def _offline_reply(self, text: str, user_emotion: str) -> str:
        if user_emotion in responses.OFFLINE_EMOTION_REPLIES:
            return responses.OFFLINE_EMOTION_REPLIES[user_emotion]
        return self._keyword_reply(
            text, responses.OFFLINE_TRIGGERS, responses.OFFLINE_REPLIES, responses.OFFLINE_FALLBACK
        )

    def _online_reply(self, text: str, user_emotion: str) -> str:
        if user_emotion in responses.ONLINE_EMOTION_REPLIES:
            return responses.ONLINE_EMOTION_REPLIES[user_emotion]
        return self._keyword_reply(
            text, responses.ONLINE_TRIGGERS, responses.ONLINE_REPLIES, responses.ONLINE_FALLBACK
        )

    def _keyword_reply(
        self,
        text: str,
        triggers: List[Tuple[str, Tuple[str, ...]]],
        table: Dict[str, str],
        fallback: str
    ) -> str:
        trigger = _first_trigger((text or "").lower(), triggers)
        if trigger == "time":
            return responses.TIME_TEMPLATE.format(time=self.now().strftime("%X"))
        if trigger == "joke" and trigger not in table:
            return self.rng.choice(responses.JOKES)
        if trigger is None:
            return fallback
        return table[trigger]
