"""dia.brain.classifier

Utterance classifier: keyword heuristics mapping raw text to a command or to
a coarse user emotion. Both functions are pure.

Command rules are tested in a fixed order (open, search, call, play) and the
first matching rule wins. Captures are greedy and run to the end of the
text, so trailing words after a command keyword stay in the target.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Literal, Optional, Tuple


CommandKind = Literal["open", "search", "call", "play", "none"]

USER_EMOTIONS = ("happy", "sad", "angry", "neutral")


@dataclass(frozen=True)
class CommandAction:
    action: CommandKind
    target: Optional[str] = None
    query: Optional[str] = None

    @property
    def argument(self) -> str:
        return (self.query if self.action == "search" else self.target) or ""


NO_COMMAND = CommandAction("none")


# (keyword probes, capture pattern, field)
_COMMAND_RULES: List[Tuple[CommandKind, Tuple[str, ...], re.Pattern, str]] = [
    ("open", ("open ",), re.compile(r"open\s+([a-z0-9\s]+)"), "target"),
    ("search", ("search for ", "search "), re.compile(r"search(?:\s+for)?\s+([a-z0-9\s]+)"), "query"),
    ("call", ("call ",), re.compile(r"call\s+([a-z0-9\s]+)"), "target"),
    ("play", ("play ",), re.compile(r"play\s+([a-z0-9\s]+)"), "target"),
]


def recognize_command(text: str) -> Optional[CommandAction]:
    """Return the command carried by `text`, or None when no rule matches.

    A rule whose keyword is present but whose capture pattern finds nothing
    does not match, and the remaining rules are still tried. Once a capture
    matches, its rule wins even if the trimmed value is empty.
    """
    lowered = (text or "").lower()
    for kind, probes, pattern, field in _COMMAND_RULES:
        if not any(p in lowered for p in probes):
            continue
        m = pattern.search(lowered)
        if not m:
            continue
        return CommandAction(kind, **{field: m.group(1).strip()})
    return None


# Marker sets are disjoint; order below is the tie-break (happy > sad > angry).
HAPPY_MARKERS = (
    "happy", "great", "awesome", "wonderful", "excited", "joy", "love", "glad",
    ":)", "\U0001F60A", "\U0001F603",
)
SAD_MARKERS = (
    "sad", "unhappy", "depressed", "miserable", "upset", "down", "blue", "cry",
    ":(", "\U0001F622", "\U0001F62D",
)
ANGRY_MARKERS = (
    "angry", "mad", "frustrated", "annoyed", "irritated", "furious",
    "\U0001F621", "\U0001F92C",
)

_EMOTION_TABLE = (
    ("happy", HAPPY_MARKERS),
    ("sad", SAD_MARKERS),
    ("angry", ANGRY_MARKERS),
)


def detect_emotion(text: str) -> str:
    """Coarse user emotion: happy, sad, angry or neutral (first match wins)."""
    lowered = (text or "").lower()
    for label, markers in _EMOTION_TABLE:
        if any(m in lowered for m in markers):
            return label
    return "neutral"
