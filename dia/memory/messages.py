"""
Conversation message record.
"""
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional


SENDERS = ("user", "assistant")


@dataclass(frozen=True)
class Message:
    """One immutable transcript entry"""
    id: str
    text: str
    sender: str
    timestamp: int
    emotion: Optional[str] = None
    
    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "sender": self.sender,
            "timestamp": self.timestamp,
        }
        if self.emotion is not None:
            data["emotion"] = self.emotion
        return data
    
    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Message":
        """
        Build a message from its serialized form
        
        Raises:
            ValueError: if the entry is not a well-formed message
        """
        if not isinstance(d, dict):
            raise ValueError(f"message entry must be an object, got {type(d).__name__}")
        msg_id, text, sender, timestamp = d.get("id"), d.get("text"), d.get("sender"), d.get("timestamp")
        emotion = d.get("emotion")
        if not isinstance(msg_id, str) or not msg_id:
            raise ValueError("message id must be a non-empty string")
        if not isinstance(text, str):
            raise ValueError("message text must be a string")
        if sender not in SENDERS:
            raise ValueError(f"unknown sender: {sender!r}")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError("message timestamp must be an integer")
        if emotion is not None and not isinstance(emotion, str):
            raise ValueError("message emotion must be a string")
        return cls(id=msg_id, text=text, sender=sender, timestamp=timestamp, emotion=emotion)


def now_ms() -> int:
    return int(time.time() * 1000)


def new_message(text: str, sender: str, emotion: Optional[str] = None, timestamp: Optional[int] = None) -> Message:
    """Create a message with a fresh unique id"""
    if sender not in SENDERS:
        raise ValueError(f"unknown sender: {sender!r}")
    return Message(
        id=uuid.uuid4().hex,
        text=text,
        sender=sender,
        timestamp=now_ms() if timestamp is None else timestamp,
        emotion=emotion
    )
