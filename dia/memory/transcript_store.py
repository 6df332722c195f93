"""
Transcript store for DIA.

The in-memory transcript is authoritative during a session; the stored copy
is a mirror rewritten after every mutation. Storage problems are logged and
swallowed so they never interrupt the conversation, and an unreadable stored
payload loads as an empty transcript.
"""
import json
from typing import Iterable, List

from dia.core.config import Config
from dia.core.logger import get_logger
from dia.memory.kv_store import KeyValueStore
from dia.memory.messages import Message


TRANSCRIPT_KEY = "dia-offline-messages"
WAKE_WORD_KEY = "dia-wake-word-enabled"


class TranscriptStore:
    """Ordered conversation messages mirrored to key-value storage"""
    
    def __init__(self, storage: KeyValueStore, key: str = TRANSCRIPT_KEY):
        self.logger = get_logger()
        self.storage = storage
        self.key = key
        self._messages: List[Message] = []
    
    @property
    def messages(self) -> List[Message]:
        """Snapshot of the in-memory transcript"""
        return list(self._messages)
    
    def __len__(self) -> int:
        return len(self._messages)
    
    def load_all(self) -> List[Message]:
        """
        Load the stored transcript into memory
        
        Returns:
            Stored messages in order; empty on a cold start or unreadable payload
        """
        self._messages = self._read()
        return list(self._messages)
    
    def append(self, message: Message) -> None:
        """Append a message and mirror the transcript to storage"""
        self._messages.append(message)
        self.persist(self._messages)
    
    def persist(self, messages: Iterable[Message]) -> bool:
        """
        Write `messages` to storage
        
        Returns:
            True if stored, False if storage failed (logged, not raised)
        """
        messages = list(messages)
        try:
            payload = json.dumps([m.to_dict() for m in messages], ensure_ascii=False)
            self.storage.set(self.key, payload)
            return True
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"[STORE] Failed to save messages to storage: {e}")
            return False
    
    def _read(self) -> List[Message]:
        try:
            raw = self.storage.get(self.key)
        except (OSError, ValueError) as e:
            self.logger.error(f"[STORE] Failed to get messages from storage: {e}")
            return []
        if not raw:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            return [Message.from_dict(entry) for entry in data]
        except (ValueError, RecursionError) as e:
            # JSONDecodeError is a ValueError; deeply nested input raises RecursionError
            self.logger.warning(f"[STORE] Stored transcript is corrupted, starting fresh: {e}")
            return []


def load_wake_word_enabled(storage: KeyValueStore, default: bool = Config.WAKE_WORD_DEFAULT) -> bool:
    """Read the wake-word preference; missing or unreadable means the default"""
    try:
        stored = storage.get(WAKE_WORD_KEY)
    except (OSError, ValueError) as e:
        get_logger().error(f"[STORE] Failed to get wake word settings: {e}")
        return default
    if stored is None:
        return default
    return stored == "true"


def save_wake_word_enabled(storage: KeyValueStore, enabled: bool) -> bool:
    """Persist the wake-word preference; failures are logged and swallowed"""
    try:
        storage.set(WAKE_WORD_KEY, "true" if enabled else "false")
        return True
    except (OSError, TypeError, ValueError) as e:
        get_logger().error(f"[STORE] Failed to save wake word settings: {e}")
        return False
