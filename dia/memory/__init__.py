"""
Memory module for DIA.
Conversation messages, key-value persistence and the transcript store.
"""
from dia.memory.messages import Message, new_message
from dia.memory.kv_store import KeyValueStore, JsonFileStore, MemoryStore
from dia.memory.transcript_store import (
    TranscriptStore,
    load_wake_word_enabled,
    save_wake_word_enabled,
)

__all__ = [
    "Message",
    "new_message",
    "KeyValueStore",
    "JsonFileStore",
    "MemoryStore",
    "TranscriptStore",
    "load_wake_word_enabled",
    "save_wake_word_enabled",
]
