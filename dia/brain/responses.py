"""
Canned reply corpus for DIA.

Used verbatim by the reply policy. Offline replies are the local fallback
corpus; online replies stand in for a remote reply service and carry richer
emotion-specific phrasing.
"""
from typing import Dict, List, Tuple


WELCOME_MESSAGE = "Hello! I'm DIA, your personal assistant. How can I help you today?"

JOKES: List[str] = [
    "Why don't scientists trust atoms? Because they make up everything!",
    "What did the ocean say to the beach? Nothing, it just waved!",
    "Why did the scarecrow win an award? Because he was outstanding in his field!",
]

TIME_TEMPLATE = "The current time is {time}."


# ============================================================================
# EMOTION-FIRST REPLIES
# ============================================================================

OFFLINE_EMOTION_REPLIES: Dict[str, str] = {
    "sad": (
        "I hear you, and I'm here for you. It's okay to feel down sometimes. "
        "Would you like to talk about what's on your mind?"
    ),
    "happy": "That's wonderful to hear! I'm so glad you're feeling good today.",
    "angry": (
        "I understand you're frustrated. Take a deep breath with me. "
        "I'm here for you, and we can work through it together."
    ),
}

ONLINE_EMOTION_REPLIES: Dict[str, str] = {
    "sad": (
        "I hear you, and I want you to know I'm here for you. Feeling sad is part of "
        "being human, and it's okay to take things slowly. What's been weighing on you?"
    ),
    "happy": (
        "That's wonderful to hear! Your good mood is contagious. "
        "Tell me more about what's making you feel this way!"
    ),
    "angry": (
        "I understand how frustrating that must be. Let's take a breath together. "
        "I'm here for you, and we can sort it out one step at a time."
    ),
}


# ============================================================================
# KEYWORD-SECOND REPLIES
# ============================================================================
# Ordered (name, substrings) pairs; the first entry with a substring present
# anywhere in the lowercased input wins, so "this" counts as "hi".

OFFLINE_TRIGGERS: List[Tuple[str, Tuple[str, ...]]] = [
    ("greeting", ("hello", "hi", "hey")),
    ("wellbeing", ("how are you",)),
    ("identity", ("name", "who are you")),
    ("weather", ("weather",)),
    ("time", ("time",)),
    ("joke", ("joke",)),
    ("friendship", ("friend",)),
]

OFFLINE_REPLIES: Dict[str, str] = {
    "greeting": "Hello! I'm DIA, your digital companion. I'm here offline, but I can still chat with you!",
    "wellbeing": "I'm doing well, thank you for asking! Even in offline mode, I'm happy to be here with you.",
    "identity": "I'm DIA, your Digital Intelligent Assistant. I'm designed to be your helpful companion!",
    "weather": (
        "I'm sorry, I can't check the weather while offline. "
        "We'll need to wait until we have an internet connection."
    ),
    "friendship": "Of course I'm your friend! Offline or online, you can always talk to me.",
}

OFFLINE_FALLBACK = (
    "I'm currently in offline mode, so my responses are limited. "
    "But I'm still here to keep you company!"
)

ONLINE_TRIGGERS: List[Tuple[str, Tuple[str, ...]]] = [
    ("greeting", ("hello", "hi", "hey")),
    ("wellbeing", ("how are you",)),
    ("identity", ("your name", "who are you")),
    ("joke", ("joke",)),
    ("weather", ("weather",)),
    ("help", ("help",)),
    ("time", ("time",)),
    ("friendship", ("friend",)),
]

ONLINE_REPLIES: Dict[str, str] = {
    "greeting": "Hello there! It's great to chat with you. How are you feeling today?",
    "wellbeing": "I'm feeling wonderful, thank you for asking! I always enjoy our conversations.",
    "identity": "I'm DIA, your Digital Intelligent Assistant. I'm here to be your friend and helper!",
    "joke": "Why did the AI go to therapy? It had too many deep learning issues! \U0001F604",
    "weather": (
        "I'd love to tell you the weather, but I'll need to be connected to a weather "
        "service first. I can help you with that in the settings!"
    ),
    "help": (
        "I can chat with you, tell jokes, open websites, search the web, and be your friend! "
        "Just say my name or press the microphone to talk to me."
    ),
    "friendship": "I'd be honored to be your friend! I'm always here when you want to talk.",
}

ONLINE_FALLBACK = "That's interesting! I'd love to learn more about that. What else would you like to talk about?"


# ============================================================================
# COMMAND REPLIES
# ============================================================================

OPEN_TEMPLATE = "Opening {target} for you."
OPEN_UNKNOWN_TEMPLATE = "I'm sorry, I don't know how to open {target} yet."
SEARCH_TEMPLATE = 'Searching for "{query}" for you.'
CALL_TEMPLATE = "I'm sorry, I can't make phone calls yet, so I couldn't call {target}."
PLAY_TEMPLATE = "Playing {target} for you."


# ============================================================================
# REPLY EMOTION SENTINELS
# ============================================================================

APOLOGY_MARKER = "sorry"
EMPATHY_PHRASES = ("here for you", "i hear you", "i understand")
POSITIVITY_PHRASES = ("wonderful to hear", "so glad", "that's amazing")

ASSISTANT_EMOTIONS = ("happy", "thinking", "listening", "idle", "empathetic", "excited")
