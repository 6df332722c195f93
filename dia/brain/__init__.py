"""
Brain module for DIA.
Utterance classification and reply selection.
"""
from dia.brain.classifier import CommandAction, recognize_command, detect_emotion
from dia.brain.reply_policy import Reply, ReplyPolicy

__all__ = [
    "CommandAction",
    "recognize_command",
    "detect_emotion",
    "Reply",
    "ReplyPolicy",
]
