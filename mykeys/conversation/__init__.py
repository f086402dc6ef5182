"""Chat dialogue: command parsing and the per-user state machine."""

from .commands import Command, parse_event, parse_text
from .engine import ConversationEngine

__all__ = [
    "Command",
    "ConversationEngine",
    "parse_event",
    "parse_text",
]
