"""
Session controllers for the story viewer and the chat companion.
"""

from .app import StorySparkApp
from .chat import ChatSessionController
from .controller import StorySessionController
from .state import (
    ChatMessage,
    ChatRole,
    NarrationState,
    SessionStatus,
    StorySessionSnapshot,
    Tab,
)

__all__ = [
    "ChatMessage",
    "ChatRole",
    "ChatSessionController",
    "NarrationState",
    "SessionStatus",
    "StorySessionController",
    "StorySessionSnapshot",
    "StorySparkApp",
    "Tab",
]
