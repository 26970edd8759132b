"""
Common utilities shared across StorySpark modules.
"""

from .errors import (
    GenerationError,
    PersistenceError,
    PlaybackError,
    StorySparkError,
    ValidationError,
)
from .llm import ChatResult, CompletionCallable, call_chat_completion
from .settings import StorySparkSettings, load_settings

__all__ = [
    "ChatResult",
    "CompletionCallable",
    "call_chat_completion",
    "GenerationError",
    "PersistenceError",
    "PlaybackError",
    "StorySparkError",
    "ValidationError",
    "StorySparkSettings",
    "load_settings",
]
