"""
StorySpark package exposing story sessions, the chat companion, and their collaborators.
"""

from .ai_generation import VoiceOption
from .common import StorySparkSettings, load_settings
from .provider import ContentProviderClient
from .session import (
    ChatSessionController,
    StorySessionController,
    StorySparkApp,
)
from .story_generation import StoryPage

__all__ = [
    "ChatSessionController",
    "ContentProviderClient",
    "StoryPage",
    "StorySessionController",
    "StorySparkApp",
    "StorySparkSettings",
    "VoiceOption",
    "load_settings",
]
