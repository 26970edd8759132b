"""
Story generation utilities for crafting five-page StorySpark narratives.
"""

from .pages import STORY_PAGE_COUNT, StoryPage, parse_story_payload
from .prompting import DEFAULT_STORY_THEME, STORY_RESPONSE_SCHEMA, build_story_prompt
from .story_service import StoryGenerator

__all__ = [
    "DEFAULT_STORY_THEME",
    "STORY_PAGE_COUNT",
    "STORY_RESPONSE_SCHEMA",
    "StoryGenerator",
    "StoryPage",
    "build_story_prompt",
    "parse_story_payload",
]
