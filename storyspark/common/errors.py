"""
Exception hierarchy raised by the StorySpark leaves and handled by the controllers.
"""

from __future__ import annotations


class StorySparkError(Exception):
    """Base class for every StorySpark failure."""


class GenerationError(StorySparkError):
    """The content provider failed or returned an unusable payload."""


class PersistenceError(StorySparkError):
    """The key-value store could not be read or written (including quota)."""


class ValidationError(StorySparkError, ValueError):
    """A stored payload does not have the required shape."""


class PlaybackError(StorySparkError):
    """The audio backend refused to load or play a clip."""
