"""
State types owned by the session controllers and exposed to a UI layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from storyspark.ai_generation import VoiceOption
from storyspark.story_generation import StoryPage


class SessionStatus(str, Enum):
    """Story lifecycle at the session level."""

    IDLE = "idle"
    GENERATING = "generating"
    READY = "ready"
    ERROR = "error"


class Tab(str, Enum):
    STORY = "story"
    CHAT = "chat"


class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"


@dataclass(frozen=True)
class ChatMessage:
    role: ChatRole
    content: str


@dataclass(frozen=True)
class NarrationState:
    """
    Read-aloud state. Legal combinations: idle, loading, playing, and paused
    (``playing`` and ``paused`` both set).
    """

    loading: bool = False
    playing: bool = False
    paused: bool = False

    def __post_init__(self) -> None:
        if self.loading and (self.playing or self.paused):
            raise ValueError("Narration cannot be loading while playing or paused.")
        if self.paused and not self.playing:
            raise ValueError("Narration can only be paused while playing.")

    @property
    def is_idle(self) -> bool:
        return not (self.loading or self.playing or self.paused)


@dataclass(frozen=True)
class StorySessionSnapshot:
    """Point-in-time view of a story session for rendering."""

    status: SessionStatus
    pages: tuple[StoryPage, ...]
    current_page_index: int
    images: Mapping[int, str]
    error: Optional[str]
    is_loading_image: bool
    narration: NarrationState
    voice: VoiceOption
    auto_play: bool
    music_on: bool
    auto_advance: bool
    has_saved_story: bool
    save_acknowledged: bool
    pending_image_indices: frozenset[int] = field(default_factory=frozenset)

    @property
    def has_story(self) -> bool:
        return bool(self.pages)

    @property
    def is_loading_story(self) -> bool:
        return self.status is SessionStatus.GENERATING

    @property
    def current_page(self) -> Optional[StoryPage]:
        if not self.pages:
            return None
        return self.pages[self.current_page_index]

    @property
    def current_image(self) -> Optional[str]:
        return self.images.get(self.current_page_index)
