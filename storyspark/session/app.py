"""
Application shell: one story session and one chat companion behind two tabs.
"""

from __future__ import annotations

import logging
from typing import Optional

from storyspark.audio import AudioBackend, AudioPlaybackController, PygameAudioBackend
from storyspark.common import StorySparkSettings
from storyspark.persistence import FileKeyValueStore, KeyValueStore, PersistenceGateway
from storyspark.provider import ContentProviderClient

from .chat import ChatSessionController
from .controller import ProgressCallback, StorySessionController
from .state import Tab

logger = logging.getLogger(__name__)


class StorySparkApp:
    """
    Wires the controllers to their collaborators and owns the session lifetime.
    """

    def __init__(
        self,
        *,
        story: StorySessionController,
        chat: ChatSessionController,
        audio: AudioPlaybackController,
    ) -> None:
        self.story = story
        self.chat = chat
        self._audio = audio
        self._active_tab = Tab.STORY

    @classmethod
    def from_settings(
        cls,
        settings: StorySparkSettings,
        *,
        provider: Optional[ContentProviderClient] = None,
        audio_backend: Optional[AudioBackend] = None,
        store: Optional[KeyValueStore] = None,
        event_callback: Optional[ProgressCallback] = None,
    ) -> "StorySparkApp":
        provider = provider or ContentProviderClient.from_settings(settings)
        audio = AudioPlaybackController(
            audio_backend or PygameAudioBackend(),
            music_source=settings.music_path,
            music_volume=settings.music_volume,
        )
        gateway = PersistenceGateway(store or FileKeyValueStore(settings.storage_dir))
        story = StorySessionController(
            provider,
            audio,
            gateway,
            voice=settings.voice,
            auto_play=settings.auto_play,
            music_on=settings.music_on,
            auto_advance=settings.auto_advance,
            event_callback=event_callback,
        )
        chat = ChatSessionController(provider)
        return cls(story=story, chat=chat, audio=audio)

    @property
    def active_tab(self) -> Tab:
        return self._active_tab

    def switch_tab(self, tab: Tab | str) -> Tab:
        self._active_tab = Tab(tab)
        return self._active_tab

    async def close(self) -> None:
        await self.story.close()
        self._audio.close()
        logger.info("StorySpark session ended")
