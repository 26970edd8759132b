"""
Story session controller: story generation, page navigation, lazy illustrations,
narration with auto-play, background music, and save/load of the session.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Coroutine, Optional

from storyspark.ai_generation import VoiceOption
from storyspark.audio import AudioPlaybackController
from storyspark.common import GenerationError, PersistenceError, PlaybackError, ValidationError
from storyspark.persistence import PersistenceGateway
from storyspark.provider import ContentProviderClient
from storyspark.story_generation import StoryPage

from .state import NarrationState, SessionStatus, StorySessionSnapshot

STORY_ERROR_MESSAGE = "Oops! I couldn't dream up a story right now. Please try again."
IMAGE_ERROR_MESSAGE = "The magic paintbrushes are busy! Failed to create an illustration."
NARRATION_ERROR_MESSAGE = "My voice seems to be sleeping! Could you try again?"
SAVE_ERROR_MESSAGE = "I couldn't save the story. Your storage might be full!"
LOAD_ERROR_MESSAGE = "I couldn't load the saved story. It might be corrupted."

SAVE_ACKNOWLEDGEMENT_SECONDS = 2.0

ProgressCallback = Callable[[str, dict[str, Any]], None]

logger = logging.getLogger(__name__)


class StorySessionController:
    """
    Owns one viewing session: pages, cursor, image cache, and narration state.

    Navigation fires the image fetch and the narration request as independent tasks.
    Both carry an epoch token (story epoch for images, narration epoch for speech);
    a completion whose token is no longer current is discarded. Commands that spawn
    background work must be called from inside the running event loop.
    """

    def __init__(
        self,
        provider: ContentProviderClient,
        audio: AudioPlaybackController,
        gateway: PersistenceGateway,
        *,
        voice: VoiceOption | str = VoiceOption.KORE,
        auto_play: bool = True,
        music_on: bool = True,
        auto_advance: bool = False,
        event_callback: Optional[ProgressCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._provider = provider
        self._audio = audio
        self._gateway = gateway
        self._voice = VoiceOption.parse(voice)
        self._auto_play = auto_play
        self._music_on = music_on
        self._auto_advance = auto_advance
        self._event_callback = event_callback
        self._clock = clock

        self._status = SessionStatus.IDLE
        self._pages: list[StoryPage] = []
        self._images: dict[int, str] = {}
        self._pending_images: set[int] = set()
        self._current_index = 0
        self._error: Optional[str] = None
        self._narration = NarrationState()

        self._story_epoch = 0
        self._narration_epoch = 0
        self._tasks: set[asyncio.Task] = set()

        self._has_saved_story = gateway.has_saved_session()
        self._saved_at: Optional[float] = None

    # ---------- State ----------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def pages(self) -> tuple[StoryPage, ...]:
        return tuple(self._pages)

    @property
    def images(self) -> dict[int, str]:
        return dict(self._images)

    @property
    def current_page_index(self) -> int:
        return self._current_index

    @property
    def current_page(self) -> Optional[StoryPage]:
        if not self._pages:
            return None
        return self._pages[self._current_index]

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def narration(self) -> NarrationState:
        return self._narration

    @property
    def is_loading_image(self) -> bool:
        return self._current_index in self._pending_images

    @property
    def auto_play(self) -> bool:
        return self._auto_play

    @property
    def music_on(self) -> bool:
        return self._music_on

    @property
    def auto_advance(self) -> bool:
        return self._auto_advance

    @auto_advance.setter
    def auto_advance(self, enabled: bool) -> None:
        self._auto_advance = enabled

    @property
    def voice(self) -> VoiceOption:
        return self._voice

    @voice.setter
    def voice(self, value: VoiceOption | str) -> None:
        self._voice = VoiceOption.parse(value)

    @property
    def has_saved_story(self) -> bool:
        return self._has_saved_story

    @property
    def save_acknowledged(self) -> bool:
        """True for a short while after a successful save."""
        if self._saved_at is None:
            return False
        return self._clock() - self._saved_at < SAVE_ACKNOWLEDGEMENT_SECONDS

    def snapshot(self) -> StorySessionSnapshot:
        return StorySessionSnapshot(
            status=self._status,
            pages=tuple(self._pages),
            current_page_index=self._current_index,
            images=dict(self._images),
            error=self._error,
            is_loading_image=self.is_loading_image,
            narration=self._narration,
            voice=self._voice,
            auto_play=self._auto_play,
            music_on=self._music_on,
            auto_advance=self._auto_advance,
            has_saved_story=self._has_saved_story,
            save_acknowledged=self.save_acknowledged,
            pending_image_indices=frozenset(self._pending_images),
        )

    # ---------- Story generation ----------

    async def generate_story(self, theme: Optional[str] = None) -> bool:
        """
        Replace the session with a freshly generated five-page story.
        """
        self._story_epoch += 1
        epoch = self._story_epoch
        self.stop_narration()
        self._reset_story([], {})
        self._error = None
        self._status = SessionStatus.GENERATING
        self._sync_music()
        self._notify("story:generating", theme=theme)

        try:
            pages = await self._provider.generate_story(theme)
        except GenerationError as exc:
            if epoch != self._story_epoch:
                return False
            logger.warning("Story generation failed: %s", exc)
            self._status = SessionStatus.ERROR
            self._error = STORY_ERROR_MESSAGE
            self._notify("story:failed", error=str(exc))
            return False

        if epoch != self._story_epoch:
            logger.debug("Discarding superseded story generation")
            return False

        self._pages = list(pages)
        self._status = SessionStatus.READY
        logger.info("Story ready with %d pages", len(self._pages))
        self._notify("story:ready", total_pages=len(self._pages))
        self._sync_music()
        self._on_page_changed()
        return True

    # ---------- Navigation ----------

    def set_current_page_index(self, index: int) -> bool:
        """
        Move the cursor. Out-of-range or unchanged indices are ignored.
        """
        if not 0 <= index < len(self._pages) or index == self._current_index:
            return False

        self._current_index = index
        self._saved_at = None
        self._notify(
            "page:changed",
            page_index=index,
            page_number=self._pages[index].page,
            total_pages=len(self._pages),
        )
        self._on_page_changed()
        return True

    def next_page(self) -> bool:
        return self.set_current_page_index(self._current_index + 1)

    def previous_page(self) -> bool:
        return self.set_current_page_index(self._current_index - 1)

    def _on_page_changed(self) -> None:
        self._ensure_current_image()
        if self._auto_play:
            self._queue_narration()
        else:
            self.stop_narration()

    # ---------- Illustrations ----------

    def _ensure_current_image(self) -> None:
        index = self._current_index
        if not self._pages or index in self._images or index in self._pending_images:
            return

        self._pending_images.add(index)
        prompt = self._pages[index].image_prompt
        self._spawn(self._fetch_image(index, prompt, self._story_epoch))

    async def _fetch_image(self, index: int, prompt: str, epoch: int) -> None:
        self._error = None
        self._notify("image:loading", page_index=index)
        try:
            handle = await self._provider.generate_image(prompt)
        except GenerationError as exc:
            if epoch == self._story_epoch:
                logger.warning("Illustration for page index %d failed: %s", index, exc)
                self._error = IMAGE_ERROR_MESSAGE
                self._notify("image:failed", page_index=index, error=str(exc))
            return
        finally:
            if epoch == self._story_epoch:
                self._pending_images.discard(index)

        if epoch != self._story_epoch:
            logger.debug("Discarding illustration for a replaced story (page index %d)", index)
            return
        if index in self._images:
            return

        self._images[index] = handle
        self._notify("image:ready", page_index=index)

    # ---------- Narration ----------

    async def start_narration(self) -> bool:
        """
        Read the current page aloud, replacing any narration already in progress.
        """
        if not self._pages:
            return False

        self.stop_narration()
        self._narration = NarrationState(loading=True)
        return await self._narrate(self._current_index, self._narration_epoch)

    def _queue_narration(self) -> None:
        self.stop_narration()
        self._narration = NarrationState(loading=True)
        self._spawn(self._narrate(self._current_index, self._narration_epoch))

    async def _narrate(self, index: int, epoch: int) -> bool:
        if epoch != self._narration_epoch:
            return False

        page = self._pages[index]
        self._error = None
        self._notify("narration:loading", page_number=page.page)

        try:
            clip = await self._provider.generate_speech(page.text, self._voice)
            if epoch != self._narration_epoch:
                logger.debug("Discarding superseded narration for page %d", page.page)
                return False
            self._audio.play(clip, on_finish=lambda: self._on_narration_finished(epoch))
        except (GenerationError, PlaybackError) as exc:
            if epoch != self._narration_epoch:
                return False
            logger.warning("Narration for page %d failed: %s", page.page, exc)
            self._narration = NarrationState()
            self._error = NARRATION_ERROR_MESSAGE
            self._notify("narration:failed", page_number=page.page, error=str(exc))
            return False

        self._narration = NarrationState(playing=True)
        self._notify("narration:playing", page_number=page.page)
        return True

    def toggle_pause(self) -> bool:
        """
        Pause or resume narration while it is playing; returns the paused state.
        """
        if not self._narration.playing:
            return self._narration.paused

        paused = self._audio.toggle_pause()
        self._narration = NarrationState(playing=True, paused=paused)
        self._notify("narration:paused" if paused else "narration:resumed")
        return paused

    def stop_narration(self) -> None:
        """
        Hard stop of any loading or playing narration; no finish callback fires.
        """
        self._narration_epoch += 1
        was_active = not self._narration.is_idle
        self._audio.stop()
        self._narration = NarrationState()
        if was_active:
            self._notify("narration:stopped")

    def _on_narration_finished(self, epoch: int) -> None:
        if epoch != self._narration_epoch:
            return

        self._narration = NarrationState()
        self._notify("narration:finished", page_index=self._current_index)
        if self._auto_advance and self._current_index + 1 < len(self._pages):
            self.next_page()

    def set_auto_play(self, enabled: bool) -> None:
        if enabled == self._auto_play:
            return

        self._auto_play = enabled
        if enabled:
            if self._pages:
                self._queue_narration()
        else:
            self.stop_narration()

    def toggle_auto_play(self) -> bool:
        self.set_auto_play(not self._auto_play)
        return self._auto_play

    # ---------- Background music ----------

    def set_music_enabled(self, enabled: bool) -> None:
        self._music_on = enabled
        self._sync_music()

    def toggle_music(self) -> bool:
        self.set_music_enabled(not self._music_on)
        return self._music_on

    def _sync_music(self) -> None:
        should_play = self._music_on and bool(self._pages)
        try:
            self._audio.set_music_playing(should_play)
        except PlaybackError:
            logger.exception("Background music could not be started")

    # ---------- Persistence ----------

    def save_story(self) -> bool:
        """
        Overwrite the save slot with the current pages and illustrations.
        """
        try:
            self._gateway.save(self._pages, self._images)
        except PersistenceError as exc:
            logger.warning("Failed to save story: %s", exc)
            self._error = SAVE_ERROR_MESSAGE
            self._notify("session:save_failed", error=str(exc))
            return False

        self._has_saved_story = True
        self._saved_at = self._clock()
        self._notify("session:saved", total_pages=len(self._pages), total_images=len(self._images))
        return True

    def load_story(self) -> bool:
        """
        Restore the saved session. An empty slot is a no-op; a corrupt record is deleted.
        """
        try:
            record = self._gateway.load()
        except ValidationError as exc:
            logger.warning("Failed to load story: %s", exc)
            self._error = LOAD_ERROR_MESSAGE
            self._discard_saved_story()
            self._notify("session:load_failed", error=str(exc))
            return False
        except PersistenceError as exc:
            logger.warning("Failed to read saved story: %s", exc)
            self._error = LOAD_ERROR_MESSAGE
            self._notify("session:load_failed", error=str(exc))
            return False

        if record is None:
            return False

        self._story_epoch += 1
        self.stop_narration()
        self._reset_story(list(record.pages), dict(record.images))
        self._error = None
        self._status = SessionStatus.READY if self._pages else SessionStatus.IDLE
        self._notify(
            "session:loaded",
            total_pages=len(self._pages),
            total_images=len(self._images),
        )
        self._sync_music()
        if self._pages:
            self._on_page_changed()
        return True

    def _discard_saved_story(self) -> None:
        self._has_saved_story = False
        try:
            self._gateway.delete()
        except PersistenceError:
            logger.exception("Failed to delete the corrupt saved story")

    # ---------- Lifecycle ----------

    async def wait_for_pending(self) -> None:
        """
        Wait until every spawned image fetch and narration request has completed.
        """
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        """
        Tear the session down: cancel background work and silence all audio.
        """
        self._story_epoch += 1
        self.stop_narration()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._audio.set_music_playing(False)
        logger.info("Story session closed")

    # ---------- Helpers ----------

    def _reset_story(self, pages: list[StoryPage], images: dict[int, str]) -> None:
        self._pages = pages
        self._images = images
        self._pending_images.clear()
        self._current_index = 0
        self._saved_at = None

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background session task failed", exc_info=exc)

    def _notify(self, stage: str, **payload: Any) -> None:
        if self._event_callback is not None:
            self._event_callback(stage, payload)
