"""
Audio playback controller: one narration clip at a time plus a looping music channel.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from .backends import AudioBackend, NullAudioBackend

FinishCallback = Callable[[], None]

logger = logging.getLogger(__name__)


class AudioPlaybackController:
    """
    Plays narration clips with a finish callback and drives the background music track.

    Every clip gets a playback token. Stopping or replacing a clip bumps the token and
    detaches its finish callback, so a superseded clip can never report completion.
    Must be used from inside a running event loop.
    """

    def __init__(
        self,
        backend: Optional[AudioBackend] = None,
        *,
        music_source: Optional[Path] = None,
        music_volume: float = 0.1,
        poll_interval: float = 0.1,
    ) -> None:
        self._backend: AudioBackend = backend or NullAudioBackend()
        self._music_source = music_source
        self._music_volume = music_volume
        self._poll_interval = poll_interval

        self._playback_token = 0
        self._is_playing = False
        self._paused = False
        self._on_finish: Optional[FinishCallback] = None
        self._watcher: Optional[asyncio.Task] = None

        self._music_started = False
        self._music_playing = False

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def music_playing(self) -> bool:
        return self._music_playing

    # ---------- Narration ----------

    def play(self, clip: str, on_finish: Optional[FinishCallback] = None) -> None:
        """
        Start ``clip`` after stopping any current clip. Raises ``PlaybackError`` on bad audio.
        """
        self.stop()

        sound = self._backend.load_clip(clip)
        self._backend.play_clip(sound)

        self._playback_token += 1
        token = self._playback_token
        self._is_playing = True
        self._paused = False
        self._on_finish = on_finish
        self._watcher = asyncio.get_running_loop().create_task(self._wait_for_clip_end(token))
        logger.debug("Narration clip %d started", token)

    def toggle_pause(self) -> bool:
        """
        Pause or resume the current clip and return the new paused state.
        """
        if not self._is_playing:
            return False

        if self._paused:
            self._backend.resume_clip()
            self._paused = False
        else:
            self._backend.pause_clip()
            self._paused = True
        logger.debug("Narration %s", "paused" if self._paused else "resumed")
        return self._paused

    def stop(self) -> None:
        """
        Hard stop: the current clip ends without firing its finish callback.
        """
        self._playback_token += 1
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None
        if self._is_playing:
            self._backend.stop_clip()
            logger.debug("Narration clip stopped")
        self._is_playing = False
        self._paused = False
        self._on_finish = None

    async def wait_for_clip(self) -> None:
        """
        Wait until the current clip finishes or is stopped.
        """
        watcher = self._watcher
        if watcher is None:
            return
        try:
            await asyncio.shield(watcher)
        except asyncio.CancelledError:
            if not watcher.cancelled():
                raise

    async def _wait_for_clip_end(self, token: int) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            if token != self._playback_token:
                return
            if self._paused:
                continue
            if not self._backend.clip_busy():
                break

        callback = self._on_finish
        self._is_playing = False
        self._paused = False
        self._on_finish = None
        self._watcher = None
        logger.debug("Narration clip %d finished", token)

        if callback is not None:
            try:
                callback()
            except Exception:
                logger.exception("Error in narration finish callback")

    # ---------- Background music ----------

    def set_music_playing(self, should_play: bool) -> None:
        """
        Play or pause the looping music track. Repeated calls with the same state are no-ops.
        """
        if should_play == self._music_playing:
            return

        if not should_play:
            self._backend.pause_music()
            self._music_playing = False
            logger.debug("Background music paused")
            return

        if self._music_source is None:
            logger.debug("No background music configured")
            return

        if self._music_started:
            self._backend.resume_music()
        else:
            self._backend.play_music(self._music_source, self._music_volume)
            self._music_started = True
        self._music_playing = True
        logger.debug("Background music playing at volume %.2f", self._music_volume)

    def close(self) -> None:
        self.stop()
        if self._music_started:
            self._backend.stop_music()
        self._music_started = False
        self._music_playing = False
        self._backend.close()
