"""
Audio output backends. The playback controller only talks to the :class:`AudioBackend` protocol.
"""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path
from typing import Any, Protocol

import pygame

from storyspark.common import PlaybackError

logger = logging.getLogger(__name__)

NARRATION_SAMPLE_RATE = 24000


class AudioBackend(Protocol):
    """Single narration clip plus one looping music track."""

    def load_clip(self, clip: str) -> Any: ...

    def play_clip(self, sound: Any) -> None: ...

    def pause_clip(self) -> None: ...

    def resume_clip(self) -> None: ...

    def stop_clip(self) -> None: ...

    def clip_busy(self) -> bool: ...

    def play_music(self, source: Path, volume: float) -> None: ...

    def pause_music(self) -> None: ...

    def resume_music(self) -> None: ...

    def stop_music(self) -> None: ...

    def close(self) -> None: ...


def decode_audio_clip(clip: str) -> bytes:
    """
    Decode a base64 audio payload (optionally wrapped in a ``data:`` URI) into raw bytes.
    """
    payload = clip.strip()
    if payload.startswith("data:"):
        _, _, payload = payload.partition(",")
    if not payload:
        raise PlaybackError("Audio clip is empty.")

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PlaybackError("Audio clip is not valid base64 data.") from exc


class PygameAudioBackend:
    """
    pygame.mixer output: narration on a reserved channel, music through ``mixer.music``.

    Narration clips are raw 16-bit mono PCM, as returned by the speech model.
    """

    def __init__(self, *, sample_rate: int = NARRATION_SAMPLE_RATE) -> None:
        if not pygame.mixer.get_init():
            pygame.mixer.init(frequency=sample_rate, size=-16, channels=1, buffer=1024)
            logger.info("pygame.mixer initialized at %d Hz", sample_rate)
        else:
            frequency, _, channels = pygame.mixer.get_init()
            if frequency != sample_rate or channels != 1:
                logger.warning(
                    "pygame.mixer already initialized at %d Hz/%d channels; narration may sound off",
                    frequency,
                    channels,
                )

        pygame.mixer.set_reserved(1)
        self._channel = pygame.mixer.Channel(0)
        self._music_source: Path | None = None

    def load_clip(self, clip: str) -> pygame.mixer.Sound:
        pcm = decode_audio_clip(clip)
        if len(pcm) % 2:
            pcm = pcm[:-1]
        try:
            return pygame.mixer.Sound(buffer=pcm)
        except pygame.error as exc:
            raise PlaybackError(f"Failed to load narration clip: {exc}") from exc

    def play_clip(self, sound: pygame.mixer.Sound) -> None:
        try:
            self._channel.play(sound)
        except pygame.error as exc:
            raise PlaybackError(f"Failed to start narration playback: {exc}") from exc

    def pause_clip(self) -> None:
        self._channel.pause()

    def resume_clip(self) -> None:
        self._channel.unpause()

    def stop_clip(self) -> None:
        self._channel.stop()

    def clip_busy(self) -> bool:
        return bool(self._channel.get_busy())

    def play_music(self, source: Path, volume: float) -> None:
        try:
            if self._music_source != source:
                pygame.mixer.music.load(str(source))
                self._music_source = source
            pygame.mixer.music.set_volume(volume)
            pygame.mixer.music.play(loops=-1)
        except pygame.error as exc:
            raise PlaybackError(f"Failed to start background music: {exc}") from exc

    def pause_music(self) -> None:
        pygame.mixer.music.pause()

    def resume_music(self) -> None:
        pygame.mixer.music.unpause()

    def stop_music(self) -> None:
        pygame.mixer.music.stop()

    def close(self) -> None:
        self._channel.stop()
        pygame.mixer.music.stop()
        pygame.mixer.quit()


class NullAudioBackend:
    """
    Silent backend for headless runs: clips validate and finish immediately.
    """

    def load_clip(self, clip: str) -> bytes:
        return decode_audio_clip(clip)

    def play_clip(self, sound: Any) -> None:
        logger.debug("Null backend skipping %d byte narration clip", len(sound))

    def pause_clip(self) -> None:
        pass

    def resume_clip(self) -> None:
        pass

    def stop_clip(self) -> None:
        pass

    def clip_busy(self) -> bool:
        return False

    def play_music(self, source: Path, volume: float) -> None:
        logger.debug("Null backend skipping background music %s", source)

    def pause_music(self) -> None:
        pass

    def resume_music(self) -> None:
        pass

    def stop_music(self) -> None:
        pass

    def close(self) -> None:
        pass
