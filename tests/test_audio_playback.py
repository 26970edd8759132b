from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from fakes import FakeAudioBackend, encode_clip, settle
from storyspark.audio import AudioPlaybackController, NullAudioBackend, decode_audio_clip
from storyspark.common import PlaybackError


def _controller(backend: FakeAudioBackend, **kwargs) -> AudioPlaybackController:
    kwargs.setdefault("music_source", Path("lullaby.ogg"))
    return AudioPlaybackController(backend, poll_interval=0.001, **kwargs)


def test_finish_callback_fires_once_clip_ends():
    backend = FakeAudioBackend()
    audio = _controller(backend)
    finished: list[str] = []

    async def scenario():
        audio.play(encode_clip("hello"), on_finish=lambda: finished.append("done"))
        assert audio.is_playing
        await settle()
        assert finished == []
        backend.finish_clip()
        await audio.wait_for_clip()

    asyncio.run(scenario())

    assert finished == ["done"]
    assert audio.is_playing is False


def test_stop_never_fires_finish_callback():
    backend = FakeAudioBackend()
    audio = _controller(backend)
    finished: list[str] = []

    async def scenario():
        audio.play(encode_clip("hello"), on_finish=lambda: finished.append("done"))
        audio.stop()
        backend.finish_clip()
        await settle()

    asyncio.run(scenario())

    assert finished == []
    assert backend.calls == ["load_clip", "play_clip", "stop_clip"]


def test_replacing_a_clip_detaches_the_previous_callback():
    backend = FakeAudioBackend()
    audio = _controller(backend)
    finished: list[str] = []

    async def scenario():
        audio.play(encode_clip("one"), on_finish=lambda: finished.append("one"))
        audio.play(encode_clip("two"), on_finish=lambda: finished.append("two"))
        backend.finish_clip()
        await audio.wait_for_clip()

    asyncio.run(scenario())
    assert finished == ["two"]


def test_toggle_pause_holds_completion_until_resumed():
    backend = FakeAudioBackend()
    audio = _controller(backend)
    finished: list[str] = []

    async def scenario():
        assert audio.toggle_pause() is False
        audio.play(encode_clip("hello"), on_finish=lambda: finished.append("done"))
        assert audio.toggle_pause() is True
        backend.busy = False
        await settle()
        assert finished == []
        assert audio.toggle_pause() is False
        await audio.wait_for_clip()

    asyncio.run(scenario())

    assert finished == ["done"]
    assert backend.calls.count("pause_clip") == 1
    assert backend.calls.count("resume_clip") == 1


def test_bad_clip_raises_playback_error():
    backend = FakeAudioBackend()
    backend.fail_load = True
    audio = _controller(backend)

    async def scenario():
        audio.play("garbage")

    with pytest.raises(PlaybackError):
        asyncio.run(scenario())
    assert audio.is_playing is False


def test_music_calls_are_idempotent():
    backend = FakeAudioBackend()
    audio = _controller(backend, music_volume=0.25)

    audio.set_music_playing(False)
    audio.set_music_playing(True)
    audio.set_music_playing(True)
    audio.set_music_playing(False)
    audio.set_music_playing(True)

    assert backend.calls == ["play_music:lullaby.ogg:0.25", "pause_music", "resume_music"]
    assert audio.music_playing is True


def test_music_without_source_stays_silent():
    backend = FakeAudioBackend()
    audio = AudioPlaybackController(backend)

    audio.set_music_playing(True)

    assert backend.calls == []
    assert audio.music_playing is False


def test_close_stops_music_and_backend():
    backend = FakeAudioBackend()
    audio = _controller(backend)

    audio.set_music_playing(True)
    audio.close()

    assert backend.calls[-2:] == ["stop_music", "close"]
    assert audio.music_playing is False


def test_null_backend_finishes_immediately():
    audio = AudioPlaybackController(NullAudioBackend(), poll_interval=0.001)
    finished: list[str] = []

    async def scenario():
        audio.play(encode_clip("hi"), on_finish=lambda: finished.append("done"))
        await audio.wait_for_clip()

    asyncio.run(scenario())
    assert finished == ["done"]


def test_decode_audio_clip_accepts_data_uri():
    clip = "data:audio/L16;rate=24000;base64," + encode_clip("pcm")
    assert decode_audio_clip(clip) == b"pcm"


@pytest.mark.parametrize("clip", ["", "data:audio/wav;base64,", "not base64!"])
def test_decode_audio_clip_rejects_invalid_payloads(clip):
    with pytest.raises(PlaybackError):
        decode_audio_clip(clip)
