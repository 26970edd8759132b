from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from fakes import FakeAudioBackend, FakeClock, FakeProvider
from storyspark.audio import AudioPlaybackController
from storyspark.persistence import InMemoryKeyValueStore, PersistenceGateway
from storyspark.session import StorySessionController


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def audio_backend() -> FakeAudioBackend:
    return FakeAudioBackend()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_controller(provider, audio_backend, store, clock):
    events: list[tuple[str, dict[str, Any]]] = []

    def _factory(**kwargs: Any) -> StorySessionController:
        audio = AudioPlaybackController(
            audio_backend,
            music_source=Path("lullaby.ogg"),
            poll_interval=0.001,
        )
        kwargs.setdefault("event_callback", lambda stage, payload: events.append((stage, payload)))
        controller = StorySessionController(
            provider,
            audio,
            PersistenceGateway(store),
            clock=clock,
            **kwargs,
        )
        controller.events = events  # type: ignore[attr-defined]
        return controller

    return _factory
