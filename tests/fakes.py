"""Fakes shared by the StorySpark test suite."""

from __future__ import annotations

import asyncio
import base64
from pathlib import Path
from typing import Any, Optional

from storyspark.common import GenerationError, PlaybackError
from storyspark.provider import ProviderChatSession
from storyspark.story_generation import StoryPage


def make_pages(count: int = 5) -> list[StoryPage]:
    return [
        StoryPage(
            page=number,
            text=f"Page {number} of the dragon story.",
            image_prompt=f"A small green dragon, scene {number}",
        )
        for number in range(1, count + 1)
    ]


def encode_clip(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class FakeProvider:
    """Scriptable stand-in for ContentProviderClient.

    Set one of the ``*_gate`` attributes to an ``asyncio.Event`` to hold requests
    until the test releases them.
    """

    def __init__(self, pages: Optional[list[StoryPage]] = None) -> None:
        self.pages = pages if pages is not None else make_pages()
        self.story_calls: list[Optional[str]] = []
        self.image_calls: list[str] = []
        self.speech_calls: list[tuple[str, Any]] = []
        self.chat_calls: list[str] = []
        self.fail_story = False
        self.fail_image = False
        self.fail_speech = False
        self.fail_chat = False
        self.fail_start_chat = False
        self.story_gate: Optional[asyncio.Event] = None
        self.image_gate: Optional[asyncio.Event] = None
        self.speech_gate: Optional[asyncio.Event] = None
        self.chat_gates: dict[str, asyncio.Event] = {}

    async def generate_story(self, theme: Optional[str] = None) -> list[StoryPage]:
        self.story_calls.append(theme)
        if self.story_gate is not None:
            await self.story_gate.wait()
        if self.fail_story:
            raise GenerationError("story provider down")
        return list(self.pages)

    async def generate_image(self, prompt: str) -> str:
        self.image_calls.append(prompt)
        number = len(self.image_calls)
        if self.image_gate is not None:
            await self.image_gate.wait()
        if self.fail_image:
            raise GenerationError("image provider down")
        return f"https://images.example/{number}.png"

    async def generate_speech(self, text: str, voice: Any) -> str:
        self.speech_calls.append((text, voice))
        if self.speech_gate is not None:
            await self.speech_gate.wait()
        if self.fail_speech:
            raise GenerationError("speech provider down")
        return encode_clip(text)

    def start_chat(self, system_instruction: str = "") -> ProviderChatSession:
        if self.fail_start_chat:
            raise GenerationError("no api key")

        async def _unused_completion(**_: Any) -> Any:
            raise AssertionError("fake provider never calls the model")

        return ProviderChatSession(model="fake/chat", completion_fn=_unused_completion)

    async def continue_chat(self, session: ProviderChatSession, message: str) -> str:
        self.chat_calls.append(message)
        gate = self.chat_gates.get(message)
        if gate is not None:
            await gate.wait()
        if self.fail_chat:
            raise GenerationError("chat provider down")
        return f"reply to {message}"


class FakeAudioBackend:
    """Records backend calls; clips stay busy until ``finish_clip`` is called."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.busy = False
        self.fail_load = False
        self.loaded: list[bytes] = []

    def load_clip(self, clip: str) -> bytes:
        self.calls.append("load_clip")
        if self.fail_load:
            raise PlaybackError("cannot decode")
        data = base64.b64decode(clip)
        self.loaded.append(data)
        return data

    def play_clip(self, sound: Any) -> None:
        self.calls.append("play_clip")
        self.busy = True

    def pause_clip(self) -> None:
        self.calls.append("pause_clip")

    def resume_clip(self) -> None:
        self.calls.append("resume_clip")

    def stop_clip(self) -> None:
        self.calls.append("stop_clip")
        self.busy = False

    def clip_busy(self) -> bool:
        return self.busy

    def finish_clip(self) -> None:
        self.busy = False

    def play_music(self, source: Path, volume: float) -> None:
        self.calls.append(f"play_music:{source}:{volume}")

    def pause_music(self) -> None:
        self.calls.append("pause_music")

    def resume_music(self) -> None:
        self.calls.append("resume_music")

    def stop_music(self) -> None:
        self.calls.append("stop_music")

    def close(self) -> None:
        self.calls.append("close")


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


async def settle(rounds: int = 5, delay: float = 0.005) -> None:
    """Give spawned tasks and the audio watcher a chance to run."""
    for _ in range(rounds):
        await asyncio.sleep(delay)

