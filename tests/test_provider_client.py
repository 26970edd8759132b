from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any

import pytest

from storyspark.ai_generation import (
    ReplicateImageGenerator,
    SpeechSynthesizer,
    VoiceOption,
    normalize_image_outputs,
)
from storyspark.common import ChatResult, GenerationError
from storyspark.provider import ContentProviderClient, ProviderChatSession

STORY_JSON = json.dumps(
    {
        "story": [
            {"page": n, "text": f"Sparky page {n}", "imagePrompt": f"Sparky scene {n}"}
            for n in range(1, 6)
        ]
    }
)


class RecordingCompletion:
    """Async completion stand-in returning queued results."""

    def __init__(self, *results: Any) -> None:
        self.calls: list[dict[str, Any]] = []
        self._results = list(results)

    async def __call__(self, **kwargs: Any) -> ChatResult:
        self.calls.append(kwargs)
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeReplicateClient:
    def __init__(self, output: Any = None, error: Exception | None = None) -> None:
        self.output = output if output is not None else ["https://replicate.example/out.png"]
        self.error = error
        self.calls: list[tuple[str, dict[str, Any], bool]] = []

    async def async_run(self, model: str, *, input: dict[str, Any], use_file_output: bool) -> Any:
        self.calls.append((model, input, use_file_output))
        if self.error is not None:
            raise self.error
        return self.output


def _client(completion: RecordingCompletion, **kwargs: Any) -> ContentProviderClient:
    return ContentProviderClient(api_key="test-key", completion_fn=completion, **kwargs)


def test_generate_story_requests_json_and_parses_pages():
    completion = RecordingCompletion(ChatResult(text=STORY_JSON, raw=None))
    client = _client(completion, story_model="gemini/test-story")

    pages = asyncio.run(client.generate_story("Sparky learns to fly"))

    assert [page.text for page in pages] == [f"Sparky page {n}" for n in range(1, 6)]
    call = completion.calls[0]
    assert call["model"] == "gemini/test-story"
    assert call["api_key"] == "test-key"
    assert call["response_format"]["type"] == "json_schema"
    assert "Sparky learns to fly" in call["messages"][-1]["content"]


def test_generate_story_uses_default_theme_when_missing():
    completion = RecordingCompletion(ChatResult(text=STORY_JSON, raw=None))
    client = _client(completion)

    asyncio.run(client.generate_story())

    assert "Sparky" in completion.calls[0]["messages"][-1]["content"]


def test_generate_story_wraps_transport_errors():
    completion = RecordingCompletion(RuntimeError("connection reset"))
    client = _client(completion)

    with pytest.raises(GenerationError, match="connection reset"):
        asyncio.run(client.generate_story("anything"))


def test_generate_story_rejects_short_stories():
    short = json.dumps({"story": [{"page": 1, "text": "t", "imagePrompt": "p"}]})
    client = _client(RecordingCompletion(ChatResult(text=short, raw=None)))

    with pytest.raises(GenerationError):
        asyncio.run(client.generate_story("anything"))


def test_generate_speech_requests_audio_with_voice():
    completion = RecordingCompletion(ChatResult(text="", raw=None, audio="UklGRg=="))
    client = _client(completion, speech_model="gemini/test-tts")

    clip = asyncio.run(client.generate_speech("Once upon a time", "charon"))

    assert clip == "UklGRg=="
    call = completion.calls[0]
    assert call["model"] == "gemini/test-tts"
    assert call["modalities"] == ["audio"]
    assert call["audio"]["voice"] == VoiceOption.CHARON.value
    assert "Once upon a time" in call["messages"][0]["content"]


def test_generate_speech_without_audio_fails():
    client = _client(RecordingCompletion(ChatResult(text="hello", raw=None)))

    with pytest.raises(GenerationError):
        asyncio.run(client.generate_speech("Once upon a time"))


def test_blank_page_text_surfaces_as_generation_error():
    client = _client(RecordingCompletion())

    with pytest.raises(GenerationError, match="Cannot narrate"):
        asyncio.run(client.generate_speech("   "))


def test_unknown_voice_is_rejected():
    synthesizer = SpeechSynthesizer(api_key="k", completion_fn=RecordingCompletion())

    with pytest.raises(ValueError):
        asyncio.run(synthesizer.generate_speech("text", "Gandalf"))


def test_generate_image_returns_first_output_url():
    replicate_client = FakeReplicateClient(
        output=[SimpleNamespace(url="https://replicate.example/a.png"), "https://replicate.example/b.png"]
    )
    images = ReplicateImageGenerator(client=replicate_client)
    client = _client(RecordingCompletion(), image_generator=images)

    handle = asyncio.run(client.generate_image("A small green dragon"))

    assert handle == "https://replicate.example/a.png"
    model, payload, use_file_output = replicate_client.calls[0]
    assert model == "black-forest-labs/flux-schnell"
    assert "A small green dragon" in payload["prompt"]
    assert use_file_output is False


def test_generate_image_wraps_replicate_errors():
    images = ReplicateImageGenerator(client=FakeReplicateClient(error=RuntimeError("rate limited")))
    client = _client(RecordingCompletion(), image_generator=images)

    with pytest.raises(GenerationError, match="rate limited"):
        asyncio.run(client.generate_image("A dragon"))


def test_generate_image_with_empty_output_fails():
    images = ReplicateImageGenerator(client=FakeReplicateClient(output=[]))
    client = _client(RecordingCompletion(), image_generator=images)

    with pytest.raises(GenerationError):
        asyncio.run(client.generate_image("A dragon"))


def test_missing_replicate_token_surfaces_as_generation_error(monkeypatch):
    monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)
    client = _client(RecordingCompletion())

    with pytest.raises(GenerationError, match="Replicate API token"):
        asyncio.run(client.generate_image("A dragon"))


def test_unsupported_image_model_is_rejected():
    images = ReplicateImageGenerator(client=FakeReplicateClient(), model_identifier="someone/unknown")

    with pytest.raises(ValueError, match="not configured"):
        asyncio.run(images.generate_image("A dragon"))


def test_normalize_image_outputs_handles_common_shapes():
    assert normalize_image_outputs(None) == []
    assert normalize_image_outputs("https://x/1.png") == ["https://x/1.png"]
    assert normalize_image_outputs(SimpleNamespace(url="https://x/2.png")) == ["https://x/2.png"]
    assert normalize_image_outputs(["https://x/3.png", None]) == ["https://x/3.png"]


def test_chat_keeps_context_across_turns():
    completion = RecordingCompletion(
        ChatResult(text="Because of sunlight!", raw=None),
        ChatResult(text="Rainbows too!", raw=None),
    )
    client = _client(completion, chat_model="gemini/test-chat")

    async def scenario():
        session = client.start_chat("Be kind.")
        first = await client.continue_chat(session, "Why is the sky blue?")
        second = await client.continue_chat(session, "What else?")
        return session, first, second

    session, first, second = asyncio.run(scenario())

    assert (first, second) == ("Because of sunlight!", "Rainbows too!")
    assert session.model == "gemini/test-chat"
    second_messages = completion.calls[1]["messages"]
    assert second_messages[0] == {"role": "system", "content": "Be kind."}
    assert [turn["content"] for turn in second_messages[1:]] == [
        "Why is the sky blue?",
        "Because of sunlight!",
        "What else?",
    ]


def test_failed_chat_turn_leaves_history_untouched():
    completion = RecordingCompletion(RuntimeError("timeout"))
    session = ProviderChatSession(model="gemini/test-chat", completion_fn=completion)

    with pytest.raises(GenerationError):
        asyncio.run(session.send("hello"))
    assert session.history == ()


def test_start_chat_without_credentials_fails(monkeypatch):
    for name in ("GEMINI_API_KEY", "LITELLM_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    client = ContentProviderClient()

    with pytest.raises(GenerationError):
        client.start_chat()
