"""
LiteLLM-powered chat completion helper utilities.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, MutableMapping, Sequence

from litellm import acompletion

from .errors import GenerationError

ChatMessage = Mapping[str, Any]

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    """
    Structured response returned from an LLM chat completion.

    ``audio`` carries the base64 payload when the request asked for the audio modality.
    """

    text: str
    raw: Any
    audio: str | None = None


CompletionCallable = Callable[..., Awaitable[ChatResult]]


async def call_chat_completion(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    **extra_kwargs: Any,
) -> ChatResult:
    """
    Invoke LiteLLM's `acompletion` API and return the consolidated text and audio.
    """
    payload: MutableMapping[str, Any] = {
        "model": model,
        "messages": list(messages),
    }

    if temperature is not None:
        payload["temperature"] = temperature

    if max_tokens is not None:
        payload["max_tokens"] = max_tokens

    if api_key is not None:
        payload["api_key"] = api_key

    payload.update(extra_kwargs)

    logger.debug("Requesting completion from %s (%d messages)", model, len(payload["messages"]))
    response = await acompletion(**payload)

    try:
        message = response["choices"][0]["message"]
    except (KeyError, IndexError, TypeError) as exc:
        raise GenerationError("Unexpected LiteLLM response format.") from exc

    content = _field(message, "content")
    text = str(content).strip() if content is not None else ""
    return ChatResult(text=text, raw=response, audio=_extract_audio(message))


def _extract_audio(message: Any) -> str | None:
    audio = _field(message, "audio")
    if audio is None:
        return None
    data = _field(audio, "data")
    return str(data) if data else None


def _field(container: Any, name: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(name)
    return getattr(container, name, None)
