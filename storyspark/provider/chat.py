"""
Stateful chat context kept on the provider side of the StorySpark companion.
"""

from __future__ import annotations

import logging
from typing import Any

from storyspark.common import ChatResult, CompletionCallable, GenerationError, call_chat_completion

DEFAULT_CHAT_INSTRUCTION = (
    "You are a friendly, patient, and cheerful companion for a 5-year-old child. "
    "Answer their questions in a simple, fun, and encouraging way. "
    "Keep your answers short and easy to understand."
)

logger = logging.getLogger(__name__)


class ProviderChatSession:
    """
    Conversation context replayed to the chat model on every turn.

    The history only grows when a turn succeeds, so a failed request leaves it untouched.
    """

    def __init__(
        self,
        *,
        model: str,
        system_instruction: str = DEFAULT_CHAT_INSTRUCTION,
        api_key: str | None = None,
        completion_fn: CompletionCallable | None = None,
        temperature: float = 0.7,
        max_output_tokens: int = 300,
    ) -> None:
        if not model:
            raise ValueError("A chat model identifier is required.")

        self._model = model
        self._system_instruction = system_instruction
        self._api_key = api_key
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._history: list[dict[str, str]] = []

    @property
    def model(self) -> str:
        return self._model

    @property
    def history(self) -> tuple[dict[str, str], ...]:
        return tuple(dict(turn) for turn in self._history)

    async def send(self, message: str, **response_kwargs: Any) -> str:
        """
        Send one user turn and return the model's reply.
        """
        if not message or not message.strip():
            raise ValueError("message must be a non-empty string.")

        user_turn = {"role": "user", "content": message.strip()}
        messages = [
            {"role": "system", "content": self._system_instruction},
            *self._history,
            user_turn,
        ]

        try:
            result: ChatResult = await self._completion_fn(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
                max_tokens=self._max_output_tokens,
                api_key=self._api_key,
                **response_kwargs,
            )
        except GenerationError:
            raise
        except Exception as exc:
            raise GenerationError(f"Chat request to {self._model} failed: {exc}") from exc

        if not result.text:
            raise GenerationError("Chat response did not contain any text content.")

        self._history.append(user_turn)
        self._history.append({"role": "assistant", "content": result.text})
        logger.debug("Chat context now holds %d turns", len(self._history))
        return result.text
