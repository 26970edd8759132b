"""
Service layer for producing five-page stories via LiteLLM-compatible models.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from storyspark.common import ChatResult, CompletionCallable, GenerationError, call_chat_completion

from .pages import STORY_PAGE_COUNT, StoryPage, parse_story_payload
from .prompting import DEFAULT_STORY_THEME, STORY_RESPONSE_SCHEMA, StoryPrompt, build_story_prompt

logger = logging.getLogger(__name__)


class StoryGenerator:
    """
    High-level helper that turns a theme into a batch of illustrated story pages.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        self._api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("LITELLM_API_KEY")
        self._model = (
            model
            or os.getenv("STORYSPARK_STORY_MODEL")
            or os.getenv("LITELLM_STORY_MODEL")
            or os.getenv("LITELLM_MODEL")
            or "gemini/gemini-2.5-flash"
        )
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion

    @property
    def model(self) -> str:
        """Return the model identifier in use."""
        return self._model

    async def generate_story(
        self,
        theme: str | None = None,
        *,
        temperature: float = 0.8,
        max_output_tokens: int = 2000,
        **response_kwargs: Any,
    ) -> list[StoryPage]:
        """
        Invoke the configured LLM and parse exactly five pages from its JSON response.
        """
        prompt: StoryPrompt = build_story_prompt(theme or DEFAULT_STORY_THEME)

        messages = [
            {"role": "system", "content": prompt.system},
            {"role": "user", "content": prompt.user},
        ]

        try:
            result: ChatResult = await self._completion_fn(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_output_tokens,
                api_key=self._api_key,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "story", "schema": STORY_RESPONSE_SCHEMA},
                },
                **response_kwargs,
            )
        except GenerationError:
            raise
        except Exception as exc:
            raise GenerationError(f"Story request to {self._model} failed: {exc}") from exc

        pages = parse_story_payload(result.text, expected_pages=STORY_PAGE_COUNT)
        logger.info("Generated %d story pages with %s", len(pages), self._model)
        return pages
