"""
Facade over the generative content provider used by the StorySpark controllers.
"""

from __future__ import annotations

import logging
import os

from storyspark.ai_generation import ReplicateImageGenerator, SpeechSynthesizer, VoiceOption
from storyspark.common import CompletionCallable, GenerationError, StorySparkSettings
from storyspark.story_generation import StoryGenerator, StoryPage

from .chat import DEFAULT_CHAT_INSTRUCTION, ProviderChatSession

logger = logging.getLogger(__name__)


class ContentProviderClient:
    """
    Groups the four remote capabilities: story, illustration, narration, and chat.

    Every call is independent; failures surface as :class:`GenerationError` and are never retried.
    """

    def __init__(
        self,
        *,
        story_generator: StoryGenerator | None = None,
        image_generator: ReplicateImageGenerator | None = None,
        speech_synthesizer: SpeechSynthesizer | None = None,
        story_model: str | None = None,
        chat_model: str | None = None,
        speech_model: str | None = None,
        image_model: str | None = None,
        api_key: str | None = None,
        replicate_api_token: str | None = None,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        self._api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("LITELLM_API_KEY")
        self._completion_fn = completion_fn
        self._story_generator = story_generator or StoryGenerator(
            api_key=self._api_key,
            model=story_model,
            completion_fn=completion_fn,
        )
        # Built on first use so chat-only sessions need no Replicate token.
        self._image_generator = image_generator
        self._replicate_api_token = replicate_api_token
        self._image_model = image_model
        self._speech_synthesizer = speech_synthesizer or SpeechSynthesizer(
            api_key=self._api_key,
            model=speech_model,
            completion_fn=completion_fn,
        )
        self._chat_model = (
            chat_model
            or os.getenv("STORYSPARK_CHAT_MODEL")
            or os.getenv("LITELLM_CHAT_MODEL")
            or os.getenv("LITELLM_MODEL")
            or "gemini/gemini-2.5-flash"
        )

    @classmethod
    def from_settings(cls, settings: StorySparkSettings) -> "ContentProviderClient":
        return cls(
            story_model=settings.story_model,
            chat_model=settings.chat_model,
            speech_model=settings.speech_model,
            image_model=settings.image_model,
        )

    async def generate_story(self, theme: str | None = None) -> list[StoryPage]:
        return await self._story_generator.generate_story(theme)

    async def generate_image(self, prompt: str) -> str:
        if self._image_generator is None:
            try:
                self._image_generator = ReplicateImageGenerator(
                    api_token=self._replicate_api_token,
                    model_identifier=self._image_model,
                )
            except ValueError as exc:
                raise GenerationError(str(exc)) from exc
        try:
            return await self._image_generator.generate_image(prompt)
        except ValueError as exc:
            raise GenerationError(f"Cannot illustrate page: {exc}") from exc

    async def generate_speech(self, text: str, voice: VoiceOption | str = VoiceOption.KORE) -> str:
        selected = VoiceOption.parse(voice)
        try:
            return await self._speech_synthesizer.generate_speech(text, selected)
        except ValueError as exc:
            raise GenerationError(f"Cannot narrate page: {exc}") from exc

    def start_chat(self, system_instruction: str = DEFAULT_CHAT_INSTRUCTION) -> ProviderChatSession:
        """
        Create a fresh conversation context for the chat companion.
        """
        if self._api_key is None and self._completion_fn is None:
            raise GenerationError(
                "No API key configured for the chat model. Set GEMINI_API_KEY or LITELLM_API_KEY."
            )

        logger.info("Starting chat session with %s", self._chat_model)
        return ProviderChatSession(
            model=self._chat_model,
            system_instruction=system_instruction,
            api_key=self._api_key,
            completion_fn=self._completion_fn,
        )

    async def continue_chat(self, session: ProviderChatSession, message: str) -> str:
        return await session.send(message)
