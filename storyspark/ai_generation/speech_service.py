"""
Narration synthesis through LiteLLM's audio output modality.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any

from storyspark.common import ChatResult, CompletionCallable, GenerationError, call_chat_completion

from .prompting import build_narration_prompt

logger = logging.getLogger(__name__)


class VoiceOption(str, Enum):
    """Prebuilt narrator voices offered by the speech model."""

    KORE = "Kore"
    PUCK = "Puck"
    ZEPHYR = "Zephyr"
    FENRIR = "Fenrir"
    CHARON = "Charon"

    @classmethod
    def parse(cls, value: "VoiceOption | str") -> "VoiceOption":
        if isinstance(value, cls):
            return value
        for option in cls:
            if option.value.lower() == str(value).strip().lower():
                return option
        choices = ", ".join(option.value for option in cls)
        raise ValueError(f"Unknown voice '{value}'. Choose one of: {choices}.")


class SpeechSynthesizer:
    """
    Turns page text into base64-encoded PCM narration audio.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        audio_format: str = "pcm16",
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        self._api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("LITELLM_API_KEY")
        self._model = (
            model
            or os.getenv("STORYSPARK_SPEECH_MODEL")
            or os.getenv("LITELLM_SPEECH_MODEL")
            or "gemini/gemini-2.5-flash-preview-tts"
        )
        self._audio_format = audio_format
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion

    @property
    def model(self) -> str:
        return self._model

    async def generate_speech(
        self,
        text: str,
        voice: VoiceOption | str = VoiceOption.KORE,
        **response_kwargs: Any,
    ) -> str:
        """
        Synthesize ``text`` with the chosen prebuilt voice and return the base64 audio payload.
        """
        selected = VoiceOption.parse(voice)
        messages = [{"role": "user", "content": build_narration_prompt(text)}]

        try:
            result: ChatResult = await self._completion_fn(
                model=self._model,
                messages=messages,
                api_key=self._api_key,
                modalities=["audio"],
                audio={"voice": selected.value, "format": self._audio_format},
                **response_kwargs,
            )
        except GenerationError:
            raise
        except Exception as exc:
            raise GenerationError(f"Speech request to {self._model} failed: {exc}") from exc

        if not result.audio:
            raise GenerationError("No audio data returned from the speech model.")

        logger.debug("Synthesized narration with voice %s", selected.value)
        return result.audio
