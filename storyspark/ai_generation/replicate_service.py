"""
Integration with Replicate for storybook page illustrations.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable as IterableABC
from typing import Any, Callable

import replicate

from storyspark.common import GenerationError

from .prompting import IllustrationPrompt, build_illustration_prompt

DEFAULT_IMAGE_MODEL = "black-forest-labs/flux-schnell"

logger = logging.getLogger(__name__)


def _build_flux_input(*, prompt: IllustrationPrompt) -> dict[str, Any]:
    return {
        "prompt": prompt.positive,
        "aspect_ratio": "1:1",
        "output_format": "png",
        "num_outputs": 1,
    }


def _build_sdxl_input(*, prompt: IllustrationPrompt) -> dict[str, Any]:
    return {
        "prompt": prompt.positive,
        "negative_prompt": prompt.negative,
        "width": 1024,
        "height": 1024,
        "num_outputs": 1,
        "guidance_scale": 7.5,
    }


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "black-forest-labs/flux-schnell": _build_flux_input,
    "black-forest-labs/flux-dev": _build_flux_input,
    "black-forest-labs/flux-1.1-pro": _build_flux_input,
    "stability-ai/sdxl": _build_sdxl_input,
}


def _build_replicate_input_payload(
    *,
    model_identifier: str,
    prompt: IllustrationPrompt,
) -> dict[str, Any]:
    normalized_identifier = model_identifier.strip().lower()
    builder = _MODEL_INPUT_BUILDERS.get(normalized_identifier)
    if builder is None and ":" in normalized_identifier:
        base_identifier = normalized_identifier.split(":", maxsplit=1)[0]
        builder = _MODEL_INPUT_BUILDERS.get(base_identifier)
    if builder is None:
        supported_models = ", ".join(sorted(set(_MODEL_INPUT_BUILDERS)))
        raise ValueError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )

    return builder(prompt=prompt)


class ReplicateImageGenerator:
    """
    Convenience wrapper around the Replicate client for storybook illustrations.

    Parameters
    ----------
    api_token:
        Replicate API token. Falls back to ``REPLICATE_API_TOKEN`` environment variable.
    model_identifier:
        Model string in the ``owner/model`` or ``owner/model:version`` format. Falls back to
        ``REPLICATE_MODEL`` and then to FLUX schnell.
    client:
        Optional pre-configured :class:`replicate.Client`. Mainly useful for testing.
    """

    def __init__(
        self,
        *,
        api_token: str | None = None,
        model_identifier: str | None = None,
        client: replicate.Client | None = None,
    ) -> None:
        self._api_token = api_token or os.getenv("REPLICATE_API_TOKEN")
        if not self._api_token and not client:
            raise ValueError(
                "Replicate API token is required. Set REPLICATE_API_TOKEN or pass api_token."
            )

        self._model_identifier = (
            model_identifier or os.getenv("REPLICATE_MODEL") or DEFAULT_IMAGE_MODEL
        )
        self._client = client or replicate.Client(api_token=self._api_token)

    @property
    def model_identifier(self) -> str:
        """Return the model identifier currently used."""
        return self._model_identifier

    async def generate_image(self, subject: str, **model_kwargs: Any) -> str:
        """
        Generate one illustration and return its handle (URL or data URI).

        Parameters
        ----------
        subject:
            Visual description of the page, as produced by story generation.
        **model_kwargs:
            Additional keyword arguments forwarded directly to the Replicate model invocation.
        """
        prompt = build_illustration_prompt(subject)
        replicate_input = _build_replicate_input_payload(
            model_identifier=self._model_identifier,
            prompt=prompt,
        )
        # Allow the caller to tweak model-specific knobs (e.g., seed).
        replicate_input.update(model_kwargs)

        try:
            raw_output = await self._client.async_run(
                self._model_identifier,
                input=replicate_input,
                use_file_output=False,
            )
        except Exception as exc:
            raise GenerationError(
                f"Image request to {self._model_identifier} failed: {exc}"
            ) from exc

        outputs = normalize_image_outputs(raw_output)
        if not outputs:
            raise GenerationError("No image data returned from the image model.")

        logger.debug("Replicate returned %d image output(s)", len(outputs))
        return outputs[0]


def normalize_image_outputs(raw: Any) -> list[str]:
    """
    Normalize the image outputs returned by Replicate into a list of URL strings.
    """

    if raw is None:
        return []

    if isinstance(raw, str):
        return [raw] if raw.strip() else []

    if isinstance(raw, bytes):
        return [raw.decode("utf-8", errors="ignore")]

    url = getattr(raw, "url", None)
    if isinstance(url, str):
        return [url]

    if isinstance(raw, IterableABC):
        collected = list(raw)
        if not collected:
            return []

        if all(isinstance(item, str) and len(item) == 1 for item in collected):
            return ["".join(collected)]

        normalized: list[str] = []
        for item in collected:
            if item is None:
                continue
            normalized.extend(normalize_image_outputs(item))
        return normalized

    return [str(raw)]
