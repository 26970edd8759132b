"""
Story page model and parsing of the provider's structured story payload.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from storyspark.common import GenerationError

STORY_PAGE_COUNT = 5


@dataclass(frozen=True)
class StoryPage:
    """
    A single page of narrative text paired with the prompt for its illustration.
    """

    page: int
    text: str
    image_prompt: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "text": self.text,
            "imagePrompt": self.image_prompt,
        }

    @classmethod
    def from_mapping(cls, item: Mapping[str, Any]) -> "StoryPage":
        """
        Build a page from its wire form, raising ``ValueError`` on missing or mistyped fields.
        """
        if not isinstance(item, Mapping):
            raise ValueError(f"Invalid page payload: {item!r}")

        try:
            raw_number = item["page"]
            text = item["text"]
            image_prompt = item["imagePrompt"]
        except KeyError as exc:
            raise ValueError(f"Invalid page payload: {item!r}") from exc

        if isinstance(raw_number, bool) or not isinstance(raw_number, (int, float)):
            raise ValueError(f"Page number must be numeric, got {raw_number!r}")
        if isinstance(raw_number, float) and not (
            math.isfinite(raw_number) and raw_number.is_integer()
        ):
            raise ValueError(f"Page number must be a positive integer, got {raw_number!r}")
        if int(raw_number) < 1:
            raise ValueError(f"Page number must be a positive integer, got {raw_number!r}")
        if not isinstance(text, str) or not isinstance(image_prompt, str):
            raise ValueError(f"Page {raw_number} text and imagePrompt must be strings.")

        return cls(page=int(raw_number), text=text.strip(), image_prompt=image_prompt.strip())


def parse_story_payload(
    raw_text: str,
    *,
    expected_pages: int = STORY_PAGE_COUNT,
) -> list[StoryPage]:
    """
    Parse the JSON story payload into exactly ``expected_pages`` sequential pages.
    """
    pages_data = _parse_story_json(raw_text)
    pages = _convert_to_pages(pages_data)
    _validate_page_sequence(pages, expected_pages)
    return pages


def _parse_story_json(raw_text: str) -> Sequence[Any]:
    if not raw_text or not raw_text.strip():
        raise GenerationError("Story response did not contain any text content.")

    try:
        parsed = json.loads(raw_text.strip())
    except json.JSONDecodeError as exc:
        raise GenerationError("Failed to parse story response as JSON.") from exc

    if not isinstance(parsed, Mapping):
        raise GenerationError("Story JSON must be an object with a 'story' list.")

    story = parsed.get("story")
    if not isinstance(story, list):
        raise GenerationError("Story JSON must contain a 'story' list.")

    return story


def _convert_to_pages(pages_data: Iterable[Any]) -> list[StoryPage]:
    pages: list[StoryPage] = []
    for item in pages_data:
        try:
            page = StoryPage.from_mapping(item)
        except ValueError as exc:
            raise GenerationError(str(exc)) from exc

        if not page.text or not page.image_prompt:
            raise GenerationError(f"Page {page.page} is missing text or imagePrompt content.")

        pages.append(page)
    return pages


def _validate_page_sequence(pages: Sequence[StoryPage], expected: int) -> None:
    if len(pages) != expected:
        raise GenerationError(f"Expected {expected} pages, received {len(pages)}.")

    for number, page in enumerate(pages, start=1):
        if page.page != number:
            raise GenerationError("Page numbers must be sequential starting from 1.")
