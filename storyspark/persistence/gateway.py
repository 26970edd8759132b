"""
Translate story sessions to and from the JSON record kept in the save slot.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from storyspark.common import PersistenceError, ValidationError
from storyspark.story_generation import StoryPage

from .store import KeyValueStore

STORAGE_KEY = "savedStorySparkStory"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistedSession:
    """Stored form of a story session: pages and generated images, nothing else."""

    pages: tuple[StoryPage, ...] = ()
    images: Mapping[int, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "storyPages": [page.as_dict() for page in self.pages],
            "images": {str(index): handle for index, handle in sorted(self.images.items())},
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "PersistedSession":
        if not isinstance(payload, Mapping):
            raise ValidationError("Saved story data must be a JSON object.")
        if "storyPages" not in payload or "images" not in payload:
            raise ValidationError("Saved story data must include 'storyPages' and 'images'.")

        raw_pages = payload["storyPages"]
        raw_images = payload["images"]
        if not isinstance(raw_pages, list):
            raise ValidationError("'storyPages' must be a list.")
        if not isinstance(raw_images, Mapping):
            raise ValidationError("'images' must be an object keyed by page index.")

        pages: list[StoryPage] = []
        for entry in raw_pages:
            try:
                pages.append(StoryPage.from_mapping(entry))
            except ValueError as exc:
                raise ValidationError(f"Invalid saved page: {exc}") from exc

        images: dict[int, str] = {}
        for raw_index, handle in raw_images.items():
            try:
                index = int(raw_index)
            except (TypeError, ValueError) as exc:
                raise ValidationError(f"Invalid image index: {raw_index!r}") from exc
            if not 0 <= index < len(pages):
                raise ValidationError(f"Image index {index} does not match a saved page.")
            if not isinstance(handle, str) or not handle:
                raise ValidationError(f"Image for page index {index} must be a non-empty string.")
            images[index] = handle

        return cls(pages=tuple(pages), images=images)


class PersistenceGateway:
    """
    Stateless translate-and-store / translate-and-load over a :class:`KeyValueStore`.
    """

    def __init__(self, store: KeyValueStore, *, key: str = STORAGE_KEY) -> None:
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def has_saved_session(self) -> bool:
        try:
            return self._store.get(self._key) is not None
        except ValidationError:
            # Present but unreadable; a load will discard it.
            return True
        except PersistenceError:
            logger.warning("Could not check for a saved story", exc_info=True)
            return False

    def save(self, pages: Sequence[StoryPage], images: Mapping[int, str]) -> None:
        """
        Overwrite the slot with ``pages`` and ``images``. Raises ``PersistenceError``.
        """
        record = PersistedSession(pages=tuple(pages), images=dict(images))
        self._store.set(self._key, json.dumps(record.to_dict()))
        logger.info("Saved story with %d pages and %d images", len(pages), len(images))

    def load(self) -> PersistedSession | None:
        """
        Return the saved session, ``None`` for an empty slot, or raise ``ValidationError``.
        """
        raw = self._store.get(self._key)
        if raw is None:
            return None

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError("Saved story data is not valid JSON.") from exc

        record = PersistedSession.from_dict(payload)
        logger.info("Loaded story with %d pages and %d images", len(record.pages), len(record.images))
        return record

    def delete(self) -> None:
        self._store.delete(self._key)
