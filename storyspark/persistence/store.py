"""
Key-value media used by the persistence gateway.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

from storyspark.common import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

_SAFE_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(Protocol):
    """
    String values addressed by string keys.

    ``get`` raises ``ValidationError`` when a stored value cannot be decoded as text.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


def _check_quota(key: str, value: str, quota_bytes: int | None) -> None:
    if quota_bytes is None:
        return
    size = len(value.encode("utf-8"))
    if size > quota_bytes:
        raise PersistenceError(
            f"Value for '{key}' is {size} bytes, exceeding the {quota_bytes} byte quota."
        )


class InMemoryKeyValueStore:
    """
    Dictionary-backed store with an optional per-value quota.
    """

    def __init__(self, *, quota_bytes: int | None = None) -> None:
        self._values: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        _check_quota(key, value, self._quota_bytes)
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class FileKeyValueStore:
    """
    One ``<key>.json`` file per key under ``directory``.

    Writes go to a temporary file that replaces the target, so a failed write keeps the old value.
    """

    def __init__(self, directory: str | Path, *, quota_bytes: int | None = None) -> None:
        self._directory = Path(directory).expanduser()
        self._quota_bytes = quota_bytes

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise ValidationError(f"'{path}' is not valid UTF-8 text.") from exc
        except OSError as exc:
            raise PersistenceError(f"Failed to read '{path}': {exc}") from exc

    def set(self, key: str, value: str) -> None:
        _check_quota(key, value, self._quota_bytes)
        path = self._path_for(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"Failed to write '{path}': {exc}") from exc
        logger.debug("Wrote %d characters to %s", len(value), path)

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Failed to delete '{path}': {exc}") from exc
