"""
Runtime configuration for StorySpark, loaded from an optional YAML/JSON file and the environment.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_STORAGE_DIR = Path.home() / ".storyspark"
DEFAULT_MUSIC_VOLUME = 0.1

_ENVIRONMENT_KEYS: dict[str, tuple[str, ...]] = {
    "story_model": ("STORYSPARK_STORY_MODEL", "LITELLM_STORY_MODEL", "LITELLM_MODEL"),
    "chat_model": ("STORYSPARK_CHAT_MODEL", "LITELLM_CHAT_MODEL", "LITELLM_MODEL"),
    "speech_model": ("STORYSPARK_SPEECH_MODEL", "LITELLM_SPEECH_MODEL"),
    "image_model": ("STORYSPARK_IMAGE_MODEL", "REPLICATE_MODEL"),
    "voice": ("STORYSPARK_VOICE",),
    "storage_dir": ("STORYSPARK_STORAGE_DIR",),
    "music_path": ("STORYSPARK_MUSIC_PATH",),
}


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Expected a boolean-compatible value, got {value!r}")


def _coerce_optional_str(value: Any) -> str | None:
    if value is None:
        return None

    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class StorySparkSettings:
    """
    Knobs shared by the provider client, audio playback, and persistence layers.

    Model identifiers left as ``None`` let each service resolve its own default.
    """

    story_model: str | None = None
    chat_model: str | None = None
    speech_model: str | None = None
    image_model: str | None = None
    voice: str = "Kore"
    storage_dir: Path = DEFAULT_STORAGE_DIR
    music_path: Path | None = None
    music_volume: float = DEFAULT_MUSIC_VOLUME
    auto_play: bool = True
    music_on: bool = True
    auto_advance: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StorySparkSettings":
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown settings keys: {', '.join(unknown)}")

        defaults = cls()
        music_path = _coerce_optional_str(data.get("music_path"))
        try:
            music_volume = float(data.get("music_volume", defaults.music_volume))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"music_volume must be a number, got {data.get('music_volume')!r}") from exc
        if not 0.0 <= music_volume <= 1.0:
            raise ValueError("music_volume must fall between 0.0 and 1.0.")

        return cls(
            story_model=_coerce_optional_str(data.get("story_model")),
            chat_model=_coerce_optional_str(data.get("chat_model")),
            speech_model=_coerce_optional_str(data.get("speech_model")),
            image_model=_coerce_optional_str(data.get("image_model")),
            voice=_coerce_optional_str(data.get("voice")) or defaults.voice,
            storage_dir=Path(data.get("storage_dir") or defaults.storage_dir).expanduser(),
            music_path=Path(music_path).expanduser() if music_path else None,
            music_volume=music_volume,
            auto_play=_coerce_bool(data.get("auto_play", defaults.auto_play)),
            music_on=_coerce_bool(data.get("music_on", defaults.music_on)),
            auto_advance=_coerce_bool(data.get("auto_advance", defaults.auto_advance)),
        )


def load_settings(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> StorySparkSettings:
    """
    Build settings from an optional YAML or JSON file, letting environment variables override it.
    """
    data: dict[str, Any] = {}
    if path is not None:
        data.update(_load_mapping_file(Path(path)))

    env = os.environ if environ is None else environ
    for key, names in _ENVIRONMENT_KEYS.items():
        for name in names:
            value = env.get(name)
            if value:
                data[key] = value
                break

    return StorySparkSettings.from_mapping(data)


def _load_mapping_file(path: Path) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        raise ValueError("Unsupported settings file format. Use YAML or JSON.")

    if not isinstance(data, Mapping):
        raise ValueError("Settings file must deserialize to a mapping.")
    return data
