"""
CLI example to run a StorySpark story session end-to-end.

Usage:
    python scripts/run_story_session.py \
        --theme "A dragon learns to fly" \
        --narrate

    python scripts/run_story_session.py --load --no-audio

Environment variables:
    GEMINI_API_KEY / LITELLM_API_KEY  - credentials for the story and speech models
    REPLICATE_API_TOKEN               - credentials for the illustration model
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from storyspark import StorySparkApp, VoiceOption, load_settings  # noqa: E402
from storyspark.audio import NullAudioBackend  # noqa: E402


class ProgressTracker:
    """
    Provides user-friendly command-line progress updates for a story session.
    """

    def __init__(self) -> None:
        self._page_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "story:generating":
                theme = payload.get("theme")
                self._write(
                    "[1/3] Dreaming up a story" + (f" about {theme!r}..." if theme else "...")
                )
            case "story:failed":
                self._write(f"[1/3] Story generation failed: {payload.get('error')}")
            case "story:ready" | "session:loaded":
                total = payload.get("total_pages", 0)
                self._write(f"[2/3] Story ready with {total} pages. Painting illustrations...")
                self.close()
                self._page_bar = tqdm(total=total, desc="Illustrated pages", unit="page")
                already = payload.get("total_images", 0)
                if already:
                    self._page_bar.update(already)
            case "image:ready" | "image:failed":
                if self._page_bar is not None:
                    self._page_bar.update(1)
                if stage == "image:failed":
                    self._write(f"  Illustration failed: {payload.get('error')}")
            case "narration:failed":
                self._write(f"  Narration failed: {payload.get('error')}")
            case "session:saved":
                self._write("[3/3] Story saved.")
                self.close()
            case "session:save_failed" | "session:load_failed":
                self._write(f"  Storage problem: {payload.get('error')}")

    def close(self) -> None:
        if self._page_bar is not None:
            self._page_bar.close()
            self._page_bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate, illustrate, and read a StorySpark story.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--theme",
        default=None,
        help="Story theme (defaults to Sparky the dragon learning to fly).",
    )
    source.add_argument(
        "--load",
        action="store_true",
        help="Resume the saved story instead of generating a new one.",
    )
    parser.add_argument(
        "--settings",
        default=None,
        help="Optional YAML/JSON settings file.",
    )
    parser.add_argument(
        "--voice",
        choices=[option.value for option in VoiceOption],
        default=None,
        help="Narrator voice (overrides settings).",
    )
    parser.add_argument(
        "--narrate",
        action="store_true",
        help="Read every page aloud and wait for the narration to finish.",
    )
    parser.add_argument(
        "--no-music",
        action="store_true",
        help="Keep the background music off.",
    )
    parser.add_argument(
        "--no-audio",
        action="store_true",
        help="Run without an audio device.",
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not overwrite the save slot at the end of the session.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args()


async def run_session(app: StorySparkApp, args: argparse.Namespace) -> int:
    story = app.story
    if args.load:
        if not story.load_story():
            tqdm.write(story.error or "No saved story found.")
            return 1
    else:
        await story.generate_story(args.theme)

    if not story.pages:
        tqdm.write(story.error or "No story pages to show.")
        return 1

    for index, page in enumerate(story.pages):
        story.set_current_page_index(index)
        await story.wait_for_pending()
        while story.narration.playing:
            await asyncio.sleep(0.2)

        tqdm.write(f"\nPage {page.page} of {len(story.pages)}")
        tqdm.write(f"  {page.text}")
        tqdm.write(f"  Illustration: {story.images.get(index, '(unavailable)')}")

    if not args.no_save:
        story.save_story()
    return 0


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings(args.settings)
    settings = dataclasses.replace(
        settings,
        voice=args.voice or settings.voice,
        auto_play=args.narrate,
        music_on=settings.music_on and not args.no_music,
    )

    tracker = ProgressTracker()

    async def _run() -> int:
        app = StorySparkApp.from_settings(
            settings,
            audio_backend=NullAudioBackend() if args.no_audio else None,
            event_callback=tracker,
        )
        try:
            return await run_session(app, args)
        finally:
            await app.close()

    try:
        return asyncio.run(_run())
    finally:
        tracker.close()


if __name__ == "__main__":
    raise SystemExit(main())
