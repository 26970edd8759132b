"""
Prompt construction utilities for StorySpark illustrations and narration.
"""

from __future__ import annotations

from dataclasses import dataclass

ILLUSTRATION_STYLE = (
    "A vibrant, colorful, and cute illustration for a children's storybook. "
    "Style: whimsical and friendly."
)

NEGATIVE_PROMPT = (
    "scary, dark, violent, gore, realistic photo, harsh shadows, cluttered background, "
    "watermark, text, logo"
)

NARRATION_DIRECTION = "Say with a warm, gentle, and slightly cheerful voice:"


@dataclass(frozen=True)
class IllustrationPrompt:
    """Container for the positive and negative prompts passed to the image model."""

    positive: str
    negative: str = NEGATIVE_PROMPT


def build_illustration_prompt(subject: str) -> IllustrationPrompt:
    """
    Wrap a page's image prompt in the storybook illustration style.
    """
    if not subject or not subject.strip():
        raise ValueError("subject must be a non-empty string.")

    return IllustrationPrompt(positive=f"{ILLUSTRATION_STYLE} Subject: {subject.strip()}")


def build_narration_prompt(text: str) -> str:
    """
    Prefix page text with the narrator's delivery direction for the speech model.
    """
    if not text or not text.strip():
        raise ValueError("text must be a non-empty string.")

    return f"{NARRATION_DIRECTION} {text.strip()}"
