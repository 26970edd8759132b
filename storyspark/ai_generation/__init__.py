"""
AI illustration and narration generation package for StorySpark.
"""

from .prompting import build_illustration_prompt, build_narration_prompt
from .replicate_service import ReplicateImageGenerator, normalize_image_outputs
from .speech_service import SpeechSynthesizer, VoiceOption

__all__ = [
    "build_illustration_prompt",
    "build_narration_prompt",
    "normalize_image_outputs",
    "ReplicateImageGenerator",
    "SpeechSynthesizer",
    "VoiceOption",
]
