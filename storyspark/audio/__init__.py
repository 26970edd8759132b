"""
Audio playback for narration clips and the looping background-music channel.
"""

from .backends import AudioBackend, NullAudioBackend, PygameAudioBackend, decode_audio_clip
from .playback import AudioPlaybackController

__all__ = [
    "AudioBackend",
    "AudioPlaybackController",
    "NullAudioBackend",
    "PygameAudioBackend",
    "decode_audio_clip",
]
