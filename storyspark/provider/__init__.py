"""
Content provider client wrapping story, illustration, narration, and chat requests.
"""

from .chat import DEFAULT_CHAT_INSTRUCTION, ProviderChatSession
from .client import ContentProviderClient

__all__ = [
    "ContentProviderClient",
    "DEFAULT_CHAT_INSTRUCTION",
    "ProviderChatSession",
]
