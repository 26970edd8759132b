"""
Chat companion controller with a linear, append-only transcript.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from storyspark.common import GenerationError
from storyspark.provider import DEFAULT_CHAT_INSTRUCTION, ContentProviderClient, ProviderChatSession

from .state import ChatMessage, ChatRole

GREETING_MESSAGE = "Hi there! I'm your friendly robot friend. Ask me anything!"
FALLBACK_REPLY = "Uh oh! My circuits are a bit fuzzy. Can you ask me that again?"
CHAT_INIT_ERROR_MESSAGE = "Could not initialize the chat bot. Please check your API key."

logger = logging.getLogger(__name__)


class ChatSessionController:
    """
    Forwards user turns to the provider and records the replies.

    User turns are appended as soon as they are sent. Provider requests run one at a
    time, so model replies land in the same order as the turns that asked for them.
    """

    def __init__(
        self,
        provider: ContentProviderClient,
        *,
        system_instruction: str = DEFAULT_CHAT_INSTRUCTION,
    ) -> None:
        self._provider = provider
        self._transcript: list[ChatMessage] = [ChatMessage(ChatRole.MODEL, GREETING_MESSAGE)]
        self._send_lock = asyncio.Lock()
        self._pending_sends = 0
        self._error: Optional[str] = None

        self._session: Optional[ProviderChatSession]
        try:
            self._session = provider.start_chat(system_instruction)
        except GenerationError as exc:
            logger.warning("Chat session could not be created: %s", exc)
            self._session = None
            self._error = CHAT_INIT_ERROR_MESSAGE

    @property
    def transcript(self) -> tuple[ChatMessage, ...]:
        return tuple(self._transcript)

    @property
    def is_typing(self) -> bool:
        return self._pending_sends > 0

    @property
    def is_ready(self) -> bool:
        return self._session is not None

    @property
    def error(self) -> Optional[str]:
        return self._error

    async def send_message(self, text: str) -> Optional[ChatMessage]:
        """
        Send one user turn and return the model entry appended for it.

        Blank input, or a controller without a chat session, is ignored and returns ``None``.
        """
        message = text.strip() if text else ""
        if not message or self._session is None:
            return None

        self._transcript.append(ChatMessage(ChatRole.USER, message))
        self._pending_sends += 1
        try:
            async with self._send_lock:
                try:
                    reply = await self._provider.continue_chat(self._session, message)
                    entry = ChatMessage(ChatRole.MODEL, reply)
                except GenerationError as exc:
                    logger.warning("Chat reply failed: %s", exc)
                    entry = ChatMessage(ChatRole.MODEL, FALLBACK_REPLY)
                self._transcript.append(entry)
        finally:
            self._pending_sends -= 1

        return entry
