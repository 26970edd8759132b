"""
Interactive terminal chat with the StorySpark companion.

Usage:
    python scripts/chat_companion.py [--model gemini/gemini-2.5-flash]

Type an empty line or "bye" to leave.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from storyspark import ChatSessionController, ContentProviderClient  # noqa: E402

EXIT_WORDS = {"", "bye", "quit", "exit"}


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with the StorySpark companion.")
    parser.add_argument(
        "--model",
        default=None,
        help="Optional chat model override (LiteLLM identifier).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


async def chat_loop(chat: ChatSessionController) -> int:
    if chat.error:
        print(chat.error)
        return 1

    print(f"Bot: {chat.transcript[0].content}")
    while True:
        line = await asyncio.to_thread(input, "You: ")
        if line.strip().lower() in EXIT_WORDS:
            return 0
        reply = await chat.send_message(line)
        if reply is not None:
            print(f"Bot: {reply.content}")


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    provider = ContentProviderClient(chat_model=args.model)
    chat = ChatSessionController(provider)
    try:
        return asyncio.run(chat_loop(chat))
    except (EOFError, KeyboardInterrupt):
        return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
