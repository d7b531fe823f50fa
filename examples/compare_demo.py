"""Minimal demonstration of a comparison-mode turn."""

import asyncio
import sys

from apeiron_core.api.service import run_chat_turn, serialize_conversation
from apeiron_core.providers.registry import available_models
from apeiron_core.config.settings import settings
from apeiron_core.session import ConversationSession


def print_update(conversation, message):
    if message.role == "assistant":
        state = "..." if message.is_streaming else "done"
        print(f"[{message.model_id}] {state} {len(message.content)} chars")


async def main(question: str) -> None:
    models = [m.id for m in available_models(settings)][:2]
    if not models:
        print("No API key configured; set OPENROUTER_API_KEY or another provider key.")
        return
    session = ConversationSession(listeners=[print_update])
    result = await run_chat_turn(session, question, compare_mode=True, compare_model_ids=models)
    for outcome in result.outcomes:
        print(outcome.model_id, outcome.status, outcome.error or "")
    for msg in serialize_conversation(session.conversation)["messages"]:
        print(f"{msg['role']} ({msg['model_id'] or '-'}): {msg['content']}")


if __name__ == "__main__":
    asyncio.run(main(" ".join(sys.argv[1:]) or "用一句话介绍你自己"))
