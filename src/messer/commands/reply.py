"""Reply to the most recent conversation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..cli.dispatcher import split_command
from ..errors import CommandError

if TYPE_CHECKING:
    from ..cli.repl import Session

DEFINITION: dict[str, Any] = {
    "name": "reply",
    "aliases": ["r"],
    "usage": "reply <text>",
    "description": "Reply to the last conversation you messaged or received a message in",
}


async def handle(session: Session, raw_command: str) -> str:
    _, text = split_command(raw_command)
    if not text:
        raise CommandError(DEFINITION["name"], f"Usage: {DEFINITION['usage']}")

    thread_id = session.thread_history.current()
    if thread_id is None:
        raise CommandError(DEFINITION["name"], "No conversation to reply to yet")

    thread = await session.cache.get_thread_by_id(thread_id)
    await session.backend.send_message(thread.id, text)
    session.thread_history.push(thread.id)
    return f"Sent message to {thread.name or thread.id}"
