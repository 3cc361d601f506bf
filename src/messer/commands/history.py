"""Show recent messages in a conversation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..cli.dispatcher import split_command
from ..cli.renderer import format_timestamp
from ..errors import CommandError

if TYPE_CHECKING:
    from ..cli.repl import Session

DEFINITION: dict[str, Any] = {
    "name": "history",
    "aliases": ["h"],
    "usage": "history <name> [count]",
    "description": "Show the last messages with a contact",
}


def parse_args(args: str, default_limit: int) -> tuple[str, int]:
    name = args.strip().strip('"')
    limit = default_limit
    parts = args.rsplit(maxsplit=1)
    if len(parts) == 2 and parts[1].isdigit():
        name, limit = parts[0].strip().strip('"'), int(parts[1])
    if not name:
        raise CommandError(DEFINITION["name"], f"Usage: {DEFINITION['usage']}")
    if limit <= 0:
        raise CommandError(DEFINITION["name"], "Count must be a positive number")
    return name, limit


async def handle(session: Session, raw_command: str) -> str:
    _, args = split_command(raw_command)
    name, limit = parse_args(args, session.config.cli.history_limit)
    thread = session.cache.get_thread_by_name(name)
    messages = await session.backend.get_thread_history(thread.id, limit)
    session.thread_history.push(thread.id)

    if not messages:
        return f"No messages with {thread.name or thread.id}"

    own_id = session.user.id if session.user else None
    lines = []
    for msg in messages:
        sender = "You" if msg.sender_id == own_id else session.cache.display_name_for(msg.sender_id)
        stamp = format_timestamp(msg.timestamp)
        prefix = f"[{stamp}] " if stamp else ""
        lines.append(f"{prefix}{sender}: {msg.body}")
    return "\n".join(lines)
