"""List the most recent conversations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..cli.dispatcher import split_command
from ..errors import CommandError

if TYPE_CHECKING:
    from ..cli.repl import Session

DEFINITION: dict[str, Any] = {
    "name": "recent",
    "aliases": [],
    "usage": "recent [count]",
    "description": "List your most recent conversations",
}


async def handle(session: Session, raw_command: str) -> str:
    _, args = split_command(raw_command)
    limit = session.config.cli.history_limit
    if args:
        if not args.isdigit() or int(args) <= 0:
            raise CommandError(DEFINITION["name"], f"Usage: {DEFINITION['usage']}")
        limit = int(args)

    threads = await session.backend.get_threads(0, limit)
    if not threads:
        return "No recent conversations"

    lines = []
    for i, fetched in enumerate(threads, 1):
        session.cache.cache_thread(fetched)
        cached = session.cache.threads[fetched.id]
        lines.append(f"{i}. {cached.name or cached.id}")
    return "\n".join(lines)
