"""Send a message to a contact by name."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from ..cli.dispatcher import split_command
from ..errors import CommandError

if TYPE_CHECKING:
    from ..cli.repl import Session

DEFINITION: dict[str, Any] = {
    "name": "message",
    "aliases": ["m"],
    "usage": "message <name> <text>",
    "description": 'Send a message. Quote names with spaces: message "Jane Doe" hi',
}

_QUOTED_TARGET_RE = re.compile(r'^"([^"]+)"\s+(.*\S.*)$', re.DOTALL)


def parse_target(args: str) -> tuple[str, str]:
    """Split ``<name> <text>`` or ``"<full name>" <text>``; the text is kept as typed."""
    match = _QUOTED_TARGET_RE.match(args)
    if match:
        return match.group(1), match.group(2)
    parts = args.split(maxsplit=1)
    if len(parts) < 2 or args.startswith('"'):
        raise CommandError(DEFINITION["name"], f"Usage: {DEFINITION['usage']}")
    return parts[0], parts[1]


async def handle(session: Session, raw_command: str) -> str:
    _, args = split_command(raw_command)
    name, text = parse_target(args)
    thread = session.cache.get_thread_by_name(name)
    await session.backend.send_message(thread.id, text)
    session.thread_history.push(thread.id)
    return f"Sent message to {thread.name or thread.id}"
