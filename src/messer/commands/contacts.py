"""List known contacts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..cli.repl import Session

DEFINITION: dict[str, Any] = {
    "name": "contacts",
    "aliases": [],
    "usage": "contacts",
    "description": "List your contacts",
}


async def handle(session: Session, raw_command: str) -> str:
    names = sorted(session.cache.contacts(), key=str.lower)
    if not names:
        return "You have no contacts"
    return "\n".join(names)
