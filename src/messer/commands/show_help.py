"""Show available commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..cli.renderer import format_help

if TYPE_CHECKING:
    from ..cli.repl import Session

DEFINITION: dict[str, Any] = {
    "name": "help",
    "aliases": [],
    "usage": "help",
    "description": "Show this list",
}


async def handle(session: Session, raw_command: str) -> str:
    return format_help(session.registry.definitions())
