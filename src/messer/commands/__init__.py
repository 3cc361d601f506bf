"""Built-in REPL commands."""

from __future__ import annotations

import logging

from ..cli.dispatcher import CommandRegistry

logger = logging.getLogger(__name__)


def register_default_commands(registry: CommandRegistry) -> None:
    """Register all built-in commands."""
    from . import contacts, history, message, recent, reply, show_help

    for module in [message, reply, contacts, history, recent, show_help]:
        registry.register(module.handle, module.DEFINITION)
    logger.debug("Registered commands: %s", ", ".join(registry.list_commands()))
