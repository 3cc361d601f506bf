"""Command registry and the dispatcher that runs one input line per call."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from ..errors import CommandError, MesserError
from . import renderer

if TYPE_CHECKING:
    from .repl import Session

logger = logging.getLogger(__name__)

CommandHandler = Callable[["Session", str], Coroutine[Any, Any, "str | None"]]

INVALID_COMMAND_MESSAGE = "Invalid command - check your syntax"


def split_command(raw_command: str) -> tuple[str, str]:
    """Return the command name and the rest of the line as typed (outer whitespace stripped)."""
    stripped = raw_command.strip()
    parts = stripped.split(maxsplit=1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


class CommandRegistry:
    """Closed set of commands, built once at startup."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._definitions: dict[str, dict[str, Any]] = {}
        self._aliases: dict[str, str] = {}

    def register(self, handler: CommandHandler, definition: dict[str, Any]) -> None:
        name = definition["name"]
        names = [name, *definition.get("aliases", [])]
        if len(set(names)) != len(names):
            raise ValueError(f"Command {name} repeats a name among its aliases")
        for n in names:
            if n in self._handlers or n in self._aliases:
                raise ValueError(f"Command name already registered: {n}")
        self._handlers[name] = handler
        self._definitions[name] = definition
        for alias in definition.get("aliases", []):
            self._aliases[alias] = name

    def resolve(self, name: str) -> CommandHandler | None:
        return self._handlers.get(self._aliases.get(name, name))

    def has_command(self, name: str) -> bool:
        return self.resolve(name) is not None

    def list_commands(self) -> list[str]:
        return list(self._handlers.keys())

    def definitions(self) -> list[dict[str, Any]]:
        return list(self._definitions.values())


class CommandDispatcher:
    """Runs one line of input. Never raises: every outcome becomes one rendered line."""

    def __init__(
        self,
        registry: CommandRegistry,
        session: Session,
        output: Callable[[str], None] = renderer.render_message,
        error_output: Callable[[str], None] = renderer.render_error,
    ) -> None:
        self.registry = registry
        self.session = session
        self._output = output
        self._error_output = error_output

    async def dispatch(self, raw_command: str) -> None:
        if not raw_command.strip():
            return

        name = raw_command.split()[0]
        handler = self.registry.resolve(name)
        if handler is None:
            self._error_output(INVALID_COMMAND_MESSAGE)
            return

        try:
            message = await handler(self.session, raw_command)
        except MesserError as e:
            logger.debug("Command %s failed: %s", name, e)
            self._error_output(str(CommandError(name, str(e))))
            return
        except Exception as e:
            logger.warning("Command %s raised unexpectedly", name, exc_info=True)
            self._error_output(str(CommandError(name, str(e) or type(e).__name__)))
            return

        if message:
            self._output(message)
