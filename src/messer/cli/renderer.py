"""Rich-based terminal output for the Messer REPL."""

from __future__ import annotations

import os
import sys
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.status import Status

console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Color palette
# ---------------------------------------------------------------------------

GOLD = "#C5A059"  # accents, sender names
SLATE = "#94A3B8"  # labels, thread names
MUTED = "#8b8b8b"  # secondary text (timestamps, hints)
CHROME = "#6b7280"  # UI chrome (status messages)
ERROR_RED = "#CD6B6B"


def use_stdout_console() -> None:
    """Switch renderer to REPL-compatible mode.

    Opens a duplicate of the real stderr file descriptor so Rich output
    bypasses prompt_toolkit's ``patch_stdout`` proxy, which corrupts ANSI
    escape bytes. Call from inside ``patch_stdout()`` context.
    """
    global console
    _real_stderr = os.fdopen(os.dup(sys.stderr.fileno()), "w")
    console = Console(file=_real_stderr, force_terminal=True)


def render_info(message: str) -> None:
    console.print(f"[{CHROME}]{escape(message)}[/{CHROME}]")


def render_message(message: str) -> None:
    """Print the result of a command."""
    console.print(escape(message))


def render_error(message: str) -> None:
    console.print(f"[{ERROR_RED}]Error:[/{ERROR_RED}] {escape(message)}")


def render_incoming(sender: str, body: str, thread_name: str | None = None) -> None:
    """Print an inbound message as one line."""
    where = f" [{SLATE}]in {escape(thread_name)}[/{SLATE}]" if thread_name else ""
    console.print(f"[bold {GOLD}]{escape(sender)}[/]{where}: {escape(body)}")


def render_thread_event(thread_name: str, text: str) -> None:
    console.print(f"[{SLATE}]{escape(thread_name)}[/{SLATE}] [{MUTED}]{escape(text)}[/{MUTED}]")


def format_timestamp(timestamp_ms: int) -> str:
    if not timestamp_ms:
        return ""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%b %d %H:%M")


def startup_step(message: str) -> Status:
    """Dim spinner for a startup step. A sync context manager usable around ``await``."""
    return console.status(f"  [{MUTED}]{message}[/{MUTED}]", spinner="dots12", spinner_style=MUTED)


def render_welcome(user_name: str, contact_count: int, thread_count: int, version: str = "") -> None:
    console.print()
    console.print(f"[{GOLD}]  M E S S E R[/]" + (f"  [{MUTED}]v{version}[/{MUTED}]" if version else ""))
    console.print(f"  [{SLATE}]Logged in as {escape(user_name)}[/]")
    console.print(f"  [{MUTED}]{contact_count} contacts · {thread_count} conversations[/{MUTED}]")
    console.print(f"  [{MUTED}]Type help for commands, Ctrl+D to quit[/{MUTED}]\n")


def format_help(definitions: list[dict[str, Any]]) -> str:
    """Build the help text for the registered commands."""
    lines = ["Commands:"]
    width = max((len(d["usage"]) for d in definitions), default=0)
    for defn in definitions:
        aliases = defn.get("aliases") or []
        alias_note = f" (alias: {', '.join(aliases)})" if aliases else ""
        lines.append(f"  {defn['usage']:<{width}}  {defn['description']}{alias_note}")
    return "\n".join(lines)
