"""CLI entry point for Messer."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.logging import RichHandler

from . import __version__
from .config import AppConfig, _get_config_path, load_config
from .errors import ConfigError


def _configure_logging(level: str) -> None:
    from .cli import renderer

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=renderer.console, show_path=False, show_time=False)],
    )


def _load_config_or_exit(config_path: Path | None) -> AppConfig:
    path = config_path or _get_config_path()
    try:
        return load_config(path)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


async def _run_session(config: AppConfig, credentials_file: Path | None) -> int:
    from .cli.repl import Session
    from .services.backend import HttpMessagingBackend
    from .services.credentials import CredentialSource, SessionTokenStore

    token_store = SessionTokenStore(config.app.session_token_path)
    source = CredentialSource(token_store, credentials_file or config.app.resolved_credentials_file)
    backend = HttpMessagingBackend(config.backend)
    try:
        session = Session(config, backend, source, token_store)
        return await session.start()
    finally:
        await backend.close()


def _run_logout(config: AppConfig) -> None:
    from .services.credentials import SessionTokenStore

    store = SessionTokenStore(config.app.session_token_path)
    if store.load() is None:
        print("No saved session.")
        return
    store.clear()
    print(f"Removed saved session at {store.path}")


def main() -> None:
    parser = argparse.ArgumentParser(prog="messer", description="Messer - a terminal client for your messages")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("logout", help="Forget the saved session so the next run asks for credentials")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml (default: ~/.messer)")
    parser.add_argument(
        "-c",
        "--credentials",
        dest="credentials_file",
        type=Path,
        default=None,
        help="YAML or JSON file with 'identifier' and 'secret'",
    )

    args = parser.parse_args()
    config = _load_config_or_exit(args.config)
    _configure_logging(config.app.log_level)

    if args.command == "logout":
        _run_logout(config)
        return

    try:
        exit_code = asyncio.run(_run_session(config, args.credentials_file))
    except (KeyboardInterrupt, asyncio.CancelledError):
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
