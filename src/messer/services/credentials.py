"""Credential acquisition and session token persistence."""

from __future__ import annotations

import asyncio
import getpass
import json
import logging
import stat
from pathlib import Path
from typing import Callable

import yaml
from pydantic import ValidationError
from rich.prompt import Prompt

from ..errors import ConfigError
from ..models import Credentials

logger = logging.getLogger(__name__)


class SessionTokenStore:
    """Persists the backend's opaque session token between runs."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> str | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, type(e).__name__)
            return None
        token = data.get("session_token") if isinstance(data, dict) else None
        return token if isinstance(token, str) and token else None

    def save(self, token: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({"session_token": token}), encoding="utf-8")
            self.path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0600
        except OSError as e:
            logger.warning("Failed to save session to %s: %s", self.path, e)

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove session file %s: %s", self.path, e)


def prompt_credentials() -> Credentials:
    """Prompt for identifier and secret in the terminal. The secret is not echoed."""
    from ..cli.renderer import console

    console.print("Enter your credentials - your password will not be visible as you type it in")
    identifier = ""
    while not identifier:
        identifier = Prompt.ask("Identifier", console=console).strip()
    secret = ""
    while not secret:
        # SECURITY-REVIEW: getpass hides input; the secret is only held in memory as a SecretStr
        secret = getpass.getpass("Password: ")
    return Credentials(identifier=identifier, secret=secret)


class CredentialSource:
    """Resolves credentials: saved session token, then credentials file, then prompt."""

    def __init__(
        self,
        token_store: SessionTokenStore,
        credentials_file: Path | None = None,
        prompt: Callable[[], Credentials] = prompt_credentials,
    ) -> None:
        self.token_store = token_store
        self.credentials_file = credentials_file
        self._prompt = prompt

    async def get_credentials(self) -> Credentials:
        token = self.token_store.load()
        if token:
            logger.info("Using saved session from %s", self.token_store.path)
            return Credentials(session_token=token)

        from_file = self._read_credentials_file()
        if from_file is not None:
            logger.info("Using credentials from %s", self.credentials_file)
            return from_file

        return await asyncio.to_thread(self._prompt)

    def _read_credentials_file(self) -> Credentials | None:
        path = self.credentials_file
        if path is None or not path.is_file():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read credentials file {path}: {type(e).__name__}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Credentials file {path} must be a mapping")

        # email/password keys are accepted as aliases
        identifier = raw.get("identifier") or raw.get("email")
        secret = raw.get("secret") or raw.get("password")
        if not identifier or not secret:
            raise ConfigError(f"Credentials file {path} needs 'identifier' and 'secret'")
        try:
            return Credentials(identifier=str(identifier), secret=str(secret))
        except ValidationError as e:
            raise ConfigError(f"Invalid credentials file {path}") from e
