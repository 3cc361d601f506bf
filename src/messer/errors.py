"""Error taxonomy for the Messer session core."""

from __future__ import annotations


class MesserError(Exception):
    """Base class for all Messer errors. ``str(err)`` is a single readable line."""


class ConfigError(MesserError, ValueError):
    """Raised when the configuration file or environment is invalid."""


class BackendError(MesserError):
    """Raised by a messaging backend when a request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(MesserError):
    """Login was rejected by the backend.

    Carries the identifying credential field, never the secret.
    """

    def __init__(self, identifier: str | None, message: str) -> None:
        self.identifier = identifier
        self.message = message
        who = f"[{identifier}]" if identifier else "with saved session"
        super().__init__(f"Failed to login {who} - {message}")


class FetchError(MesserError):
    """A step of the post-login bulk fetch failed."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        self.message = message
        super().__init__(f"Failed to fetch {step} - {message}")


class CommandError(MesserError):
    """A command handler failed."""

    def __init__(self, command: str, message: str) -> None:
        self.command = command
        self.message = message
        super().__init__(message)


class LookupNotFound(MesserError, LookupError):
    """A name or identifier did not resolve in the cache."""


class EventTransportError(MesserError):
    """A delivered event signaled a stream-level problem."""


class UnregisteredEventError(MesserError):
    """An event type has no handler. The event type set is closed, so this is fatal."""
