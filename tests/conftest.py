"""Shared fixtures: an in-memory messaging backend and session wiring."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from messer.config import AppConfig, AppSettings, BackendConfig, CliConfig
from messer.errors import BackendError
from messer.models import BackendEvent, Contact, Credentials, Message, Thread


class FakeBackend:
    """In-memory MessagingBackend that records every call in order."""

    def __init__(
        self,
        user_id: str = "u-me",
        profile: dict[str, Any] | None = None,
        contacts: list[Contact] | None = None,
        threads: list[Thread] | None = None,
        remote_threads: dict[str, Thread] | None = None,
        histories: dict[str, list[Message]] | None = None,
        events: list[BackendEvent] | None = None,
    ) -> None:
        self.user_id = user_id
        self.profile = profile if profile is not None else {"name": "Me Myself", "locale": "en_US"}
        self.contacts = contacts or []
        self.threads = threads or []
        self.remote_threads = remote_threads or {}
        self.histories = histories or {}
        self.events = events or []
        self.calls: list[tuple[Any, ...]] = []
        self.sent: list[tuple[str, str]] = []
        self.failures: dict[str, BackendError] = {}
        self.login_error: BackendError | None = None
        self.get_thread_delay = 0.0
        self.listen_forever = False
        self.token = "tok-123"

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    async def login(self, credentials: Credentials) -> FakeBackend:
        self.calls.append(("login", credentials.identifier))
        if self.login_error is not None:
            raise self.login_error
        return self

    def current_identity(self) -> str:
        self._record("current_identity")
        return self.user_id

    async def get_profile(self, user_id: str) -> dict[str, Any]:
        self._record("get_profile", user_id)
        return dict(self.profile)

    async def get_contacts(self) -> list[Contact]:
        self._record("get_contacts")
        return list(self.contacts)

    async def get_threads(self, offset: int, limit: int) -> list[Thread]:
        self._record("get_threads", offset, limit)
        return [t.model_copy() for t in self.threads[offset : offset + limit]]

    async def get_thread(self, thread_id: str) -> Thread:
        self._record("get_thread", thread_id)
        if self.get_thread_delay:
            await asyncio.sleep(self.get_thread_delay)
        thread = self.remote_threads.get(thread_id)
        if thread is None:
            raise BackendError("Thread not found", status_code=404)
        return thread.model_copy()

    async def get_thread_history(self, thread_id: str, limit: int) -> list[Message]:
        self._record("get_thread_history", thread_id, limit)
        return self.histories.get(thread_id, [])[-limit:]

    async def send_message(self, thread_id: str, body: str) -> Message:
        self._record("send_message", thread_id, body)
        self.sent.append((thread_id, body))
        return Message(id=f"m-{len(self.sent)}", thread_id=thread_id, sender_id=self.user_id, body=body)

    async def listen(self, on_event: Any) -> None:
        self._record("listen")
        for event in self.events:
            await on_event(event)
        if self.listen_forever:
            await asyncio.Event().wait()

    def export_session_token(self) -> str:
        return self.token


class MemoryTokenStore:
    path = Path("<memory>")

    def __init__(self, token: str | None = None) -> None:
        self.token = token
        self.saved: list[str] = []
        self.cleared = False

    def load(self) -> str | None:
        return self.token

    def save(self, token: str) -> None:
        self.saved.append(token)
        self.token = token

    def clear(self) -> None:
        self.token = None
        self.cleared = True


@pytest.fixture
def contacts() -> list[Contact]:
    return [
        Contact(id="u-alice", name="Alice", full_name="Alice Liddell"),
        Contact(id="u-alina", name="alina", full_name="Alina Petrova"),
        Contact(id="u-bob", name="", full_name="Bob Builder"),
    ]


@pytest.fixture
def threads() -> list[Thread]:
    return [
        Thread(id="u-alice", name="Alice"),
        Thread(id="u-alina", name=""),
        Thread(id="u-bob", name="Bob Builder"),
        Thread(id="g-book-club", name="Book Club"),
    ]


@pytest.fixture
def fake_backend(contacts: list[Contact], threads: list[Thread]) -> FakeBackend:
    return FakeBackend(contacts=contacts, threads=threads)


@pytest.fixture
def token_store() -> MemoryTokenStore:
    return MemoryTokenStore()


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        backend=BackendConfig(base_url="http://messer.test"),
        app=AppSettings(data_dir=tmp_path),
        cli=CliConfig(thread_page_size=20, history_limit=5),
    )


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(identifier="me@example.com", secret="hunter2")


@pytest.fixture
def backend_factory() -> type[FakeBackend]:
    return FakeBackend


@pytest.fixture
def make_session(app_config: AppConfig, token_store: MemoryTokenStore, credentials: Credentials):
    """Build a Session around a backend, prompting with the ``credentials`` fixture."""
    from messer.cli.repl import Session
    from messer.services.credentials import CredentialSource

    def _make(backend: FakeBackend, **kwargs: Any) -> Session:
        source = CredentialSource(token_store, None, prompt=lambda: credentials)
        return Session(app_config, backend, source, token_store, **kwargs)

    return _make
