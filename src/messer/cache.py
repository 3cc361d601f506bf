"""Session cache: users, threads, the contact name index and thread history.

Everything here lives for one terminal session and is never evicted.
Threads are first-write-wins: once an id is cached, later backend reports
of a different name are ignored, except that an empty name is back-filled
from the contact name the first time the thread is looked up by name.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .errors import BackendError, LookupNotFound
from .models import Contact, Thread

if TYPE_CHECKING:
    from .services.backend import MessagingBackend

logger = logging.getLogger(__name__)


class SessionCache:
    def __init__(self, backend: MessagingBackend | None = None) -> None:
        # Set by SessionManager once login succeeds.
        self.backend = backend
        self.users: dict[str, Contact] = {}
        self.threads: dict[str, Thread] = {}
        self.name_index: dict[str, str] = {}
        self._pending: dict[str, asyncio.Task[Thread]] = {}

    # -- users / contacts --

    def cache_user(self, contact: Contact) -> None:
        """Index a contact by id and by display name."""
        self.users[contact.id] = contact
        display_name = contact.display_name
        if display_name:
            self.name_index[display_name] = contact.id

    def get_user(self, user_id: str) -> Contact | None:
        return self.users.get(user_id)

    def display_name_for(self, user_id: str) -> str:
        user = self.users.get(user_id)
        if user and user.display_name:
            return user.display_name
        return user_id

    def contacts(self) -> list[str]:
        """Contact display names in the order they were retrieved."""
        return list(self.name_index)

    # -- threads --

    def cache_thread(self, thread: Thread) -> None:
        if thread.id in self.threads:
            return
        self.threads[thread.id] = Thread(id=thread.id, name=thread.name)

    def get_thread_by_name(self, name: str) -> Thread:
        """Resolve a contact name prefix (case-insensitive) to its cached thread.

        Ties go to whichever contact was retrieved first.
        """
        query = name.strip().lower()
        if not query:
            raise LookupNotFound("No name given")

        match = next((n for n in self.name_index if n.lower().startswith(query)), None)
        if match is None:
            raise LookupNotFound(f"No contact matches '{name.strip()}'")

        thread = self.threads.get(self.name_index[match])
        if thread is None:
            raise LookupNotFound(f"No conversation with {match} is loaded")

        if not thread.name:
            thread.name = match
        return thread

    async def get_thread_by_id(self, thread_id: str) -> Thread:
        """Return the cached thread, fetching it once from the backend on a miss.

        Concurrent callers for the same id share a single in-flight fetch.
        """
        thread = self.threads.get(thread_id)
        if thread is not None:
            return thread

        task = self._pending.get(thread_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch_thread(thread_id))
            self._pending[thread_id] = task
            task.add_done_callback(lambda _t: self._pending.pop(thread_id, None))
        # Shielded so one cancelled caller does not cancel the fetch for the others.
        return await asyncio.shield(task)

    async def _fetch_thread(self, thread_id: str) -> Thread:
        if self.backend is None:
            raise LookupNotFound(f"Thread {thread_id} is not cached and no backend is connected")
        logger.debug("Fetching thread %s", thread_id)
        try:
            fetched = await self.backend.get_thread(thread_id)
        except BackendError as e:
            if e.status_code == 404:
                raise LookupNotFound(f"No thread with id {thread_id}") from e
            raise
        self.cache_thread(fetched)
        thread = self.threads[fetched.id]
        if fetched.id != thread_id:
            # The backend may report a canonical id; later lookups use the requested one.
            self.threads.setdefault(thread_id, thread)
        return self.threads[thread_id]


class ThreadHistory:
    """Threads visited in this terminal session, most recent last."""

    def __init__(self) -> None:
        self._ids: list[str] = []

    def push(self, thread_id: str) -> None:
        self._ids.append(thread_id)

    def current(self) -> str | None:
        return self._ids[-1] if self._ids else None

    def recent(self, n: int) -> list[str]:
        return self._ids[-n:] if n > 0 else []

    def __len__(self) -> int:
        return len(self._ids)
