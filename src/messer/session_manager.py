"""Login and the post-login bulk fetch that warms the session cache."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from pydantic import ValidationError

from .cache import SessionCache
from .errors import AuthError, BackendError, FetchError
from .models import Credentials, User

if TYPE_CHECKING:
    from .services.backend import MessagingBackend
    from .services.credentials import SessionTokenStore

logger = logging.getLogger(__name__)

DEFAULT_THREAD_PAGE_SIZE = 20


@contextmanager
def _fetch_step(step: str) -> Iterator[None]:
    """Turn a backend failure inside one bulk-fetch step into a FetchError naming the step."""
    logger.debug("Bulk fetch: %s", step)
    try:
        yield
    except BackendError as e:
        raise FetchError(step, str(e)) from e


class SessionManager:
    """Turns credentials into an authenticated user and a warm cache."""

    def __init__(
        self,
        backend: MessagingBackend,
        token_store: SessionTokenStore,
        cache: SessionCache | None = None,
        thread_page_size: int = DEFAULT_THREAD_PAGE_SIZE,
    ) -> None:
        self._unauthenticated = backend
        self.token_store = token_store
        self.cache = cache if cache is not None else SessionCache()
        self.thread_page_size = thread_page_size
        self.backend: MessagingBackend | None = None
        self.user: User | None = None

    async def authenticate(self, credentials: Credentials) -> User:
        logger.info("Logging in as %s", credentials.identifier or "saved session")
        try:
            handle = await self._unauthenticated.login(credentials)
        except BackendError as e:
            raise AuthError(credentials.identifier, str(e)) from e

        self.token_store.save(handle.export_session_token())
        self.backend = handle
        self.cache.backend = handle

        self.user = await self.fetch_current_user()
        return self.user

    async def fetch_current_user(self) -> User:
        """Fetch identity, profile, contacts, then the first page of threads.

        The order matters: the name index must hold every contact before any
        thread is registered. A failing step raises FetchError; whatever the
        earlier steps cached is kept.
        """
        backend = self.backend
        if backend is None:
            raise FetchError("identity", "not logged in")

        with _fetch_step("identity"):
            user_id = backend.current_identity()

        with _fetch_step("profile"):
            profile = await backend.get_profile(user_id)
        fields = {k: v for k, v in profile.items() if v is not None}
        fields["id"] = user_id
        try:
            user = User.model_validate(fields)
        except ValidationError as e:
            raise FetchError("profile", f"{e.error_count()} invalid field(s)") from e

        with _fetch_step("contacts"):
            contacts = await backend.get_contacts()
        for contact in contacts:
            self.cache.cache_user(contact)

        with _fetch_step("threads"):
            threads = await backend.get_threads(0, self.thread_page_size)
        for thread in threads:
            self.cache.cache_thread(thread)

        logger.info("Cached %d contacts and %d threads", len(contacts), len(threads))
        return user
