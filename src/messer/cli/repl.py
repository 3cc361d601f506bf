"""Session composition root and the REPL loop for the Messer CLI."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Mapping

from .. import __version__
from ..cache import SessionCache, ThreadHistory
from ..config import AppConfig
from ..errors import AuthError, MesserError
from ..models import EventType, User
from ..services.backend import MessagingBackend
from ..services.credentials import CredentialSource, SessionTokenStore
from ..session_manager import SessionManager
from . import renderer
from .dispatcher import CommandDispatcher, CommandRegistry
from .events import DEFAULT_EVENT_HANDLERS, EventHandler, EventRouter

logger = logging.getLogger(__name__)

_EXIT_COMMANDS = frozenset({"/quit", "/exit"})

LineReader = Callable[[], Awaitable[str]]


class Session:
    """One terminal session: the authenticated user, the cache, and the two input sources."""

    def __init__(
        self,
        config: AppConfig,
        backend: MessagingBackend,
        credential_source: CredentialSource,
        token_store: SessionTokenStore,
        registry: CommandRegistry | None = None,
        event_handlers: Mapping[EventType, EventHandler] | None = None,
    ) -> None:
        self.config = config
        self.credential_source = credential_source
        self.token_store = token_store
        self.manager = SessionManager(
            backend,
            token_store,
            cache=SessionCache(),
            thread_page_size=config.cli.thread_page_size,
        )
        self.thread_history = ThreadHistory()

        if registry is None:
            from ..commands import register_default_commands

            registry = CommandRegistry()
            register_default_commands(registry)
        self.registry = registry
        self.dispatcher = CommandDispatcher(registry, self)
        self.router = EventRouter(event_handlers or DEFAULT_EVENT_HANDLERS, self)

    @property
    def cache(self) -> SessionCache:
        return self.manager.cache

    @property
    def user(self) -> User | None:
        return self.manager.user

    @property
    def backend(self) -> MessagingBackend:
        if self.manager.backend is None:
            raise MesserError("Not logged in")
        return self.manager.backend

    async def login(self) -> User:
        """Acquire credentials and authenticate. A rejected saved session is forgotten."""
        credentials = await self.credential_source.get_credentials()
        try:
            with renderer.startup_step("Logging in..."):
                return await self.manager.authenticate(credentials)
        except AuthError:
            if credentials.uses_session_token:
                logger.info("Saved session was rejected; clearing it")
                self.token_store.clear()
            raise

    async def start(self, read_line: LineReader | None = None) -> int:
        """Log in, then run the REPL until input ends. Returns a process exit code."""
        try:
            user = await self.login()
        except MesserError as e:
            renderer.render_error(str(e))
            return 1

        renderer.render_welcome(
            user.name or user.id,
            contact_count=len(self.cache.users),
            thread_count=len(self.cache.threads),
            version=__version__,
        )

        try:
            await self.run_repl(read_line)
        except MesserError as e:
            renderer.render_error(str(e))
            return 1
        return 0

    async def run_repl(self, read_line: LineReader | None = None) -> None:
        if read_line is not None:
            await self._run_loop(read_line)
            return

        from prompt_toolkit import PromptSession
        from prompt_toolkit.patch_stdout import patch_stdout

        prompt_session: PromptSession[str] = PromptSession()
        prompt = self.config.cli.prompt

        # patch_stdout keeps the prompt line anchored while events print above it.
        with patch_stdout():
            renderer.use_stdout_console()
            await self._run_loop(lambda: prompt_session.prompt_async(prompt))

    async def _collect_input(self, read_line: LineReader) -> None:
        """Read and dispatch lines one at a time until end of input."""
        while True:
            try:
                line = await read_line()
            except EOFError:
                return
            except KeyboardInterrupt:
                continue

            if line.strip().lower() in _EXIT_COMMANDS:
                return
            await self.dispatcher.dispatch(line)

    async def _run_loop(self, read_line: LineReader) -> None:
        # Two independent sources on one loop: terminal lines and backend events.
        input_task = asyncio.create_task(self._collect_input(read_line))
        listen_task = asyncio.create_task(self.backend.listen(self.router.route))

        try:
            done, _ = await asyncio.wait({input_task, listen_task}, return_when=asyncio.FIRST_COMPLETED)
            if input_task not in done and listen_task.exception() is None:
                renderer.render_info("Event stream closed; incoming messages will no longer appear")
                await input_task
        finally:
            for task in (input_task, listen_task):
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

        if not listen_task.cancelled() and listen_task.exception() is not None:
            raise listen_task.exception()  # type: ignore[misc]
        input_task.result()
