"""Routing of inbound backend events to per-type handlers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Coroutine, Mapping

from ..errors import EventTransportError, MesserError, UnregisteredEventError
from ..models import BackendEvent, EventType, Message
from . import renderer

if TYPE_CHECKING:
    from .repl import Session

logger = logging.getLogger(__name__)

EventHandler = Callable[["Session", BackendEvent], Coroutine[Any, Any, None]]


class EventRouter:
    """Dispatches each event to the handler for its type.

    Every ``EventType`` must have a handler; a missing one is a configuration
    error raised at construction. An event whose tag is outside ``EventType``
    raises ``UnregisteredEventError`` from ``route``.
    """

    def __init__(
        self,
        handlers: Mapping[EventType, EventHandler],
        session: Session,
        error_output: Callable[[str], None] = renderer.render_error,
    ) -> None:
        missing = [t.value for t in EventType if t not in handlers]
        if missing:
            raise UnregisteredEventError(f"No handler registered for event type(s): {', '.join(missing)}")
        self._handlers = dict(handlers)
        self.session = session
        self._error_output = error_output

    async def route(self, event: BackendEvent) -> None:
        if event.error:
            logger.warning("Dropped event: %s", EventTransportError(event.error))
            return

        try:
            event_type = EventType(event.type)
        except ValueError:
            raise UnregisteredEventError(f"No handler registered for event type '{event.type}'") from None

        try:
            await self._handlers[event_type](self.session, event)
        except MesserError as e:
            logger.debug("Handler for %s failed: %s", event_type.value, e)
            self._error_output(str(e))
        except Exception as e:
            logger.warning("Handler for %s raised unexpectedly", event_type.value, exc_info=True)
            self._error_output(f"Could not handle {event_type.value} event: {e}")


# ---------------------------------------------------------------------------
# Default handlers
# ---------------------------------------------------------------------------


def _sender_name(session: Session, sender_id: str) -> str:
    if session.user is not None and sender_id == session.user.id:
        return "You"
    return session.cache.display_name_for(sender_id)


async def handle_message(session: Session, event: BackendEvent) -> None:
    message = Message.model_validate(event.payload)
    thread_name = None
    if message.is_group:
        thread = await session.cache.get_thread_by_id(message.thread_id)
        thread_name = thread.name or None

    session.thread_history.push(message.thread_id)
    renderer.render_incoming(_sender_name(session, message.sender_id), message.body, thread_name)


async def handle_thread_event(session: Session, event: BackendEvent) -> None:
    """Show thread log messages such as renames. The cached thread name stays as first seen."""
    thread_id = str(event.payload.get("thread_id", ""))
    body = str(event.payload.get("log_message_body", "")).strip()
    if not thread_id or not body:
        logger.debug("Ignoring thread event without thread id or body")
        return
    thread = await session.cache.get_thread_by_id(thread_id)
    renderer.render_thread_event(thread.name or thread.id, body)


async def handle_ignored(session: Session, event: BackendEvent) -> None:
    logger.debug("Ignoring %s event", event.type)


DEFAULT_EVENT_HANDLERS: dict[EventType, EventHandler] = {
    EventType.MESSAGE: handle_message,
    EventType.EVENT: handle_thread_event,
    EventType.TYPING: handle_ignored,
    EventType.READ_RECEIPT: handle_ignored,
    EventType.READ: handle_ignored,
    EventType.PRESENCE: handle_ignored,
    EventType.MESSAGE_REACTION: handle_ignored,
    EventType.MESSAGE_UNSEND: handle_ignored,
}
