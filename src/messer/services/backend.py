"""Messaging backend interface and the HTTP/SSE gateway adapter."""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Protocol

import httpx
from pydantic import ValidationError

from ..config import BackendConfig
from ..errors import BackendError
from ..models import BackendEvent, Contact, Credentials, Message, Thread

logger = logging.getLogger(__name__)

EventCallback = Callable[[BackendEvent], Awaitable[None]]


class MessagingBackend(Protocol):
    """Operations the session core consumes from the messaging transport."""

    async def login(self, credentials: Credentials) -> MessagingBackend:
        """Authenticate and return the connection handle to use from now on."""

    def current_identity(self) -> str: ...

    async def get_profile(self, user_id: str) -> dict[str, Any]: ...

    async def get_contacts(self) -> list[Contact]: ...

    async def get_threads(self, offset: int, limit: int) -> list[Thread]: ...

    async def get_thread(self, thread_id: str) -> Thread: ...

    async def get_thread_history(self, thread_id: str, limit: int) -> list[Message]: ...

    async def send_message(self, thread_id: str, body: str) -> Message: ...

    async def listen(self, on_event: EventCallback) -> None:
        """Invoke ``on_event`` once per inbound event until cancelled."""

    def export_session_token(self) -> str: ...


class HttpMessagingBackend:
    """Thin httpx client for a JSON REST + server-sent-events messaging gateway."""

    def __init__(self, config: BackendConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        # SECURITY-REVIEW: verify=False only when user explicitly sets verify_ssl: false in config
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            verify=config.verify_ssl,
            timeout=httpx.Timeout(config.request_timeout),
        )
        self._user_id: str | None = None
        self._session_token: str | None = None

    async def close(self) -> None:
        await self._client.aclose()

    async def login(self, credentials: Credentials) -> HttpMessagingBackend:
        if credentials.uses_session_token:
            body: dict[str, Any] = {"session_token": credentials.session_token}
        else:
            secret = credentials.secret.get_secret_value() if credentials.secret else ""
            body = {"identifier": credentials.identifier, "secret": secret}

        data = await self._request("POST", "/auth/login", json=body)
        try:
            self._user_id = str(data["user_id"])
            self._session_token = str(data["session_token"])
        except (KeyError, TypeError) as e:
            raise BackendError(f"Malformed login response (missing {e})") from e
        self._client.headers["Authorization"] = f"Bearer {self._session_token}"
        logger.info("Logged in as user %s", self._user_id)
        return self

    def current_identity(self) -> str:
        if self._user_id is None:
            raise BackendError("Not logged in")
        return self._user_id

    def export_session_token(self) -> str:
        if self._session_token is None:
            raise BackendError("Not logged in")
        return self._session_token

    async def get_profile(self, user_id: str) -> dict[str, Any]:
        data = await self._request("GET", f"/users/{user_id}")
        if not isinstance(data, dict):
            raise BackendError(f"Malformed profile for user {user_id}")
        return data

    async def get_contacts(self) -> list[Contact]:
        data = await self._request("GET", "/contacts")
        return self._parse_list(Contact, data, "contact list")

    async def get_threads(self, offset: int, limit: int) -> list[Thread]:
        data = await self._request("GET", "/threads", params={"offset": offset, "limit": limit})
        return self._parse_list(Thread, data, "thread list")

    async def get_thread(self, thread_id: str) -> Thread:
        data = await self._request("GET", f"/threads/{thread_id}")
        try:
            return Thread.model_validate(data)
        except ValidationError as e:
            raise BackendError(f"Malformed thread {thread_id}: {e.error_count()} invalid field(s)") from e

    async def get_thread_history(self, thread_id: str, limit: int) -> list[Message]:
        data = await self._request("GET", f"/threads/{thread_id}/messages", params={"limit": limit})
        return self._parse_list(Message, data, "message history")

    async def send_message(self, thread_id: str, body: str) -> Message:
        data = await self._request("POST", f"/threads/{thread_id}/messages", json={"body": body})
        try:
            return Message.model_validate(data)
        except ValidationError as e:
            raise BackendError(f"Malformed send response: {e.error_count()} invalid field(s)") from e

    async def listen(self, on_event: EventCallback) -> None:
        """Consume ``GET /events`` as SSE and hand each ``data:`` frame to ``on_event``.

        A connection or decode failure is delivered as an event with ``error`` set
        rather than raised, so the caller decides whether to drop it.
        """
        try:
            async with self._client.stream("GET", "/events", timeout=httpx.Timeout(None)) as response:
                if response.status_code >= 400:
                    await on_event(BackendEvent(error=f"Event stream returned HTTP {response.status_code}"))
                    return
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    await on_event(self._decode_event(line[5:].strip()))
        except httpx.HTTPError as e:
            await on_event(BackendEvent(error=f"Event stream failed: {type(e).__name__}"))
            return
        logger.info("Event stream closed by server")

    @staticmethod
    def _decode_event(raw: str) -> BackendEvent:
        try:
            return BackendEvent.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            logger.debug("Undecodable event frame: %.80s", raw)
            return BackendEvent(error="Undecodable event frame")

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise BackendError(f"Cannot reach {self.config.base_url} ({type(e).__name__})") from e

        if response.status_code >= 400:
            raise BackendError(_error_detail(response), status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from {method} {path}") from e

    @staticmethod
    def _parse_list(model: Any, data: Any, what: str) -> list[Any]:
        if not isinstance(data, list):
            raise BackendError(f"Malformed {what}")
        try:
            return [model.model_validate(item) for item in data]
        except ValidationError as e:
            raise BackendError(f"Malformed {what}: {e.error_count()} invalid field(s)") from e


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if detail:
            return str(detail)
    return f"HTTP {response.status_code}"
