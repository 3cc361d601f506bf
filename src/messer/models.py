"""Pydantic models for backend records and session data."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class User(BaseModel):
    """The authenticated user. Profile fields from the backend are kept as extras."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""


class Contact(BaseModel):
    id: str
    name: str = ""
    full_name: str = ""

    @field_validator("name", "full_name", mode="before")
    @classmethod
    def absent_name_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def display_name(self) -> str:
        return self.name or self.full_name


class Thread(BaseModel):
    """Projection of a backend thread record. Only id and name are kept."""

    id: str
    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def absent_name_is_empty(cls, v: Any) -> Any:
        # One-to-one threads usually come back unnamed
        return "" if v is None else v


class Message(BaseModel):
    id: str = ""
    thread_id: str
    sender_id: str
    body: str = ""
    timestamp: int = 0  # epoch milliseconds
    is_group: bool = False


class EventType(str, Enum):
    MESSAGE = "message"
    EVENT = "event"
    TYPING = "typing"
    READ_RECEIPT = "read_receipt"
    READ = "read"
    PRESENCE = "presence"
    MESSAGE_REACTION = "message_reaction"
    MESSAGE_UNSEND = "message_unsend"


class BackendEvent(BaseModel):
    """A single inbound event. ``error`` is set when the stream reported a transport failure."""

    type: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class Credentials(BaseModel):
    """Either a saved session token or an identifier/secret pair."""

    identifier: str | None = None
    secret: SecretStr | None = None
    session_token: str | None = None

    @property
    def uses_session_token(self) -> bool:
        return bool(self.session_token)
