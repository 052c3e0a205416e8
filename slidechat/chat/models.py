"""Pydantic models and errors for the assistant chat subsystem."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from slidechat.errors import SlideChatError

NO_ASSISTANT_REPLY = "No response from assistant"
NO_REPLY_TEXT = "No response"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AssistantAPIError(SlideChatError):
    """A remote assistant call failed. Wraps the cause with context."""

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.operation = operation
        self.message = message
        self.status_code = status_code
        super().__init__(f"{operation} failed: {message}")
        if cause is not None:
            self.__cause__ = cause


class TransportError(AssistantAPIError):
    """The remote service could not be reached."""


class RemoteRejectionError(AssistantAPIError):
    """The remote service answered with a non-2xx status."""


class DecodeError(AssistantAPIError):
    """A response body did not have the expected shape."""


class RunFailedError(AssistantAPIError):
    """The remote run reached the ``failed`` status."""


class PollTimeoutError(AssistantAPIError):
    """Polling gave up after the configured number of attempts."""


# ---------------------------------------------------------------------------
# Local conversation state
# ---------------------------------------------------------------------------


class Role(str, Enum):
    user = "user"
    assistant = "assistant"
    system = "system"


class Message(BaseModel):
    """One exchanged chat message. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content: str
    role: Role
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ChatSession(BaseModel):
    """One assistant + thread pair covering a set of uploaded documents.

    ``messages`` only ever grows; use SessionStore.append_message.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    file_ids: list[str]
    assistant_id: str
    thread_id: str
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# ---------------------------------------------------------------------------
# Wire objects
# ---------------------------------------------------------------------------


class RunStatus(str, Enum):
    """Run states documented by the remote service."""

    queued = "queued"
    in_progress = "in_progress"
    requires_action = "requires_action"
    cancelling = "cancelling"
    cancelled = "cancelled"
    failed = "failed"
    completed = "completed"
    expired = "expired"


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class FileObject(_WireModel):
    id: str
    filename: str | None = None
    purpose: str | None = None


class AssistantObject(_WireModel):
    id: str
    name: str | None = None
    model: str | None = None


class ThreadObject(_WireModel):
    id: str


class FileCitation(_WireModel):
    file_id: str
    quote: str | None = None


class Annotation(_WireModel):
    type: str
    text: str
    start_index: int | None = None
    end_index: int | None = None
    file_citation: FileCitation | None = None


class TextContent(_WireModel):
    value: str
    annotations: list[Annotation] = Field(default_factory=list)


class ContentItem(_WireModel):
    type: str
    text: TextContent | None = None


class MessageObject(_WireModel):
    id: str
    role: str
    content: list[ContentItem] = Field(default_factory=list)
    thread_id: str | None = None
    created_at: int | None = None

    @property
    def text(self) -> str | None:
        """Text of the first content item, if it carries any."""
        if not self.content or self.content[0].text is None:
            return None
        return self.content[0].text.value


class MessageList(_WireModel):
    data: list[MessageObject] = Field(default_factory=list)
    first_id: str | None = None
    last_id: str | None = None
    has_more: bool = False

    def first_reply(self) -> MessageObject | None:
        """First assistant-authored message (the list comes newest first)."""
        return next((m for m in self.data if m.role == Role.assistant.value), None)


class RunObject(_WireModel):
    id: str
    status: str
    thread_id: str | None = None
    assistant_id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (RunStatus.completed.value, RunStatus.failed.value)
