"""Remote assistant REST interface and its httpx implementation."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from functools import cached_property
from pathlib import Path
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from slidechat.chat.models import (
    AssistantObject,
    DecodeError,
    FileObject,
    MessageList,
    MessageObject,
    RemoteRejectionError,
    RunObject,
    ThreadObject,
    TransportError,
)
from slidechat.config.models import AssistantConfig
from slidechat.errors import ValidationFailure

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class RemoteAssistantAPI(ABC):
    """The fixed set of remote calls the chat workflow is built from.

    Every method raises an AssistantAPIError subclass on failure.
    """

    @abstractmethod
    async def upload_file(self, path: str | Path) -> str:
        """Submit a document and return its upload handle."""
        ...

    @abstractmethod
    async def create_assistant(self, file_ids: list[str]) -> str:
        """Register an assistant bound to *file_ids*; return its id."""
        ...

    @abstractmethod
    async def create_thread(self) -> str:
        """Create an empty conversation thread; return its id."""
        ...

    @abstractmethod
    async def create_message(self, thread_id: str, content: str) -> str:
        """Append a user message to a thread; return the message id."""
        ...

    @abstractmethod
    async def create_run(self, thread_id: str, assistant_id: str) -> RunObject:
        """Ask the assistant to process the thread."""
        ...

    @abstractmethod
    async def retrieve_run(self, thread_id: str, run_id: str) -> RunObject:
        """Fetch the current status of a run."""
        ...

    @abstractmethod
    async def list_messages(self, thread_id: str) -> MessageList:
        """List the thread's messages, newest first."""
        ...

    @abstractmethod
    async def validate_credential(self) -> bool:
        """True when the remote service accepts the credential."""
        ...

    async def aclose(self) -> None:
        """Release connections. Nothing to release by default."""
        return None


def _error_message(response: httpx.Response) -> str:
    """Pull ``error.message`` out of an error body, else a generic message."""
    try:
        body = response.json()
    except (json.JSONDecodeError, ValueError):
        return "Unknown error"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return "Unknown error"


class HttpAssistantAPI(RemoteAssistantAPI):
    """Assistants REST API over httpx.

    Sends the bearer credential and the API-version header on every request.
    Use as an async context manager, or call ``aclose()`` when done.
    """

    def __init__(
        self,
        api_key: str,
        config: AssistantConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ValidationFailure("API key cannot be empty")
        self._api_key = api_key
        self.config = config or AssistantConfig()
        self._transport = transport

    @cached_property
    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "OpenAI-Beta": self.config.beta_header,
            },
            timeout=self.config.timeout,
            transport=self._transport,
        )

    async def aclose(self) -> None:
        if "_client" in self.__dict__:
            await self._client.aclose()
            del self.__dict__["_client"]

    async def __aenter__(self) -> HttpAssistantAPI:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    async def _send(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s: transport error: %s", operation, e)
            raise TransportError(operation, str(e) or type(e).__name__, cause=e) from e

        logger.debug("%s -> %d %s", operation, response.status_code, response.text[:500])
        if not response.is_success:
            message = _error_message(response)
            logger.warning("%s rejected (%d): %s", operation, response.status_code, message)
            raise RemoteRejectionError(operation, message, status_code=response.status_code)
        return response

    async def _request(
        self, operation: str, method: str, url: str, model: type[M], **kwargs: Any
    ) -> M:
        response = await self._send(operation, method, url, **kwargs)
        try:
            return model.model_validate(response.json())
        except (json.JSONDecodeError, ValueError, ValidationError) as e:
            raise DecodeError(
                operation, f"unexpected response body: {e}",
                status_code=response.status_code, cause=e,
            ) from e

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def upload_file(self, path: str | Path) -> str:
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            raise ValidationFailure(f"Cannot read {p}: {e}") from e
        obj = await self._request(
            "upload_file", "POST", "/files", FileObject,
            data={"purpose": "assistants"},
            files={"file": (p.name, data, "application/pdf")},
        )
        logger.info("uploaded %s as %s", p.name, obj.id)
        return obj.id

    async def create_assistant(self, file_ids: list[str]) -> str:
        body = {
            "name": self.config.name,
            "instructions": self.config.instructions,
            "model": self.config.model,
            "tools": self.config.tools,
            "file_ids": list(file_ids),
        }
        obj = await self._request("create_assistant", "POST", "/assistants", AssistantObject, json=body)
        return obj.id

    async def create_thread(self) -> str:
        obj = await self._request("create_thread", "POST", "/threads", ThreadObject, json={})
        return obj.id

    async def create_message(self, thread_id: str, content: str) -> str:
        obj = await self._request(
            "create_message", "POST", f"/threads/{thread_id}/messages", MessageObject,
            json={"role": "user", "content": content},
        )
        return obj.id

    async def create_run(self, thread_id: str, assistant_id: str) -> RunObject:
        return await self._request(
            "create_run", "POST", f"/threads/{thread_id}/runs", RunObject,
            json={"assistant_id": assistant_id},
        )

    async def retrieve_run(self, thread_id: str, run_id: str) -> RunObject:
        return await self._request(
            "retrieve_run", "GET", f"/threads/{thread_id}/runs/{run_id}", RunObject
        )

    async def list_messages(self, thread_id: str) -> MessageList:
        return await self._request(
            "list_messages", "GET", f"/threads/{thread_id}/messages", MessageList
        )

    async def validate_credential(self) -> bool:
        try:
            await self._send("validate_credential", "GET", "/models")
        except (TransportError, RemoteRejectionError):
            return False
        return True
