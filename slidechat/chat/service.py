"""ChatService: drives the upload/assistant/thread/run workflow."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from slidechat.chat.api import RemoteAssistantAPI
from slidechat.chat.models import (
    NO_ASSISTANT_REPLY,
    NO_REPLY_TEXT,
    ChatSession,
    Message,
    Role,
    RunFailedError,
    RunObject,
    RunStatus,
)
from slidechat.chat.polling import Sleep, poll_until
from slidechat.chat.store import SessionStore
from slidechat.config.models import AssistantConfig
from slidechat.errors import ValidationFailure

logger = logging.getLogger(__name__)


def session_name(document_count: int) -> str:
    return f"Combined Chat ({document_count} PDFs)"


class ChatService:
    """Chat with a set of PDFs through a remote assistant.

    Session setup is upload -> create assistant -> create thread, once per
    document set. Every exchange is post message -> start run -> poll until
    the run completes -> read the newest assistant message. Any failure
    aborts the operation in flight; only the run status is re-requested.
    """

    def __init__(
        self,
        api: RemoteAssistantAPI,
        store: SessionStore,
        config: AssistantConfig | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.api = api
        self.store = store
        self.config = config or AssistantConfig()
        self._sleep = sleep

    @property
    def session(self) -> ChatSession | None:
        return self.store.current

    def update_api_key(self, api_key: str) -> bool:
        """Bind the store to *api_key*; a changed key clears stored sessions."""
        if not api_key or not api_key.strip():
            raise ValidationFailure("API key cannot be empty")
        return self.store.bind_credential(api_key)

    async def create_session(self, documents: Sequence[str | Path]) -> ChatSession:
        """Upload *documents* and set up a fresh assistant and thread.

        Nothing is stored unless every step succeeds. On success the new
        session replaces whatever session existed before.
        """
        if not documents:
            raise ValidationFailure("No documents to chat with")

        file_ids: list[str] = []
        for doc in documents:
            file_ids.append(await self.api.upload_file(doc))

        assistant_id = await self.api.create_assistant(file_ids)
        thread_id = await self.api.create_thread()

        session = ChatSession(
            name=session_name(len(documents)),
            file_ids=file_ids,
            assistant_id=assistant_id,
            thread_id=thread_id,
        )
        self.store.replace(session)
        logger.info(
            "created session %r (assistant %s, thread %s)",
            session.name, assistant_id, thread_id,
        )
        return session

    async def send_message(self, text: str, session: ChatSession) -> str:
        """Run one exchange on *session*'s thread and return the reply text."""
        if not text or not text.strip():
            raise ValidationFailure("Message cannot be empty")

        await self.api.create_message(session.thread_id, text)
        run = await self.api.create_run(session.thread_id, session.assistant_id)
        logger.debug("started run %s (%s)", run.id, run.status)

        await self._wait_for_run(session.thread_id, run.id)
        return await self._fetch_reply(session.thread_id)

    async def ask(self, text: str) -> Message:
        """Record *text* and its reply on the current session.

        The user message is recorded before the exchange starts and stays
        recorded if the exchange fails.
        """
        session = self.store.current
        if session is None:
            raise ValidationFailure("No active chat session")
        if not text or not text.strip():
            raise ValidationFailure("Message cannot be empty")

        self.store.append_message(Message(content=text, role=Role.user))
        reply = await self.send_message(text, session)
        message = Message(content=reply, role=Role.assistant)
        self.store.append_message(message)
        return message

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _wait_for_run(self, thread_id: str, run_id: str) -> RunObject:
        run = await poll_until(
            lambda: self.api.retrieve_run(thread_id, run_id),
            lambda r: r.is_terminal,
            self.config.poll_interval,
            sleep=self._sleep,
            max_attempts=self.config.max_poll_attempts,
            operation="wait_for_run",
        )
        if run.status == RunStatus.failed.value:
            logger.warning("run %s failed", run_id)
            raise RunFailedError("wait_for_run", "Assistant run failed")
        return run

    async def _fetch_reply(self, thread_id: str) -> str:
        messages = await self.api.list_messages(thread_id)
        reply = messages.first_reply()
        if reply is None:
            return NO_ASSISTANT_REPLY
        return reply.text if reply.text is not None else NO_REPLY_TEXT
