"""Chat-with-your-PDFs subsystem built on a remote assistant API."""

import os
from pathlib import Path

from slidechat.chat.api import HttpAssistantAPI, RemoteAssistantAPI
from slidechat.chat.models import (
    AssistantAPIError,
    ChatSession,
    DecodeError,
    Message,
    MessageList,
    PollTimeoutError,
    RemoteRejectionError,
    Role,
    RunFailedError,
    RunObject,
    RunStatus,
    TransportError,
)
from slidechat.chat.polling import poll_until
from slidechat.chat.service import ChatService
from slidechat.chat.store import SessionStore
from slidechat.config.models import SlideChatConfig
from slidechat.errors import ValidationFailure

STATE_FILE = "state.json"


def resolve_api_key(config: SlideChatConfig) -> str:
    """Read the credential from the env var named in config."""
    env = config.assistant.api_key_env
    api_key = os.environ.get(env, "").strip()
    if not api_key:
        raise ValidationFailure(f"Missing API key: set environment variable {env!r}")
    return api_key


def create_session_store(config: SlideChatConfig) -> SessionStore:
    """Build the store from config and load whatever it has persisted."""
    path = Path(config.storage.state_dir).expanduser() / STATE_FILE
    store = SessionStore(path, key=config.storage.session_key)
    store.load()
    return store


def create_chat_service(config: SlideChatConfig) -> ChatService:
    """Create a ChatService wired to the HTTP API and the on-disk store.

    A credential that differs from the one the store was written with
    clears the stored session.
    """
    api_key = resolve_api_key(config)
    service = ChatService(
        HttpAssistantAPI(api_key, config.assistant),
        create_session_store(config),
        config.assistant,
    )
    service.update_api_key(api_key)
    return service


__all__ = [
    "AssistantAPIError",
    "ChatService",
    "ChatSession",
    "DecodeError",
    "HttpAssistantAPI",
    "Message",
    "MessageList",
    "PollTimeoutError",
    "RemoteAssistantAPI",
    "RemoteRejectionError",
    "Role",
    "RunFailedError",
    "RunObject",
    "RunStatus",
    "SessionStore",
    "TransportError",
    "create_chat_service",
    "create_session_store",
    "poll_until",
    "resolve_api_key",
]
