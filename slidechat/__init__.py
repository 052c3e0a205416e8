"""slidechat - convert PowerPoint decks to PDF and chat with them through a hosted assistant."""

from slidechat.chat import ChatService, HttpAssistantAPI, RemoteAssistantAPI, SessionStore, create_chat_service
from slidechat.config import SlideChatConfig, load_config
from slidechat.converter import Converter, ProcessConverter, convert_batch
from slidechat.errors import SlideChatError, ValidationFailure

__version__ = "0.1.0"

__all__ = [
    "ChatService",
    "Converter",
    "HttpAssistantAPI",
    "ProcessConverter",
    "RemoteAssistantAPI",
    "SessionStore",
    "SlideChatConfig",
    "SlideChatError",
    "ValidationFailure",
    "convert_batch",
    "create_chat_service",
    "load_config",
]
