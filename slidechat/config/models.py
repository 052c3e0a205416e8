from pydantic import BaseModel, Field
from typing import Any, Literal


DEFAULT_INSTRUCTIONS = (
    "You are analyzing multiple PDF documents. Please provide comprehensive "
    "answers that consider information from all available documents."
)


class AssistantConfig(BaseModel):
    base_url: str = "https://api.openai.com/v1"
    api_key_env: str = "OPENAI_API_KEY"
    model: str = "gpt-4-turbo-preview"
    name: str = "PDF Analyzer"
    instructions: str = DEFAULT_INSTRUCTIONS
    tools: list[dict[str, Any]] = Field(default_factory=lambda: [{"type": "retrieval"}])
    beta_header: str = "assistants=v1"
    timeout: float = Field(default=60.0, gt=0)
    poll_interval: float = Field(default=1.0, gt=0)
    max_poll_attempts: int | None = Field(default=None, gt=0)


class ConverterConfig(BaseModel):
    command: str = "unoconv"
    args: list[str] = Field(default_factory=lambda: ["-f", "pdf"])
    search_path: list[str] = Field(default_factory=lambda: [
        "/opt/homebrew/bin", "/usr/local/bin", "/usr/bin", "/bin", "/usr/sbin", "/sbin"
    ])
    timeout: float | None = Field(default=None, gt=0)
    extensions: list[str] = Field(default_factory=lambda: [".ppt", ".pptx"])


class StorageConfig(BaseModel):
    state_dir: str = "~/.slidechat"
    session_key: str = "chat_sessions"


class SlideChatConfig(BaseModel):
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    converter: ConverterConfig = Field(default_factory=ConverterConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
