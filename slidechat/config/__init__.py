from .loader import load_config
from .models import (
    AssistantConfig,
    ConverterConfig,
    SlideChatConfig,
    StorageConfig,
)

__all__ = [
    "AssistantConfig",
    "ConverterConfig",
    "SlideChatConfig",
    "StorageConfig",
    "load_config",
]
