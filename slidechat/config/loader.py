"""YAML config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import SlideChatConfig

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def load_config(cli_path: str | None = None) -> SlideChatConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults."""
    config_paths = [
        Path(cli_path) if cli_path else None,
        Path("./slidechat.yaml"),
        Path.home() / ".slidechat" / "config.yaml",
    ]

    if cli_path and not Path(cli_path).exists():
        raise ValueError(f"Config file not found: {cli_path}")

    for path in config_paths:
        if path and path.exists():
            try:
                with open(path) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    continue
                raw = _expand_env_vars(raw)
                return SlideChatConfig(**raw)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            except ValidationError as e:
                raise ValueError(f"Invalid config in {path}: {e}") from e

    return SlideChatConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings.

    Raises ValueError when a referenced variable is not set.
    """
    if isinstance(obj, str):
        def _sub(m: re.Match) -> str:
            name = m.group(1)
            value = os.environ.get(name)
            if value is None:
                raise ValueError(f"Environment variable {name!r} is not set")
            return value

        return _ENV_REF.sub(_sub, obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `slidechat config init`
DEFAULT_CONFIG_TEMPLATE = """\
# slidechat.yaml

# Remote assistant
assistant:
  base_url: "https://api.openai.com/v1"
  api_key_env: "OPENAI_API_KEY"
  model: "gpt-4-turbo-preview"
  name: "PDF Analyzer"
  beta_header: "assistants=v1"
  timeout: 60
  poll_interval: 1.0
  # max_poll_attempts: 600      # unset = wait until the run finishes

# PowerPoint -> PDF converter
converter:
  command: "unoconv"
  args: ["-f", "pdf"]
  search_path:
    - /opt/homebrew/bin
    - /usr/local/bin
    - /usr/bin
    - /bin
    - /usr/sbin
    - /sbin
  # timeout: 300
  extensions: [".ppt", ".pptx"]

# Local state
storage:
  state_dir: "~/.slidechat"
  session_key: "chat_sessions"

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
