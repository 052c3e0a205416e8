"""Single-slot chat session store persisted to a JSON file."""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from slidechat.chat.models import ChatSession, Message
from slidechat.errors import ValidationFailure

logger = logging.getLogger(__name__)

_FINGERPRINT_KEY = "credential_fingerprint"


class _StoreRecord(BaseModel):
    sessions: list[ChatSession] = Field(default_factory=list)
    credential_fingerprint: str | None = None


def credential_fingerprint(api_key: str) -> str:
    """Short, non-reversible tag identifying a credential."""
    return hashlib.sha256(api_key.encode()).hexdigest()[:16]


class SessionStore:
    """Holds at most one ChatSession, mirrored to ``path``.

    The file is a JSON object with the session list (zero or one entry)
    under ``key`` plus the fingerprint of the credential it belongs to.
    Every write replaces the file wholesale.
    """

    def __init__(self, path: str | Path | None = None, key: str = "chat_sessions") -> None:
        self.path = Path(path).expanduser() if path is not None else None
        self.key = key
        self._session: ChatSession | None = None
        self._fingerprint: str | None = None

    @property
    def current(self) -> ChatSession | None:
        return self._session

    @property
    def credential_fingerprint(self) -> str | None:
        return self._fingerprint

    # -- persistence --------------------------------------------------------

    def load(self) -> ChatSession | None:
        """Read the persisted record. A corrupt file counts as empty."""
        self._session = None
        self._fingerprint = None
        if self.path is None or not self.path.is_file():
            return None

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
            record = _StoreRecord(
                sessions=raw.get(self.key, []),
                credential_fingerprint=raw.get(_FINGERPRINT_KEY),
            )
        except (OSError, ValueError, ValidationError) as e:
            # ValueError covers JSONDecodeError and UnicodeDecodeError.
            logger.warning("Failed to read session store %s: %s", self.path, e)
            return None

        self._fingerprint = record.credential_fingerprint
        self._session = record.sessions[-1] if record.sessions else None
        return self._session

    def _save(self) -> None:
        if self.path is None:
            return
        record = {
            self.key: [self._session.model_dump(mode="json")] if self._session else [],
            _FINGERPRINT_KEY: self._fingerprint,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(f"{self.path.suffix}.tmp")
        tmp_path.write_text(json.dumps(record, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
        logger.debug("saved session store %s", self.path)

    # -- mutation -----------------------------------------------------------

    def replace(self, session: ChatSession) -> None:
        """Make *session* the only session, discarding the previous one."""
        self._session = session
        self._save()

    def append_message(self, message: Message) -> ChatSession:
        if self._session is None:
            raise ValidationFailure("No active chat session")
        self._session.messages.append(message)
        self._save()
        return self._session

    def clear(self) -> None:
        """Forget the session in memory and on disk."""
        self._session = None
        if self.path is not None and self.path.exists():
            self.path.unlink()
            logger.info("cleared session store %s", self.path)

    def bind_credential(self, api_key: str) -> bool:
        """Associate the store with *api_key*.

        Returns True when a different credential was bound before, in which
        case everything stored under it has been cleared.
        """
        fingerprint = credential_fingerprint(api_key)
        changed = self._fingerprint is not None and self._fingerprint != fingerprint
        if changed:
            logger.info("API key changed; clearing stored chat sessions")
            self.clear()
        elif self._fingerprint is None and self._session is not None:
            # Unbound record from an unknown credential.
            self.clear()
            changed = True
        self._fingerprint = fingerprint
        self._save()
        return changed
