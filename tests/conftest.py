"""Shared test fixtures for slidechat."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest

from slidechat.chat.api import RemoteAssistantAPI
from slidechat.chat.models import (
    AssistantAPIError,
    ContentItem,
    MessageList,
    MessageObject,
    RemoteRejectionError,
    RunObject,
    TextContent,
)
from slidechat.chat.store import SessionStore
from slidechat.config.models import AssistantConfig, ConverterConfig, SlideChatConfig


def make_message(role: str, text: str | None, msg_id: str = "msg") -> MessageObject:
    content = [] if text is None else [
        ContentItem(type="text", text=TextContent(value=text))
    ]
    return MessageObject(id=msg_id, role=role, content=content)


class FakeAssistantAPI(RemoteAssistantAPI):
    """Scripted stand-in for the remote service that records every call."""

    def __init__(
        self,
        statuses: list[str] | None = None,
        messages: list[MessageObject] | None = None,
        fail_upload_at: int | None = None,
    ) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.statuses = list(statuses or ["completed"])
        self.messages = messages if messages is not None else [
            make_message("assistant", "Here is the answer.", "msg_2"),
            make_message("user", "question", "msg_1"),
        ]
        self.fail_upload_at = fail_upload_at
        self.closed = False
        self._uploads = 0

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def upload_file(self, path):
        self.calls.append(("upload_file", (str(path),)))
        index = self._uploads
        self._uploads += 1
        if self.fail_upload_at == index:
            raise RemoteRejectionError("upload_file", "File is too large", status_code=400)
        return f"file-{index}"

    async def create_assistant(self, file_ids):
        self.calls.append(("create_assistant", (list(file_ids),)))
        return "asst_1"

    async def create_thread(self):
        self.calls.append(("create_thread", ()))
        return "thread_1"

    async def create_message(self, thread_id, content):
        self.calls.append(("create_message", (thread_id, content)))
        return "msg_user"

    async def create_run(self, thread_id, assistant_id):
        self.calls.append(("create_run", (thread_id, assistant_id)))
        return RunObject(id="run_1", status="queued")

    async def retrieve_run(self, thread_id, run_id):
        self.calls.append(("retrieve_run", (thread_id, run_id)))
        if not self.statuses:
            raise AssertionError("polled past the scripted statuses")
        return RunObject(id=run_id, status=self.statuses.pop(0))

    async def list_messages(self, thread_id):
        self.calls.append(("list_messages", (thread_id,)))
        return MessageList(data=self.messages)

    async def validate_credential(self):
        self.calls.append(("validate_credential", ()))
        return True

    async def aclose(self):
        self.closed = True


class FakeClock:
    """Records sleeps instead of waiting."""

    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


@pytest.fixture
def sample_config(tmp_path):
    cfg = SlideChatConfig()
    cfg.storage.state_dir = str(tmp_path / "state")
    return cfg


@pytest.fixture
def assistant_config():
    return AssistantConfig(poll_interval=1.0)


@pytest.fixture
def fake_api():
    return FakeAssistantAPI()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "state" / "state.json")


@pytest.fixture
def sample_pdfs(tmp_path):
    paths = []
    for name in ("alpha.pdf", "beta.pdf", "gamma.pdf"):
        p = tmp_path / name
        p.write_bytes(b"%PDF-1.4 fake " + name.encode())
        paths.append(p)
    return paths


# A converter stand-in: writes <stem>.pdf beside its last argument, or
# fails with output on stdout+stderr when the file name contains "broken".
_FAKE_CONVERTER = textwrap.dedent(
    """
    import sys
    from pathlib import Path

    src = Path(sys.argv[-1])
    if "broken" in src.name:
        print("Error: Unable to connect or start own listener.")
        print("Aborting.", file=sys.stderr)
        sys.exit(251)
    if "silent" in src.name:
        sys.exit(0)
    src.with_suffix(".pdf").write_bytes(b"%PDF-1.4 converted")
    """
)


@pytest.fixture
def fake_converter_config(tmp_path) -> ConverterConfig:
    script = tmp_path / "fake_unoconv.py"
    script.write_text(_FAKE_CONVERTER)
    return ConverterConfig(
        command=sys.executable,
        args=[str(script)],
        search_path=[str(Path(sys.executable).parent)],
    )
