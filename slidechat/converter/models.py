"""Pydantic models for the PowerPoint-to-PDF conversion subsystem."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from slidechat.errors import SlideChatError


class ConversionError(SlideChatError):
    """The converter process exited non-zero or produced no PDF."""

    def __init__(self, source: str | Path, detail: str, returncode: int | None = None) -> None:
        self.source = str(source)
        self.detail = detail
        self.returncode = returncode
        super().__init__(f"Conversion of {Path(source).name} failed: {detail}")


class ConversionFailure(BaseModel):
    """One failed item of a batch."""

    source: Path
    detail: str
    returncode: int | None = None


class BatchResult(BaseModel):
    """Outcome of converting several files, one at a time."""

    outputs: list[Path] = Field(default_factory=list)
    failures: list[ConversionFailure] = Field(default_factory=list)
    total: int = 0

    @property
    def completed(self) -> int:
        return len(self.outputs) + len(self.failures)

    @property
    def progress(self) -> float:
        return self.completed / self.total if self.total else 1.0
