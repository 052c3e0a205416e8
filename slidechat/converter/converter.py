"""PowerPoint-to-PDF conversion by shelling out to an external converter."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from pathlib import Path

from slidechat.config.models import ConverterConfig
from slidechat.converter.models import BatchResult, ConversionError, ConversionFailure

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

PRESENTATION_EXTENSIONS: tuple[str, ...] = (".ppt", ".pptx")


def expected_output(source: str | Path) -> Path:
    """The PDF a converter leaves beside *source* (same stem, .pdf suffix)."""
    return Path(source).with_suffix(".pdf")


def discover_presentations(
    directory: str | Path,
    extensions: Iterable[str] = PRESENTATION_EXTENSIONS,
) -> list[Path]:
    """List presentation files directly inside *directory*, sorted by name."""
    root = Path(directory)
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")
    wanted = {ext.lower() for ext in extensions}
    return sorted(
        p for p in root.iterdir()
        if p.is_file() and p.suffix.lower() in wanted
    )


class Converter(ABC):
    """Turns one source document into a PDF on disk."""

    @abstractmethod
    async def convert(self, source: str | Path) -> Path:
        """Convert *source* and return the path of the produced PDF.

        Raises ConversionError when the conversion did not produce a PDF.
        """
        ...


class ProcessConverter(Converter):
    """Runs an external converter binary (unoconv by default) per file.

    The command line is ``[command, *args, source]``. stdout and stderr
    are merged so the whole diagnostic text can be attached to failures.
    """

    def __init__(self, config: ConverterConfig | None = None) -> None:
        self._config = config or ConverterConfig()

    def _environment(self) -> dict[str, str]:
        env = dict(os.environ)
        inherited = env.get("PATH", "")
        parts = list(self._config.search_path)
        parts.extend(p for p in inherited.split(os.pathsep) if p and p not in parts)
        env["PATH"] = os.pathsep.join(parts)
        return env

    async def convert(self, source: str | Path) -> Path:
        path = Path(source).expanduser()
        if not path.is_file():
            raise ConversionError(path, "source file does not exist")
        if not os.access(path, os.R_OK):
            raise ConversionError(path, "source file is not readable")

        env = self._environment()
        executable = shutil.which(self._config.command, path=env["PATH"])
        if executable is None:
            raise ConversionError(
                path, f"converter {self._config.command!r} not found on PATH"
            )

        argv = [executable, *self._config.args, str(path)]
        logger.debug("running %s", " ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=env,
            )
        except OSError as e:
            raise ConversionError(path, f"could not start converter: {e}") from e
        try:
            raw, _ = await asyncio.wait_for(proc.communicate(), timeout=self._config.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise ConversionError(
                path, f"converter timed out after {self._config.timeout}s"
            ) from None

        output = raw.decode("utf-8", errors="replace").strip() if raw else ""
        if proc.returncode != 0:
            raise ConversionError(
                path, output or "Unknown error", returncode=proc.returncode
            )

        pdf = expected_output(path)
        if not pdf.is_file():
            raise ConversionError(
                path,
                output or f"converter exited 0 but {pdf.name} was not created",
                returncode=proc.returncode,
            )

        logger.info("converted %s -> %s", path.name, pdf)
        return pdf


async def convert_batch(
    converter: Converter,
    sources: Iterable[str | Path],
    on_progress: ProgressCallback | None = None,
) -> BatchResult:
    """Convert *sources* one after another.

    A failed item is recorded and the batch moves on. *on_progress* gets
    completed/total after every item, whatever its outcome.
    """
    items = [Path(s) for s in sources]
    result = BatchResult(total=len(items))

    for source in items:
        try:
            result.outputs.append(await converter.convert(source))
        except ConversionError as e:
            logger.warning("Conversion failed for %s: %s", source, e.detail)
            result.failures.append(
                ConversionFailure(source=source, detail=e.detail, returncode=e.returncode)
            )
        if on_progress is not None:
            on_progress(result.progress)

    return result
