"""Tests for the converter subsystem: ProcessConverter, convert_batch, discovery."""

import asyncio
import os
import pytest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from slidechat.config.models import ConverterConfig
from slidechat.converter.converter import (
    Converter,
    ProcessConverter,
    convert_batch,
    discover_presentations,
    expected_output,
)
from slidechat.converter.models import BatchResult, ConversionError


def _deck(tmp_path: Path, name: str) -> Path:
    p = tmp_path / name
    p.write_bytes(b"PK\x03\x04 fake pptx")
    return p


# ---------------------------------------------------------------------------
# expected_output / discover_presentations
# ---------------------------------------------------------------------------


class TestExpectedOutput:
    def test_same_stem_pdf_suffix(self):
        assert expected_output("/decks/q3 review.pptx") == Path("/decks/q3 review.pdf")

    def test_legacy_ppt(self):
        assert expected_output("old.ppt") == Path("old.pdf")


class TestDiscoverPresentations:
    def test_filters_by_extension_case_insensitive(self, tmp_path):
        for name in ("b.pptx", "a.PPT", "notes.txt", "c.pdf", "d.Pptx"):
            (tmp_path / name).write_text("x")
        (tmp_path / "sub.pptx").mkdir()

        found = discover_presentations(tmp_path)

        assert [p.name for p in found] == ["a.PPT", "b.pptx", "d.Pptx"]

    def test_custom_extensions(self, tmp_path):
        (tmp_path / "deck.key").write_text("x")
        (tmp_path / "deck.pptx").write_text("x")
        assert [p.name for p in discover_presentations(tmp_path, [".key"])] == ["deck.key"]

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(NotADirectoryError):
            discover_presentations(tmp_path / "missing")


# ---------------------------------------------------------------------------
# ProcessConverter
# ---------------------------------------------------------------------------


class TestProcessConverter:
    @pytest.mark.asyncio
    async def test_success_returns_sibling_pdf(self, tmp_path, fake_converter_config):
        deck = _deck(tmp_path, "slides.pptx")
        converter = ProcessConverter(fake_converter_config)

        pdf = await converter.convert(deck)

        assert pdf == tmp_path / "slides.pdf"
        assert pdf.read_bytes() == b"%PDF-1.4 converted"
        # Source untouched
        assert deck.read_bytes() == b"PK\x03\x04 fake pptx"

    @pytest.mark.asyncio
    async def test_nonzero_exit_captures_merged_output(self, tmp_path, fake_converter_config):
        deck = _deck(tmp_path, "broken.pptx")
        converter = ProcessConverter(fake_converter_config)

        with pytest.raises(ConversionError) as exc_info:
            await converter.convert(deck)

        err = exc_info.value
        assert err.returncode == 251
        assert "Unable to connect" in err.detail
        assert "Aborting." in err.detail
        assert not (tmp_path / "broken.pdf").exists()

    @pytest.mark.asyncio
    async def test_zero_exit_without_output_fails(self, tmp_path, fake_converter_config):
        deck = _deck(tmp_path, "silent.pptx")
        converter = ProcessConverter(fake_converter_config)

        with pytest.raises(ConversionError, match="silent.pdf was not created"):
            await converter.convert(deck)

    @pytest.mark.asyncio
    async def test_missing_source_does_not_spawn(self, tmp_path, fake_converter_config):
        converter = ProcessConverter(fake_converter_config)

        with patch("asyncio.create_subprocess_exec", new=AsyncMock()) as spawn:
            with pytest.raises(ConversionError, match="does not exist"):
                await converter.convert(tmp_path / "nope.pptx")
            spawn.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_command(self, tmp_path):
        deck = _deck(tmp_path, "slides.pptx")
        converter = ProcessConverter(
            ConverterConfig(command="definitely-not-a-converter-xyz", search_path=[str(tmp_path)])
        )

        with pytest.raises(ConversionError, match="not found on PATH"):
            await converter.convert(deck)

    def test_search_path_prepended(self, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin:/home/me/bin")
        converter = ProcessConverter(
            ConverterConfig(search_path=["/opt/homebrew/bin", "/usr/bin"])
        )

        env = converter._environment()

        assert env["PATH"].split(os.pathsep) == [
            "/opt/homebrew/bin", "/usr/bin", "/home/me/bin",
        ]

    @pytest.mark.asyncio
    async def test_command_line_shape(self, tmp_path):
        deck = _deck(tmp_path, "slides.pptx")
        (tmp_path / "slides.pdf").write_bytes(b"%PDF")
        proc = MagicMock()
        proc.communicate = AsyncMock(return_value=(b"", None))
        proc.returncode = 0

        with patch(
            "slidechat.converter.converter.shutil.which",
            return_value="/opt/homebrew/bin/unoconv",
        ), patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)) as spawn:
            await ProcessConverter(ConverterConfig()).convert(deck)

        args, kwargs = spawn.call_args
        assert args == ("/opt/homebrew/bin/unoconv", "-f", "pdf", str(deck))
        assert kwargs["stdout"] == asyncio.subprocess.PIPE
        assert kwargs["stderr"] == asyncio.subprocess.STDOUT
        assert kwargs["env"]["PATH"].startswith("/opt/homebrew/bin")

    @pytest.mark.asyncio
    async def test_spawn_oserror_becomes_conversion_error(self, tmp_path):
        deck = _deck(tmp_path, "slides.pptx")

        with patch(
            "slidechat.converter.converter.shutil.which", return_value="/usr/bin/unoconv"
        ), patch(
            "asyncio.create_subprocess_exec",
            new=AsyncMock(side_effect=OSError(8, "Exec format error")),
        ):
            with pytest.raises(ConversionError, match="Exec format error") as exc_info:
                await ProcessConverter(ConverterConfig()).convert(deck)

        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, tmp_path):
        deck = _deck(tmp_path, "slow.pptx")
        proc = MagicMock()
        proc.communicate = AsyncMock(side_effect=asyncio.TimeoutError)
        proc.wait = AsyncMock(return_value=-9)

        with patch(
            "slidechat.converter.converter.shutil.which", return_value="/usr/bin/unoconv"
        ), patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
            with pytest.raises(ConversionError, match="timed out"):
                await ProcessConverter(ConverterConfig(timeout=5)).convert(deck)

        proc.kill.assert_called_once()


# ---------------------------------------------------------------------------
# convert_batch
# ---------------------------------------------------------------------------


class _ScriptedConverter(Converter):
    def __init__(self, failing: set[str]):
        self.failing = failing
        self.seen: list[str] = []

    async def convert(self, source):
        source = Path(source)
        self.seen.append(source.name)
        if source.name in self.failing:
            raise ConversionError(source, "exit 1", returncode=1)
        return source.with_suffix(".pdf")


class TestConvertBatch:
    @pytest.mark.asyncio
    async def test_unstartable_converter_recorded_per_item(self, tmp_path):
        bogus = tmp_path / "bin" / "unoconv"
        bogus.parent.mkdir()
        bogus.write_bytes(b"\x00\x01\x02 not an executable format")
        bogus.chmod(0o755)
        decks = [_deck(tmp_path, n) for n in ("one.pptx", "two.pptx")]
        progress: list[float] = []

        result = await convert_batch(
            ProcessConverter(ConverterConfig(command=str(bogus))),
            decks,
            on_progress=progress.append,
        )

        assert result.outputs == []
        assert [f.source for f in result.failures] == decks
        assert all("could not start converter" in f.detail for f in result.failures)
        assert progress == [0.5, 1.0]


    @pytest.mark.asyncio
    async def test_one_failure_isolated(self):
        names = ["a.pptx", "b.pptx", "c.pptx", "d.pptx"]
        converter = _ScriptedConverter(failing={"c.pptx"})
        progress: list[float] = []

        result = await convert_batch(converter, names, on_progress=progress.append)

        assert converter.seen == names
        assert result.outputs == [Path("a.pdf"), Path("b.pdf"), Path("d.pdf")]
        assert [f.source for f in result.failures] == [Path("c.pptx")]
        assert result.failures[0].returncode == 1
        assert progress == [0.25, 0.5, 0.75, 1.0]

    @pytest.mark.asyncio
    async def test_all_fail_still_reaches_full_progress(self):
        converter = _ScriptedConverter(failing={"a.ppt", "b.ppt"})
        progress: list[float] = []

        result = await convert_batch(converter, ["a.ppt", "b.ppt"], on_progress=progress.append)

        assert result.outputs == []
        assert len(result.failures) == 2
        assert progress[-1] == 1.0

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        result = await convert_batch(_ScriptedConverter(set()), [])
        assert result == BatchResult(total=0)
        assert result.progress == 1.0

    @pytest.mark.asyncio
    async def test_real_process_batch(self, tmp_path, fake_converter_config):
        decks = [_deck(tmp_path, n) for n in ("one.pptx", "broken.pptx", "three.ppt")]
        progress: list[float] = []

        result = await convert_batch(
            ProcessConverter(fake_converter_config), decks, on_progress=progress.append
        )

        assert result.outputs == [tmp_path / "one.pdf", tmp_path / "three.pdf"]
        assert result.failures[0].source == tmp_path / "broken.pptx"
        assert progress == pytest.approx([1 / 3, 2 / 3, 1.0])
