"""PowerPoint-to-PDF conversion subsystem, wrapping an external converter process."""

from slidechat.converter.converter import (
    PRESENTATION_EXTENSIONS,
    Converter,
    ProcessConverter,
    convert_batch,
    discover_presentations,
    expected_output,
)
from slidechat.converter.models import BatchResult, ConversionError, ConversionFailure

__all__ = [
    "BatchResult",
    "ConversionError",
    "ConversionFailure",
    "Converter",
    "PRESENTATION_EXTENSIONS",
    "ProcessConverter",
    "convert_batch",
    "discover_presentations",
    "expected_output",
]
