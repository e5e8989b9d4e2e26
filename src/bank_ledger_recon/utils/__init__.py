"""Utility modules."""

from .encoding import decode_text
from .exceptions import (
    ReconciliationError,
    MalformedFileError,
    ConfigurationError,
    ExtractionError,
    ReportGenerationError,
)
from .logging_config import setup_logging

__all__ = [
    "decode_text",
    "ReconciliationError",
    "MalformedFileError",
    "ConfigurationError",
    "ExtractionError",
    "ReportGenerationError",
    "setup_logging",
]
