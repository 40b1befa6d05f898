"""Failures that escape the parsing pipeline.

Everything else (unknown layouts, malformed rows, bad dates, non-numeric cells) is
absorbed by the parsers and logged; callers always get a report back.
"""

from __future__ import annotations


class ReportError(Exception):
    """Base class for errors surfaced to callers of the pipeline."""


class UnsupportedFileType(ReportError, ValueError):
    """Raised when an upload does not carry an .xlsx extension."""


class WorkbookError(ReportError):
    """Raised when the bytes are not a readable spreadsheet container."""


class ConfigurationError(RuntimeError):
    """Raised when an environment override cannot be interpreted."""
