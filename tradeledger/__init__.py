"""Trading-report ingestion and performance analytics."""

from .errors import ConfigurationError, ReportError, UnsupportedFileType, WorkbookError
from .models import ParsedReport, SourceFormat, Trade
from .report import FileOutcome, analyze_bytes, analyze_bytes_async, analyze_many, analyze_path, build_report

__all__ = [
    "ConfigurationError",
    "FileOutcome",
    "ParsedReport",
    "ReportError",
    "SourceFormat",
    "Trade",
    "UnsupportedFileType",
    "WorkbookError",
    "analyze_bytes",
    "analyze_bytes_async",
    "analyze_many",
    "analyze_path",
    "build_report",
]
