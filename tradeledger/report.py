# tradeledger/report.py

from __future__ import annotations
import asyncio
import logging
import os
from types import MappingProxyType
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from . import aggregate
from .config import Settings, get_settings
from .deals import parse_deals, parse_unstructured
from .detect import detect_format
from .equity import drawdown_periods, reconcile
from .errors import ReportError
from .metrics import compute_summary
from .models import DetectedFormat, ParsedReport, SourceFormat, Trade
from .tradingview import parse_tradingview
from .workbook import Workbook, read_workbook, validate_filename

logger = logging.getLogger(__name__)

_Rows = Sequence[Sequence[object]]
_ParseFn = Callable[[_Rows, DetectedFormat, datetime, float], tuple[Trade, ...]]


# ---- 1) Parser strategies, one per detected format ----
def _deals_strategy(rows: _Rows, detected: DetectedFormat, now: datetime, _balance: float) -> tuple[Trade, ...]:
    return parse_deals(rows, detected.header_row or 0, now)


def _tradingview_strategy(rows: _Rows, _detected: DetectedFormat, now: datetime, balance: float) -> tuple[Trade, ...]:
    return parse_tradingview(rows, now, balance)


def _fallback_strategy(rows: _Rows, _detected: DetectedFormat, now: datetime, _balance: float) -> tuple[Trade, ...]:
    return parse_unstructured(rows, now)


PARSERS: dict[SourceFormat, _ParseFn] = {
    SourceFormat.MT5_DEALS: _deals_strategy,
    SourceFormat.MT4_DEALS: _deals_strategy,
    SourceFormat.TRADINGVIEW_LIST: _tradingview_strategy,
    SourceFormat.UNSTRUCTURED_FALLBACK: _fallback_strategy,
}


# ---- 2) Assembly ----
def build_report(
    workbook: Workbook,
    filename: str,
    initial_balance: Optional[float] = None,
    *,
    settings: Optional[Settings] = None,
    fallback_time: Optional[datetime] = None,
) -> ParsedReport:
    """Detect, parse, reconcile and summarize one workbook."""

    settings = settings or get_settings(initial_balance=initial_balance)
    balance = settings.default_initial_balance if initial_balance is None else float(initial_balance)
    now = fallback_time or datetime.now()

    detected = detect_format(workbook, filename)
    rows = workbook.rows(detected.sheet_name) if detected.sheet_name else []
    trades = PARSERS[detected.kind](rows, detected, now, balance)
    low_confidence = detected.kind is SourceFormat.UNSTRUCTURED_FALLBACK

    curve = reconcile(trades, balance)
    summary = compute_summary(trades, curve, detected.source, low_confidence=low_confidence)

    fallbacks = sum(1 for t in trades if t.time_fallback)
    if fallbacks:
        logger.warning("%s: %d row(s) use the fallback timestamp", filename, fallbacks)
    logger.info("%s: %s, %d trades, %d equity points", filename, detected.kind.value, len(trades), len(curve.points))

    return ParsedReport(
        source=detected.source,
        trades=trades,
        equity_series=curve.points,
        summary=MappingProxyType(summary),
        monthly=aggregate.by_month(trades, curve),
        by_symbol=aggregate.by_symbol(trades),
        filename=filename,
        detected=detected,
        low_confidence=low_confidence,
        initial_balance=curve.initial_balance,
        by_weekday=aggregate.by_weekday(trades),
        by_hour=aggregate.by_hour(trades),
        drawdown_periods=drawdown_periods(curve),
    )


# ---- 3) Entry points ----
def analyze_bytes(
    data: bytes,
    filename: str,
    initial_balance: Optional[float] = None,
    max_rows: Optional[int] = None,
    *,
    settings: Optional[Settings] = None,
    fallback_time: Optional[datetime] = None,
) -> ParsedReport:
    """Validate the name, read the container and build the report.

    Raises UnsupportedFileType for non-.xlsx names and WorkbookError for
    corrupt containers; every other problem degrades inside the report.
    """
    name = validate_filename(filename)
    settings = settings or get_settings(initial_balance=initial_balance, max_rows=max_rows)
    workbook = read_workbook(data, max_rows=max_rows if max_rows is not None else settings.max_rows)
    return build_report(workbook, name, initial_balance, settings=settings, fallback_time=fallback_time)


def analyze_path(
    path: str | os.PathLike,
    initial_balance: Optional[float] = None,
    max_rows: Optional[int] = None,
    *,
    settings: Optional[Settings] = None,
) -> ParsedReport:
    p = Path(path)
    validate_filename(p.name)
    return analyze_bytes(p.read_bytes(), p.name, initial_balance, max_rows, settings=settings)


async def analyze_bytes_async(
    data: bytes,
    filename: str,
    initial_balance: Optional[float] = None,
    max_rows: Optional[int] = None,
) -> ParsedReport:
    """Run the synchronous pipeline on a worker thread."""
    return await asyncio.to_thread(analyze_bytes, data, filename, initial_balance, max_rows)


@dataclass(frozen=True)
class FileOutcome:
    filename: str
    report: Optional[ParsedReport] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.report is not None


def _analyze_one(path: Path, initial_balance: Optional[float], max_rows: Optional[int], settings: Settings) -> FileOutcome:
    try:
        report = analyze_path(path, initial_balance, max_rows, settings=settings)
    except (ReportError, OSError) as exc:
        logger.warning("Failed to analyze %s: %s", path, exc)
        return FileOutcome(filename=path.name, error=str(exc))
    except Exception as exc:
        logger.exception("Unexpected failure analyzing %s: %s", path, exc)
        return FileOutcome(filename=path.name, error=f"Internal error: {exc}")
    return FileOutcome(filename=path.name, report=report)


def analyze_many(
    paths: Iterable[str | os.PathLike],
    max_workers: Optional[int] = None,
    initial_balance: Optional[float] = None,
    max_rows: Optional[int] = None,
) -> list[FileOutcome]:
    """Analyze files concurrently; one file failing never affects the others.

    Outcomes come back in input order.
    """
    settings = get_settings(initial_balance=initial_balance, max_rows=max_rows, max_workers=max_workers)
    items = [Path(p) for p in paths]
    if not items:
        return []
    with ThreadPoolExecutor(max_workers=settings.max_workers) as pool:
        return list(pool.map(lambda p: _analyze_one(p, initial_balance, max_rows, settings), items))
