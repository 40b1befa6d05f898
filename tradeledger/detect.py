# tradeledger/detect.py

from __future__ import annotations
import logging
import os
from typing import Any, Optional, Sequence

from .constants import TRADINGVIEW_HEADER_HINTS, TRADINGVIEW_SHEET, TRADINGVIEW_SHEET_HINTS, TV_FIELDS
from .helpers import cell_text
from .models import DetectedFormat, Source, SourceFormat
from .workbook import Workbook

logger = logging.getLogger(__name__)


def source_from_filename(filename: str) -> Source:
    """MT4 vs MT5 is only distinguishable by the export's filename."""
    return "MT4" if "mt4" in os.path.basename(filename or "").lower() else "MT5"


def is_deals_header(row: Sequence[Any]) -> bool:
    if len(row) < 2:
        return False
    first, second = cell_text(row[0]), cell_text(row[1])
    return "Time" in first and "Deal" in second


def find_deals_header(rows: Sequence[Sequence[Any]], max_scan_rows: Optional[int] = None) -> int | None:
    limit = len(rows) if max_scan_rows is None else min(len(rows), max_scan_rows)
    for i in range(limit):
        if is_deals_header(rows[i]):
            return i
    return None


def _has_tradingview_headers(row: Sequence[Any]) -> bool:
    labels = {cell_text(c).lower() for c in row}
    if TV_FIELDS["trade_no"].lower() not in labels:
        return False
    return any(any(hint in label for label in labels) for hint in TRADINGVIEW_HEADER_HINTS)


def detect_format(
    workbook: Workbook,
    filename: str = "",
    max_scan_rows: Optional[int] = None,
) -> DetectedFormat:
    """Classify a workbook; never raises, unknown layouts fall back to positional parsing."""

    names = list(workbook.sheet_names)

    # ---- 1) TradingView by sheet name ----
    for name in names:
        if name.strip() == TRADINGVIEW_SHEET:
            logger.debug("Detected TradingView sheet %r", name)
            return DetectedFormat(SourceFormat.TRADINGVIEW_LIST, "TradingView", name, 0)
    for name in names:
        low = name.lower()
        if any(hint in low for hint in TRADINGVIEW_SHEET_HINTS):
            logger.debug("Detected TradingView sheet by name hint %r", name)
            return DetectedFormat(SourceFormat.TRADINGVIEW_LIST, "TradingView", name, 0)

    source = source_from_filename(filename)
    kind = SourceFormat.MT4_DEALS if source == "MT4" else SourceFormat.MT5_DEALS

    # ---- 2) MT deals header row ----
    for name in names:
        header = find_deals_header(workbook.rows(name), max_scan_rows)
        if header is not None:
            logger.debug("Detected %s deals header at row %d of %r", source, header, name)
            return DetectedFormat(kind, source, name, header)

    first = workbook.first_sheet or ""
    rows = workbook.rows(first) if first else []

    # ---- 3) TradingView headers on an arbitrarily named sheet ----
    if rows and _has_tradingview_headers(rows[0]):
        logger.debug("Detected TradingView headers on sheet %r", first)
        return DetectedFormat(SourceFormat.TRADINGVIEW_LIST, "TradingView", first, 0)

    logger.warning("No recognizable header in %r; using positional fallback", filename or first)
    return DetectedFormat(SourceFormat.UNSTRUCTURED_FALLBACK, source, first, None)
