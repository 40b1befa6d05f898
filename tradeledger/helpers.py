# tradeledger/helpers.py

from __future__ import annotations
import logging
import math
import numbers
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional, Sequence

import pandas as pd

from .constants import SL_RE, TP_RE

# NOTE:
# - All helpers here are PURE and never raise on bad cell content.
# - Numeric failures coerce to 0.0; date failures return None and let the caller
#   pick the fallback timestamp.

logger = logging.getLogger(__name__)

_SPACES_RE = re.compile(r"[\s\u00a0\u202f\u2009']+")
_CURRENCY_RE = re.compile(r"[$€£%]")
_MINUS_CHARS = {"\u2212": "-", "\u2013": "-", "\u2014": "-"}
_THOUSANDS_RE = re.compile(r"^-?\d{1,3}(,\d{3})+$")

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[ T]+(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?)?$")
_DOT_RE = re.compile(r"^(\d{4})\.(\d{1,2})\.(\d{1,2})(?:\s+(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?)?$")
_DMY_DOT_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})(?:\s+(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?)?$")
_US_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?)?$")
_TIME_RE = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")

# Excel serial day numbers we accept as dates (1954 .. 2119)
_EXCEL_EPOCH = datetime(1899, 12, 30)
_EXCEL_SERIAL_RANGE = (20_000, 80_000)


# --------------------------------------------------------------------------
# 1) Blank / text coercion
# --------------------------------------------------------------------------
def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def cell_text(value: Any) -> str:
    """Render a cell as trimmed text ('' for blanks, integral floats without '.0')."""
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.strftime("%Y.%m.%d %H:%M:%S")
    return str(value).strip()


def row_length(row: Sequence[Any]) -> int:
    """Number of cells up to and including the last non-blank one."""
    for i in range(len(row) - 1, -1, -1):
        if not is_blank(row[i]):
            return i + 1
    return 0


def cell_at(row: Sequence[Any], index: int) -> Any:
    if index < 0 or index >= len(row):
        return None
    return row[index]


# --------------------------------------------------------------------------
# 2) Locale-tolerant numbers
# --------------------------------------------------------------------------
def _normalize_numeric_text(raw: str) -> str:
    s = raw.strip()
    for ch, repl in _MINUS_CHARS.items():
        s = s.replace(ch, repl)
    s = _CURRENCY_RE.sub("", s)
    s = _SPACES_RE.sub("", s)
    if s.startswith("(") and s.endswith(")"):
        s = "-" + s[1:-1]

    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            # 1.234,56
            s = s.replace(".", "").replace(",", ".")
        else:
            # 1,234.56
            s = s.replace(",", "")
    elif "," in s:
        if _THOUSANDS_RE.match(s):
            s = s.replace(",", "")
        else:
            s = s.replace(",", ".")
    return s


def clean_numeric(value: Any) -> float:
    """Convert a cell to float; thousands spaces and comma decimals are accepted.

    '1 234,56' -> 1234.56, '1,234.56' -> 1234.56, '(12.5)' -> -12.5.
    Anything non-numeric becomes 0.0.
    """
    if is_blank(value):
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, numbers.Real):
        out = float(value)
        return out if math.isfinite(out) else 0.0
    try:
        out = float(_normalize_numeric_text(str(value)))
    except ValueError:
        return 0.0
    return out if math.isfinite(out) else 0.0


def optional_numeric(value: Any) -> Optional[float]:
    """Like clean_numeric, but blank cells stay None."""
    if is_blank(value):
        return None
    return clean_numeric(value)


# --------------------------------------------------------------------------
# 3) Timestamps
# --------------------------------------------------------------------------
def _build(parts: tuple[str | None, ...], order: tuple[int, int, int]) -> datetime | None:
    y, m, d = (int(parts[i]) for i in order)
    hh, mm, ss = (int(p) if p else 0 for p in parts[3:6])
    try:
        return datetime(y, m, d, hh, mm, ss)
    except ValueError:
        return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse the date layouts found in MT4/5 and TradingView exports.

    Supports native Excel datetimes, Excel serial numbers, 'YYYY.MM.DD HH:MM:SS',
    'YYYY-MM-DD HH:MM[:SS]', 'MM/DD/YYYY HH:MM:SS' and 'DD.MM.YYYY HH:MM:SS'.
    Returns None when nothing matches.
    """
    if is_blank(value):
        return None
    if isinstance(value, pd.Timestamp):
        if value.tzinfo is not None:
            value = value.tz_convert(None)
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        lo, hi = _EXCEL_SERIAL_RANGE
        if lo <= float(value) <= hi:
            return _EXCEL_EPOCH + timedelta(days=float(value))
        return None

    s = str(value).strip().strip("\"'").strip()
    for regex, order in ((_DOT_RE, (0, 1, 2)), (_ISO_RE, (0, 1, 2)), (_US_RE, (2, 0, 1)), (_DMY_DOT_RE, (2, 1, 0))):
        m = regex.match(s)
        if m:
            return _build(m.groups(), order)

    # last resort only for date-like text, so bare ids never become dates
    if len(s) < 6 or not any(ch.isdigit() for ch in s) or not any(sep in s for sep in "-/.:"):
        return None
    try:
        ts = pd.to_datetime(s, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is pd.NaT or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts.to_pydatetime()


def looks_like_time(value: Any) -> bool:
    return bool(_TIME_RE.match(cell_text(value)))


def resolve_time(value: Any, fallback: datetime, where: str) -> tuple[datetime, bool]:
    """Return (timestamp, used_fallback); logs when the fallback is taken."""
    parsed = parse_timestamp(value)
    if parsed is None:
        logger.warning("Unparseable date %r at %s; using fallback timestamp", cell_text(value), where)
        return fallback, True
    return parsed, False


# --------------------------------------------------------------------------
# 4) Comment scraping
# --------------------------------------------------------------------------
def extract_stops(comment: str) -> tuple[float | None, float | None]:
    """Pull 'sl <n>' / 'tp <n>' values out of a free-text comment."""
    if not comment:
        return None, None
    sl = SL_RE.search(comment)
    tp = TP_RE.search(comment)
    return (float(sl.group(1)) if sl else None, float(tp.group(1)) if tp else None)
