# tradeledger/deals.py

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from .columns import pick, resolve_columns
from .constants import (
    DEAL_FIELDS,
    DEALS_MARKER,
    FALLBACK_BALANCE_OFFSET,
    FALLBACK_COMMENT_OFFSET,
    FALLBACK_DIRECTION_OFFSET,
    FALLBACK_PRICE_OFFSET,
    FALLBACK_PROFIT_OFFSET,
    FALLBACK_SYMBOL_OFFSET,
    FALLBACK_TYPE_OFFSET,
    FALLBACK_VOLUME_OFFSET,
)
from .detect import is_deals_header
from .helpers import (
    cell_at,
    cell_text,
    clean_numeric,
    extract_stops,
    is_blank,
    looks_like_time,
    optional_numeric,
    parse_timestamp,
    resolve_time,
    row_length,
)
from .models import Direction, Side, Trade

logger = logging.getLogger(__name__)

# field key -> header label
DEAL_COLUMNS = {name.lower(): name for name in DEAL_FIELDS}


# ---- 1) Field normalisation ----
def normalize_direction(value: Any) -> Direction:
    """'in' / 'out' / ''; reversals ('in/out') and 'out by' count as closing legs."""
    s = cell_text(value).lower().replace(" ", "")
    if not s:
        return ""
    if s.startswith("out") or s in ("in/out", "inout"):
        return "out"
    if s == "in":
        return "in"
    return ""


def derive_side(type_label: str, direction: Direction) -> Optional[Side]:
    """Position side a deal leg belongs to.

    An 'in' buy opens a long and an 'in' sell opens a short; an 'out' sell
    closes a long and an 'out' buy closes a short.
    """
    t = type_label.strip().lower()
    if t not in ("buy", "sell"):
        return None
    if direction == "out":
        return "long" if t == "sell" else "short"
    return "long" if t == "buy" else "short"


def _build_trade(
    *,
    time_value: Any,
    deal: Any,
    order: Any,
    symbol: Any,
    type_: Any,
    direction: Any,
    volume: Any,
    price: Any,
    commission: Any,
    swap: Any,
    profit: Any,
    balance: Any,
    comment: Any,
    row_index: int,
    fallback_time: datetime,
) -> Trade:
    open_time, used_fallback = resolve_time(time_value, fallback_time, f"row {row_index}")
    type_label = cell_text(type_)
    norm_dir = normalize_direction(direction)
    comment_text = cell_text(comment)
    stop_loss, take_profit = extract_stops(comment_text)
    return Trade(
        open_time=open_time,
        deal_id=cell_text(deal),
        order=cell_text(order),
        symbol=cell_text(symbol),
        type=type_label,
        direction=norm_dir,
        side=derive_side(type_label, norm_dir),
        volume_lots=clean_numeric(volume),
        price_open=clean_numeric(price),
        stop_loss=stop_loss,
        take_profit=take_profit,
        commission=clean_numeric(commission),
        swap=clean_numeric(swap),
        profit=clean_numeric(profit),
        balance=optional_numeric(balance),
        comment=comment_text,
        row_index=row_index,
        time_fallback=used_fallback,
    )


# ---- 2) Header-driven parser ----
def parse_deals(
    rows: Sequence[Sequence[Any]],
    header_row: int,
    fallback_time: datetime,
) -> tuple[Trade, ...]:
    """Turn the rows below a 'Time | Deal | ...' header into canonical trades.

    Totals rows (no Time and no Deal) are skipped. The table ends at the first
    fully blank row once data has started, or at the next section heading.
    A row that cannot be built is logged and dropped; nothing here raises
    for cell content.
    """

    if header_row < 0 or header_row >= len(rows):
        return ()

    cols = resolve_columns(rows[header_row], DEAL_COLUMNS)
    missing = [DEAL_COLUMNS[k] for k, v in cols.items() if v < 0]
    if missing:
        logger.info("Deals header is missing columns: %s", ", ".join(missing))

    trades: list[Trade] = []
    started = False
    for i in range(header_row + 1, len(rows)):
        row = rows[i]
        if row_length(row) == 0:
            if started:
                break
            continue
        started = True

        time_cell = pick(row, cols, "time")
        deal_cell = pick(row, cols, "deal")
        if is_blank(time_cell) and is_blank(deal_cell):
            # totals line under the table
            continue
        if is_blank(deal_cell) and parse_timestamp(time_cell) is None:
            # heading of the next report section
            break

        try:
            trade = _build_trade(
                time_value=time_cell,
                deal=deal_cell,
                order=pick(row, cols, "order"),
                symbol=pick(row, cols, "symbol"),
                type_=pick(row, cols, "type"),
                direction=pick(row, cols, "direction"),
                volume=pick(row, cols, "volume"),
                price=pick(row, cols, "price"),
                commission=pick(row, cols, "commission"),
                swap=pick(row, cols, "swap"),
                profit=pick(row, cols, "profit"),
                balance=pick(row, cols, "balance"),
                comment=pick(row, cols, "comment"),
                row_index=i,
                fallback_time=fallback_time,
            )
        except (ValueError, TypeError, OverflowError) as exc:
            logger.warning("Skipping malformed deal row %d: %s", i, exc)
            continue
        trades.append(trade)

    logger.debug("Parsed %d deal rows", len(trades))
    return tuple(trades)


# ---- 3) Positional fallback (no header row) ----
def _locate_time_and_deal(row: Sequence[Any]) -> tuple[Any, int] | None:
    """Return (time value, deal column) for the layouts seen in headerless exports."""
    first = cell_at(row, 0)
    second = cell_at(row, 1)
    if is_blank(first):
        return None
    if looks_like_time(second):
        # date and time split over the first two cells
        return f"{cell_text(first)} {cell_text(second)}", 2
    if not isinstance(first, str):
        # native Excel datetime or serial
        return first, 1
    text = first.strip().strip("\"'")
    if "/" in text or "." in text or "-" in text:
        # 'MM/DD/YYYY HH:MM:SS' or a dot-separated date in one cell
        return text, 1
    return None


def _looks_like_deal_id(value: Any) -> bool:
    s = cell_text(value)
    return bool(s) and s.replace(".", "", 1).isdigit()


def _start_of_deals(rows: Sequence[Sequence[Any]]) -> int:
    for i, row in enumerate(rows):
        if cell_text(cell_at(row, 0)) == DEALS_MARKER:
            return i + 1
    return 0


def parse_unstructured(rows: Sequence[Sequence[Any]], fallback_time: datetime) -> tuple[Trade, ...]:
    """Best-effort positional parse for exports without a recognizable header.

    Assumes the MT deal layout after the deal id column; profit and balance
    shift one column left on rows that are one cell short. Results are
    low-confidence and may mis-read exports with other layouts.
    """

    trades: list[Trade] = []
    for i in range(_start_of_deals(rows), len(rows)):
        row = rows[i]
        n = row_length(row)
        if n == 0 or is_deals_header(row):
            continue
        if "summary" in cell_text(cell_at(row, 0)).lower():
            continue

        located = _locate_time_and_deal(row)
        if located is None:
            continue
        time_value, d = located
        if parse_timestamp(time_value) is None or not _looks_like_deal_id(cell_at(row, d)):
            continue

        short = n <= d + FALLBACK_BALANCE_OFFSET
        profit_at = d + FALLBACK_PROFIT_OFFSET - (1 if short else 0)
        balance_at = d + FALLBACK_BALANCE_OFFSET - (1 if short else 0)
        try:
            trade = _build_trade(
                time_value=time_value,
                deal=cell_at(row, d),
                order=cell_at(row, d + FALLBACK_PRICE_OFFSET + 1),
                symbol=cell_at(row, d + FALLBACK_SYMBOL_OFFSET),
                type_=cell_at(row, d + FALLBACK_TYPE_OFFSET),
                direction=cell_at(row, d + FALLBACK_DIRECTION_OFFSET),
                volume=cell_at(row, d + FALLBACK_VOLUME_OFFSET),
                price=cell_at(row, d + FALLBACK_PRICE_OFFSET),
                commission=cell_at(row, d + FALLBACK_PRICE_OFFSET + 2),
                swap=None if short else cell_at(row, d + FALLBACK_PRICE_OFFSET + 3),
                profit=cell_at(row, profit_at),
                balance=cell_at(row, balance_at),
                comment=None if short else cell_at(row, d + FALLBACK_COMMENT_OFFSET),
                row_index=i,
                fallback_time=fallback_time,
            )
        except (ValueError, TypeError, OverflowError) as exc:
            logger.warning("Skipping unreadable row %d in positional parse: %s", i, exc)
            continue
        trades.append(trade)

    logger.warning("Positional fallback produced %d low-confidence rows", len(trades))
    return tuple(trades)
