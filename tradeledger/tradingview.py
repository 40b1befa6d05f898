# tradeledger/tradingview.py

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from .columns import pick, resolve_columns
from .constants import TV_FIELDS
from .helpers import cell_text, clean_numeric, is_blank, resolve_time, row_length
from .models import Direction, Side, Trade

logger = logging.getLogger(__name__)


def _side_from_text(*texts: str) -> Optional[Side]:
    for text in texts:
        low = text.lower()
        if "long" in low:
            return "long"
        if "short" in low:
            return "short"
    return None


def _direction_from_type(type_label: str) -> Direction:
    low = type_label.lower()
    if "entry" in low:
        return "in"
    if "exit" in low:
        return "out"
    return ""


def parse_tradingview(
    rows: Sequence[Sequence[Any]],
    fallback_time: datetime,
    initial_balance: float,
) -> tuple[Trade, ...]:
    """Parse a TradingView 'List of trades' sheet (header on the first row).

    Rows stay in file order. Exit legs carry the realized profit and a
    balance of ``initial_balance + cumulative profit``; when the cumulative
    column is absent the running balance is used instead.
    """

    if not rows:
        return ()

    cols = resolve_columns(rows[0], TV_FIELDS, substring=False)
    missing = [TV_FIELDS[k] for k, v in cols.items() if v < 0]
    if missing:
        logger.info("TradingView sheet is missing columns: %s", ", ".join(missing))

    trades: list[Trade] = []
    running = float(initial_balance)
    peak = running
    max_dd = 0.0

    for i in range(1, len(rows)):
        row = rows[i]
        if row_length(row) == 0:
            continue

        type_label = cell_text(pick(row, cols, "type"))
        signal = cell_text(pick(row, cols, "signal"))
        direction = _direction_from_type(type_label)
        trade_no = cell_text(pick(row, cols, "trade_no"))
        open_time, used_fallback = resolve_time(pick(row, cols, "date_time"), fallback_time, f"row {i}")

        profit: Optional[float] = None
        balance: Optional[float] = None
        if direction == "out":
            profit = clean_numeric(pick(row, cols, "profit"))
            cum = pick(row, cols, "cum_profit")
            if is_blank(cum):
                balance = running + profit
            else:
                balance = float(initial_balance) + clean_numeric(cum)
            running = balance
            if running > peak:
                peak = running
            max_dd = max(max_dd, peak - running)

        trades.append(
            Trade(
                open_time=open_time,
                deal_id=f"TV-{trade_no}" if trade_no else f"TV-{i}",
                order=trade_no,
                symbol="",
                type=type_label,
                direction=direction,
                side=_side_from_text(signal, type_label),
                volume_lots=clean_numeric(pick(row, cols, "contracts")),
                price_open=clean_numeric(pick(row, cols, "price")),
                stop_loss=None,
                take_profit=None,
                commission=0.0,
                swap=0.0,
                profit=profit,
                balance=balance,
                comment=signal,
                row_index=i,
                time_fallback=used_fallback,
            )
        )

    logger.debug(
        "Parsed %d TradingView rows (peak balance %.2f, max drawdown candidate %.2f)",
        len(trades),
        peak,
        max_dd,
    )
    return tuple(trades)
