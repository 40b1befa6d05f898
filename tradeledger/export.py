# tradeledger/export.py

from __future__ import annotations
from typing import Optional, Sequence

import pandas as pd

from .constants import CSV_COLUMNS
from .models import Trade

CSV_TIME_FORMAT = "%m/%d/%Y %H:%M:%S"


def _money(value: Optional[float]) -> str:
    return f"{(value or 0.0):.2f}"


def trades_frame(trades: Sequence[Trade]) -> pd.DataFrame:
    """Trades laid out in the fixed CSV column order, already formatted as text."""
    records = [
        {
            "Time": t.open_time.strftime(CSV_TIME_FORMAT),
            "Deal": t.deal_id,
            "Symbol": t.symbol,
            "Type": t.type,
            "Direction": t.direction,
            "Volume": f"{t.volume_lots:g}",
            "Price": f"{t.price_open:g}",
            "Order": t.order,
            "Commission": _money(t.commission),
            "Swap": _money(t.swap),
            "Profit": _money(t.profit),
            "Balance": _money(t.balance),
            "Comment": t.comment,
        }
        for t in trades
    ]
    return pd.DataFrame.from_records(records, columns=CSV_COLUMNS)


def trades_to_csv(trades: Sequence[Trade], path: Optional[str] = None) -> Optional[str]:
    """Write the trades CSV to ``path``, or return it as a string when no path is given."""
    return trades_frame(trades).to_csv(path, index=False)
