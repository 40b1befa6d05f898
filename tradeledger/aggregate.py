# tradeledger/aggregate.py

from __future__ import annotations
from dataclasses import replace
from typing import Callable, Optional, Sequence

from .constants import UNKNOWN_SYMBOL, WEEKDAYS
from .models import AggregateGroup, EquityCurve, Trade


def _group(trades: Sequence[Trade], key_fn: Callable[[Trade], str]) -> dict[str, AggregateGroup]:
    acc: dict[str, list[float]] = {}
    for t in trades:
        if not t.is_closed:
            continue
        key = key_fn(t)
        row = acc.setdefault(key, [0, 0, 0.0, 0.0])
        row[0] += 1
        row[1] += 1 if t.realized > 0 else 0
        row[2] += t.realized
        row[3] += t.volume_lots
    return {
        k: AggregateGroup(key=k, trade_count=int(v[0]), win_count=int(v[1]), total_profit=float(v[2]), total_volume=float(v[3]))
        for k, v in acc.items()
    }


def _month_balances(curve: EquityCurve) -> dict[str, tuple[float, float]]:
    """'YYYY-MM' -> (balance before the month's first point, balance after its last)."""
    out: dict[str, tuple[float, float]] = {}
    prev = curve.initial_balance
    for p in curve.points:
        key = p.timestamp.strftime("%Y-%m")
        start = out[key][0] if key in out else prev
        out[key] = (start, p.balance)
        prev = p.balance
    return out


def by_month(trades: Sequence[Trade], curve: Optional[EquityCurve] = None) -> tuple[AggregateGroup, ...]:
    """Closed legs per 'YYYY-MM', oldest first.

    Given the equity curve, each month also carries its opening and closing
    balance (and so its percentage return).
    """
    groups = _group(trades, lambda t: t.open_time.strftime("%Y-%m"))
    ordered = [groups[k] for k in sorted(groups)]
    if curve is None:
        return tuple(ordered)
    balances = _month_balances(curve)
    return tuple(
        replace(g, start_balance=balances[g.key][0], end_balance=balances[g.key][1]) if g.key in balances else g
        for g in ordered
    )


def by_symbol(trades: Sequence[Trade]) -> tuple[AggregateGroup, ...]:
    """Closed legs per symbol, most profitable first (ties by symbol)."""
    groups = _group(trades, lambda t: t.symbol.strip() or UNKNOWN_SYMBOL)
    return tuple(sorted(groups.values(), key=lambda g: (-g.total_profit, g.key)))


def by_weekday(trades: Sequence[Trade]) -> tuple[AggregateGroup, ...]:
    groups = _group(trades, lambda t: WEEKDAYS[t.open_time.weekday()])
    return tuple(groups[d] for d in WEEKDAYS if d in groups)


def by_hour(trades: Sequence[Trade]) -> tuple[AggregateGroup, ...]:
    groups = _group(trades, lambda t: f"{t.open_time.hour:02d}")
    return tuple(groups[k] for k in sorted(groups))
