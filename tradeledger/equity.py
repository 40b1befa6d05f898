# tradeledger/equity.py

from __future__ import annotations
import logging
from dataclasses import replace
from datetime import datetime
from functools import reduce
from typing import Iterable, Optional, Sequence

from .constants import DRAWDOWN_PERIOD_MIN_PCT
from .models import DrawdownPeriod, DrawdownStats, EquityCurve, EquityPoint, Trade

logger = logging.getLogger(__name__)


# ---- 1) Reconciliation ----
def initial_balance_for(trades: Sequence[Trade], default: float) -> float:
    """Opening balance: first deposit row, else the first balance-carrying
    trade backed out by its own profit, else ``default``."""
    for t in trades:
        if t.is_balance and t.balance is not None:
            return t.balance
    for t in trades:
        if t.balance is not None:
            return t.balance - t.realized
    return float(default)


def ordering_times(trades: Sequence[Trade]) -> list[datetime]:
    """Sort time per trade.

    A row dated with the fallback timestamp takes the last real time above it
    (or the first real time in the file), so it stays in its file position.
    """
    last = next((t.open_time for t in trades if not t.time_fallback), None)
    out: list[datetime] = []
    for t in trades:
        if not t.time_fallback:
            last = t.open_time
        out.append(t.open_time if last is None else last)
    return out


def chronological(trades: Sequence[Trade]) -> list[Trade]:
    times = ordering_times(trades)
    order = sorted(range(len(trades)), key=lambda i: times[i])
    return [trades[i] for i in order]


def _sorted(points: Iterable[EquityPoint]) -> tuple[EquityPoint, ...]:
    # sorted() is stable, ties keep file order
    return tuple(sorted(points, key=lambda p: p.timestamp))


def reconcile(trades: Sequence[Trade], default_initial_balance: float) -> EquityCurve:
    """Build the equity series every metric is computed from."""

    initial = initial_balance_for(trades, default_initial_balance)
    times = ordering_times(trades)

    if trades and all(t.balance is not None for t in trades):
        points = [EquityPoint(when, float(t.balance)) for when, t in zip(times, trades)]
        return EquityCurve(initial_balance=initial, points=_sorted(points), synthesized=False)

    points: list[EquityPoint] = []
    running = initial
    for when, t in zip(times, trades):
        if t.is_balance:
            running = t.balance if t.balance is not None else running + t.realized
            points.append(EquityPoint(when, running))
        elif t.is_closed:
            running += t.realized
            points.append(EquityPoint(when, running))

    logger.debug("Synthesized %d equity points from %d trades", len(points), len(trades))
    return EquityCurve(initial_balance=initial, points=_sorted(points), synthesized=True)


# ---- 2) Drawdown fold ----
def _drawdown_step(acc: DrawdownStats, item: tuple[int, float]) -> DrawdownStats:
    index, raw = item
    value = max(raw, 0.0)
    peak = max(acc.final_peak, value)
    dd = peak - value
    if dd > acc.max_drawdown:
        return DrawdownStats(
            max_drawdown=dd,
            max_drawdown_pct=(dd / peak * 100.0) if peak > 0 else 0.0,
            peak_at_trough=peak,
            trough_index=index,
            final_peak=peak,
        )
    return replace(acc, final_peak=peak)


def fold_drawdown(values: Sequence[float]) -> DrawdownStats:
    """Largest peak-to-trough decline of a balance path.

    The percentage is relative to the peak in effect at the trough, and
    ``0 <= max_drawdown <= peak_at_trough`` always holds.
    """
    if not values:
        return DrawdownStats()
    seed = DrawdownStats(final_peak=max(float(values[0]), 0.0))
    return reduce(_drawdown_step, enumerate(float(v) for v in values), seed)


# ---- 3) Drawdown periods ----
def drawdown_periods(curve: EquityCurve, min_pct: Optional[float] = None) -> tuple[DrawdownPeriod, ...]:
    """Underwater spans whose depth reaches ``min_pct`` percent of the prior peak."""

    threshold = DRAWDOWN_PERIOD_MIN_PCT if min_pct is None else min_pct
    if not curve.points:
        return ()

    periods: list[DrawdownPeriod] = []
    peak = curve.initial_balance
    peak_time = curve.points[0].timestamp
    depth = 0.0
    start = None

    def _close(end_time) -> None:
        pct = (depth / peak * 100.0) if peak > 0 else 0.0
        if pct >= threshold:
            periods.append(DrawdownPeriod(start=start, end=end_time, amount=depth, amount_pct=pct))

    for point in curve.points:
        if point.balance >= peak:
            if start is not None:
                _close(point.timestamp)
                start = None
                depth = 0.0
            peak = point.balance
            peak_time = point.timestamp
            continue
        if start is None:
            start = peak_time
        depth = max(depth, peak - point.balance)

    if start is not None:
        _close(curve.points[-1].timestamp)
    return tuple(periods)
