# tradeledger/metrics.py

from __future__ import annotations
import math
from collections import deque
from typing import Any, Iterable, Sequence

import numpy as np

from .constants import (
    MIN_CAGR_DAYS,
    MIN_RETURNS_FOR_AUTOCORR,
    MIN_RETURNS_FOR_TAIL,
    MIN_RETURNS_FOR_VAR,
    MIN_TRADES_FOR_SCORE,
    PROFIT_FACTOR_CAP,
    SCORE_WEIGHTS,
    TRADING_DAYS_PER_YEAR,
    VAR_CONFIDENCE,
)
from .equity import chronological, fold_drawdown
from .models import EquityCurve, Source, Trade


# ------------------------------ Building blocks --------------------------------

def closed_legs(trades: Sequence[Trade]) -> list[Trade]:
    """Closing legs in chronological order (stable for equal timestamps)."""
    return [t for t in chronological(trades) if t.is_closed]


def max_consecutive_runs(pnl: Iterable[float]) -> tuple[int, int]:
    max_w = max_l = cur_w = cur_l = 0
    for x in pnl:
        if x > 0:
            cur_w += 1; cur_l = 0
        elif x < 0:
            cur_l += 1; cur_w = 0
        else:
            cur_w = 0; cur_l = 0
        max_w = max(max_w, cur_w); max_l = max(max_l, cur_l)
    return max_w, max_l


def streak_runs(pnl: Iterable[float]) -> tuple[list[tuple[int, float]], list[tuple[int, float]]]:
    """Every winning and losing run as (length, summed profit); a flat leg ends both."""
    wins: list[tuple[int, float]] = []
    losses: list[tuple[int, float]] = []
    sign = 0
    length = 0
    total = 0.0

    def _flush() -> None:
        if sign > 0:
            wins.append((length, total))
        elif sign < 0:
            losses.append((length, total))

    for x in pnl:
        s = 1 if x > 0 else (-1 if x < 0 else 0)
        if s != sign or s == 0:
            _flush()
            sign, length, total = s, 0, 0.0
        if s != 0:
            length += 1
            total += x
    _flush()
    return wins, losses


def periodic_returns(path: Sequence[float]) -> np.ndarray:
    """Fractional change between successive balances (steps off a non-positive base are skipped)."""
    out = [(cur - prev) / prev for prev, cur in zip(path[:-1], path[1:]) if prev > 0]
    return np.asarray(out, dtype=float)


def sharpe_ratio(returns: np.ndarray) -> float:
    if returns.size == 0:
        return 0.0
    sd = float(np.std(returns))  # population
    if sd <= 1e-12:
        return 0.0
    return float(np.mean(returns)) / sd * math.sqrt(TRADING_DAYS_PER_YEAR)


def sortino_ratio(returns: np.ndarray) -> float:
    if returns.size == 0 or not (returns < 0).any():
        return 0.0
    downside = math.sqrt(float(np.mean(np.minimum(returns, 0.0) ** 2)))
    if downside <= 1e-12:
        return 0.0
    return float(np.mean(returns)) / downside * math.sqrt(TRADING_DAYS_PER_YEAR)


def value_at_risk(returns: np.ndarray, confidence: float = VAR_CONFIDENCE) -> float:
    """Historical VaR as a positive percentage loss; 0 for short samples."""
    if returns.size < MIN_RETURNS_FOR_VAR:
        return 0.0
    q = float(np.percentile(returns, (1.0 - confidence) * 100.0))
    return max(0.0, -q * 100.0)


def profit_factor(gross_profit: float, gross_loss: float) -> float:
    if gross_profit <= 0:
        return 0.0
    if gross_loss <= 0:
        return PROFIT_FACTOR_CAP
    return gross_profit / gross_loss


def cagr(curve: EquityCurve) -> float:
    """Compound annual growth in percent; 0 for spans under ``MIN_CAGR_DAYS``."""
    if len(curve.points) < 2 or curve.initial_balance <= 0 or curve.final_balance <= 0:
        return 0.0
    days = (curve.points[-1].timestamp - curve.points[0].timestamp).total_seconds() / 86_400.0
    if days < MIN_CAGR_DAYS:
        return 0.0
    years = days / 365.25
    try:
        growth = math.exp(math.log(curve.final_balance / curve.initial_balance) / years)
    except OverflowError:
        return 0.0
    return (growth - 1.0) * 100.0


def calmar_ratio(cagr_pct: float, max_drawdown_pct: float) -> float:
    if max_drawdown_pct <= 0:
        return 0.0
    return cagr_pct / max_drawdown_pct


def return_moments(returns: np.ndarray) -> dict[str, float]:
    """Mean, median, skew and excess kurtosis of the returns (mean and median in percent).

    Skew and kurtosis use the sample-adjusted estimators over the population
    standard deviation; they are 0 when the sample is too small or flat.
    """
    n = returns.size
    out = {"mean": 0.0, "median": 0.0, "skew": 0.0, "kurtosis": 0.0}
    if n == 0:
        return out
    mean = float(np.mean(returns))
    out["mean"] = mean * 100.0
    out["median"] = float(np.median(returns)) * 100.0
    sd = float(np.std(returns))
    if sd <= 1e-12:
        return out
    z = (returns - mean) / sd
    if n >= 3:
        out["skew"] = float(np.sum(z ** 3)) * n / ((n - 1) * (n - 2))
    if n >= 4:
        out["kurtosis"] = (
            float(np.sum(z ** 4)) * n * (n + 1) / ((n - 1) * (n - 2) * (n - 3))
            - 3.0 * (n - 1) ** 2 / ((n - 2) * (n - 3))
        )
    return out


def tail_ratio(returns: np.ndarray) -> float:
    """|95th / 5th percentile| of returns; 1 for short samples or one-sided tails."""
    if returns.size < MIN_RETURNS_FOR_TAIL:
        return 1.0
    p5 = float(np.percentile(returns, 5))
    p95 = float(np.percentile(returns, 95))
    if p5 >= 0 or p95 <= 0:
        return 1.0
    return abs(p95 / p5)


def autocorrelation(returns: np.ndarray) -> float:
    """Lag-1 autocorrelation of returns."""
    if returns.size < MIN_RETURNS_FOR_AUTOCORR:
        return 0.0
    dev = returns - float(np.mean(returns))
    denom = float(np.sum(dev ** 2))
    if denom <= 1e-24:
        return 0.0
    return float(np.sum(dev[:-1] * dev[1:])) / denom


def holding_minutes(trades: Sequence[Trade]) -> list[float]:
    """Minutes each position was held.

    Closing legs are matched first-in first-out to opening legs of the same
    symbol and side; closes without a matching open are ignored.
    """
    open_legs: dict[tuple[str, Any], deque[Trade]] = {}
    out: list[float] = []
    for t in chronological(trades):
        if t.is_balance:
            continue
        key = (t.symbol.strip(), t.side)
        if t.direction == "in":
            open_legs.setdefault(key, deque()).append(t)
        elif t.direction == "out" and open_legs.get(key):
            opened = open_legs[key].popleft()
            if t.time_fallback or opened.time_fallback:
                continue
            minutes = (t.open_time - opened.open_time).total_seconds() / 60.0
            if minutes >= 0:
                out.append(minutes)
    return out


def format_duration(minutes: float) -> str:
    total = int(minutes)
    days, rest = divmod(total, 60 * 24)
    hours, mins = divmod(rest, 60)
    if days:
        return f"{days}d {hours}h {mins}m"
    return f"{hours}h {mins}m"


def quality_score(win_rate: float, pf: float, recovery: float, sharpe: float, closed_count: int) -> int:
    """Blend of the four components, each capped at its weight; always within [0, 100]."""
    if closed_count < MIN_TRADES_FOR_SCORE:
        return 0
    values = {"win_rate": win_rate, "profit_factor": pf, "recovery": recovery, "sharpe": sharpe}
    total = 0.0
    for key, (weight, scale) in SCORE_WEIGHTS.items():
        component = max(values[key], 0.0) / scale * weight
        total += min(max(component, 0.0), weight)
    return int(round(min(max(total, 0.0), 100.0)))


def _mean(values: Sequence[float]) -> float:
    return float(sum(values) / len(values)) if values else 0.0


def _r(x: float, nd: int = 2) -> float:
    return round(float(x), nd)


# ------------------------------ Summary --------------------------------

def compute_summary(
    trades: Sequence[Trade],
    curve: EquityCurve,
    source: Source,
    low_confidence: bool = False,
) -> dict[str, Any]:
    """Flat display map of performance and risk figures for one ledger.

    Balance rows never count as trades. Division-by-zero cases resolve to 0
    (profit factor uses a capped sentinel when there are wins but no losses).
    """

    closed = closed_legs(trades)
    pnl = [t.realized for t in closed]
    wins = [p for p in pnl if p > 0]
    losses = [p for p in pnl if p < 0]

    gross_profit = float(sum(wins))
    gross_loss = abs(float(sum(losses)))
    closed_net = float(sum(pnl))
    n_closed = len(closed)

    win_rate = (len(wins) / n_closed * 100.0) if n_closed else 0.0
    pf = profit_factor(gross_profit, gross_loss)
    avg_win = _mean(wins)
    avg_loss = _mean(losses)

    initial = curve.initial_balance
    final = curve.final_balance
    net_profit = final - initial

    path = curve.path()
    dd = fold_drawdown(path)
    lowest = min(path) if path else initial
    recovery = (net_profit / dd.max_drawdown) if dd.max_drawdown > 0 else 0.0

    returns = periodic_returns(path)
    sharpe = sharpe_ratio(returns)
    growth = cagr(curve)
    moments = return_moments(returns)
    held = holding_minutes(trades)

    max_w, max_l = max_consecutive_runs(pnl)
    win_runs, loss_runs = streak_runs(pnl)

    p_win = len(wins) / n_closed if n_closed else 0.0
    p_loss = len(losses) / n_closed if n_closed else 0.0

    non_balance = [t for t in trades if not t.is_balance]
    opening = [t for t in non_balance if t.direction == "in"]
    sided = opening or closed

    return {
        "Source": source,
        "Parse Confidence": "Low" if low_confidence else "High",
        "Initial Balance": _r(initial),
        "Final Balance": _r(final),
        "Total Net Profit": _r(net_profit),
        "Gross Profit": _r(gross_profit),
        "Gross Loss": _r(gross_loss),
        "Closed Net Profit": _r(closed_net),
        "Total Deals": len(non_balance),
        "In Deals": len(opening),
        "Out Deals": n_closed,
        "Total Trades": n_closed,
        "Profitable Trades": len(wins),
        "Loss Trades": len(losses),
        "Breakeven Trades": n_closed - len(wins) - len(losses),
        "Win Rate": _r(win_rate),
        "Profit Factor": _r(pf),
        "Average Win": _r(avg_win),
        "Average Loss": _r(avg_loss),
        "Ratio Avg. Win:Avg. Loss": _r(avg_win / abs(avg_loss)) if avg_loss else 0.0,
        "Largest Profit Trade": _r(max(wins)) if wins else 0.0,
        "Largest Loss Trade": _r(min(losses)) if losses else 0.0,
        "Expected Payoff": _r(closed_net / n_closed) if n_closed else 0.0,
        "Expectancy": _r(p_win * avg_win + p_loss * avg_loss),
        "Maximal Drawdown": _r(dd.max_drawdown),
        "Maximal Drawdown %": _r(dd.max_drawdown_pct),
        "Absolute Drawdown": _r(max(0.0, initial - lowest)),
        "Recovery Factor": _r(recovery),
        "Sharpe Ratio": _r(sharpe),
        "Sortino Ratio": _r(sortino_ratio(returns)),
        "Calmar Ratio": _r(calmar_ratio(growth, dd.max_drawdown_pct)),
        "CAGR": _r(growth),
        "VaR 95%": _r(value_at_risk(returns)),
        "Return Mean %": _r(moments["mean"], 4),
        "Return Median %": _r(moments["median"], 4),
        "Return Skew": _r(moments["skew"]),
        "Return Kurtosis": _r(moments["kurtosis"]),
        "Tail Ratio": _r(tail_ratio(returns)),
        "Autocorrelation": _r(autocorrelation(returns)),
        "Max Consecutive Wins": max_w,
        "Max Consecutive Losses": max_l,
        "Average Consecutive Wins": _r(_mean([n for n, _ in win_runs])),
        "Average Consecutive Losses": _r(_mean([n for n, _ in loss_runs])),
        "Maximal Consecutive Profit": _r(max((s for _, s in win_runs), default=0.0)),
        "Maximal Consecutive Loss": _r(min((s for _, s in loss_runs), default=0.0)),
        "Long Positions": sum(1 for t in sided if t.side == "long"),
        "Short Positions": sum(1 for t in sided if t.side == "short"),
        "Average Trade Duration": format_duration(_mean(held)),
        "Total Commission": _r(sum(t.commission for t in trades)),
        "Total Swap": _r(sum(t.swap for t in trades)),
        "Trade Quality Score": quality_score(win_rate, pf, recovery, sharpe, n_closed),
    }
