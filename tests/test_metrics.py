from __future__ import annotations

from datetime import timedelta

import numpy as np
import pytest

from tradeledger.aggregate import by_symbol
from tradeledger.constants import PROFIT_FACTOR_CAP
from tradeledger.equity import reconcile
from tradeledger.models import EquityCurve, EquityPoint
from tradeledger.metrics import (
    autocorrelation,
    cagr,
    calmar_ratio,
    compute_summary,
    format_duration,
    holding_minutes,
    max_consecutive_runs,
    periodic_returns,
    profit_factor,
    quality_score,
    return_moments,
    sharpe_ratio,
    sortino_ratio,
    streak_runs,
    tail_ratio,
    value_at_risk,
)

from tests.factories import START, closed_series, make_trade


def _summary(trades, initial=10_000.0, low_confidence=False):
    return compute_summary(trades, reconcile(trades, initial), "MT5", low_confidence=low_confidence)


def test_reference_streaks_and_win_rate() -> None:
    summary = _summary(closed_series([100, -50, 200, -30, -20]))
    assert summary["Win Rate"] == pytest.approx(40.0)
    assert summary["Max Consecutive Wins"] == 1
    assert summary["Max Consecutive Losses"] == 2
    assert summary["Total Trades"] == 5
    assert summary["Gross Profit"] == 300
    assert summary["Gross Loss"] == 100
    assert summary["Profit Factor"] == pytest.approx(3.0)
    assert summary["Total Net Profit"] == pytest.approx(200)
    assert summary["Maximal Consecutive Loss"] == pytest.approx(-50)


def test_zero_profit_breaks_both_streaks() -> None:
    assert max_consecutive_runs([1, 1, 0, 1, -1, 0, -1]) == (2, 1)
    wins, losses = streak_runs([5, 5, 0, -1, -2, 3])
    assert wins == [(2, 10.0), (1, 3.0)]
    assert losses == [(2, -3.0)]


def test_profit_factor_edges() -> None:
    assert profit_factor(0.0, 0.0) == 0.0
    assert profit_factor(0.0, 50.0) == 0.0
    assert profit_factor(10.0, 0.0) == PROFIT_FACTOR_CAP
    assert profit_factor(30.0, 10.0) == 3.0


@pytest.mark.parametrize(
    "profits",
    [[], [0, 0], [-5, -1], [5, 7], [100, -50, 200, -30, -20], [1e6, -1e-3]],
)
def test_bounded_ratios(profits) -> None:
    summary = _summary(closed_series(profits))
    assert summary["Profit Factor"] >= 0
    assert np.isfinite(summary["Profit Factor"])
    assert 0 <= summary["Win Rate"] <= 100
    assert 0 <= summary["Trade Quality Score"] <= 100
    if not any(p > 0 for p in profits):
        assert summary["Profit Factor"] == 0


def test_empty_ledger_is_all_zero() -> None:
    summary = _summary([])
    assert summary["Total Trades"] == 0
    assert summary["Win Rate"] == 0
    assert summary["Sharpe Ratio"] == 0
    assert summary["Maximal Drawdown"] == 0
    assert summary["Recovery Factor"] == 0
    assert summary["Initial Balance"] == summary["Final Balance"] == 10_000


def test_balance_rows_are_not_trades() -> None:
    trades = [
        make_trade(type_="balance", direction="", profit=5_000, balance=5_000, when=START),
        *closed_series([10, -5]),
    ]
    summary = _summary(trades)
    assert summary["Initial Balance"] == 5_000
    assert summary["Total Trades"] == 2
    assert summary["Total Net Profit"] == pytest.approx(5)
    assert summary["Largest Profit Trade"] == 10


def test_drawdown_and_recovery() -> None:
    summary = _summary(closed_series([2_000, -3_000, 2_000]), initial=10_000)
    assert summary["Maximal Drawdown"] == pytest.approx(3_000)
    assert summary["Maximal Drawdown %"] == pytest.approx(25.0)
    assert summary["Recovery Factor"] == pytest.approx(1_000 / 3_000, abs=0.01)
    assert summary["Absolute Drawdown"] == pytest.approx(1_000)


def test_sharpe_matches_population_formula() -> None:
    path = [100.0, 110.0, 99.0, 108.9]
    returns = periodic_returns(path)
    expected = np.mean(returns) / np.std(returns, ddof=0) * np.sqrt(252)
    assert sharpe_ratio(returns) == pytest.approx(expected)
    assert sharpe_ratio(np.array([0.01, 0.01])) == 0.0
    assert sharpe_ratio(np.array([])) == 0.0


def test_sortino_and_var_edges() -> None:
    assert sortino_ratio(np.array([0.01, 0.02])) == 0.0
    assert sortino_ratio(np.array([0.02, -0.01])) > 0
    assert value_at_risk(np.array([-0.5] * 9)) == 0.0
    assert value_at_risk(np.array([-0.02] * 10)) == pytest.approx(2.0)


def test_quality_score_components() -> None:
    assert quality_score(90, 5, 10, 10, 4) == 0
    assert quality_score(100, 10, 10, 10, 5) == 100
    assert quality_score(50, 1.5, 1, 1, 10) == 50
    assert quality_score(0, 0, -3, -2, 10) == 0


def test_symbol_totals_match_closed_net_profit() -> None:
    profits = [12.5, -3.25, 7.0, -1.1, 4.4]
    symbols = ["EURUSD", "XAUUSD", "", "EURUSD", "US30"]
    trades = closed_series(profits, symbols)
    summary = _summary(trades)
    groups = by_symbol(trades)
    assert sum(g.total_profit for g in groups) == pytest.approx(summary["Closed Net Profit"], abs=0.01)


def test_confidence_and_source_labels() -> None:
    summary = _summary(closed_series([1]), low_confidence=True)
    assert summary["Parse Confidence"] == "Low"
    assert summary["Source"] == "MT5"


def test_long_short_counts_and_costs() -> None:
    trades = [
        make_trade(type_="buy", direction="in", side="long", profit=0, when=START),
        make_trade(type_="sell", direction="out", side="long", profit=5, when=START + timedelta(hours=1)),
        make_trade(type_="sell", direction="in", side="short", profit=0, when=START + timedelta(hours=2)),
    ]
    summary = _summary(trades)
    assert summary["Long Positions"] == 1
    assert summary["Short Positions"] == 1
    assert summary["In Deals"] == 2
    assert summary["Total Commission"] == 0


def _curve(initial, points):
    return EquityCurve(initial_balance=initial, points=tuple(EquityPoint(t, b) for t, b in points), synthesized=True)


def test_cagr_is_zero_for_intraday_ledgers() -> None:
    one_hour = _curve(1_000, [(START, 1_000), (START + timedelta(hours=1), 1_100)])
    assert cagr(one_hour) == 0.0
    summary = _summary(closed_series([100]), initial=1_000)
    assert summary["CAGR"] == 0.0
    assert summary["Total Net Profit"] == 100


def test_cagr_over_two_years_and_huge_growth() -> None:
    two_years = _curve(100, [(START, 100), (START + timedelta(days=730.5), 121)])
    assert cagr(two_years) == pytest.approx(10.0)
    explosive = _curve(1, [(START, 1), (START + timedelta(days=1), 1e300)])
    assert cagr(explosive) == 0.0


def test_calmar_uses_cagr_over_drawdown_pct() -> None:
    assert calmar_ratio(20.0, 10.0) == pytest.approx(2.0)
    assert calmar_ratio(20.0, 0.0) == 0.0


def test_return_moments() -> None:
    returns = np.array([0.01, 0.02, -0.01, 0.04, 0.0])
    moments = return_moments(returns)
    assert moments["mean"] == pytest.approx(1.2)
    assert moments["median"] == pytest.approx(1.0)
    n, sd = returns.size, np.std(returns)
    z = (returns - returns.mean()) / sd
    assert moments["skew"] == pytest.approx(np.sum(z ** 3) * n / ((n - 1) * (n - 2)))
    assert return_moments(np.array([0.01, 0.01, 0.01, 0.01]))["skew"] == 0.0
    assert return_moments(np.array([]))["mean"] == 0.0


def test_tail_ratio_and_autocorrelation() -> None:
    assert tail_ratio(np.array([0.01] * 19)) == 1.0
    symmetric = np.array([-0.02, 0.02] * 10)
    assert tail_ratio(symmetric) == pytest.approx(1.0)
    assert tail_ratio(np.array([-0.01] * 10 + [0.03] * 10)) == pytest.approx(3.0)
    assert autocorrelation(np.array([0.01] * 9 + [0.02])) != 0.0
    assert autocorrelation(np.array([0.01] * 9)) == 0.0
    assert autocorrelation(symmetric) == pytest.approx(-0.95)


def test_holding_time_pairs_opens_and_closes() -> None:
    trades = [
        make_trade(type_="buy", direction="in", side="long", when=START),
        make_trade(type_="sell", direction="in", side="short", symbol="GBPUSD", when=START),
        make_trade(type_="sell", direction="out", side="long", when=START + timedelta(minutes=90)),
        make_trade(type_="buy", direction="out", side="short", symbol="GBPUSD", when=START + timedelta(days=1, minutes=30)),
        # close without an open
        make_trade(type_="sell", direction="out", side="long", when=START + timedelta(days=2)),
    ]
    assert holding_minutes(trades) == [90, 1_470]
    assert format_duration(780) == "13h 0m"
    assert format_duration(1_470) == "1d 0h 30m"
    assert _summary(trades)["Average Trade Duration"] == "13h 0m"
    assert _summary([])["Average Trade Duration"] == "0h 0m"
