from __future__ import annotations

from datetime import datetime

import pytest

from tradeledger.aggregate import by_hour, by_month, by_symbol, by_weekday
from tradeledger.equity import reconcile

from tests.factories import make_trade


def _ledger():
    return [
        make_trade(when=datetime(2024, 2, 5, 10), symbol="EURUSD", profit=30, volume=1.0),
        make_trade(when=datetime(2024, 1, 3, 12), symbol="EURUSD", profit=-10, volume=2.0),
        make_trade(when=datetime(2023, 12, 29, 9), symbol="", profit=5, volume=0.5),
        make_trade(when=datetime(2024, 1, 8, 12), symbol="GBPUSD", profit=20, volume=1.0),
        make_trade(when=datetime(2024, 1, 8, 13), symbol="XAUUSD", profit=20, volume=1.0),
        # open legs and balance rows are ignored
        make_trade(when=datetime(2024, 1, 9), direction="in", profit=0),
        make_trade(when=datetime(2024, 1, 9), type_="balance", direction="", profit=100, balance=100),
    ]


def test_monthly_groups_are_chronological() -> None:
    months = by_month(_ledger())
    assert [g.key for g in months] == ["2023-12", "2024-01", "2024-02"]
    jan = months[1]
    assert jan.trade_count == 3 and jan.win_count == 2
    assert jan.total_profit == 30 and jan.total_volume == 4.0
    assert jan.win_rate == pytest.approx(200 / 3)


def test_symbol_groups_rank_by_profit() -> None:
    groups = by_symbol(_ledger())
    assert [g.key for g in groups] == ["EURUSD", "GBPUSD", "XAUUSD", "Unknown"]
    assert groups[0].total_profit == 20 and groups[0].trade_count == 2


def test_weekday_and_hour_groups() -> None:
    days = by_weekday(_ledger())
    assert [g.key for g in days] == ["Monday", "Wednesday", "Friday"]
    hours = by_hour(_ledger())
    assert [g.key for g in hours] == ["09", "10", "12", "13"]
    assert next(g for g in hours if g.key == "12").trade_count == 2


def test_empty_ledger() -> None:
    assert by_month([]) == () and by_symbol([]) == ()


def test_monthly_groups_carry_balances_and_return() -> None:
    trades = [
        make_trade(when=datetime(2024, 1, 2), type_="balance", direction="", profit=1_000, balance=1_000),
        make_trade(when=datetime(2024, 1, 10), profit=100),
        make_trade(when=datetime(2024, 2, 3), profit=-55),
        make_trade(when=datetime(2024, 2, 20), profit=220),
    ]
    months = by_month(trades, reconcile(trades, 500))
    assert [(g.start_balance, g.end_balance) for g in months] == [(1_000, 1_100), (1_100, 1_265)]
    assert months[0].return_pct == pytest.approx(10.0)
    assert months[1].return_pct == pytest.approx(15.0)
    assert months[1].to_dict()["return_pct"] == pytest.approx(15.0)


def test_monthly_return_is_absent_without_a_curve() -> None:
    (group,) = by_month([make_trade(when=datetime(2024, 3, 1), profit=1)])
    assert group.start_balance is None and group.return_pct is None
