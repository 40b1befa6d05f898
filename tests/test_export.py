from __future__ import annotations

import csv
import io
from datetime import datetime
from pathlib import Path

from tradeledger import analyze_bytes
from tradeledger.constants import CSV_COLUMNS
from tradeledger.export import trades_frame, trades_to_csv

from tests.factories import make_trade
from tests.workbooks import mt5_bytes


def test_csv_has_fixed_columns_and_formats() -> None:
    report = analyze_bytes(mt5_bytes(), "mt5.xlsx")
    text = trades_to_csv(report.trades)
    rows = list(csv.reader(io.StringIO(text)))

    assert rows[0] == [
        "Time", "Deal", "Symbol", "Type", "Direction", "Volume", "Price",
        "Order", "Commission", "Swap", "Profit", "Balance", "Comment",
    ]
    assert len(rows) == 1 + len(report.trades)
    closing = rows[3]
    assert closing[0] == "01/03/2024 12:00:00"
    assert closing[1] == "3"
    assert closing[8] == "-2.00"
    assert closing[10] == "100.00"
    assert closing[11] == "10100.00"


def test_missing_money_renders_as_zero(tmp_path: Path) -> None:
    trade = make_trade(when=datetime(2024, 5, 6, 7, 8, 9), profit=None, balance=None)
    frame = trades_frame([trade])
    assert list(frame.columns) == CSV_COLUMNS
    assert frame.loc[0, "Profit"] == "0.00"
    assert frame.loc[0, "Balance"] == "0.00"

    target = tmp_path / "out.csv"
    assert trades_to_csv([trade], str(target)) is None
    assert target.read_text().splitlines()[1].startswith("05/06/2024 07:08:09,1,EURUSD")


def test_empty_ledger_writes_header_only() -> None:
    assert trades_to_csv([]).strip() == ",".join(CSV_COLUMNS)
