# tradeledger/models.py

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Mapping, Optional

from .constants import BALANCE_TYPE

Source = Literal["MT4", "MT5", "TradingView"]
Direction = Literal["in", "out", ""]
Side = Literal["long", "short"]


class SourceFormat(str, Enum):
    MT5_DEALS = "MT5_DEALS"
    MT4_DEALS = "MT4_DEALS"
    TRADINGVIEW_LIST = "TRADINGVIEW_LIST"
    UNSTRUCTURED_FALLBACK = "UNSTRUCTURED_FALLBACK"


@dataclass(frozen=True)
class DetectedFormat:
    kind: SourceFormat
    source: Source
    sheet_name: str
    header_row: int | None = None


@dataclass(frozen=True)
class Trade:
    """One row of the canonical ledger (a deal leg or a TradingView entry/exit)."""

    open_time: datetime
    deal_id: str
    order: str
    symbol: str
    type: str
    direction: Direction
    side: Optional[Side]
    volume_lots: float
    price_open: float
    stop_loss: Optional[float]
    take_profit: Optional[float]
    commission: float
    swap: float
    profit: Optional[float]
    balance: Optional[float]
    comment: str
    row_index: int = -1
    time_fallback: bool = False

    @property
    def is_balance(self) -> bool:
        return self.type.strip().lower() in (BALANCE_TYPE, "")

    @property
    def is_closed(self) -> bool:
        return self.direction == "out" and not self.is_balance

    @property
    def realized(self) -> float:
        return float(self.profit or 0.0)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["open_time"] = self.open_time.isoformat()
        return data


@dataclass(frozen=True)
class EquityPoint:
    timestamp: datetime
    balance: float

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp.isoformat(), "balance": self.balance}


@dataclass(frozen=True)
class EquityCurve:
    initial_balance: float
    points: tuple[EquityPoint, ...]
    synthesized: bool

    @property
    def final_balance(self) -> float:
        return self.points[-1].balance if self.points else self.initial_balance

    def path(self) -> list[float]:
        """Balance sequence used for drawdown and returns.

        The initial balance is prepended unless the first point already sits on it
        (e.g. an MT5 deposit row).
        """
        values = [p.balance for p in self.points]
        if not values or values[0] != self.initial_balance:
            values.insert(0, self.initial_balance)
        return values


@dataclass(frozen=True)
class DrawdownStats:
    max_drawdown: float = 0.0
    max_drawdown_pct: float = 0.0
    peak_at_trough: float = 0.0
    trough_index: int | None = None
    final_peak: float = 0.0


@dataclass(frozen=True)
class DrawdownPeriod:
    start: datetime
    end: datetime
    amount: float
    amount_pct: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "amount": self.amount,
            "amount_pct": self.amount_pct,
        }


@dataclass(frozen=True)
class AggregateGroup:
    key: str
    trade_count: int
    win_count: int
    total_profit: float
    total_volume: float
    # balance at the start and end of the period (monthly groups only)
    start_balance: Optional[float] = None
    end_balance: Optional[float] = None

    @property
    def win_rate(self) -> float:
        return (self.win_count / self.trade_count * 100.0) if self.trade_count else 0.0

    @property
    def return_pct(self) -> Optional[float]:
        if self.start_balance is None or self.end_balance is None:
            return None
        if self.start_balance <= 0:
            return 0.0
        return (self.end_balance - self.start_balance) / self.start_balance * 100.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["win_rate"] = self.win_rate
        data["return_pct"] = self.return_pct
        return data


@dataclass(frozen=True)
class ParsedReport:
    source: Source
    trades: tuple[Trade, ...]
    equity_series: tuple[EquityPoint, ...]
    summary: Mapping[str, Any]
    monthly: tuple[AggregateGroup, ...]
    by_symbol: tuple[AggregateGroup, ...]
    filename: str = ""
    detected: DetectedFormat | None = None
    low_confidence: bool = False
    initial_balance: float = 0.0
    by_weekday: tuple[AggregateGroup, ...] = field(default_factory=tuple)
    by_hour: tuple[AggregateGroup, ...] = field(default_factory=tuple)
    drawdown_periods: tuple[DrawdownPeriod, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "filename": self.filename,
            "format": self.detected.kind.value if self.detected else None,
            "low_confidence": self.low_confidence,
            "initial_balance": self.initial_balance,
            "summary": dict(self.summary),
            "trades": [t.to_dict() for t in self.trades],
            "equity_series": [p.to_dict() for p in self.equity_series],
            "monthly": [g.to_dict() for g in self.monthly],
            "by_symbol": [g.to_dict() for g in self.by_symbol],
            "by_weekday": [g.to_dict() for g in self.by_weekday],
            "by_hour": [g.to_dict() for g in self.by_hour],
            "drawdown_periods": [d.to_dict() for d in self.drawdown_periods],
        }
