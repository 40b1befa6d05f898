from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class TradeOut(BaseModel):
    open_time: datetime
    deal_id: str
    order: str
    symbol: str
    type: str
    direction: str
    side: Optional[str] = None
    volume_lots: float
    price_open: float
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    commission: float = 0.0
    swap: float = 0.0
    profit: Optional[float] = None
    balance: Optional[float] = None
    comment: str = ""
    row_index: int = -1
    time_fallback: bool = False


class EquityPointOut(BaseModel):
    timestamp: datetime
    balance: float


class AggregateGroupOut(BaseModel):
    key: str
    trade_count: int
    win_count: int
    total_profit: float
    total_volume: float
    win_rate: float
    start_balance: Optional[float] = None
    end_balance: Optional[float] = None
    return_pct: Optional[float] = None


class DrawdownPeriodOut(BaseModel):
    start: datetime
    end: datetime
    amount: float
    amount_pct: float


class ReportMetadata(BaseModel):
    report_id: str
    filename: str
    source: str
    format: Optional[str] = None
    low_confidence: bool = False
    trade_count: int = 0
    created_at: datetime


class ReportDetail(ReportMetadata):
    initial_balance: float
    summary: Dict[str, Union[float, int, str]] = Field(default_factory=dict)
    trades: List[TradeOut] = Field(default_factory=list)
    equity_series: List[EquityPointOut] = Field(default_factory=list)
    monthly: List[AggregateGroupOut] = Field(default_factory=list)
    by_symbol: List[AggregateGroupOut] = Field(default_factory=list)
    by_weekday: List[AggregateGroupOut] = Field(default_factory=list)
    by_hour: List[AggregateGroupOut] = Field(default_factory=list)
    drawdown_periods: List[DrawdownPeriodOut] = Field(default_factory=list)


class UploadOutcome(BaseModel):
    filename: str
    ok: bool
    status_code: int = 200
    report: Optional[ReportMetadata] = None
    error: Optional[str] = None


class UploadResponse(BaseModel):
    results: List[UploadOutcome]
    message: str = "processed"


def detail_payload(meta: ReportMetadata, report_dict: Dict[str, Any]) -> ReportDetail:
    data = dict(report_dict)
    data.update(meta.model_dump())
    return ReportDetail(**data)
