# tradeledger/constants.py

from __future__ import annotations
import re

# Sheet / header hints used by the format detector
TRADINGVIEW_SHEET = "List of trades"
TRADINGVIEW_SHEET_HINTS = ["tradingview", "trading view"]
TRADINGVIEW_HEADER_HINTS = ["signal", "price usd", "cumulative profit"]
DEALS_MARKER = "Deals"

# MT4/5 deal table fields, in the order the exporter writes them
DEAL_FIELDS = [
    "Time", "Deal", "Symbol", "Type", "Direction", "Volume", "Price",
    "Order", "Commission", "Swap", "Profit", "Balance", "Comment",
]

# TradingView "List of trades" columns (exact header names)
TV_FIELDS = {
    "trade_no": "Trade #",
    "type": "Type",
    "signal": "Signal",
    "date_time": "Date/Time",
    "price": "Price USD",
    "contracts": "Contracts",
    "profit": "Profit USD",
    "cum_profit": "Cumulative profit USD",
}

# Fixed column order of the trades CSV export
CSV_COLUMNS = list(DEAL_FIELDS)

BALANCE_TYPE = "balance"
UNKNOWN_SYMBOL = "Unknown"

# Stop-loss / take-profit embedded in free-text comments ("sl 1.0850 tp 1.0920")
SL_RE = re.compile(r"sl (\d+\.?\d*)", re.IGNORECASE)
TP_RE = re.compile(r"tp (\d+\.?\d*)", re.IGNORECASE)

# Positional fallback layout (offsets relative to the deal id column)
FALLBACK_SYMBOL_OFFSET = 1
FALLBACK_TYPE_OFFSET = 2
FALLBACK_DIRECTION_OFFSET = 3
FALLBACK_VOLUME_OFFSET = 4
FALLBACK_PRICE_OFFSET = 5
FALLBACK_PROFIT_OFFSET = 9      # 8 when the row is short one column
FALLBACK_BALANCE_OFFSET = 10    # 9 when the row is short one column
FALLBACK_COMMENT_OFFSET = 11

# Metrics
DEFAULT_INITIAL_BALANCE = 10_000.0
TRADING_DAYS_PER_YEAR = 252
PROFIT_FACTOR_CAP = 100.0
MIN_TRADES_FOR_SCORE = 5
MIN_RETURNS_FOR_VAR = 10
MIN_RETURNS_FOR_TAIL = 20
MIN_RETURNS_FOR_AUTOCORR = 10
MIN_CAGR_DAYS = 1.0
VAR_CONFIDENCE = 0.95
DRAWDOWN_PERIOD_MIN_PCT = 5.0

# Trade quality score: (weight, scale) per component; component = min(value / scale * weight, weight)
SCORE_WEIGHTS = {
    "win_rate": (30.0, 100.0),
    "profit_factor": (30.0, 3.0),
    "recovery": (20.0, 2.0),
    "sharpe": (20.0, 2.0),
}

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
