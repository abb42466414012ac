"""Indicator and signal data models.

Prices here are floats: the engine works on samples already parsed from the
venue's string fields at the point of ingestion.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class SignalAction(str, Enum):
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


@dataclass(frozen=True)
class PriceSample:
    price: float
    volume: float


@dataclass(frozen=True)
class MACD:
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float


@dataclass(frozen=True)
class MovingAverages:
    sma20: float
    sma50: float
    sma200: float


@dataclass(frozen=True)
class Indicators:
    """Snapshot of all indicators, a pure function of the price history."""

    rsi: float
    macd: MACD
    bollinger: BollingerBands
    sma: MovingAverages
    volume: float
    volatility: float  # percent

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TradingSignal:
    """Scored trading decision derived from one Indicators snapshot.

    ``triggered_rules`` lists rule tags in evaluation order; ``reasoning`` is
    the same list comma-joined. ``score`` is the final score after the
    volatility dampener.
    """

    action: SignalAction
    confidence: float
    price: float
    quantity: float
    reasoning: str
    score: float
    triggered_rules: tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "confidence": self.confidence,
            "price": self.price,
            "quantity": self.quantity,
            "reasoning": self.reasoning,
            "score": self.score,
            "triggered_rules": list(self.triggered_rules),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class PricePrediction:
    prediction: float
    confidence: float
    horizon: int


@dataclass(frozen=True)
class BacktestTrade:
    """One closed long round-trip during a replay."""

    entry_index: int
    exit_index: int
    entry_price: float
    exit_price: float
    exit_reason: str  # "signal", "stop_loss", "take_profit" or "end_of_data"

    @property
    def return_pct(self) -> float:
        """Fractional return of the trade, e.g. 0.03 for +3%."""
        if self.entry_price == 0:
            return 0.0
        return self.exit_price / self.entry_price - 1


@dataclass(frozen=True)
class BacktestResult:
    total_return: float
    sharpe_ratio: float | None
    max_drawdown: float
    win_rate: float
    trades: int
    closed_trades: tuple[BacktestTrade, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
