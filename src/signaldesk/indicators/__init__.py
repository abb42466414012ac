"""Technical indicators and the weighted-rule signal generator.

Pure calculations live in ``calculations``; ``IndicatorEngine`` binds them to
a bounded price/volume history, and ``scoring`` turns a snapshot into a
TradingSignal.
"""

from signaldesk.indicators.calculations import (
    compute_bollinger_bands,
    compute_ema,
    compute_macd,
    compute_rsi,
    compute_sma,
    compute_volatility,
)
from signaldesk.indicators.engine import IndicatorEngine
from signaldesk.indicators.models import (
    MACD,
    BacktestResult,
    BacktestTrade,
    BollingerBands,
    Indicators,
    MovingAverages,
    PricePrediction,
    PriceSample,
    SignalAction,
    TradingSignal,
)
from signaldesk.indicators.scoring import build_signal, classify_score, score_indicators

__all__ = [
    "MACD",
    "BacktestResult",
    "BacktestTrade",
    "BollingerBands",
    "IndicatorEngine",
    "Indicators",
    "MovingAverages",
    "PricePrediction",
    "PriceSample",
    "SignalAction",
    "TradingSignal",
    "build_signal",
    "classify_score",
    "compute_bollinger_bands",
    "compute_ema",
    "compute_macd",
    "compute_rsi",
    "compute_sma",
    "compute_volatility",
    "score_indicators",
]
