"""Technical indicator calculations over an ordered price sequence.

All functions take prices oldest-first and never raise on short input:
each one documents the fallback it returns when the history is too short.
"""

import math
from collections.abc import Sequence

from signaldesk.indicators.models import MACD, BollingerBands

#: MACD signal line as a fixed fraction of the MACD line (not an EMA(9)).
MACD_SIGNAL_RATIO = 0.8


def _latest(prices: Sequence[float]) -> float:
    return prices[-1] if prices else 0.0


def _population_std(values: Sequence[float]) -> float:
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def compute_rsi(prices: Sequence[float], period: int = 14) -> float:
    """Relative Strength Index from simple averages of the last ``period`` changes.

    Gains and losses are taken over all consecutive differences; only the
    last ``period`` of each are averaged.

    Returns:
        50.0 with fewer than ``period + 1`` prices, 100.0 when the average
        loss is exactly zero, otherwise ``100 - 100 / (1 + avg_gain/avg_loss)``.
    """
    if len(prices) < period + 1:
        return 50.0

    gains: list[float] = []
    losses: list[float] = []
    for prev, curr in zip(prices, prices[1:]):
        change = curr - prev
        gains.append(change if change > 0 else 0.0)
        losses.append(-change if change < 0 else 0.0)

    avg_gain = sum(gains[-period:]) / period
    avg_loss = sum(losses[-period:]) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def compute_ema(prices: Sequence[float], period: int) -> float:
    """Latest Exponential Moving Average value.

    Seeded with the simple average of the first ``period`` prices, then
    smoothed with ``alpha = 2 / (period + 1)`` over every later price.

    Returns the latest price (0.0 if empty) when fewer than ``period`` prices.
    """
    if len(prices) < period:
        return _latest(prices)

    multiplier = 2 / (period + 1)
    ema = sum(prices[:period]) / period
    for price in prices[period:]:
        ema = price * multiplier + ema * (1 - multiplier)
    return ema


def compute_macd(prices: Sequence[float]) -> MACD:
    """MACD line ``EMA(12) - EMA(26)`` with a fixed-ratio signal line.

    signal = macd * 0.8, histogram = macd - signal. All zeros below 26 prices.
    """
    if len(prices) < 26:
        return MACD(macd=0.0, signal=0.0, histogram=0.0)

    macd = compute_ema(prices, 12) - compute_ema(prices, 26)
    signal = macd * MACD_SIGNAL_RATIO
    return MACD(macd=macd, signal=signal, histogram=macd - signal)


def compute_sma(prices: Sequence[float], period: int) -> float:
    """Arithmetic mean of the last ``period`` prices.

    Returns the latest price (0.0 if empty) when fewer than ``period`` prices.
    """
    if len(prices) < period:
        return _latest(prices)
    return sum(prices[-period:]) / period


def compute_bollinger_bands(
    prices: Sequence[float], period: int = 20, k: float = 2.0
) -> BollingerBands:
    """SMA(period) +/- k population standard deviations of the last ``period`` prices.

    With fewer than ``period`` prices all three bands equal the latest price.
    """
    if len(prices) < period:
        price = _latest(prices)
        return BollingerBands(upper=price, middle=price, lower=price)

    middle = compute_sma(prices, period)
    recent = prices[-period:]
    variance = sum((p - middle) ** 2 for p in recent) / period
    band = k * math.sqrt(variance)
    return BollingerBands(upper=middle + band, middle=middle, lower=middle - band)


def compute_volatility(prices: Sequence[float], min_samples: int = 20) -> float:
    """Population standard deviation of simple returns, as a percentage.

    Returns are taken over the whole sequence. A zero previous price
    contributes a zero return. Returns 0.0 with fewer than ``min_samples``.
    """
    if len(prices) < min_samples:
        return 0.0

    returns = [
        (curr - prev) / prev if prev != 0 else 0.0
        for prev, curr in zip(prices, prices[1:])
    ]
    return _population_std(returns) * 100
