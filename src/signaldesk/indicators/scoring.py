"""Weighted-rule scoring that turns an indicator snapshot into a trading signal.

Rules are evaluated in a fixed order and each adds a fixed delta:

    RSI < 30                       +2    "RSI oversold"
    RSI > 70                       -2    "RSI overbought"
    histogram > 0, macd > signal   +1.5  "MACD bullish"
    histogram < 0, macd < signal   -1.5  "MACD bearish"
    price < lower band             +1    "near lower band"
    price > upper band             -1    "near upper band"
    sma20 > sma50 > sma200         +1    "bullish MA alignment"
    sma20 < sma50 < sma200         -1    "bearish MA alignment"
    volatility > 5%                x0.8  "high volatility regime"

The volatility dampener is applied after all additive rules. Score > 2 is a
buy, score < -2 a sell, anything else a hold; confidence is |score| / 5
capped at 1.
"""

from datetime import datetime

from signaldesk.indicators.models import Indicators, SignalAction, TradingSignal

RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0
HIGH_VOLATILITY_PCT = 5.0
VOLATILITY_DAMPENER = 0.8
BUY_THRESHOLD = 2.0
SELL_THRESHOLD = -2.0
CONFIDENCE_SCALE = 5.0


def score_indicators(indicators: Indicators, price: float) -> tuple[float, list[str]]:
    """Return (score, triggered rule tags in evaluation order)."""
    score = 0.0
    reasons: list[str] = []

    if indicators.rsi < RSI_OVERSOLD:
        score += 2
        reasons.append("RSI oversold")
    elif indicators.rsi > RSI_OVERBOUGHT:
        score -= 2
        reasons.append("RSI overbought")

    macd = indicators.macd
    if macd.histogram > 0 and macd.macd > macd.signal:
        score += 1.5
        reasons.append("MACD bullish")
    elif macd.histogram < 0 and macd.macd < macd.signal:
        score -= 1.5
        reasons.append("MACD bearish")

    if price < indicators.bollinger.lower:
        score += 1
        reasons.append("near lower band")
    elif price > indicators.bollinger.upper:
        score -= 1
        reasons.append("near upper band")

    sma = indicators.sma
    if sma.sma20 > sma.sma50 > sma.sma200:
        score += 1
        reasons.append("bullish MA alignment")
    elif sma.sma20 < sma.sma50 < sma.sma200:
        score -= 1
        reasons.append("bearish MA alignment")

    if indicators.volatility > HIGH_VOLATILITY_PCT:
        score *= VOLATILITY_DAMPENER
        reasons.append("high volatility regime")

    return score, reasons


def classify_score(score: float) -> SignalAction:
    if score > BUY_THRESHOLD:
        return SignalAction.BUY
    if score < SELL_THRESHOLD:
        return SignalAction.SELL
    return SignalAction.HOLD


def build_signal(
    indicators: Indicators,
    price: float,
    max_position_size: float,
    timestamp: datetime,
) -> TradingSignal:
    """Score a snapshot and size the suggested position by confidence."""
    score, reasons = score_indicators(indicators, price)
    confidence = min(abs(score) / CONFIDENCE_SCALE, 1.0)
    return TradingSignal(
        action=classify_score(score),
        confidence=confidence,
        price=price,
        quantity=max_position_size * confidence,
        reasoning=", ".join(reasons),
        score=score,
        triggered_rules=tuple(reasons),
        timestamp=timestamp,
    )
