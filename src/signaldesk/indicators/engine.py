"""Indicator engine: bounded price/volume history plus indicators and signals.

The engine owns the only mutable state (the history and its ModelConfig);
every indicator is recomputed from scratch on each call, so a snapshot is
always a pure function of the current history.

Samples must be appended from a single writer. The trim step in
``add_sample`` is not safe under concurrent writers; concurrent producers
should funnel samples through one queue consumer.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from typing import Any

from signaldesk.config import ModelConfig
from signaldesk.indicators.calculations import (
    compute_bollinger_bands,
    compute_ema,
    compute_macd,
    compute_rsi,
    compute_sma,
    compute_volatility,
)
from signaldesk.indicators.models import (
    MACD,
    BacktestResult,
    BollingerBands,
    Indicators,
    MovingAverages,
    PricePrediction,
    PriceSample,
    TradingSignal,
)
from signaldesk.indicators.scoring import build_signal
from signaldesk.logging import get_logger

logger = get_logger(__name__)

#: Minimum history for a trend-based price prediction.
PREDICTION_WINDOW = 10


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IndicatorEngine:
    """Rolling price history with RSI, MACD, Bollinger, SMA and volatility.

    Insufficient history never raises; each indicator falls back to a
    documented neutral value (see ``signaldesk.indicators.calculations``).

    Args:
        config: Model parameters. Defaults to ModelConfig().
        clock: Timestamp source for generated signals.
    """

    def __init__(
        self,
        config: ModelConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._config = config or ModelConfig()
        self._clock = clock
        self._prices: list[float] = []
        self._volumes: list[float] = []

    # ---- config ----

    @property
    def config(self) -> ModelConfig:
        return self._config

    def update_config(self, **changes: Any) -> ModelConfig:
        """Merge ``changes`` into the config and return the new config.

        A smaller lookback takes effect on the next ``add_sample``.
        """
        self._config = self._config.merged(**changes)
        logger.info("model_config_updated", **self._config.to_dict())
        return self._config

    # ---- history ----

    def add_sample(self, price: float, volume: float) -> None:
        """Append one sample.

        Once the history exceeds ``2 * lookback`` it is cut back to the most
        recent ``lookback`` samples.
        """
        self._prices.append(price)
        self._volumes.append(volume)

        lookback = self._config.lookback
        if len(self._prices) > lookback * 2:
            self._prices = self._prices[-lookback:]
            self._volumes = self._volumes[-lookback:]
            logger.debug("price_history_truncated", kept=lookback)

    def extend(self, samples: Iterable[PriceSample]) -> None:
        for sample in samples:
            self.add_sample(sample.price, sample.volume)

    def clear(self) -> None:
        self._prices.clear()
        self._volumes.clear()

    @property
    def prices(self) -> tuple[float, ...]:
        return tuple(self._prices)

    @property
    def volumes(self) -> tuple[float, ...]:
        return tuple(self._volumes)

    @property
    def samples(self) -> list[PriceSample]:
        return [PriceSample(p, v) for p, v in zip(self._prices, self._volumes)]

    def __len__(self) -> int:
        return len(self._prices)

    @property
    def latest_price(self) -> float:
        return self._prices[-1] if self._prices else 0.0

    @property
    def latest_volume(self) -> float:
        return self._volumes[-1] if self._volumes else 0.0

    # ---- indicators ----

    def rsi(self, period: int = 14) -> float:
        return compute_rsi(self._prices, period)

    def ema(self, period: int) -> float:
        return compute_ema(self._prices, period)

    def macd(self) -> MACD:
        return compute_macd(self._prices)

    def sma(self, period: int) -> float:
        return compute_sma(self._prices, period)

    def bollinger_bands(self, period: int = 20, k: float = 2.0) -> BollingerBands:
        return compute_bollinger_bands(self._prices, period, k)

    def volatility(self) -> float:
        return compute_volatility(self._prices)

    def snapshot(self) -> Indicators:
        return Indicators(
            rsi=self.rsi(),
            macd=self.macd(),
            bollinger=self.bollinger_bands(),
            sma=MovingAverages(
                sma20=self.sma(20),
                sma50=self.sma(50),
                sma200=self.sma(200),
            ),
            volume=self.latest_volume,
            volatility=self.volatility(),
        )

    def generate_signal(self) -> TradingSignal:
        """Score the current snapshot. Does not modify the history."""
        signal = build_signal(
            self.snapshot(),
            price=self.latest_price,
            max_position_size=self._config.max_position_size,
            timestamp=self._clock(),
        )
        logger.debug(
            "signal_generated",
            action=signal.action.value,
            score=round(signal.score, 4),
            confidence=round(signal.confidence, 4),
            reasoning=signal.reasoning,
        )
        return signal

    # ---- prediction / replay ----

    def predict_price(self, horizon: int | None = None) -> PricePrediction:
        """Linear trend extrapolation over the last 10 prices.

        trend = (p[-1] - p[-10]) / 10, prediction = latest + trend * horizon,
        confidence = max(0.3, 1 - 2 * volatility_fraction). With fewer than 10
        samples the latest price is returned with confidence 0.5.
        """
        horizon = self._config.prediction_horizon if horizon is None else horizon
        current = self.latest_price
        if len(self._prices) < PREDICTION_WINDOW:
            return PricePrediction(prediction=current, confidence=0.5, horizon=horizon)

        recent = self._prices[-PREDICTION_WINDOW:]
        trend = (recent[-1] - recent[0]) / len(recent)
        volatility = self.volatility() / 100
        return PricePrediction(
            prediction=current + trend * horizon,
            confidence=max(0.3, 1 - volatility * 2),
            horizon=horizon,
        )

    def backtest(self, samples: Sequence[PriceSample]) -> BacktestResult:
        """Replay ``samples`` through a fresh engine with this config.

        This engine's own history is not touched.
        """
        from signaldesk.indicators.backtest import run_backtest

        return run_backtest(samples, self._config)
