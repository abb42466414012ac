"""Deterministic long-only replay of the signal generator over a price series.

A position is opened on a ``buy`` signal while flat and closed on the first
of: a ``sell`` signal, the config's stop-loss, its take-profit, or the end of
the data. Each trade commits the full equity. There is no randomness, so the
same samples and config always produce the same result.
"""

import math
from collections.abc import Sequence

from signaldesk.config import ModelConfig
from signaldesk.indicators.engine import IndicatorEngine
from signaldesk.indicators.models import (
    BacktestResult,
    BacktestTrade,
    PriceSample,
    SignalAction,
)
from signaldesk.logging import get_logger

logger = get_logger(__name__)


def sharpe_ratio(returns: Sequence[float]) -> float | None:
    """Per-trade Sharpe: mean / sample std of trade returns (not annualized).

    Returns None with fewer than 2 returns or zero dispersion.
    """
    if len(returns) < 2:
        return None
    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / (len(returns) - 1)
    std_dev = math.sqrt(variance)
    if std_dev == 0:
        return None
    return mean / std_dev


def max_drawdown(equity_curve: Sequence[float]) -> float:
    """Largest peak-to-trough decline as a fraction of the peak (0.0 if none)."""
    peak = 0.0
    max_dd = 0.0
    for equity in equity_curve:
        peak = max(peak, equity)
        if peak > 0:
            max_dd = max(max_dd, (peak - equity) / peak)
    return max_dd


def win_rate(trades: Sequence[BacktestTrade]) -> float:
    """Share of trades with a positive return (0.0 with no trades)."""
    if not trades:
        return 0.0
    wins = sum(1 for t in trades if t.return_pct > 0)
    return wins / len(trades)


def run_backtest(samples: Sequence[PriceSample], config: ModelConfig) -> BacktestResult:
    """Replay ``samples`` oldest-first and report performance.

    Args:
        samples: Price/volume samples in arrival order.
        config: Lookback, stop-loss and take-profit come from here.

    Returns:
        BacktestResult with compounded total return, per-trade Sharpe,
        equity-curve max drawdown, win rate and the closed trades.
    """
    engine = IndicatorEngine(config)
    cash = 1.0
    entry_price: float | None = None
    entry_index = 0
    trades: list[BacktestTrade] = []
    equity_curve: list[float] = []

    def close(index: int, price: float, reason: str) -> None:
        nonlocal cash, entry_price
        assert entry_price is not None
        trade = BacktestTrade(
            entry_index=entry_index,
            exit_index=index,
            entry_price=entry_price,
            exit_price=price,
            exit_reason=reason,
        )
        trades.append(trade)
        cash *= 1 + trade.return_pct
        entry_price = None

    for index, sample in enumerate(samples):
        engine.add_sample(sample.price, sample.volume)

        if entry_price is None:
            if sample.price > 0 and engine.generate_signal().action is SignalAction.BUY:
                entry_price = sample.price
                entry_index = index
        elif sample.price <= entry_price * (1 - config.stop_loss):
            close(index, sample.price, "stop_loss")
        elif sample.price >= entry_price * (1 + config.take_profit):
            close(index, sample.price, "take_profit")
        elif engine.generate_signal().action is SignalAction.SELL:
            close(index, sample.price, "signal")

        if entry_price is not None:
            equity_curve.append(cash * sample.price / entry_price)
        else:
            equity_curve.append(cash)

    if entry_price is not None and samples:
        close(len(samples) - 1, samples[-1].price, "end_of_data")

    returns = [t.return_pct for t in trades]
    result = BacktestResult(
        total_return=cash - 1,
        sharpe_ratio=sharpe_ratio(returns),
        max_drawdown=max_drawdown(equity_curve),
        win_rate=win_rate(trades),
        trades=len(trades),
        closed_trades=tuple(trades),
    )
    logger.info(
        "backtest_complete",
        samples=len(samples),
        trades=result.trades,
        total_return=round(result.total_return, 6),
    )
    return result
