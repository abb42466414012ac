"""Signal poller -- feeds ticker samples from the OKX client into the engine.

Uses REST polling at a fixed interval (10s by default). Each poll fetches one
ticker, appends one sample, and caches the resulting indicator snapshot and
signal for readers such as the dashboard. This loop is the engine's only
writer.
"""

import asyncio
import time
from dataclasses import dataclass

import structlog

from signaldesk.exceptions import DeskError
from signaldesk.exchange.okx_client import OkxClient
from signaldesk.exchange.types import MarketTick
from signaldesk.indicators.engine import IndicatorEngine
from signaldesk.indicators.models import Indicators, TradingSignal
from signaldesk.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PollResult:
    """Outputs of one successful poll."""

    tick: MarketTick
    indicators: Indicators
    signal: TradingSignal
    polled_at: float


class SignalPoller:
    """Polls one instrument and keeps the latest indicators and signal.

    Failed polls are logged and skipped; the next attempt happens at the next
    scheduled interval, never sooner.
    """

    def __init__(
        self,
        client: OkxClient,
        engine: IndicatorEngine,
        inst_id: str = "BTC-USDT",
        poll_interval: float = 10.0,
    ) -> None:
        self._client = client
        self._engine = engine
        self._inst_id = inst_id
        self._poll_interval = poll_interval
        self._latest: PollResult | None = None
        self._last_error: str | None = None
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def inst_id(self) -> str:
        return self._inst_id

    @property
    def engine(self) -> IndicatorEngine:
        return self._engine

    @property
    def latest(self) -> PollResult | None:
        return self._latest

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Begin polling in the background."""
        if self._running:
            logger.warning("signal_poller_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(
            "signal_poller_started",
            inst_id=self._inst_id,
            poll_interval=self._poll_interval,
        )

    async def stop(self) -> None:
        """Stop polling gracefully."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("signal_poller_stopped")

    async def _poll_loop(self) -> None:
        structlog.contextvars.bind_contextvars(inst_id=self._inst_id)
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except DeskError as exc:
                self._last_error = exc.reason
                logger.warning(
                    "signal_poll_failed",
                    category=exc.category.value,
                    reason=exc.reason,
                )
            except Exception:
                self._last_error = "unexpected error while polling"
                logger.warning("signal_poll_error", exc_info=True)
            if self._running:
                await asyncio.sleep(self._poll_interval)

    async def poll_once(self) -> PollResult:
        """Fetch one tick, append it, and recompute indicators and signal.

        ``last`` and ``vol24h`` arrive as strings and are parsed here, at the
        point of numeric use.

        Raises:
            DeskError: Any client failure (the history is left unchanged).
            ValueError: The ticker carried a non-numeric price or volume.
        """
        tick = await self._client.get_market_data(self._inst_id)
        price = float(tick["last"])
        volume = float(tick.get("vol24h") or 0)

        self._engine.add_sample(price, volume)
        result = PollResult(
            tick=tick,
            indicators=self._engine.snapshot(),
            signal=self._engine.generate_signal(),
            polled_at=time.time(),
        )
        self._latest = result
        self._last_error = None

        logger.info(
            "signal_updated",
            price=price,
            action=result.signal.action.value,
            confidence=round(result.signal.confidence, 3),
            samples=len(self._engine),
        )
        return result
