import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from .config import Settings
from .exchange import OrderSubmitter, Side
from .loader import MarketLoader
from .stats import Stats

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class TradingCycle:
    """
    Perpetual BUY -> pause -> SELL -> pause loop.

    Each phase gets up to `cfg.RETRIES` attempts of load + submit. A phase
    that exhausts its attempts is logged and abandoned; the loop carries on.
    Setting `stop` ends the loop at its next suspension point; an order
    already being confirmed is left to finish.
    """

    def __init__(
        self,
        loader: MarketLoader,
        submitter: OrderSubmitter,
        cfg: Settings,
        sleep: Sleep = asyncio.sleep,
        stop: Optional[asyncio.Event] = None,
        stats: Optional[Stats] = None,
    ):
        self.loader = loader
        self.submitter = submitter
        self.cfg = cfg
        self._sleep = sleep
        self.stop = stop or asyncio.Event()
        self.stats = stats or Stats()

    async def run_phase(self, side: Side, price: Decimal, size: Decimal) -> Optional[str]:
        retries = self.cfg.RETRIES
        logger.info("attempting %s", str(side).upper())
        for attempt in range(1, retries + 1):
            if self.stop.is_set():
                return None
            try:
                market = await self.loader.load()
                sig = await self.submitter.place_limit_order(market, side, price, size)
            except Exception as e:
                self.stats.failed_attempts += 1
                logger.error("[Retry %d/%d] %s error: %s", attempt, retries, side, e)
                continue
            self.stats.record_success(str(side), sig)
            logger.info("%s order sent: %s", side, sig)
            return sig

        self.stats.abandoned_phases += 1
        self.stats.last_action = f"{str(side).upper()} abandoned after {retries} attempts"
        logger.error("all %s retries failed", side)
        return None

    async def pause(self, seconds: float):
        """Sleep via the injected timer; returns early once `stop` is set."""
        if self.stop.is_set():
            return
        sleeper = asyncio.ensure_future(self._sleep(seconds))
        stopper = asyncio.ensure_future(self.stop.wait())
        try:
            await asyncio.wait({sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED)
            if sleeper.done():
                sleeper.result()
        finally:
            for t in (sleeper, stopper):
                if not t.done():
                    t.cancel()

    async def run_cycle(self):
        self.stats.cycles += 1
        logger.info("cycle %d", self.stats.cycles)
        await self.run_phase(Side.BUY, self.cfg.BUY_PRICE, self.cfg.SIZE)
        await self.pause(self.cfg.CYCLE_DELAY_SEC)
        if self.stop.is_set():
            return
        await self.run_phase(Side.SELL, self.cfg.SELL_PRICE, self.cfg.SIZE)
        await self.pause(self.cfg.CYCLE_DELAY_SEC)

    async def run(self, max_cycles: Optional[int] = None):
        done = 0
        while not self.stop.is_set():
            if max_cycles is not None and done >= max_cycles:
                break
            await self.run_cycle()
            done += 1
        logger.info("trading loop stopped after %d cycle(s)", self.stats.cycles)
