import asyncio
import logging
import signal
import threading
from typing import Optional

from solders.keypair import Keypair

from .accounts import SettlementAccounts
from .config import Settings, load_settings
from .exchange import OrderSubmitter
from .ledger import Ledger, RpcLedger
from .loader import MarketAddressCache, MarketLoader
from .log import setup_logging
from .resolver import MarketResolver
from .stats import Stats
from .strategy import TradingCycle
from .utils import lamports_to_sol
from .wallet import load_keypair

logger = logging.getLogger(__name__)


def build_bot(cfg: Settings, ledger: Ledger, owner: Keypair, stats: Optional[Stats] = None,
              stop: Optional[asyncio.Event] = None) -> TradingCycle:
    resolver = MarketResolver(ledger, cfg.PROGRAM_ID, cfg.PROBE_SIZES, cfg.PROBE_CAP)
    cache = MarketAddressCache(cfg.MARKET_ADDRESS)
    loader = MarketLoader(ledger, resolver, cache, cfg.BASE_MINT, cfg.QUOTE_MINT)
    accounts = SettlementAccounts(ledger, owner)
    submitter = OrderSubmitter(ledger, owner, accounts, cfg.PROGRAM_ID,
                               open_orders=cfg.OPEN_ORDERS_ACCOUNT, ttl_sec=cfg.ORDER_TTL_SEC)
    return TradingCycle(loader, submitter, cfg, stop=stop, stats=stats)


async def _watch_flag(flag: threading.Event, stop: asyncio.Event, poll: float = 0.5):
    while not flag.is_set():
        await asyncio.sleep(poll)
    stop.set()


def _install_signal_handlers(stop: asyncio.Event):
    loop = asyncio.get_running_loop()

    def _shutdown():
        logger.info("shutting down bot...")
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _shutdown)
        except NotImplementedError:
            # Windows event loops: fall back to the default KeyboardInterrupt
            pass


async def start_bot(cfg: Settings, stats: Optional[Stats] = None, stop_flag: Optional[threading.Event] = None,
                    install_signals: bool = True):
    owner = load_keypair(cfg)
    ledger = RpcLedger(cfg.RPC_URL, cfg.COMMITMENT)
    stop = asyncio.Event()
    watcher = None
    try:
        logger.info("wallet address: %s", owner.pubkey())
        try:
            lamports = await ledger.get_balance(owner.pubkey())
        except Exception as e:
            logger.error("error checking wallet balance: %s", e)
            return
        logger.info("wallet SOL balance: %s", lamports_to_sol(lamports))

        if install_signals:
            _install_signal_handlers(stop)
        if stop_flag is not None:
            watcher = asyncio.create_task(_watch_flag(stop_flag, stop))

        bot = build_bot(cfg, ledger, owner, stats=stats, stop=stop)
        await bot.run()
    finally:
        if watcher is not None:
            watcher.cancel()
        await ledger.close()


def run_bot(stats: Optional[Stats] = None, stop_flag: Optional[threading.Event] = None,
            install_signals: bool = True):
    cfg = load_settings()
    setup_logging(cfg.LOG_LEVEL)
    asyncio.run(start_bot(cfg, stats=stats, stop_flag=stop_flag, install_signals=install_signals))


def main():
    run_bot()


if __name__ == "__main__":
    main()
