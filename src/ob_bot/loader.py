import logging
from typing import Optional

from solders.pubkey import Pubkey

from .errors import MarketNotFound
from .ledger import Ledger
from .market import Market, decode_market
from .resolver import Decoder, MarketResolver

logger = logging.getLogger(__name__)


class MarketAddressCache:
    """Single write-once slot for the resolved market address.

    Never invalidated: if the market is retired or moved mid-run, the stale
    address stays in use until restart.
    """

    def __init__(self, address: Optional[Pubkey] = None):
        self._address = address

    @property
    def address(self) -> Optional[Pubkey]:
        return self._address

    def is_set(self) -> bool:
        return self._address is not None

    def set(self, address: Pubkey):
        if self._address is not None and self._address != address:
            raise RuntimeError(f"market address already cached as {self._address}")
        self._address = address


class MarketLoader:
    def __init__(
        self,
        ledger: Ledger,
        resolver: MarketResolver,
        cache: MarketAddressCache,
        base_mint: Pubkey,
        quote_mint: Pubkey,
        decoder: Decoder = decode_market,
    ):
        self.ledger = ledger
        self.resolver = resolver
        self.cache = cache
        self.base_mint = base_mint
        self.quote_mint = quote_mint
        self.decoder = decoder

    async def address(self) -> Pubkey:
        if not self.cache.is_set():
            logger.info("market address not set, searching for %s/%s", self.base_mint, self.quote_mint)
            self.cache.set(await self.resolver.resolve(self.base_mint, self.quote_mint))
        return self.cache.address

    async def load(self) -> Market:
        """Fetch and decode the market. Nothing from earlier loads is reused."""
        address = await self.address()
        raw = await self.ledger.get_account(address)
        if raw is None:
            raise MarketNotFound(f"market account {address} not found on chain")

        logger.debug("market account data length: %d", len(raw))
        market = self.decoder(address, raw)
        logger.info("market loaded: %s (%s)", address, market.pair)
        return market
