import logging
from typing import Callable, List, Sequence

from solders.pubkey import Pubkey

from .errors import MarketDecodeError, MarketNotFound
from .ledger import KeyedAccount, Ledger
from .market import Market, decode_market

logger = logging.getLogger(__name__)

Decoder = Callable[[Pubkey, bytes], Market]


class MarketResolver:
    """
    Find a market for a mint pair without knowing its address.

    Candidates come from size-filtered program-account scans, one per size
    in `probe_sizes`, concatenated in that order. If every sized scan is
    empty, a single unfiltered scan is used instead. At most `probe_cap`
    candidates are decoded; the first one whose mints match the pair (in
    either orientation) wins.
    """

    def __init__(
        self,
        ledger: Ledger,
        program_id: Pubkey,
        probe_sizes: Sequence[int],
        probe_cap: int = 20,
        decoder: Decoder = decode_market,
    ):
        if probe_cap < 1:
            raise ValueError("probe_cap must be >= 1")
        self.ledger = ledger
        self.program_id = program_id
        self.probe_sizes = tuple(probe_sizes)
        self.probe_cap = probe_cap
        self.decoder = decoder

    async def candidates(self) -> List[KeyedAccount]:
        found: List[KeyedAccount] = []
        for size in self.probe_sizes:
            try:
                accounts = await self.ledger.scan_program_accounts(self.program_id, data_size=size)
            except Exception as e:
                logger.warning("scan for size %d failed: %s", size, e)
                continue
            logger.info("found %d accounts with size %d", len(accounts), size)
            found.extend(accounts)

        if not found:
            logger.info("no sized matches, falling back to a full program scan")
            found = await self.ledger.scan_program_accounts(self.program_id)
        return found

    async def resolve(self, base_mint: Pubkey, quote_mint: Pubkey) -> Pubkey:
        accounts = await self.candidates()
        total = len(accounts)
        limit = min(total, self.probe_cap)
        logger.info("total potential markets found: %d (checking %d)", total, limit)

        for i, (address, raw) in enumerate(accounts[:limit], start=1):
            logger.debug("checking account %d/%d: %s (%d bytes)", i, limit, address, len(raw))
            try:
                market = self.decoder(address, raw)
            except MarketDecodeError as e:
                logger.debug("  not a market: %s", e)
                continue

            logger.info("  market %s: base=%s quote=%s", address, market.base_mint, market.quote_mint)
            if market.matches_pair(base_mint, quote_mint):
                logger.info("  matched %s/%s at %s", base_mint, quote_mint, address)
                return address

        raise MarketNotFound(
            f"{base_mint}/{quote_mint} market not found in first {limit} of {total} accounts; "
            f"set MARKET_ADDRESS to skip discovery"
        )
