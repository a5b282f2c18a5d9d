"""
Shared fixtures: an in-memory ledger and market account factories.
"""
from typing import Dict, List, Optional, Tuple

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

from ob_bot.config import load_settings
from ob_bot.errors import SubmissionError
from ob_bot.market import Market, encode_market

PROGRAM_ID = Pubkey.from_string("opnb2LAfJYbRMAHHvqjCwQxanZn7ReEHp1k81EohpZb")
TOKEN_ACCOUNT_SIZE = 165


class FakeLedger:
    """Ledger double. Executes associated-token-account creation; records everything."""

    def __init__(self):
        self.accounts: Dict[Pubkey, Tuple[Pubkey, bytes]] = {}
        self.balances: Dict[Pubkey, int] = {}
        self.scan_calls: List[Optional[int]] = []
        self.get_calls: List[Pubkey] = []
        self.submitted: List[list] = []
        self.fail_submit: Optional[Exception] = None
        self.fail_scan_sizes: set = set()

    def add_account(self, address: Pubkey, owner: Pubkey, data: bytes):
        self.accounts[address] = (owner, data)

    async def scan_program_accounts(self, program_id, data_size=None):
        self.scan_calls.append(data_size)
        if data_size in self.fail_scan_sizes:
            raise RuntimeError(f"scan for {data_size} timed out")
        return [
            (addr, data)
            for addr, (owner, data) in self.accounts.items()
            if owner == program_id and (data_size is None or len(data) == data_size)
        ]

    async def get_account(self, address):
        self.get_calls.append(address)
        entry = self.accounts.get(address)
        return None if entry is None else entry[1]

    async def get_balance(self, address):
        return self.balances.get(address, 0)

    async def submit_and_confirm(self, instructions, signers):
        if self.fail_submit is not None:
            raise self.fail_submit
        self.submitted.append(list(instructions))
        for ix in instructions:
            if ix.program_id == ASSOCIATED_TOKEN_PROGRAM_ID:
                ata = ix.accounts[1].pubkey
                if ata in self.accounts:
                    raise SubmissionError(f"account {ata} already in use")
                self.add_account(ata, TOKEN_PROGRAM_ID, bytes(TOKEN_ACCOUNT_SIZE))
        return f"sig{len(self.submitted)}"


def make_market(
    base_mint: Pubkey,
    quote_mint: Pubkey,
    address: Optional[Pubkey] = None,
    **overrides,
) -> Market:
    fields = dict(
        address=address or Pubkey.new_unique(),
        base_mint=base_mint,
        quote_mint=quote_mint,
        base_decimals=9,
        quote_decimals=6,
        base_lot_size=1_000_000,
        quote_lot_size=1,
        bids=Pubkey.new_unique(),
        asks=Pubkey.new_unique(),
        event_heap=Pubkey.new_unique(),
        market_authority=Pubkey.new_unique(),
        market_base_vault=Pubkey.new_unique(),
        market_quote_vault=Pubkey.new_unique(),
        name="SOL-USDC",
    )
    fields.update(overrides)
    return Market(**fields)


def add_market(ledger: FakeLedger, market: Market, size: int = 848) -> Market:
    ledger.add_account(market.address, PROGRAM_ID, encode_market(market, size))
    return market


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def owner():
    return Keypair()


@pytest.fixture
def base_mint():
    return Pubkey.new_unique()


@pytest.fixture
def quote_mint():
    return Pubkey.new_unique()


@pytest.fixture
def settings(monkeypatch, owner, base_mint, quote_mint):
    monkeypatch.setenv("PRIVATE_KEY_BASE58", str(owner))
    monkeypatch.setenv("BASE_MINT", str(base_mint))
    monkeypatch.setenv("QUOTE_MINT", str(quote_mint))
    monkeypatch.setenv("PROGRAM_ID", str(PROGRAM_ID))
    monkeypatch.setenv("CYCLE_DELAY_SEC", "6")
    monkeypatch.setenv("RETRIES", "3")
    for name in ("MARKET_ADDRESS", "OPEN_ORDERS_ACCOUNT", "PROBE_SIZES", "PROBE_CAP",
                 "BUY_PRICE", "SELL_PRICE", "SIZE", "KEYPAIR_PATH", "RPC_URL", "CLUSTER", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return load_settings()
