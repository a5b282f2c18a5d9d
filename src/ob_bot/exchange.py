import hashlib
import logging
import struct
import time
from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum
from typing import Optional

from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID

from .accounts import SettlementAccounts
from .ledger import Ledger
from .market import Market
from .utils import base_size_ui_to_lots, now_ms, price_ui_to_lots, quote_lots_with_fee

logger = logging.getLogger(__name__)

PLACE_ORDER_DISCRIMINATOR = hashlib.sha256(b"global:place_order").digest()[:8]
DEFAULT_ORDER_TTL_SEC = 60
# OpenBook v2 max matching iterations per order
DEFAULT_MATCH_LIMIT = 10


class Side(IntEnum):
    BUY = 0   # bid
    SELL = 1  # ask

    def __str__(self):
        return self.name.lower()


class OrderType(IntEnum):
    LIMIT = 0
    IMMEDIATE_OR_CANCEL = 1
    POST_ONLY = 2
    MARKET = 3
    POST_ONLY_SLIDE = 4


class SelfTradeBehavior(IntEnum):
    DECREMENT_TAKE = 0
    CANCEL_PROVIDE = 1
    ABORT_TRANSACTION = 2


@dataclass(frozen=True)
class OrderIntent:
    side: Side
    price: Decimal
    size: Decimal
    payer: Pubkey
    client_order_id: int
    expiry_timestamp: int
    order_type: OrderType = OrderType.LIMIT
    self_trade_behavior: SelfTradeBehavior = SelfTradeBehavior.DECREMENT_TAKE
    limit: int = DEFAULT_MATCH_LIMIT


def open_orders_address(owner: Pubkey, program_id: Pubkey, account_num: int = 1) -> Pubkey:
    pda, _ = Pubkey.find_program_address(
        [b"OpenOrders", bytes(owner), struct.pack("<I", account_num)], program_id
    )
    return pda


def encode_place_order_args(intent: OrderIntent, price_lots: int, max_base_lots: int,
                            max_quote_lots: int) -> bytes:
    return PLACE_ORDER_DISCRIMINATOR + struct.pack(
        "<BqqqQBQBB",
        int(intent.side),
        price_lots,
        max_base_lots,
        max_quote_lots,
        intent.client_order_id,
        int(intent.order_type),
        intent.expiry_timestamp,
        int(intent.self_trade_behavior),
        intent.limit,
    )


def build_place_order_ix(market: Market, intent: OrderIntent, owner: Pubkey, open_orders: Pubkey,
                         program_id: Pubkey) -> Instruction:
    price_lots = price_ui_to_lots(intent.price, market.base_decimals, market.quote_decimals,
                                  market.base_lot_size, market.quote_lot_size)
    base_lots = base_size_ui_to_lots(intent.size, market.base_decimals, market.base_lot_size)
    if price_lots <= 0:
        raise ValueError(f"price {intent.price} is below one tick on {market.address}")
    if base_lots <= 0:
        raise ValueError(f"size {intent.size} is below one base lot on {market.address}")
    quote_lots = quote_lots_with_fee(price_lots, base_lots, market.taker_fee)

    vault = market.market_quote_vault if intent.side == Side.BUY else market.market_base_vault
    # absent optional accounts are passed as the program id
    accounts = [
        AccountMeta(owner, is_signer=True, is_writable=False),
        AccountMeta(open_orders, is_signer=False, is_writable=True),
        AccountMeta(market.open_orders_admin or program_id, is_signer=False, is_writable=False),
        AccountMeta(intent.payer, is_signer=False, is_writable=True),
        AccountMeta(market.address, is_signer=False, is_writable=True),
        AccountMeta(market.bids, is_signer=False, is_writable=True),
        AccountMeta(market.asks, is_signer=False, is_writable=True),
        AccountMeta(market.event_heap, is_signer=False, is_writable=True),
        AccountMeta(vault, is_signer=False, is_writable=True),
        AccountMeta(market.oracle_a or program_id, is_signer=False, is_writable=False),
        AccountMeta(market.oracle_b or program_id, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    data = encode_place_order_args(intent, price_lots, base_lots, quote_lots)
    return Instruction(program_id, data, accounts)


class OrderSubmitter:
    def __init__(
        self,
        ledger: Ledger,
        owner: Keypair,
        accounts: SettlementAccounts,
        program_id: Pubkey,
        open_orders: Optional[Pubkey] = None,
        ttl_sec: int = DEFAULT_ORDER_TTL_SEC,
    ):
        self.ledger = ledger
        self.owner = owner
        self.accounts = accounts
        self.program_id = program_id
        self.open_orders = open_orders or open_orders_address(owner.pubkey(), program_id)
        self.ttl_sec = ttl_sec

    def make_intent(self, side: Side, price: Decimal, size: Decimal, payer: Pubkey) -> OrderIntent:
        """Fresh client order id and expiry on every call."""
        return OrderIntent(
            side=side,
            price=price,
            size=size,
            payer=payer,
            client_order_id=now_ms(),
            expiry_timestamp=int(time.time()) + self.ttl_sec,
        )

    async def place_limit_order(self, market: Market, side: Side, price: Decimal, size: Decimal) -> str:
        payer_mint = market.quote_mint if side == Side.BUY else market.base_mint
        payer = await self.accounts.get_or_create(payer_mint)

        intent = self.make_intent(side, price, size, payer)
        logger.info("placing %s order with payer %s: price=%s size=%s cid=%d",
                    side, payer, price, size, intent.client_order_id)
        ix = build_place_order_ix(market, intent, self.owner.pubkey(), self.open_orders, self.program_id)
        return await self.ledger.submit_and_confirm([ix], [self.owner])
