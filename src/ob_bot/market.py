import hashlib
import struct
from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from .errors import MarketDecodeError

# Anchor account discriminator for the OpenBook v2 `Market` account
MARKET_DISCRIMINATOR = hashlib.sha256(b"account:Market").digest()[:8]
MARKET_SIZE = 848

# ---------- Byte offsets (discriminator included) ----------
_OFF_BUMP = 8
_OFF_BASE_DECIMALS = 9
_OFF_QUOTE_DECIMALS = 10
_OFF_AUTHORITY = 16
_OFF_TIME_EXPIRY = 48
_OFF_OPEN_ORDERS_ADMIN = 88
_OFF_NAME = 184
_OFF_BIDS = 200
_OFF_ASKS = 232
_OFF_EVENT_HEAP = 264
_OFF_ORACLE_A = 296
_OFF_ORACLE_B = 328
_OFF_QUOTE_LOT_SIZE = 448
_OFF_BASE_LOT_SIZE = 456
_OFF_MAKER_FEE = 480
_OFF_TAKER_FEE = 488
_OFF_BASE_MINT = 576
_OFF_QUOTE_MINT = 608
_OFF_BASE_VAULT = 640
_OFF_QUOTE_VAULT = 680

_ZERO_KEY = bytes(32)


@dataclass(frozen=True)
class Market:
    address: Pubkey
    base_mint: Pubkey
    quote_mint: Pubkey
    base_decimals: int
    quote_decimals: int
    base_lot_size: int
    quote_lot_size: int
    bids: Pubkey
    asks: Pubkey
    event_heap: Pubkey
    market_authority: Pubkey
    market_base_vault: Pubkey
    market_quote_vault: Pubkey
    oracle_a: Optional[Pubkey] = None
    oracle_b: Optional[Pubkey] = None
    open_orders_admin: Optional[Pubkey] = None
    name: str = ""
    time_expiry: int = 0
    maker_fee: int = 0
    taker_fee: int = 0
    bump: int = 0

    def matches_pair(self, base_mint: Pubkey, quote_mint: Pubkey) -> bool:
        """True for (base, quote) in either orientation."""
        if self.base_mint == base_mint and self.quote_mint == quote_mint:
            return True
        return self.base_mint == quote_mint and self.quote_mint == base_mint

    @property
    def pair(self) -> str:
        return f"{self.base_mint}/{self.quote_mint}"


def _key(raw: bytes, off: int) -> Pubkey:
    return Pubkey.from_bytes(raw[off:off + 32])


def _opt_key(raw: bytes, off: int) -> Optional[Pubkey]:
    chunk = raw[off:off + 32]
    return None if chunk == _ZERO_KEY else Pubkey.from_bytes(chunk)


def _put_key(buf: bytearray, off: int, key: Optional[Pubkey]):
    buf[off:off + 32] = bytes(key) if key is not None else _ZERO_KEY


def decode_market(address: Pubkey, raw: bytes) -> Market:
    if raw is None or len(raw) < MARKET_SIZE:
        got = 0 if raw is None else len(raw)
        raise MarketDecodeError(f"account {address} too small for a market ({got} < {MARKET_SIZE} bytes)")
    if raw[:8] != MARKET_DISCRIMINATOR:
        raise MarketDecodeError(f"account {address} has no market discriminator")

    base_lot, = struct.unpack_from("<q", raw, _OFF_BASE_LOT_SIZE)
    quote_lot, = struct.unpack_from("<q", raw, _OFF_QUOTE_LOT_SIZE)
    if base_lot <= 0 or quote_lot <= 0:
        raise MarketDecodeError(f"account {address} has non-positive lot sizes ({base_lot}, {quote_lot})")

    time_expiry, = struct.unpack_from("<q", raw, _OFF_TIME_EXPIRY)
    maker_fee, taker_fee = struct.unpack_from("<qq", raw, _OFF_MAKER_FEE)
    name = raw[_OFF_NAME:_OFF_NAME + 16].rstrip(b"\x00").decode("utf-8", errors="replace")

    return Market(
        address=address,
        base_mint=_key(raw, _OFF_BASE_MINT),
        quote_mint=_key(raw, _OFF_QUOTE_MINT),
        base_decimals=raw[_OFF_BASE_DECIMALS],
        quote_decimals=raw[_OFF_QUOTE_DECIMALS],
        base_lot_size=base_lot,
        quote_lot_size=quote_lot,
        bids=_key(raw, _OFF_BIDS),
        asks=_key(raw, _OFF_ASKS),
        event_heap=_key(raw, _OFF_EVENT_HEAP),
        market_authority=_key(raw, _OFF_AUTHORITY),
        market_base_vault=_key(raw, _OFF_BASE_VAULT),
        market_quote_vault=_key(raw, _OFF_QUOTE_VAULT),
        oracle_a=_opt_key(raw, _OFF_ORACLE_A),
        oracle_b=_opt_key(raw, _OFF_ORACLE_B),
        open_orders_admin=_opt_key(raw, _OFF_OPEN_ORDERS_ADMIN),
        name=name,
        time_expiry=time_expiry,
        maker_fee=maker_fee,
        taker_fee=taker_fee,
        bump=raw[_OFF_BUMP],
    )


def encode_market(m: Market, size: int = MARKET_SIZE) -> bytes:
    """Serialize the fields `decode_market` reads. Unread regions stay zeroed."""
    if size < MARKET_SIZE:
        raise ValueError(f"size must be >= {MARKET_SIZE}")
    buf = bytearray(size)
    buf[:8] = MARKET_DISCRIMINATOR
    buf[_OFF_BUMP] = m.bump
    buf[_OFF_BASE_DECIMALS] = m.base_decimals
    buf[_OFF_QUOTE_DECIMALS] = m.quote_decimals
    _put_key(buf, _OFF_AUTHORITY, m.market_authority)
    struct.pack_into("<q", buf, _OFF_TIME_EXPIRY, m.time_expiry)
    _put_key(buf, _OFF_OPEN_ORDERS_ADMIN, m.open_orders_admin)
    buf[_OFF_NAME:_OFF_NAME + 16] = m.name.encode("utf-8")[:16].ljust(16, b"\x00")
    _put_key(buf, _OFF_BIDS, m.bids)
    _put_key(buf, _OFF_ASKS, m.asks)
    _put_key(buf, _OFF_EVENT_HEAP, m.event_heap)
    _put_key(buf, _OFF_ORACLE_A, m.oracle_a)
    _put_key(buf, _OFF_ORACLE_B, m.oracle_b)
    struct.pack_into("<qq", buf, _OFF_QUOTE_LOT_SIZE, m.quote_lot_size, m.base_lot_size)
    struct.pack_into("<qq", buf, _OFF_MAKER_FEE, m.maker_fee, m.taker_fee)
    _put_key(buf, _OFF_BASE_MINT, m.base_mint)
    _put_key(buf, _OFF_QUOTE_MINT, m.quote_mint)
    _put_key(buf, _OFF_BASE_VAULT, m.market_base_vault)
    _put_key(buf, _OFF_QUOTE_VAULT, m.market_quote_vault)
    return bytes(buf)
