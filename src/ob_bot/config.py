import os
from dataclasses import dataclass, field
from decimal import Decimal, getcontext
from typing import Optional, Tuple

from dotenv import load_dotenv
from solana.utils.cluster import cluster_api_url
from solders.pubkey import Pubkey

from .utils import to_decimal_safe

load_dotenv()
getcontext().prec = 50

OPENBOOK_V2_PROGRAM_ID = "opnb2LAfJYbRMAHHvqjCwQxanZn7ReEHp1k81EohpZb"
SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

# Known OpenBook v2 market account sizes, probed in this order
DEFAULT_PROBE_SIZES: Tuple[int, ...] = (760, 776, 808, 824, 856)

_CLUSTERS = ("mainnet-beta", "devnet", "testnet")
_COMMITMENTS = ("processed", "confirmed", "finalized")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

@dataclass
class Settings:
    # Wallet
    PRIVATE_KEY_BASE58: Optional[str]
    KEYPAIR_PATH: Optional[str]
    # RPC
    CLUSTER: str
    RPC_URL: str
    COMMITMENT: str
    # Market
    PROGRAM_ID: Pubkey
    BASE_MINT: Pubkey
    QUOTE_MINT: Pubkey
    MARKET_ADDRESS: Optional[Pubkey]
    OPEN_ORDERS_ACCOUNT: Optional[Pubkey]
    # Orders
    BUY_PRICE: Decimal
    SELL_PRICE: Decimal
    SIZE: Decimal
    ORDER_TTL_SEC: int
    # Scheduling
    RETRIES: int
    CYCLE_DELAY_SEC: float
    # Discovery
    PROBE_SIZES: Tuple[int, ...] = field(default=DEFAULT_PROBE_SIZES)
    PROBE_CAP: int = 20
    # Ops
    LOG_LEVEL: str = "INFO"
    PORT: int = 8000

def _to_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        raw = default
    try:
        d = to_decimal_safe(raw, name)
    except ValueError as e:
        raise SystemExit(f"Bad decimal for env {name}: {e}")
    if d <= 0:
        raise SystemExit(f"{name} must be > 0 (got {d})")
    return d

def _to_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        v = int(raw.strip())
    except ValueError:
        raise SystemExit(f"Bad integer for env {name}: {raw!r}")
    if v < minimum:
        raise SystemExit(f"{name} must be >= {minimum} (got {v})")
    return v

def _to_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        v = float(raw.strip())
    except ValueError:
        raise SystemExit(f"Bad number for env {name}: {raw!r}")
    if v < 0:
        raise SystemExit(f"{name} must be >= 0 (got {v})")
    return v

def _to_pubkey(name: str, default: Optional[str] = None) -> Optional[Pubkey]:
    raw = (os.getenv(name) or "").strip() or default
    if raw is None:
        return None
    try:
        return Pubkey.from_string(raw)
    except ValueError as e:
        raise SystemExit(f"Bad address for env {name}: {raw!r} ({e})")

def _to_sizes(name: str) -> Tuple[int, ...]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return DEFAULT_PROBE_SIZES
    try:
        sizes = tuple(int(p) for p in raw.replace(";", ",").split(",") if p.strip())
    except ValueError:
        raise SystemExit(f"{name} must be a comma-separated list of integers (got {raw!r})")
    if not sizes or any(s <= 0 for s in sizes):
        raise SystemExit(f"{name} must list positive sizes (got {raw!r})")
    return sizes

def load_settings() -> Settings:
    private_key = (os.getenv("PRIVATE_KEY_BASE58") or "").strip() or None
    keypair_path = (os.getenv("KEYPAIR_PATH") or "").strip() or None
    if not private_key and not keypair_path:
        raise SystemExit("PRIVATE_KEY_BASE58 or KEYPAIR_PATH must be set in .env")

    cluster = (os.getenv("CLUSTER") or "mainnet-beta").strip().lower()
    if cluster not in _CLUSTERS:
        raise SystemExit(f"CLUSTER must be one of {', '.join(_CLUSTERS)} (got {cluster!r})")
    rpc_url = (os.getenv("RPC_URL") or "").strip() or cluster_api_url(cluster.replace("-", "_"))

    commitment = (os.getenv("COMMITMENT") or "confirmed").strip().lower()
    if commitment not in _COMMITMENTS:
        raise SystemExit(f"COMMITMENT must be one of {', '.join(_COMMITMENTS)} (got {commitment!r})")

    base_mint = _to_pubkey("BASE_MINT", SOL_MINT)
    quote_mint = _to_pubkey("QUOTE_MINT", USDC_MINT)
    if base_mint == quote_mint:
        raise SystemExit("BASE_MINT and QUOTE_MINT must differ")

    retries = _to_int("RETRIES", 3, minimum=1)
    log_level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise SystemExit(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)} (got {log_level!r})")

    return Settings(
        PRIVATE_KEY_BASE58=private_key,
        KEYPAIR_PATH=keypair_path,
        CLUSTER=cluster,
        RPC_URL=rpc_url,
        COMMITMENT=commitment,
        PROGRAM_ID=_to_pubkey("PROGRAM_ID", OPENBOOK_V2_PROGRAM_ID),
        BASE_MINT=base_mint,
        QUOTE_MINT=quote_mint,
        MARKET_ADDRESS=_to_pubkey("MARKET_ADDRESS"),
        OPEN_ORDERS_ACCOUNT=_to_pubkey("OPEN_ORDERS_ACCOUNT"),
        BUY_PRICE=_to_decimal("BUY_PRICE", "0.01"),
        SELL_PRICE=_to_decimal("SELL_PRICE", "100"),
        SIZE=_to_decimal("SIZE", "0.01"),
        ORDER_TTL_SEC=_to_int("ORDER_TTL_SEC", 60, minimum=1),
        RETRIES=retries,
        CYCLE_DELAY_SEC=_to_float("CYCLE_DELAY_SEC", 6.0),
        PROBE_SIZES=_to_sizes("PROBE_SIZES"),
        PROBE_CAP=_to_int("PROBE_CAP", 20, minimum=1),
        LOG_LEVEL=log_level,
        PORT=_to_int("PORT", 8000, minimum=1),
    )
