# utils.py
import time
from decimal import Decimal, ROUND_DOWN, ROUND_UP, InvalidOperation

# ---------- Decimal helpers ----------
def to_decimal_safe(x, name: str = "value") -> Decimal:
    if isinstance(x, Decimal):
        return x
    if x is None:
        raise ValueError(f"{name} is None")

    s = str(x).strip()
    if s.lower() in ("", "nan", "none", "null"):
        raise ValueError(f"{name} is empty or NaN: {repr(x)}")

    try:
        return Decimal(s)
    except InvalidOperation as e:
        raise ValueError(f"{name} not a valid decimal: {repr(x)} ({e})")

def _pow10(n: int) -> Decimal:
    return Decimal(10) ** n

# ---------- UI <-> lots (OpenBook v2 native units) ----------
def price_ui_to_lots(price, base_decimals: int, quote_decimals: int,
                     base_lot_size: int, quote_lot_size: int) -> int:
    """Quote lots per base lot, rounded down."""
    px = to_decimal_safe(price, "price")
    lots = (px * _pow10(quote_decimals) * Decimal(base_lot_size)) / (_pow10(base_decimals) * Decimal(quote_lot_size))
    return int(lots.to_integral_value(rounding=ROUND_DOWN))

def base_size_ui_to_lots(size, base_decimals: int, base_lot_size: int) -> int:
    sz = to_decimal_safe(size, "size")
    lots = (sz * _pow10(base_decimals)) / Decimal(base_lot_size)
    return int(lots.to_integral_value(rounding=ROUND_DOWN))

def quote_lots_with_fee(price_lots: int, base_lots: int, taker_fee: int) -> int:
    """Max quote lots a bid may lock, taker fee (1e-6 units) included, rounded up."""
    gross = Decimal(price_lots) * Decimal(base_lots)
    fee = gross * Decimal(max(0, taker_fee)) / Decimal(1_000_000)
    return int((gross + fee).to_integral_value(rounding=ROUND_UP))

def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / _pow10(9)

# ---------- Time ----------
def now_ms() -> int:
    return time.time_ns() // 1_000_000

def human_time(sec: float) -> str:
    m, s = divmod(int(sec), 60)
    h, m = divmod(m, 60)
    d, h = divmod(h, 24)
    if d: return f"{d}d {h}h {m}m {s}s"
    if h: return f"{h}h {m}m {s}s"
    if m: return f"{m}m {s}s"
    return f"{s}s"
