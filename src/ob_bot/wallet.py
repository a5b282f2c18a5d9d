import json
import sys
from pathlib import Path

from solders.keypair import Keypair

from .config import Settings

DEFAULT_KEYPAIR_PATH = Path.home() / ".config" / "solana" / "id.json"


def read_keypair_file(path) -> Keypair:
    """Solana CLI keypair file: a JSON array of 64 secret-key bytes."""
    p = Path(path).expanduser()
    try:
        secret = json.loads(p.read_text())
    except FileNotFoundError:
        raise SystemExit(f"Keypair file not found: {p}")
    except json.JSONDecodeError as e:
        raise SystemExit(f"Keypair file is not valid JSON: {p} ({e})")
    if not isinstance(secret, list) or len(secret) != 64:
        raise SystemExit(f"Keypair file must hold a JSON array of 64 bytes: {p}")
    try:
        return Keypair.from_bytes(bytes(secret))
    except ValueError as e:
        raise SystemExit(f"Keypair file holds an invalid key: {p} ({e})")


def load_keypair(cfg: Settings) -> Keypair:
    if cfg.PRIVATE_KEY_BASE58:
        try:
            return Keypair.from_base58_string(cfg.PRIVATE_KEY_BASE58)
        except ValueError as e:
            raise SystemExit(f"PRIVATE_KEY_BASE58 is not a valid base58 secret key: {e}")
    if cfg.KEYPAIR_PATH:
        return read_keypair_file(cfg.KEYPAIR_PATH)
    raise SystemExit("PRIVATE_KEY_BASE58 or KEYPAIR_PATH must be set in .env")


def keypair_to_base58(path) -> str:
    return str(read_keypair_file(path))


def export_main():
    """Print the base58 secret of a CLI keypair file, for PRIVATE_KEY_BASE58."""
    path = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_KEYPAIR_PATH
    print(keypair_to_base58(path))


if __name__ == "__main__":
    export_main()
