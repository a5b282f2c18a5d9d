from dataclasses import dataclass, field
import time

@dataclass
class Stats:
    started_at: float = field(default_factory=lambda: time.time())
    cycles: int = 0
    total_buy: int = 0
    total_sell: int = 0
    failed_attempts: int = 0
    abandoned_phases: int = 0
    last_signature: str | None = None
    last_action: str = ""

    def record_success(self, side: str, signature: str):
        if side == "buy":
            self.total_buy += 1
        else:
            self.total_sell += 1
        self.last_signature = signature
        self.last_action = f"{side.upper()} sent {signature}"

    def as_dict(self) -> dict:
        return {
            "cycles": self.cycles,
            "buys": self.total_buy,
            "sells": self.total_sell,
            "failed_attempts": self.failed_attempts,
            "abandoned_phases": self.abandoned_phases,
            "last_signature": self.last_signature,
            "last_action": self.last_action,
        }
