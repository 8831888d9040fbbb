from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class GarbageLedger:
    """Garbage owed to this board and the state of its drip timer.

    ``drip_active`` is set when garbage arrives; ``next_drip_at`` stays None
    until the next scheduler wake-up gives it a baseline.
    """
    pending: int = 0
    drip_active: bool = False
    next_drip_at: Optional[float] = None

    def stop_drip(self) -> None:
        self.drip_active = False
        self.next_drip_at = None

    def reset(self) -> None:
        self.pending = 0
        self.stop_drip()


@dataclass(slots=True)
class PowerUpLedger:
    """Spendable currency (cleared lines) and the one-hit shield flag."""
    currency: int = 0
    shield_active: bool = False

    def add(self, amount: int) -> None:
        if amount <= 0:
            return
        self.currency += amount

    def can_spend(self, cost: int) -> bool:
        return self.currency >= cost

    def spend(self, cost: int) -> bool:
        if not self.can_spend(cost):
            return False
        self.currency -= cost
        return True

    def reset(self) -> None:
        self.currency = 0
        self.shield_active = False


@dataclass(slots=True)
class ComboState:
    combo: int = 0
    back_to_back: bool = False

    def reset(self) -> None:
        self.combo = 0
        self.back_to_back = False


@dataclass(slots=True)
class MatchStats:
    score: int = 0
    lines_cleared: int = 0
    lines_sent: int = 0
    pieces_locked: int = 0
    ko_count: int = 0

    def reset(self, *, keep_knockouts: bool = False) -> None:
        ko = self.ko_count if keep_knockouts else 0
        self.score = 0
        self.lines_cleared = 0
        self.lines_sent = 0
        self.pieces_locked = 0
        self.ko_count = ko
