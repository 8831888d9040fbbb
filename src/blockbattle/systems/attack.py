"""Outgoing attack arithmetic for a single lock event."""
from __future__ import annotations

from dataclasses import dataclass

from blockbattle.components.ledgers import ComboState
from blockbattle.constants import BACK_TO_BACK_BONUS, COMBO_DIVISOR, T_SPIN_BONUS


@dataclass(slots=True)
class AttackBreakdown:
    base: int = 0
    t_spin_bonus: int = 0
    combo_bonus: int = 0
    back_to_back_bonus: int = 0

    @property
    def total(self) -> int:
        return self.base + self.t_spin_bonus + self.combo_bonus + self.back_to_back_bonus


def calculate_attack(combo: ComboState, lines_cleared: int, t_spin: bool) -> AttackBreakdown:
    """Update combo/back-to-back bookkeeping and return the raw attack.

    A lone single (no T-spin) never attacks and leaves back-to-back alone;
    the combo still counts it.
    """
    if lines_cleared > 0:
        combo.combo += 1
    else:
        combo.combo = 0
    if lines_cleared == 0:
        return AttackBreakdown()
    if lines_cleared < 2 and not t_spin:
        return AttackBreakdown()

    breakdown = AttackBreakdown(base=lines_cleared - 1)
    if t_spin:
        breakdown.t_spin_bonus = T_SPIN_BONUS
    breakdown.combo_bonus = combo.combo // COMBO_DIVISOR
    if lines_cleared >= 4 or t_spin:
        if combo.back_to_back:
            breakdown.back_to_back_bonus = BACK_TO_BACK_BONUS
        combo.back_to_back = True
    else:
        combo.back_to_back = False
    return breakdown


def scale_for_counter(attack: int, remaining: int, lines_cleared: int, mode: str = "ratio") -> int:
    """Shrink an attack once part of the clear went into countering garbage.

    ``ratio`` floors ``attack * remaining / lines_cleared``; ``subtract`` takes
    the countered lines straight off the attack.
    """
    if attack <= 0 or lines_cleared <= 0:
        return 0
    if remaining >= lines_cleared:
        return attack
    if mode == "subtract":
        return max(0, attack - (lines_cleared - remaining))
    return (attack * remaining) // lines_cleared
