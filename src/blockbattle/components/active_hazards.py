from dataclasses import dataclass, field
from typing import Dict, List, Tuple

Position = Tuple[int, int]


@dataclass(slots=True)
class BombFuse:
    """A placed bomb: its absolute expiry and where its cells currently sit."""
    bomb_id: int
    expires_at: float
    cells: List[Position] = field(default_factory=list)


@dataclass(slots=True)
class ActiveHazards:
    fuses: Dict[int, BombFuse] = field(default_factory=dict)
    next_bomb_id: int = 1

    def allocate_id(self) -> int:
        bomb_id = self.next_bomb_id
        self.next_bomb_id += 1
        return bomb_id

    def reset(self) -> None:
        self.fuses.clear()
