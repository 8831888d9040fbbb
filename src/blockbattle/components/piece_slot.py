from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from blockbattle.components.piece import ActivePiece


class PiecePhase(Enum):
    """Piece lifecycle for a local board."""
    SPAWNING = auto()
    FALLING = auto()
    LOCKING = auto()
    CLEARED = auto()
    GAME_OVER = auto()


@dataclass(slots=True)
class PieceSlot:
    piece: Optional[ActivePiece] = None
    phase: PiecePhase = PiecePhase.SPAWNING
    in_danger: bool = False

    @property
    def game_over(self) -> bool:
        return self.phase is PiecePhase.GAME_OVER
