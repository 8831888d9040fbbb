from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


class PieceKind(Enum):
    """Every kind a queue entry or active piece may take."""
    I = "I"
    J = "J"
    L = "L"
    O = "O"
    S = "S"
    T = "T"
    Z = "Z"
    BOMB = "BOMB"
    BUSTER = "BUSTER"

    @property
    def is_standard(self) -> bool:
        return self in STANDARD_KINDS


STANDARD_KINDS: Tuple[PieceKind, ...] = (
    PieceKind.I,
    PieceKind.J,
    PieceKind.L,
    PieceKind.O,
    PieceKind.S,
    PieceKind.T,
    PieceKind.Z,
)

# Spawn-orientation matrices; the piece anchor is the matrix's top-left corner.
SHAPES: Dict[PieceKind, List[List[int]]] = {
    PieceKind.I: [[0, 0, 0, 0], [1, 1, 1, 1], [0, 0, 0, 0], [0, 0, 0, 0]],
    PieceKind.J: [[1, 0, 0], [1, 1, 1], [0, 0, 0]],
    PieceKind.L: [[0, 0, 1], [1, 1, 1], [0, 0, 0]],
    PieceKind.O: [[1, 1], [1, 1]],
    PieceKind.S: [[0, 1, 1], [1, 1, 0], [0, 0, 0]],
    PieceKind.T: [[0, 1, 0], [1, 1, 1], [0, 0, 0]],
    PieceKind.Z: [[1, 1, 0], [0, 1, 1], [0, 0, 0]],
    PieceKind.BOMB: [[1, 1], [1, 1]],
}


@dataclass(frozen=True, slots=True)
class ActivePiece:
    """The falling piece of one board.

    Instances are immutable: movement builds a candidate with
    ``dataclasses.replace`` and the board only adopts it once it fits.
    ``disguise`` is set for buster pieces only and decides their shape.
    """
    kind: PieceKind
    rotation: int = 0
    x: int = 0
    y: int = 0
    disguise: Optional[PieceKind] = None
    last_move_rotation: bool = False

    @property
    def shape_kind(self) -> PieceKind:
        if self.kind is PieceKind.BUSTER and self.disguise is not None:
            return self.disguise
        return self.kind

    def descriptor(self) -> dict:
        """Plain description used for replication (ghost rendering on the far side)."""
        return {
            "type": self.kind.value,
            "shape": self.shape_kind.value,
            "pos": {"x": self.x, "y": self.y},
            "rotation": self.rotation,
        }
