from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from blockbattle.components.piece import PieceKind


class CellTag(Enum):
    EMPTY = auto()
    STANDARD = auto()
    GARBAGE = auto()
    BOMB = auto()
    BUSTER = auto()


@dataclass(frozen=True, slots=True)
class Cell:
    """Content of one grid square.

    A closed variant: ``kind`` is only set for STANDARD cells and ``bomb_id``
    only for BOMB cells, so a bomb cell always knows which placed bomb it
    belongs to wherever gravity or garbage moves it.
    """
    tag: CellTag
    kind: Optional[PieceKind] = None
    bomb_id: Optional[int] = None

    @property
    def filled(self) -> bool:
        return self.tag is not CellTag.EMPTY

    @classmethod
    def standard(cls, kind: PieceKind) -> "Cell":
        if not kind.is_standard:
            raise ValueError(f"{kind} is not a standard piece kind")
        return cls(CellTag.STANDARD, kind=kind)

    @classmethod
    def bomb(cls, bomb_id: int) -> "Cell":
        return cls(CellTag.BOMB, bomb_id=bomb_id)


EMPTY = Cell(CellTag.EMPTY)
GARBAGE = Cell(CellTag.GARBAGE)
BUSTER = Cell(CellTag.BUSTER)
