from dataclasses import dataclass, field
from typing import List, Optional

from blockbattle.components.piece import PieceKind
from blockbattle.constants import QUEUE_PREVIEW


@dataclass(slots=True)
class PieceQueue:
    """Upcoming pieces plus the 7-bag they are refilled from.

    ``bag`` is consumed from its end; inserted hazards only ever touch
    ``upcoming``.
    """
    upcoming: List[PieceKind] = field(default_factory=list)
    bag: List[PieceKind] = field(default_factory=list)
    preview_size: int = QUEUE_PREVIEW


@dataclass(slots=True)
class HoldSlot:
    """The held piece; a held buster keeps the disguise it was drawn with."""
    kind: Optional[PieceKind] = None
    disguise: Optional[PieceKind] = None
    can_hold: bool = True
