from __future__ import annotations

import random
from typing import Iterable

from blockbattle.components.board import Board
from blockbattle.components.cell import Cell, EMPTY, GARBAGE
from blockbattle.components.piece import ActivePiece, PieceKind
from blockbattle.components.piece_slot import PieceSlot
from blockbattle.events.bus import EventBus
from blockbattle.match import BlockBattleMatch


def start_match(seed: int = 1, *, opponent_remote: bool = False, now: float = 0.0, **kwargs) -> BlockBattleMatch:
    """Build a fully wired match with a seeded RNG and start it at ``now``."""
    match = BlockBattleMatch(opponent_remote=opponent_remote, rng=random.Random(seed), **kwargs)
    match.start(now)
    return match


def capture(bus: EventBus, name: str) -> list[dict]:
    """Record every payload emitted under ``name``."""
    received: list[dict] = []
    bus.subscribe(name, lambda sender, **payload: received.append(payload))
    return received


def fill_row(board: Board, row: int, *, gaps: Iterable[int] = (), cell: Cell = GARBAGE) -> None:
    """Fill a whole row with ``cell`` except the ``gaps`` columns."""
    holes = set(gaps)
    board.cells[row] = [EMPTY if col in holes else cell for col in range(board.cols)]


def set_piece(world, owner: int, kind: PieceKind, *, x: int, y: int, rotation: int = 0,
              disguise: PieceKind | None = None, rotated: bool = False) -> ActivePiece:
    """Replace the falling piece of ``owner`` with a hand-placed one."""
    piece = ActivePiece(kind=kind, rotation=rotation, x=x, y=y, disguise=disguise, last_move_rotation=rotated)
    world.component_for_entity(owner, PieceSlot).piece = piece
    return piece


def filled_count(board: Board) -> int:
    return sum(1 for row in board.cells for cell in row if cell.filled)
