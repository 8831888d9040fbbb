from __future__ import annotations

import json
from typing import Any, List, Optional

from blockbattle.components.cell import BUSTER, Cell, CellTag, EMPTY, GARBAGE
from blockbattle.components.piece import PieceKind
from blockbattle.systems.board_ops import is_valid_grid_shape

GARBAGE_TOKEN = "G"
BOMB_TOKEN = "BOMB"
BUSTER_TOKEN = "BUSTER"


def encode_cell(cell: Cell) -> Any:
    if cell.tag is CellTag.EMPTY:
        return 0
    if cell.tag is CellTag.STANDARD and cell.kind is not None:
        return cell.kind.value
    if cell.tag is CellTag.GARBAGE:
        return GARBAGE_TOKEN
    if cell.tag is CellTag.BOMB:
        return BOMB_TOKEN
    return BUSTER_TOKEN


def decode_cell(token: Any) -> Optional[Cell]:
    """Map a replicated token back to a cell; None for anything unknown."""
    if token == 0 or token is None:
        return EMPTY
    if not isinstance(token, str):
        return None
    if token == GARBAGE_TOKEN:
        return GARBAGE
    if token in (BOMB_TOKEN, "B"):
        # Remote bombs are display-only; their fuse lives on the owner's host.
        return Cell.bomb(0)
    if token == BUSTER_TOKEN:
        return BUSTER
    try:
        kind = PieceKind(token)
    except ValueError:
        return None
    if not kind.is_standard:
        return None
    return Cell.standard(kind)


def encode_grid(cells: List[List[Cell]]) -> List[List[Any]]:
    return [[encode_cell(cell) for cell in row] for row in cells]


def decode_grid(payload: Any) -> Optional[List[List[Cell]]]:
    """Decode an inbound grid; None when it is not a usable grid at all."""
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            return None
    if not is_valid_grid_shape(payload):
        return None
    decoded: List[List[Cell]] = []
    for row in payload:
        cells: List[Cell] = []
        for token in row:
            cell = decode_cell(token)
            if cell is None:
                return None
            cells.append(cell)
        decoded.append(cells)
    return decoded
