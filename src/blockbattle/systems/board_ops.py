"""Pure grid algorithms shared by the board, hazard and garbage systems.

Everything here works on a ``Board`` component and plain values, never on the
world, so the rules can be exercised without building a match.
"""
from __future__ import annotations

import random
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from blockbattle.components.active_hazards import ActiveHazards
from blockbattle.components.board import Board
from blockbattle.components.cell import Cell, CellTag, EMPTY, GARBAGE
from blockbattle.components.match_state import PiecePalette, RGB
from blockbattle.components.piece import ActivePiece, PieceKind, SHAPES

Position = Tuple[int, int]

# SRS wall kicks as (dx, dy) with +dy meaning "up"; applied as x += dx, y -= dy.
# Rows are indexed by the source state for clockwise turns and by the
# destination state for counter-clockwise turns.
STANDARD_KICKS: Tuple[Tuple[Tuple[int, int], ...], ...] = (
    ((0, 0), (-1, 0), (-1, 1), (0, -2), (-1, -2)),
    ((0, 0), (1, 0), (1, -1), (0, 2), (1, 2)),
    ((0, 0), (1, 0), (1, 1), (0, -2), (1, -2)),
    ((0, 0), (-1, 0), (-1, -1), (0, 2), (-1, 2)),
)
I_KICKS: Tuple[Tuple[Tuple[int, int], ...], ...] = (
    ((0, 0), (-2, 0), (1, 0), (-2, -1), (1, 2)),
    ((0, 0), (-1, 0), (2, 0), (-1, 2), (2, -1)),
    ((0, 0), (2, 0), (-1, 0), (2, 1), (-1, -2)),
    ((0, 0), (1, 0), (-2, 0), (1, -2), (-2, 1)),
)

NEIGHBOURHOOD: Tuple[Position, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1), (0, 0))
T_SPIN_CORNERS: Tuple[Position, ...] = ((0, 0), (2, 0), (0, 2), (2, 2))


def rotate_matrix(matrix: List[List[int]], times: int) -> List[List[int]]:
    """Rotate a shape matrix clockwise ``times`` quarter turns."""
    rotated = [row[:] for row in matrix]
    for _ in range(times % 4):
        rotated = [list(row) for row in zip(*rotated[::-1])]
    return rotated


def piece_cells(piece: ActivePiece) -> List[Position]:
    """Grid (row, col) squares covered by the piece, in matrix order."""
    matrix = rotate_matrix(SHAPES[piece.shape_kind], piece.rotation)
    cells: List[Position] = []
    for dy, row in enumerate(matrix):
        for dx, value in enumerate(row):
            if value:
                cells.append((piece.y + dy, piece.x + dx))
    return cells


def collides(board: Board, cells: Sequence[Position]) -> bool:
    """True when any square is off the sides, below the floor, or filled.

    Squares above the top row are open so freshly spawned or kicked pieces can
    poke out of the field.
    """
    for row, col in cells:
        if col < 0 or col >= board.cols or row >= board.rows:
            return True
        if row >= 0 and board.cells[row][col].filled:
            return True
    return False


def fits(board: Board, piece: ActivePiece) -> bool:
    return not collides(board, piece_cells(piece))


def try_shift(board: Board, piece: ActivePiece, dx: int, dy: int) -> Optional[ActivePiece]:
    candidate = replace(piece, x=piece.x + dx, y=piece.y + dy, last_move_rotation=False)
    if fits(board, candidate):
        return candidate
    return None


def kick_table(piece: ActivePiece):
    return I_KICKS if piece.shape_kind is PieceKind.I else STANDARD_KICKS


def try_rotate(board: Board, piece: ActivePiece, direction: int) -> Optional[ActivePiece]:
    """Rotate with kicks; None when every kick candidate collides."""
    step = 1 if direction > 0 else -1
    target = (piece.rotation + step) % 4
    row_index = piece.rotation if step == 1 else target
    for dx, dy in kick_table(piece)[row_index]:
        candidate = replace(
            piece,
            rotation=target,
            x=piece.x + dx,
            y=piece.y - dy,
            last_move_rotation=True,
        )
        if fits(board, candidate):
            return candidate
    return None


def is_t_spin(board: Board, piece: ActivePiece) -> bool:
    if piece.kind is not PieceKind.T or not piece.last_move_rotation:
        return False
    blocked = 0
    for dx, dy in T_SPIN_CORNERS:
        col = piece.x + dx
        row = piece.y + dy
        if col < 0 or col >= board.cols or row >= board.rows:
            blocked += 1
        elif row >= 0 and board.cells[row][col].filled:
            blocked += 1
    return blocked >= 3


def landing_y(board: Board, piece: ActivePiece) -> int:
    """Row the anchor would reach if the piece dropped straight down now."""
    y = piece.y
    while fits(board, replace(piece, y=y + 1)):
        y += 1
    return y


def write_piece(board: Board, piece: ActivePiece, *, bomb_id: int | None = None) -> List[Position]:
    """Stamp the piece into the grid and return the squares written."""
    if piece.kind is PieceKind.BOMB:
        value = Cell.bomb(bomb_id if bomb_id is not None else 0)
    else:
        value = Cell.standard(piece.kind)
    written: List[Position] = []
    for row, col in piece_cells(piece):
        board.cells[row][col] = value
        written.append((row, col))
    return written


def find_full_rows(board: Board) -> List[int]:
    """Indices of full rows, scanned bottom to top."""
    return [
        row for row in range(board.rows - 1, -1, -1)
        if all(cell.filled for cell in board.cells[row])
    ]


def remove_rows(board: Board, rows: Sequence[int]) -> None:
    """Drop the given rows and pad the top with empty rows."""
    if not rows:
        return
    doomed = set(rows)
    kept = [row for index, row in enumerate(board.cells) if index not in doomed]
    padding = [[EMPTY] * board.cols for _ in range(board.rows - len(kept))]
    board.cells = padding + kept


def bomb_positions(board: Board) -> Dict[int, List[Position]]:
    positions: Dict[int, List[Position]] = {}
    for row in range(board.rows):
        for col in range(board.cols):
            cell = board.cells[row][col]
            if cell.tag is CellTag.BOMB and cell.bomb_id is not None:
                positions.setdefault(cell.bomb_id, []).append((row, col))
    return positions


def bomb_ids_in_rows(board: Board, rows: Sequence[int]) -> List[int]:
    found: List[int] = []
    for row in rows:
        for cell in board.cells[row]:
            if cell.tag is CellTag.BOMB and cell.bomb_id is not None and cell.bomb_id not in found:
                found.append(cell.bomb_id)
    return found


def reindex_bombs(board: Board, hazards: ActiveHazards) -> None:
    """Re-read every tracked bomb's cells from the grid after rows moved.

    Bombs whose cells have all left the grid are forgotten.
    """
    positions = bomb_positions(board)
    for bomb_id in list(hazards.fuses):
        cells = positions.get(bomb_id)
        if not cells:
            del hazards.fuses[bomb_id]
            continue
        hazards.fuses[bomb_id].cells = cells


def clear_bomb(board: Board, bomb_id: int) -> List[Position]:
    """Empty every cell of one bomb in place (no gravity)."""
    cleared: List[Position] = []
    for row in range(board.rows):
        for col in range(board.cols):
            cell = board.cells[row][col]
            if cell.tag is CellTag.BOMB and cell.bomb_id == bomb_id:
                board.cells[row][col] = EMPTY
                cleared.append((row, col))
    return cleared


def apply_gravity(board: Board) -> List[Tuple[Position, Position]]:
    """Compact every column downward, preserving order; returns (from, to) moves."""
    moves: List[Tuple[Position, Position]] = []
    for col in range(board.cols):
        target = board.rows - 1
        for row in range(board.rows - 1, -1, -1):
            cell = board.cells[row][col]
            if not cell.filled:
                continue
            if row != target:
                board.cells[target][col] = cell
                board.cells[row][col] = EMPTY
                moves.append(((row, col), (target, col)))
            target -= 1
    return moves


def insert_garbage_rows(board: Board, count: int, rng: random.Random) -> List[int]:
    """Push ``count`` garbage rows in from the bottom; returns the hole column of each."""
    holes: List[int] = []
    for _ in range(max(0, count)):
        hole = rng.randrange(board.cols)
        row = [GARBAGE] * board.cols
        row[hole] = EMPTY
        board.cells = board.cells[1:] + [row]
        holes.append(hole)
    return holes


def tally_touched_colors(
    board: Board, cells: Sequence[Position], palette: PiecePalette
) -> Dict[RGB, int]:
    """Count standard-kind colours on and around each square of a buster."""
    tally: Dict[RGB, int] = {}
    for row, col in cells:
        for d_row, d_col in NEIGHBOURHOOD:
            r = row + d_row
            c = col + d_col
            if not (0 <= r < board.rows and 0 <= c < board.cols):
                continue
            cell = board.cells[r][c]
            if cell.tag is not CellTag.STANDARD:
                continue
            color = palette.color_of(cell.kind)
            if color is None:
                continue
            tally[color] = tally.get(color, 0) + 1
    return tally


def pick_target_color(tally: Dict[RGB, int], rng: random.Random) -> Optional[RGB]:
    if not tally:
        return None
    best = max(tally.values())
    leaders = sorted(color for color, count in tally.items() if count == best)
    return rng.choice(leaders)


def clear_color(board: Board, color: RGB, palette: PiecePalette) -> List[Position]:
    removed: List[Position] = []
    for row in range(board.rows):
        for col in range(board.cols):
            cell = board.cells[row][col]
            if cell.tag is CellTag.STANDARD and palette.color_of(cell.kind) == color:
                board.cells[row][col] = EMPTY
                removed.append((row, col))
    return removed


def highest_filled_row(board: Board) -> int:
    """Index of the topmost row holding anything; ``board.rows`` when empty."""
    for row in range(board.rows):
        if any(cell.filled for cell in board.cells[row]):
            return row
    return board.rows


def is_valid_grid_shape(payload) -> bool:
    """Non-empty rectangular list of lists."""
    if not isinstance(payload, list) or not payload:
        return False
    if not all(isinstance(row, list) for row in payload):
        return False
    width = len(payload[0])
    return width > 0 and all(len(row) == width for row in payload)
