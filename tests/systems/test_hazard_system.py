from blockbattle.components.active_hazards import ActiveHazards
from blockbattle.components.board import Board
from blockbattle.components.cell import Cell, CellTag, EMPTY, GARBAGE
from blockbattle.components.ledgers import GarbageLedger, PowerUpLedger
from blockbattle.components.piece import PieceKind
from blockbattle.events.bus import (
    EVENT_BOMB_DEFUSED,
    EVENT_BOMB_DETONATED,
    EVENT_BOMB_PLACED,
    EVENT_BUSTER_RESOLVED,
)
from blockbattle.utils.match_resources import get_palette
from tests.helpers import capture, fill_row, filled_count, set_piece, start_match


def _drop_bomb(match, owner, x=0):
    set_piece(match.world, owner, PieceKind.BOMB, x=x, y=0)
    match.board_engine.hard_drop(owner)


def test_bomb_lock_starts_a_ten_second_fuse():
    match = start_match()
    owner = match.player_entity
    placed = capture(match.event_bus, EVENT_BOMB_PLACED)
    _drop_bomb(match, owner)
    board = match.world.component_for_entity(owner, Board)
    hazards = match.world.component_for_entity(owner, ActiveHazards)
    assert [board.cells[r][c].tag for r, c in ((18, 0), (18, 1), (19, 0), (19, 1))] == [CellTag.BOMB] * 4
    assert placed[-1]["expires_at"] == 10_000
    fuse = hazards.fuses[placed[-1]["bomb_id"]]
    assert sorted(fuse.cells) == [(18, 0), (18, 1), (19, 0), (19, 1)]


def test_expired_bomb_detonates_without_gravity():
    match = start_match()
    owner = match.player_entity
    detonated = capture(match.event_bus, EVENT_BOMB_DETONATED)
    _drop_bomb(match, owner)
    board = match.world.component_for_entity(owner, Board)
    board.cells[17][0] = GARBAGE
    board.cells[17][1] = GARBAGE

    match.tick(5_000)
    assert detonated == []
    match.tick(10_000)

    assert len(detonated) == 1
    for row, col in ((18, 0), (18, 1), (19, 0), (19, 1)):
        assert board.cells[row][col] is EMPTY
    # Cells above keep their height.
    assert board.cells[17][0] is GARBAGE and board.cells[17][1] is GARBAGE
    ledger = match.world.component_for_entity(owner, GarbageLedger)
    assert ledger.pending == 2
    assert ledger.drip_active
    assert match.world.component_for_entity(owner, ActiveHazards).fuses == {}


def test_detonation_penalty_ignores_the_shield():
    match = start_match()
    owner = match.player_entity
    power = match.world.component_for_entity(owner, PowerUpLedger)
    power.shield_active = True
    _drop_bomb(match, owner)
    match.hazard_system.detonate_expired(owner, 10_000)
    assert match.world.component_for_entity(owner, GarbageLedger).pending == 2
    assert power.shield_active is True


def test_clearing_any_bomb_row_defuses_the_whole_bomb():
    match = start_match()
    owner = match.player_entity
    board = match.world.component_for_entity(owner, Board)
    defused = capture(match.event_bus, EVENT_BOMB_DEFUSED)
    fill_row(board, 19, gaps=[0, 1])
    _drop_bomb(match, owner)
    assert len(defused) == 1
    assert filled_count(board) == 0
    assert match.world.component_for_entity(owner, ActiveHazards).fuses == {}
    match.tick(10_000)
    assert match.world.component_for_entity(owner, GarbageLedger).pending == 0


def test_bomb_rides_up_with_garbage():
    match = start_match()
    owner = match.player_entity
    _drop_bomb(match, owner)
    match.garbage_system.receive(owner, 1)
    match.garbage_system.drip(owner, 0)
    match.garbage_system.drip(owner, 2_000)
    fuse = next(iter(match.world.component_for_entity(owner, ActiveHazards).fuses.values()))
    assert sorted(fuse.cells) == [(17, 0), (17, 1), (18, 0), (18, 1)]


def _buster_board(match, owner):
    board = match.world.component_for_entity(owner, Board)
    z = Cell.standard(PieceKind.Z)
    j = Cell.standard(PieceKind.J)
    board.cells[19][0] = z
    board.cells[19][1] = z
    board.cells[19][2] = z
    board.cells[18][2] = z
    board.cells[17][2] = j
    board.cells[19][3] = j
    board.cells[19][5] = z
    return board


def test_color_buster_clears_the_most_touched_colour_then_compacts():
    match = start_match()
    owner = match.player_entity
    board = _buster_board(match, owner)
    resolved = capture(match.event_bus, EVENT_BUSTER_RESOLVED)
    set_piece(match.world, owner, PieceKind.BUSTER, x=0, y=0, disguise=PieceKind.O)
    match.board_engine.hard_drop(owner)

    palette = get_palette(match.world)
    assert resolved[-1]["color"] == palette.color_of(PieceKind.Z)
    assert resolved[-1]["removed"] == 5
    assert board.cells[19][2] == Cell.standard(PieceKind.J)
    assert board.cells[19][3] == Cell.standard(PieceKind.J)
    assert filled_count(board) == 2
    for col in range(board.cols):
        column = [board.cells[row][col].filled for row in range(board.rows)]
        height = sum(column)
        assert column == [False] * (board.rows - height) + [True] * height


def test_color_buster_with_no_neighbours_does_nothing():
    match = start_match()
    owner = match.player_entity
    board = match.world.component_for_entity(owner, Board)
    board.cells[19][11] = Cell.standard(PieceKind.T)
    resolved = capture(match.event_bus, EVENT_BUSTER_RESOLVED)
    set_piece(match.world, owner, PieceKind.BUSTER, x=0, y=0, disguise=PieceKind.O)
    match.board_engine.hard_drop(owner)
    assert resolved[-1]["color"] is None
    assert filled_count(board) == 1


def test_buster_preview_names_the_target():
    from blockbattle.components.piece import ActivePiece
    from blockbattle.systems.hazard_system import preview_buster_target

    match = start_match()
    owner = match.player_entity
    board = _buster_board(match, owner)
    piece = ActivePiece(kind=PieceKind.BUSTER, x=0, y=0, disguise=PieceKind.O)
    palette = get_palette(match.world)
    assert preview_buster_target(board, piece, palette) == [palette.color_of(PieceKind.Z)]
