import json

from blockbattle.components.board import Board
from blockbattle.components.cell import Cell, CellTag, GARBAGE
from blockbattle.components.ledgers import GarbageLedger, MatchStats, PowerUpLedger
from blockbattle.components.match_state import MatchRules
from blockbattle.components.piece import PieceKind
from blockbattle.components.piece_queue import HoldSlot, PieceQueue
from blockbattle.components.piece_slot import PiecePhase, PieceSlot
from blockbattle.components.player import MirrorState
from blockbattle.events.bus import (
    EVENT_REMOTE_ATTACK,
    EVENT_REMOTE_BOMB,
    EVENT_SNAPSHOT_RECEIVED,
    EVENT_SNAPSHOT_REJECTED,
)
from blockbattle.utils.match_resources import get_match_state
from tests.helpers import capture, fill_row, set_piece, start_match


class RecordingNetwork:
    def __init__(self):
        self.snapshots = []
        self.attacks = []
        self.bombs = []

    def send_snapshot(self, snapshot):
        self.snapshots.append(snapshot)

    def send_attack(self, opponent_id, lines):
        self.attacks.append((opponent_id, lines))

    def send_bomb(self, opponent_id):
        self.bombs.append(opponent_id)


def _online_match():
    network = RecordingNetwork()
    match = start_match(opponent_remote=True, network=network)
    return match, network


def _grid(rows=20, cols=12, fill=0):
    return [[fill] * cols for _ in range(rows)]


def test_each_lock_publishes_a_snapshot_of_the_settled_board():
    match, network = _online_match()
    owner = match.player_entity
    set_piece(match.world, owner, PieceKind.O, x=0, y=0)
    match.board_engine.hard_drop(owner)
    snapshot = network.snapshots[-1]
    assert snapshot.player_id == "p1"
    assert snapshot.grid[19][:2] == ["O", "O"]
    assert snapshot.grid[0] == [0] * 12
    assert snapshot.active_piece["pos"] == {"x": 4, "y": 0}
    assert snapshot.to_payload()["pending_garbage"] == 0


def test_attacks_and_bombs_for_a_remote_opponent_go_to_the_network():
    match, network = _online_match()
    owner = match.player_entity
    board = match.world.component_for_entity(owner, Board)
    for row in range(16, 20):
        fill_row(board, row, gaps=[0])
    set_piece(match.world, owner, PieceKind.I, rotation=1, x=-2, y=0)
    match.board_engine.hard_drop(owner)
    assert network.attacks == [("p2", 3)]

    match.world.component_for_entity(owner, PowerUpLedger).currency = 9
    assert match.power_ups.spend(owner, "bomb")
    assert network.bombs == ["p2"]


def test_remote_attack_and_bomb_land_on_the_named_board():
    match, _ = _online_match()
    owner = match.player_entity
    match.event_bus.emit(EVENT_REMOTE_ATTACK, player_id="p1", lines=2)
    match.event_bus.emit(EVENT_REMOTE_BOMB, player_id="p1")
    assert match.world.component_for_entity(owner, GarbageLedger).pending == 2
    assert match.world.component_for_entity(owner, PieceQueue).upcoming[0] is PieceKind.BOMB
    # Deliveries addressed to the mirror are ignored.
    match.event_bus.emit(EVENT_REMOTE_ATTACK, player_id="p2", lines=5)
    assert match.world.component_for_entity(owner, GarbageLedger).pending == 2


def test_valid_snapshot_overwrites_the_mirror():
    match, _ = _online_match()
    remote = match.opponent_entity
    grid = _grid()
    grid[19] = ["G"] * 11 + [0]
    grid[18][3] = "T"
    grid[17][3] = "BOMB"
    piece = {"type": "T", "shape": "T", "pos": {"x": 4, "y": 0}, "rotation": 0}
    match.event_bus.emit(
        EVENT_SNAPSHOT_RECEIVED,
        owner_entity=remote,
        grid=json.dumps(grid),
        pending_garbage=3,
        active_piece=piece,
        ko=1,
    )
    board = match.world.component_for_entity(remote, Board)
    mirror = match.world.component_for_entity(remote, MirrorState)
    assert board.cells[19][0] is GARBAGE
    assert board.cells[18][3] == Cell.standard(PieceKind.T)
    assert board.cells[17][3].tag is CellTag.BOMB
    assert (mirror.pending_garbage, mirror.ko_count, mirror.active_piece) == (3, 1, piece)


def test_malformed_snapshots_are_dropped_silently():
    match, _ = _online_match()
    remote = match.opponent_entity
    rejected = capture(match.event_bus, EVENT_SNAPSHOT_REJECTED)
    board = match.world.component_for_entity(remote, Board)
    board.cells[19][0] = GARBAGE
    before = [row[:] for row in board.cells]
    ragged = _grid()
    ragged[5] = [0] * 11
    for payload in ([], [[]], "not json", {"grid": 1}, ragged, [[0, "Q"]], [0, 0]):
        assert match.sync.apply_snapshot(remote, payload) is False
    assert board.cells == before
    assert {event["reason"] for event in rejected} == {"malformed_grid"}
    assert match.world.component_for_entity(remote, MirrorState).snapshots_applied == 0


def test_snapshots_never_touch_a_local_board():
    match, _ = _online_match()
    owner = match.player_entity
    rejected = capture(match.event_bus, EVENT_SNAPSHOT_REJECTED)
    assert match.sync.apply_snapshot(owner, _grid(fill="G")) is False
    assert rejected[-1]["reason"] == "not_remote"
    assert not match.world.component_for_entity(owner, Board).cells[19][0].filled


def test_remote_game_over_counts_as_a_knockout_for_us():
    match, _ = _online_match()
    match.sync.apply_snapshot(match.opponent_entity, _grid(), game_over=True)
    state = get_match_state(match.world)
    assert state.winner_entity == match.player_entity
    assert match.world.component_for_entity(match.player_entity, MatchStats).ko_count == 1


def test_lock_out_publishes_a_game_over_snapshot():
    match, network = _online_match()
    owner = match.player_entity
    board = match.world.component_for_entity(owner, Board)
    fill_row(board, 1, gaps=[0])
    set_piece(match.world, owner, PieceKind.T, x=4, y=-1)
    match.board_engine.hard_drop(owner)
    assert network.snapshots[-1].game_over is True
    assert network.snapshots[-1].to_payload()["game_over"] is True


def test_hold_block_out_publishes_before_the_knockout_reset():
    network = RecordingNetwork()
    match = start_match(opponent_remote=True, network=network, rules=MatchRules(knockouts_to_win=2))
    owner = match.player_entity
    match.world.component_for_entity(owner, HoldSlot).kind = PieceKind.O
    board = match.world.component_for_entity(owner, Board)
    fill_row(board, 0, gaps=[0])
    fill_row(board, 1, gaps=[0])
    assert match.board_engine.hold(owner) is False
    assert [snapshot.game_over for snapshot in network.snapshots] == [True]
    assert network.snapshots[0].grid[0][1] == "G"
    # The knockout reset the board and play goes on.
    assert match.world.component_for_entity(owner, PieceSlot).phase is PiecePhase.FALLING
