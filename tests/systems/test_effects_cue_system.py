from blockbattle.components.board import Board
from blockbattle.components.piece import PieceKind
from blockbattle.events.bus import EVENT_LINE_CLEAR_CELEBRATION
from blockbattle.sinks import RecordingEffectsSink
from blockbattle.systems.effects_cue_system import line_clear_cue
from tests.helpers import fill_row, set_piece, start_match


def test_line_clear_cue_buckets():
    assert line_clear_cue(1, False) == "single"
    assert line_clear_cue(3, False) == "triple"
    assert line_clear_cue(4, False) == "tetris"
    assert line_clear_cue(6, False) == "tetris"
    assert line_clear_cue(2, True) == "t_spin_double"


def test_tetris_and_back_to_back_reach_the_sink():
    sink = RecordingEffectsSink()
    match = start_match(effects=sink)
    owner = match.player_entity
    board = match.world.component_for_entity(owner, Board)
    for _ in range(2):
        for row in range(16, 20):
            fill_row(board, row, gaps=[0])
        set_piece(match.world, owner, PieceKind.I, rotation=1, x=-2, y=0)
        match.board_engine.hard_drop(owner)
    tetrises = [details for name, details in sink.cues if name == "tetris"]
    assert [details["back_to_back"] for details in tetrises] == [False, True]


def test_hazard_cues():
    sink = RecordingEffectsSink()
    match = start_match(effects=sink)
    owner = match.player_entity
    set_piece(match.world, owner, PieceKind.BOMB, x=0, y=0)
    match.board_engine.hard_drop(owner)
    match.tick(10_000)
    assert "bomb_placed" in sink.names()
    assert "bomb_detonated" in sink.names()


def test_zero_size_celebration_is_ignored():
    sink = RecordingEffectsSink()
    match = start_match(effects=sink)
    match.event_bus.emit(EVENT_LINE_CLEAR_CELEBRATION, owner_entity=match.player_entity, size=0)
    assert sink.cues == []
