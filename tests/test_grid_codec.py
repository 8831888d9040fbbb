from blockbattle.components.cell import BUSTER, Cell, CellTag, EMPTY, GARBAGE
from blockbattle.components.piece import PieceKind
from blockbattle.utils.grid_codec import decode_cell, decode_grid, encode_cell, encode_grid


def test_cell_tokens():
    assert encode_cell(EMPTY) == 0
    assert encode_cell(Cell.standard(PieceKind.L)) == "L"
    assert encode_cell(GARBAGE) == "G"
    assert encode_cell(Cell.bomb(4)) == "BOMB"
    assert encode_cell(BUSTER) == "BUSTER"


def test_decode_known_and_unknown_tokens():
    assert decode_cell(0) is EMPTY
    assert decode_cell("S") == Cell.standard(PieceKind.S)
    assert decode_cell("G") is GARBAGE
    assert decode_cell("BOMB").tag is CellTag.BOMB
    assert decode_cell("BUSTER") is BUSTER
    assert decode_cell("Q") is None
    assert decode_cell(3.5) is None


def test_grid_survives_the_wire():
    cells = [[EMPTY, Cell.standard(PieceKind.T)], [GARBAGE, EMPTY]]
    assert decode_grid(encode_grid(cells)) == cells


def test_decode_grid_accepts_json_text():
    assert decode_grid('[[0, "G"]]') == [[EMPTY, GARBAGE]]
    assert decode_grid("[[0,") is None


def test_decode_grid_rejects_non_rectangular_payloads():
    assert decode_grid([]) is None
    assert decode_grid([[]]) is None
    assert decode_grid([[0, 0], [0]]) is None
    assert decode_grid([0, 0]) is None
