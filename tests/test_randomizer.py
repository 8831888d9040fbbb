import random

from blockbattle.components.piece import PieceKind, STANDARD_KINDS
from blockbattle.components.piece_queue import PieceQueue
from blockbattle.systems.randomizer import insert_front, next_piece, refill, reset_queue


def _draw(queue, rng, count):
    return [next_piece(queue, rng) for _ in range(count)]


def test_refill_tops_queue_up_to_preview_size():
    queue = PieceQueue(preview_size=3)
    refill(queue, random.Random(0))
    assert len(queue.upcoming) == 3
    assert all(kind in STANDARD_KINDS for kind in queue.upcoming)


def test_every_bag_cycle_holds_each_kind_once():
    rng = random.Random(42)
    queue = PieceQueue()
    reset_queue(queue, rng)
    draws = _draw(queue, rng, 7 * 6)
    for start in range(0, len(draws), 7):
        assert sorted(k.value for k in draws[start:start + 7]) == sorted(k.value for k in STANDARD_KINDS)


def test_inserted_kinds_come_first_in_order():
    rng = random.Random(3)
    queue = PieceQueue()
    reset_queue(queue, rng)
    bag_front = list(queue.upcoming)
    insert_front(queue, PieceKind.BOMB, PieceKind.BUSTER)
    assert queue.upcoming[:2] == [PieceKind.BOMB, PieceKind.BUSTER]
    assert queue.upcoming[2:] == bag_front
    assert _draw(queue, rng, 2) == [PieceKind.BOMB, PieceKind.BUSTER]


def test_insertions_do_not_disturb_bag_fairness():
    rng = random.Random(11)
    queue = PieceQueue()
    reset_queue(queue, rng)
    draws = _draw(queue, rng, 2)
    insert_front(queue, PieceKind.I, PieceKind.I, PieceKind.I)
    draws += _draw(queue, rng, 3 + 12)
    bag_draws = draws[:2] + draws[5:]
    assert draws[2:5] == [PieceKind.I, PieceKind.I, PieceKind.I]
    for start in range(0, 14, 7):
        assert set(bag_draws[start:start + 7]) == set(STANDARD_KINDS)


def test_reset_queue_discards_inserted_hazards():
    rng = random.Random(5)
    queue = PieceQueue()
    reset_queue(queue, rng)
    insert_front(queue, PieceKind.BOMB)
    reset_queue(queue, rng)
    assert PieceKind.BOMB not in queue.upcoming
    assert len(queue.upcoming) == 3
