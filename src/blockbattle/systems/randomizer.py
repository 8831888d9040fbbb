"""7-bag randomizer and the front-insertion channel used by hazards and power-ups."""
from __future__ import annotations

import random
from typing import List

from blockbattle.components.piece import PieceKind, STANDARD_KINDS
from blockbattle.components.piece_queue import PieceQueue


def new_bag(rng: random.Random) -> List[PieceKind]:
    bag = list(STANDARD_KINDS)
    rng.shuffle(bag)
    return bag


def refill(queue: PieceQueue, rng: random.Random) -> None:
    """Top the visible queue up from the bag, reshuffling when the bag runs dry."""
    while len(queue.upcoming) < queue.preview_size:
        if not queue.bag:
            queue.bag = new_bag(rng)
        queue.upcoming.append(queue.bag.pop())


def next_piece(queue: PieceQueue, rng: random.Random) -> PieceKind:
    refill(queue, rng)
    kind = queue.upcoming.pop(0)
    refill(queue, rng)
    return kind


def insert_front(queue: PieceQueue, *kinds: PieceKind) -> None:
    """Place ``kinds`` ahead of everything already queued, keeping their order."""
    queue.upcoming[0:0] = list(kinds)


def reset_queue(queue: PieceQueue, rng: random.Random) -> None:
    queue.upcoming.clear()
    queue.bag.clear()
    refill(queue, rng)
