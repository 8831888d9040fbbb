from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence, Tuple

from esper import World

from blockbattle.components.active_hazards import ActiveHazards, BombFuse
from blockbattle.components.board import Board
from blockbattle.components.ledgers import GarbageLedger
from blockbattle.components.match_state import PiecePalette, RGB
from blockbattle.components.piece import ActivePiece
from blockbattle.components.piece_slot import PieceSlot
from blockbattle.events.bus import (
    EventBus,
    EVENT_BOMB_DETONATED,
    EVENT_TIMERS_ADVANCE,
)
from blockbattle.systems import board_ops
from blockbattle.systems.garbage_system import add_pending
from blockbattle.utils.match_resources import get_match_rules, get_match_state, local_boards

logger = logging.getLogger(__name__)

Position = Tuple[int, int]


def place_bomb(
    board: Board, hazards: ActiveHazards, piece: ActivePiece, *, now: float, fuse_ms: float
) -> BombFuse:
    """Write a locked bomb into the grid and start its shared fuse."""
    bomb_id = hazards.allocate_id()
    cells = board_ops.write_piece(board, piece, bomb_id=bomb_id)
    fuse = BombFuse(bomb_id=bomb_id, expires_at=now + fuse_ms, cells=cells)
    hazards.fuses[bomb_id] = fuse
    return fuse


def defuse(board: Board, hazards: ActiveHazards, bomb_ids: Sequence[int]) -> List[Tuple[int, List[Position]]]:
    """Remove whole bombs (every remaining cell) and stop their fuses."""
    defused: List[Tuple[int, List[Position]]] = []
    for bomb_id in bomb_ids:
        cleared = board_ops.clear_bomb(board, bomb_id)
        hazards.fuses.pop(bomb_id, None)
        defused.append((bomb_id, cleared))
    return defused


def resolve_color_buster(
    board: Board,
    cells: Sequence[Position],
    palette: PiecePalette,
    rng: random.Random,
) -> Tuple[Optional[RGB], List[Position]]:
    """Bust the colour most touched by a locking buster, then let columns settle.

    The buster itself never enters the grid.
    """
    tally = board_ops.tally_touched_colors(board, cells, palette)
    color = board_ops.pick_target_color(tally, rng)
    if color is None:
        return None, []
    removed = board_ops.clear_color(board, color, palette)
    board_ops.apply_gravity(board)
    return color, removed


def preview_buster_target(board: Board, piece: ActivePiece, palette: PiecePalette) -> List[RGB]:
    """Colours a buster would target if hard-dropped now (several when tied)."""
    landed = board_ops.piece_cells(
        ActivePiece(kind=piece.kind, rotation=piece.rotation, x=piece.x,
                    y=board_ops.landing_y(board, piece), disguise=piece.disguise)
    )
    tally = board_ops.tally_touched_colors(board, landed, palette)
    if not tally:
        return []
    best = max(tally.values())
    return sorted(color for color, count in tally.items() if count == best)


class HazardSystem:
    """Burns bomb fuses down on every scheduler wake-up and detonates expired bombs.

    Detonation empties the bomb's remaining cells where they sit (no gravity)
    and charges the owner a fixed garbage penalty that bypasses the shield.
    """
    def __init__(self, world: World, event_bus: EventBus):
        self.world = world
        self.event_bus = event_bus
        self.event_bus.subscribe(EVENT_TIMERS_ADVANCE, self.on_timers_advance)

    def on_timers_advance(self, sender, **kwargs):
        now = kwargs.get("now")
        if now is None or not get_match_state(self.world).running:
            return
        for owner in local_boards(self.world):
            self.detonate_expired(owner, now)

    def detonate_expired(self, owner_entity: int, now: float) -> int:
        """Detonate every fuse of this board that has run out; returns bombs detonated."""
        try:
            hazards = self.world.component_for_entity(owner_entity, ActiveHazards)
            board = self.world.component_for_entity(owner_entity, Board)
            ledger = self.world.component_for_entity(owner_entity, GarbageLedger)
            slot = self.world.component_for_entity(owner_entity, PieceSlot)
        except KeyError:
            return 0
        if slot.game_over or not hazards.fuses:
            return 0
        rules = get_match_rules(self.world)
        expired = sorted(
            bomb_id for bomb_id, fuse in hazards.fuses.items() if now >= fuse.expires_at
        )
        detonated = 0
        for bomb_id in expired:
            cells = board_ops.clear_bomb(board, bomb_id)
            del hazards.fuses[bomb_id]
            if not cells:
                continue
            detonated += 1
            add_pending(ledger, rules.bomb_penalty_lines)
            logger.debug("bomb %s detonated on board %s (%d cells)", bomb_id, owner_entity, len(cells))
            self.event_bus.emit(
                EVENT_BOMB_DETONATED,
                owner_entity=owner_entity,
                bomb_id=bomb_id,
                cells=cells,
                penalty=rules.bomb_penalty_lines,
                pending=ledger.pending,
            )
        return detonated
