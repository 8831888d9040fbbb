from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import List, Optional, Tuple

from esper import World

from blockbattle.components.active_hazards import ActiveHazards
from blockbattle.components.board import Board
from blockbattle.components.ledgers import ComboState, GarbageLedger, PowerUpLedger
from blockbattle.components.piece import ActivePiece, PieceKind, STANDARD_KINDS
from blockbattle.components.piece_queue import HoldSlot, PieceQueue
from blockbattle.components.piece_slot import PiecePhase, PieceSlot
from blockbattle.events.bus import (
    EventBus,
    EVENT_BOARD_RESET,
    EVENT_BOARD_SETTLED,
    EVENT_BOARD_TOPPED_OUT,
    EVENT_BOMB_DEFUSED,
    EVENT_BOMB_PLACED,
    EVENT_BOMB_RECEIVED,
    EVENT_BUSTER_RESOLVED,
    EVENT_DANGER_CHANGED,
    EVENT_GARBAGE_APPLIED,
    EVENT_GRAVITY_STEP,
    EVENT_HARD_DROP_REQUEST,
    EVENT_HOLD_REQUEST,
    EVENT_MOVE_REQUEST,
    EVENT_PIECE_HELD,
    EVENT_PIECE_LOCKED,
    EVENT_PIECE_MOVED,
    EVENT_PIECE_SPAWNED,
    EVENT_ROTATE_REQUEST,
    EVENT_SOFT_DROP_REQUEST,
)
from blockbattle.systems import board_ops
from blockbattle.systems.hazard_system import defuse, place_bomb, resolve_color_buster
from blockbattle.systems.randomizer import insert_front, next_piece, reset_queue
from blockbattle.utils.match_resources import (
    get_match_rules,
    get_match_state,
    get_palette,
    local_boards,
)

logger = logging.getLogger(__name__)


class BoardEngineSystem:
    """Piece lifecycle for every local board: spawn, move, rotate, hold, lock.

    Input arrives as request events carrying ``owner_entity``; gravity arrives
    as EVENT_GRAVITY_STEP from the match clock. Every mutation is refused while
    the match is not running or the board has topped out. A lock is resolved
    start to finish (write, hazards, line clear, EVENT_PIECE_LOCKED, next
    spawn) before any other handler sees the board again.
    """
    def __init__(self, world: World, event_bus: EventBus, rng: random.Random | None = None):
        self.world = world
        self.event_bus = event_bus
        candidate = rng or getattr(world, "random", None)
        self.rng = candidate if isinstance(candidate, random.Random) else random.Random()
        self.event_bus.subscribe(EVENT_MOVE_REQUEST, self.on_move_request)
        self.event_bus.subscribe(EVENT_ROTATE_REQUEST, self.on_rotate_request)
        self.event_bus.subscribe(EVENT_SOFT_DROP_REQUEST, self.on_soft_drop_request)
        self.event_bus.subscribe(EVENT_HARD_DROP_REQUEST, self.on_hard_drop_request)
        self.event_bus.subscribe(EVENT_HOLD_REQUEST, self.on_hold_request)
        self.event_bus.subscribe(EVENT_GRAVITY_STEP, self.on_gravity_step)
        self.event_bus.subscribe(EVENT_BOMB_RECEIVED, self.on_bomb_received)
        self.event_bus.subscribe(EVENT_GARBAGE_APPLIED, self.on_garbage_applied)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def on_move_request(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        dx = kwargs.get("dx")
        if owner_entity is None or not dx:
            return
        self.move(owner_entity, int(dx))

    def on_rotate_request(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None:
            return
        self.rotate(owner_entity, int(kwargs.get("direction", 1) or 1))

    def on_soft_drop_request(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None:
            return
        self.soft_drop(owner_entity)

    def on_hard_drop_request(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None:
            return
        self.hard_drop(owner_entity)

    def on_hold_request(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None:
            return
        self.hold(owner_entity)

    def on_gravity_step(self, sender, **kwargs):
        now = kwargs.get("now")
        for owner in local_boards(self.world):
            self.step_down(owner, now=now, reason="gravity")

    def on_bomb_received(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None:
            return
        try:
            queue = self.world.component_for_entity(owner_entity, PieceQueue)
            slot = self.world.component_for_entity(owner_entity, PieceSlot)
        except KeyError:
            return
        if slot.game_over:
            return
        insert_front(queue, PieceKind.BOMB)

    def on_garbage_applied(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None:
            return
        try:
            board = self.world.component_for_entity(owner_entity, Board)
            slot = self.world.component_for_entity(owner_entity, PieceSlot)
        except KeyError:
            return
        self._update_danger(owner_entity, board, slot)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def spawn(self, owner_entity: int) -> bool:
        """Draw the next piece onto the board; False when it tops the board out."""
        try:
            board = self.world.component_for_entity(owner_entity, Board)
            slot = self.world.component_for_entity(owner_entity, PieceSlot)
            queue = self.world.component_for_entity(owner_entity, PieceQueue)
            hold = self.world.component_for_entity(owner_entity, HoldSlot)
        except KeyError:
            return False
        if slot.game_over:
            return False
        kind = next_piece(queue, self.rng)
        disguise = self.rng.choice(STANDARD_KINDS) if kind is PieceKind.BUSTER else None
        hold.can_hold = True
        return self._enter(owner_entity, board, slot, self._spawn_piece(board, kind, disguise))

    def move(self, owner_entity: int, dx: int) -> bool:
        active = self._active(owner_entity)
        if active is None:
            return False
        board, slot = active
        moved = board_ops.try_shift(board, slot.piece, dx, 0)
        if moved is None:
            return False
        slot.piece = moved
        self.event_bus.emit(EVENT_PIECE_MOVED, owner_entity=owner_entity, piece=moved, reason="move")
        return True

    def rotate(self, owner_entity: int, direction: int = 1) -> bool:
        active = self._active(owner_entity)
        if active is None:
            return False
        board, slot = active
        rotated = board_ops.try_rotate(board, slot.piece, direction)
        if rotated is None:
            return False
        slot.piece = rotated
        self.event_bus.emit(EVENT_PIECE_MOVED, owner_entity=owner_entity, piece=rotated, reason="rotate")
        return True

    def soft_drop(self, owner_entity: int, now: float | None = None) -> bool:
        return self.step_down(owner_entity, now=now, reason="soft_drop")

    def step_down(self, owner_entity: int, *, now: float | None = None, reason: str = "gravity") -> bool:
        """Move the piece one row down; lock it when it cannot. True if it moved."""
        active = self._active(owner_entity)
        if active is None:
            return False
        board, slot = active
        lowered = board_ops.try_shift(board, slot.piece, 0, 1)
        if lowered is None:
            self.lock(owner_entity, now=now)
            return False
        slot.piece = lowered
        self.event_bus.emit(EVENT_PIECE_MOVED, owner_entity=owner_entity, piece=lowered, reason=reason)
        return True

    def hard_drop(self, owner_entity: int, now: float | None = None) -> int:
        """Drop straight to the landing row and lock; returns rows travelled."""
        active = self._active(owner_entity)
        if active is None:
            return 0
        board, slot = active
        piece = slot.piece
        target = board_ops.landing_y(board, piece)
        distance = target - piece.y
        if distance > 0:
            # Travelling down counts as a translation for T-spin purposes.
            slot.piece = replace(piece, y=target, last_move_rotation=False)
        self.lock(owner_entity, now=now)
        return distance

    def hold(self, owner_entity: int) -> bool:
        active = self._active(owner_entity)
        if active is None:
            return False
        board, slot = active
        try:
            hold = self.world.component_for_entity(owner_entity, HoldSlot)
        except KeyError:
            return False
        if not hold.can_hold:
            return False
        current = slot.piece
        stored, stored_disguise = hold.kind, hold.disguise
        hold.kind, hold.disguise = current.kind, current.disguise
        if stored is None:
            entered = self.spawn(owner_entity)
        else:
            entered = self._enter(owner_entity, board, slot, self._spawn_piece(board, stored, stored_disguise))
        if not entered:
            return False
        hold.can_hold = False
        self.event_bus.emit(
            EVENT_PIECE_HELD,
            owner_entity=owner_entity,
            held=current.kind,
            current=slot.piece.kind if slot.piece is not None else None,
        )
        return True

    def lock(self, owner_entity: int, now: float | None = None) -> int:
        """Resolve the active piece into the grid; returns lines cleared."""
        active = self._active(owner_entity)
        if active is None:
            return 0
        board, slot = active
        try:
            hazards = self.world.component_for_entity(owner_entity, ActiveHazards)
        except KeyError:
            hazards = None
        if now is None:
            now = get_match_state(self.world).now
        piece = slot.piece
        slot.phase = PiecePhase.LOCKING
        cells = board_ops.piece_cells(piece)

        if any(row < 0 for row, _ in cells):
            self._top_out(owner_entity, slot, "lock_out")
            return 0

        t_spin = board_ops.is_t_spin(board, piece)
        if piece.kind is PieceKind.BUSTER:
            self._resolve_buster(owner_entity, board, cells)
        elif piece.kind is PieceKind.BOMB and hazards is not None:
            rules = get_match_rules(self.world)
            fuse = place_bomb(board, hazards, piece, now=now, fuse_ms=rules.bomb_fuse_ms)
            logger.debug("bomb %s armed on board %s until %s", fuse.bomb_id, owner_entity, fuse.expires_at)
            self.event_bus.emit(
                EVENT_BOMB_PLACED,
                owner_entity=owner_entity,
                bomb_id=fuse.bomb_id,
                cells=list(fuse.cells),
                expires_at=fuse.expires_at,
            )
        else:
            board_ops.write_piece(board, piece)

        cleared_rows = self._clear_lines(owner_entity, board, hazards)
        slot.piece = None
        slot.phase = PiecePhase.CLEARED
        self.event_bus.emit(
            EVENT_PIECE_LOCKED,
            owner_entity=owner_entity,
            kind=piece.kind,
            lines_cleared=len(cleared_rows),
            cleared_rows=cleared_rows,
            t_spin=t_spin,
            now=now,
        )
        # Countering or a knockout reset may have touched the board in between.
        if slot.phase is PiecePhase.CLEARED:
            self.spawn(owner_entity)
        self._update_danger(owner_entity, board, slot)
        self.event_bus.emit(EVENT_BOARD_SETTLED, owner_entity=owner_entity)
        return len(cleared_rows)

    def reset_board(self, owner_entity: int, reason: str = "restart", *, spawn: bool = True) -> None:
        """Empty the grid and every per-board ledger, then optionally spawn."""
        try:
            board = self.world.component_for_entity(owner_entity, Board)
            slot = self.world.component_for_entity(owner_entity, PieceSlot)
            queue = self.world.component_for_entity(owner_entity, PieceQueue)
            hold = self.world.component_for_entity(owner_entity, HoldSlot)
        except KeyError:
            return
        board.reset()
        reset_queue(queue, self.rng)
        hold.kind = None
        hold.disguise = None
        hold.can_hold = True
        slot.piece = None
        slot.phase = PiecePhase.SPAWNING
        slot.in_danger = False
        for component_type in (ComboState, GarbageLedger, PowerUpLedger, ActiveHazards):
            if self.world.has_component(owner_entity, component_type):
                self.world.component_for_entity(owner_entity, component_type).reset()
        logger.debug("board %s reset (%s)", owner_entity, reason)
        self.event_bus.emit(EVENT_BOARD_RESET, owner_entity=owner_entity, reason=reason)
        if spawn:
            self.spawn(owner_entity)

    def ghost(self, owner_entity: int) -> Optional[ActivePiece]:
        """Where the active piece would land if hard-dropped now."""
        try:
            board = self.world.component_for_entity(owner_entity, Board)
            slot = self.world.component_for_entity(owner_entity, PieceSlot)
        except KeyError:
            return None
        if slot.piece is None:
            return None
        return replace(slot.piece, y=board_ops.landing_y(board, slot.piece))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _active(self, owner_entity: int) -> Optional[Tuple[Board, PieceSlot]]:
        if not get_match_state(self.world).running:
            return None
        try:
            board = self.world.component_for_entity(owner_entity, Board)
            slot = self.world.component_for_entity(owner_entity, PieceSlot)
        except KeyError:
            return None
        if slot.game_over or slot.piece is None:
            return None
        return board, slot

    @staticmethod
    def _spawn_piece(board: Board, kind: PieceKind, disguise: PieceKind | None) -> ActivePiece:
        return ActivePiece(kind=kind, rotation=0, x=board.cols // 2 - 2, y=0, disguise=disguise)

    def _enter(self, owner_entity: int, board: Board, slot: PieceSlot, piece: ActivePiece) -> bool:
        slot.piece = piece
        if not board_ops.fits(board, piece):
            self._top_out(owner_entity, slot, "block_out")
            return False
        slot.phase = PiecePhase.FALLING
        self.event_bus.emit(
            EVENT_PIECE_SPAWNED,
            owner_entity=owner_entity,
            kind=piece.kind,
            disguise=piece.disguise,
        )
        return True

    def _top_out(self, owner_entity: int, slot: PieceSlot, reason: str) -> None:
        slot.phase = PiecePhase.GAME_OVER
        logger.debug("board %s topped out (%s)", owner_entity, reason)
        # Publish the game-over board before a knockout reset can replace it.
        self.event_bus.emit(EVENT_BOARD_SETTLED, owner_entity=owner_entity)
        self.event_bus.emit(EVENT_BOARD_TOPPED_OUT, owner_entity=owner_entity, reason=reason)

    def _resolve_buster(self, owner_entity: int, board: Board, cells) -> None:
        color, removed = resolve_color_buster(board, cells, get_palette(self.world), self.rng)
        if color is not None and self.world.has_component(owner_entity, ActiveHazards):
            board_ops.reindex_bombs(board, self.world.component_for_entity(owner_entity, ActiveHazards))
        self.event_bus.emit(
            EVENT_BUSTER_RESOLVED,
            owner_entity=owner_entity,
            color=color,
            removed=len(removed),
        )

    def _clear_lines(self, owner_entity: int, board: Board, hazards: ActiveHazards | None) -> List[int]:
        full_rows = board_ops.find_full_rows(board)
        if not full_rows:
            return []
        doomed_bombs = board_ops.bomb_ids_in_rows(board, full_rows)
        board_ops.remove_rows(board, full_rows)
        if hazards is not None:
            for bomb_id, cells in defuse(board, hazards, doomed_bombs):
                self.event_bus.emit(
                    EVENT_BOMB_DEFUSED,
                    owner_entity=owner_entity,
                    bomb_id=bomb_id,
                    cells=cells,
                )
            board_ops.reindex_bombs(board, hazards)
        return full_rows

    def _update_danger(self, owner_entity: int, board: Board, slot: PieceSlot) -> None:
        danger_rows = get_match_rules(self.world).danger_rows
        in_danger = board_ops.highest_filled_row(board) < danger_rows
        if in_danger != slot.in_danger:
            slot.in_danger = in_danger
            self.event_bus.emit(EVENT_DANGER_CHANGED, owner_entity=owner_entity, in_danger=in_danger)
