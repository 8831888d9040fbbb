from __future__ import annotations

import logging
import random
from dataclasses import replace

from esper import World

from blockbattle.components.active_hazards import ActiveHazards
from blockbattle.components.board import Board
from blockbattle.components.ledgers import GarbageLedger, PowerUpLedger
from blockbattle.components.match_state import MatchPhase
from blockbattle.components.piece_slot import PieceSlot
from blockbattle.events.bus import (
    EventBus,
    EVENT_ATTACK_RECEIVED,
    EVENT_GARBAGE_APPLIED,
    EVENT_GARBAGE_COUNTERED,
    EVENT_GARBAGE_INCOMING,
    EVENT_SHIELD_CONSUMED,
    EVENT_TIMERS_ADVANCE,
)
from blockbattle.systems import board_ops
from blockbattle.utils.match_resources import get_match_rules, get_match_state, local_boards

logger = logging.getLogger(__name__)


def add_pending(ledger: GarbageLedger, lines: int) -> None:
    """Owe ``lines`` more garbage and make sure the drip is armed."""
    if lines <= 0:
        return
    ledger.pending += lines
    ledger.drip_active = True


def counter_pending(ledger: GarbageLedger, lines_cleared: int) -> tuple[int, int]:
    """Cancel pending garbage with cleared lines; returns (countered, remaining)."""
    if lines_cleared <= 0 or ledger.pending <= 0:
        return 0, max(0, lines_cleared)
    countered = min(ledger.pending, lines_cleared)
    ledger.pending -= countered
    if ledger.pending == 0:
        ledger.stop_drip()
    return countered, lines_cleared - countered


class GarbageSystem:
    """Owns delayed damage: receiving attacks, countering and the drip.

    Flow:
      - EVENT_ATTACK_RECEIVED: an active shield eats the whole delivery,
        otherwise the lines join the pending counter and the drip is armed.
      - EVENT_TIMERS_ADVANCE: the first wake-up after arming sets the drip
        baseline; each interval after that pushes up to ``drip_lines`` garbage
        rows in from the bottom until nothing is pending.
      - ``counter`` is called by the lock pipeline before attacks are computed.
    """
    def __init__(self, world: World, event_bus: EventBus, rng: random.Random | None = None):
        self.world = world
        self.event_bus = event_bus
        candidate = rng or getattr(world, "random", None)
        self.rng = candidate if isinstance(candidate, random.Random) else random.Random()
        self.event_bus.subscribe(EVENT_ATTACK_RECEIVED, self.on_attack_received)
        self.event_bus.subscribe(EVENT_TIMERS_ADVANCE, self.on_timers_advance)

    def on_attack_received(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        lines = kwargs.get("lines")
        if owner_entity is None or lines is None:
            return
        try:
            lines = int(lines)
        except (TypeError, ValueError):
            return
        self.receive(owner_entity, lines)

    def receive(self, owner_entity: int, lines: int) -> int:
        """Queue incoming garbage; returns how many lines were actually queued."""
        if lines <= 0 or get_match_state(self.world).phase is MatchPhase.OVER:
            return 0
        try:
            ledger = self.world.component_for_entity(owner_entity, GarbageLedger)
            power = self.world.component_for_entity(owner_entity, PowerUpLedger)
        except KeyError:
            return 0
        if power.shield_active:
            power.shield_active = False
            logger.debug("shield on board %s blocked %d lines", owner_entity, lines)
            self.event_bus.emit(EVENT_SHIELD_CONSUMED, owner_entity=owner_entity, blocked=lines)
            return 0
        add_pending(ledger, lines)
        self.event_bus.emit(
            EVENT_GARBAGE_INCOMING,
            owner_entity=owner_entity,
            lines=lines,
            pending=ledger.pending,
        )
        return lines

    def counter(self, owner_entity: int, lines_cleared: int) -> int:
        """Spend freshly cleared lines against pending garbage; returns the remainder."""
        try:
            ledger = self.world.component_for_entity(owner_entity, GarbageLedger)
        except KeyError:
            return max(0, lines_cleared)
        countered, remaining = counter_pending(ledger, lines_cleared)
        if countered:
            self.event_bus.emit(
                EVENT_GARBAGE_COUNTERED,
                owner_entity=owner_entity,
                countered=countered,
                pending=ledger.pending,
            )
        return remaining

    def on_timers_advance(self, sender, **kwargs):
        now = kwargs.get("now")
        if now is None or not get_match_state(self.world).running:
            return
        for owner in local_boards(self.world):
            self.drip(owner, now)

    def drip(self, owner_entity: int, now: float) -> int:
        """Advance one board's drip; returns the garbage rows inserted."""
        try:
            ledger = self.world.component_for_entity(owner_entity, GarbageLedger)
            board = self.world.component_for_entity(owner_entity, Board)
            slot = self.world.component_for_entity(owner_entity, PieceSlot)
        except KeyError:
            return 0
        if not ledger.drip_active or slot.game_over:
            return 0
        if ledger.pending <= 0:
            ledger.stop_drip()
            return 0
        rules = get_match_rules(self.world)
        if ledger.next_drip_at is None:
            ledger.next_drip_at = now + rules.drip_interval_ms
            return 0
        if now < ledger.next_drip_at:
            return 0
        amount = min(rules.drip_lines, ledger.pending)
        holes = board_ops.insert_garbage_rows(board, amount, self.rng)
        ledger.pending -= amount
        if ledger.pending > 0:
            ledger.next_drip_at = now + rules.drip_interval_ms
        else:
            ledger.stop_drip()
        # Bomb cells ride up with the stack.
        if self.world.has_component(owner_entity, ActiveHazards):
            board_ops.reindex_bombs(board, self.world.component_for_entity(owner_entity, ActiveHazards))
        logger.debug("board %s took %d garbage rows, %d pending", owner_entity, amount, ledger.pending)
        self.event_bus.emit(
            EVENT_GARBAGE_APPLIED,
            owner_entity=owner_entity,
            lines=amount,
            pending=ledger.pending,
            holes=holes,
        )
        self._displace_active_piece(board, slot, amount)
        return amount

    def _displace_active_piece(self, board: Board, slot: PieceSlot, rows: int) -> None:
        """Lift the falling piece out of garbage that rose into it.

        Lifting by the full row count always fits again (the piece may end up
        above the top, which the next lock treats as a lock out).
        """
        piece = slot.piece
        if piece is None or board_ops.fits(board, piece):
            return
        for lift in range(1, rows + 1):
            candidate = replace(piece, y=piece.y - lift)
            if board_ops.fits(board, candidate):
                slot.piece = candidate
                return
        slot.piece = replace(piece, y=piece.y - rows)
