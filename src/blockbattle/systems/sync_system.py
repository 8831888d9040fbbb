from __future__ import annotations

import logging
from typing import Any, Optional

from esper import World

from blockbattle.components.board import Board
from blockbattle.components.ledgers import GarbageLedger, MatchStats
from blockbattle.components.piece_slot import PieceSlot
from blockbattle.components.player import MirrorState, PlayerIdentity
from blockbattle.events.bus import (
    EventBus,
    EVENT_ATTACK_RECEIVED,
    EVENT_ATTACK_SENT,
    EVENT_BOARD_SETTLED,
    EVENT_BOARD_TOPPED_OUT,
    EVENT_BOMB_RECEIVED,
    EVENT_BOMB_SENT,
    EVENT_REMOTE_ATTACK,
    EVENT_REMOTE_BOMB,
    EVENT_SNAPSHOT_RECEIVED,
    EVENT_SNAPSHOT_REJECTED,
)
from blockbattle.sinks import BoardSnapshot, NetworkSink, NullNetworkSink
from blockbattle.utils.grid_codec import decode_grid, encode_grid
from blockbattle.utils.match_resources import entity_for_player, is_local, is_remote

logger = logging.getLogger(__name__)


def build_snapshot(world: World, owner_entity: int) -> Optional[BoardSnapshot]:
    """Snapshot a local board for replication; None if it is not a full board."""
    try:
        identity = world.component_for_entity(owner_entity, PlayerIdentity)
        board = world.component_for_entity(owner_entity, Board)
        slot = world.component_for_entity(owner_entity, PieceSlot)
    except KeyError:
        return None
    pending = 0
    if world.has_component(owner_entity, GarbageLedger):
        pending = world.component_for_entity(owner_entity, GarbageLedger).pending
    ko_count = 0
    if world.has_component(owner_entity, MatchStats):
        ko_count = world.component_for_entity(owner_entity, MatchStats).ko_count
    return BoardSnapshot(
        player_id=identity.player_id,
        grid=encode_grid(board.cells),
        pending_garbage=pending,
        active_piece=slot.piece.descriptor() if slot.piece is not None else None,
        ko_count=ko_count,
        game_over=slot.game_over,
    )


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class SyncSystem:
    """Boundary between the local simulation and the opponent's host.

    Outbound: a snapshot after every settled lock and on every top out; attacks
    or bombs aimed at a remote board go to the injected ``NetworkSink``. Attacks
    or bombs aimed at a board simulated here are routed straight back in.
    Inbound: snapshots overwrite a remote mirror only after the grid validates;
    remote attacks and bombs are delivered to the named local board.
    """
    def __init__(self, world: World, event_bus: EventBus, network: NetworkSink | None = None):
        self.world = world
        self.event_bus = event_bus
        self.network = network or NullNetworkSink()
        self.event_bus.subscribe(EVENT_BOARD_SETTLED, self.on_board_settled)
        self.event_bus.subscribe(EVENT_ATTACK_SENT, self.on_attack_sent)
        self.event_bus.subscribe(EVENT_BOMB_SENT, self.on_bomb_sent)
        self.event_bus.subscribe(EVENT_SNAPSHOT_RECEIVED, self.on_snapshot_received)
        self.event_bus.subscribe(EVENT_REMOTE_ATTACK, self.on_remote_attack)
        self.event_bus.subscribe(EVENT_REMOTE_BOMB, self.on_remote_bomb)

    # Outbound -----------------------------------------------------------
    def on_board_settled(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None or not is_local(self.world, owner_entity):
            return
        snapshot = build_snapshot(self.world, owner_entity)
        if snapshot is not None:
            self.network.send_snapshot(snapshot)

    def on_attack_sent(self, sender, **kwargs):
        target = kwargs.get("target_entity")
        lines = _as_int(kwargs.get("lines"), 0)
        if target is None or lines <= 0:
            return
        if is_remote(self.world, target):
            self.network.send_attack(self._player_id(target), lines)
        elif is_local(self.world, target):
            self.event_bus.emit(EVENT_ATTACK_RECEIVED, owner_entity=target, lines=lines)

    def on_bomb_sent(self, sender, **kwargs):
        target = kwargs.get("target_entity")
        if target is None:
            return
        if is_remote(self.world, target):
            self.network.send_bomb(self._player_id(target))
        elif is_local(self.world, target):
            self.event_bus.emit(EVENT_BOMB_RECEIVED, owner_entity=target)

    # Inbound ------------------------------------------------------------
    def on_remote_attack(self, sender, **kwargs):
        target = self._local_target(kwargs.get("player_id"))
        lines = _as_int(kwargs.get("lines"), 0)
        if target is None or lines <= 0:
            return
        self.event_bus.emit(EVENT_ATTACK_RECEIVED, owner_entity=target, lines=lines)

    def on_remote_bomb(self, sender, **kwargs):
        target = self._local_target(kwargs.get("player_id"))
        if target is None:
            return
        self.event_bus.emit(EVENT_BOMB_RECEIVED, owner_entity=target)

    def on_snapshot_received(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None and kwargs.get("player_id") is not None:
            owner_entity = entity_for_player(self.world, kwargs["player_id"])
        if owner_entity is None:
            self._reject(None, "unknown_board")
            return
        self.apply_snapshot(
            owner_entity,
            kwargs.get("grid"),
            pending_garbage=kwargs.get("pending_garbage"),
            active_piece=kwargs.get("active_piece"),
            ko=kwargs.get("ko"),
            game_over=bool(kwargs.get("game_over", False)),
        )

    def apply_snapshot(
        self,
        owner_entity: int,
        grid: Any,
        *,
        pending_garbage: Any = None,
        active_piece: Any = None,
        ko: Any = None,
        game_over: bool = False,
    ) -> bool:
        """Overwrite a remote mirror; malformed input leaves it untouched."""
        if not is_remote(self.world, owner_entity):
            return self._reject(owner_entity, "not_remote")
        cells = decode_grid(grid)
        if cells is None:
            return self._reject(owner_entity, "malformed_grid")
        try:
            board = self.world.component_for_entity(owner_entity, Board)
            mirror = self.world.component_for_entity(owner_entity, MirrorState)
        except KeyError:
            return self._reject(owner_entity, "unknown_board")

        board.rows = len(cells)
        board.cols = len(cells[0])
        board.cells = cells
        mirror.pending_garbage = max(0, _as_int(pending_garbage, mirror.pending_garbage))
        mirror.active_piece = active_piece if isinstance(active_piece, dict) else None
        mirror.ko_count = max(0, _as_int(ko, mirror.ko_count))
        mirror.snapshots_applied += 1
        was_over = mirror.game_over
        mirror.game_over = game_over
        if game_over and not was_over:
            self.event_bus.emit(EVENT_BOARD_TOPPED_OUT, owner_entity=owner_entity, reason="remote")
        return True

    def _reject(self, owner_entity: int | None, reason: str) -> bool:
        logger.debug("snapshot for %s dropped: %s", owner_entity, reason)
        self.event_bus.emit(EVENT_SNAPSHOT_REJECTED, owner_entity=owner_entity, reason=reason)
        return False

    def _local_target(self, player_id: str | None) -> int | None:
        if player_id is None:
            return None
        entity = entity_for_player(self.world, player_id)
        if entity is None or not is_local(self.world, entity):
            return None
        return entity

    def _player_id(self, entity: int) -> str:
        return self.world.component_for_entity(entity, PlayerIdentity).player_id
