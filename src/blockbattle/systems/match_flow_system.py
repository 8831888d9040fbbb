from __future__ import annotations

import logging

from esper import World

from blockbattle.components.active_hazards import ActiveHazards
from blockbattle.components.board import Board
from blockbattle.components.ledgers import GarbageLedger, MatchStats
from blockbattle.components.match_state import MatchPhase
from blockbattle.components.player import MirrorState, PlayerIdentity
from blockbattle.events.bus import (
    EventBus,
    EVENT_BOARD_TOPPED_OUT,
    EVENT_KNOCKOUT,
    EVENT_MATCH_ENDED,
    EVENT_MATCH_START_REQUEST,
    EVENT_MATCH_STARTED,
    EVENT_TIMERS_ADVANCE,
)
from blockbattle.systems.board_engine import BoardEngineSystem
from blockbattle.utils.match_resources import (
    get_match_rules,
    get_match_state,
    is_local,
    local_boards,
    opponent_of,
)

logger = logging.getLogger(__name__)


class MatchFlowSystem:
    """Starts matches, scores knockouts and ends the match.

    A board topping out awards its opponent a knockout. Reaching
    ``knockouts_to_win`` ends the match; short of that the loser's board is
    wiped (grid, ledgers, hazards) and play goes on. Ending a match stops
    every timer and clears pending garbage.
    """
    def __init__(self, world: World, event_bus: EventBus, board_engine: BoardEngineSystem):
        self.world = world
        self.event_bus = event_bus
        self.board_engine = board_engine
        self.event_bus.subscribe(EVENT_MATCH_START_REQUEST, self.on_start_request)
        self.event_bus.subscribe(EVENT_BOARD_TOPPED_OUT, self.on_board_topped_out)
        self.event_bus.subscribe(EVENT_TIMERS_ADVANCE, self.on_timers_advance)

    def on_start_request(self, sender, **kwargs):
        now = kwargs.get("now")
        self.start(get_match_state(self.world).now if now is None else float(now))

    def start(self, now: float = 0.0) -> None:
        """(Re)start the match: every board and counter back to zero."""
        state = get_match_state(self.world)
        state.phase = MatchPhase.RUNNING
        state.started_at = now
        state.now = now
        state.active_ms = 0.0
        state.last_tick_at = now
        state.drop_accumulator = 0.0
        state.paused_at = None
        state.paused_by = None
        state.can_unpause = True
        state.winner_entity = None
        state.end_reason = None

        for entity, _ in self.world.get_component(PlayerIdentity):
            if self.world.has_component(entity, MatchStats):
                self.world.component_for_entity(entity, MatchStats).reset()
            if is_local(self.world, entity):
                self.board_engine.reset_board(entity, "restart", spawn=False)
            else:
                if self.world.has_component(entity, Board):
                    self.world.component_for_entity(entity, Board).reset()
                if self.world.has_component(entity, MirrorState):
                    self.world.add_component(entity, MirrorState())

        for owner in local_boards(self.world):
            self.board_engine.spawn(owner)
        logger.info("match started at %s", now)
        self.event_bus.emit(EVENT_MATCH_STARTED, now=now)

    def on_board_topped_out(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None:
            return
        self.knockout(owner_entity)

    def knockout(self, loser_entity: int) -> None:
        state = get_match_state(self.world)
        if state.phase not in (MatchPhase.RUNNING, MatchPhase.PAUSED):
            return
        rules = get_match_rules(self.world)
        winner_entity = opponent_of(self.world, loser_entity)
        ko_count = 0
        if winner_entity is not None and self.world.has_component(winner_entity, MatchStats):
            stats = self.world.component_for_entity(winner_entity, MatchStats)
            stats.ko_count += 1
            ko_count = stats.ko_count
        logger.info("board %s knocked out (%d for %s)", loser_entity, ko_count, winner_entity)
        self.event_bus.emit(
            EVENT_KNOCKOUT,
            loser_entity=loser_entity,
            winner_entity=winner_entity,
            ko_count=ko_count,
        )
        if ko_count >= rules.knockouts_to_win or winner_entity is None:
            self.end_match(winner_entity, loser_entity, "knockout")
        elif is_local(self.world, loser_entity):
            self.board_engine.reset_board(loser_entity, "knockout")
        # A remote loser resets on its own host; the next snapshot shows it.

    def on_timers_advance(self, sender, **kwargs):
        state = get_match_state(self.world)
        rules = get_match_rules(self.world)
        if not state.running or rules.time_limit_ms is None:
            return
        if state.active_ms < rules.time_limit_ms:
            return
        self.end_match(*self._leader(), "time_limit")

    def _leader(self) -> tuple[int | None, int | None]:
        """(winner, loser) by knockouts scored; (None, None) on a tie."""
        entities = sorted(entity for entity, _ in self.world.get_component(PlayerIdentity))
        if len(entities) < 2:
            return None, None
        first, second = entities[0], entities[1]
        first_ko = self._ko_count(first)
        second_ko = self._ko_count(second)
        if first_ko == second_ko:
            return None, None
        return (first, second) if first_ko > second_ko else (second, first)

    def _ko_count(self, entity: int) -> int:
        if not self.world.has_component(entity, MatchStats):
            return 0
        return self.world.component_for_entity(entity, MatchStats).ko_count

    def end_match(self, winner_entity: int | None, loser_entity: int | None, reason: str) -> None:
        state = get_match_state(self.world)
        if state.phase is MatchPhase.OVER:
            return
        state.phase = MatchPhase.OVER
        state.winner_entity = winner_entity
        state.end_reason = reason
        state.drop_accumulator = 0.0
        state.last_tick_at = None
        for owner in local_boards(self.world):
            if self.world.has_component(owner, GarbageLedger):
                self.world.component_for_entity(owner, GarbageLedger).reset()
            if self.world.has_component(owner, ActiveHazards):
                self.world.component_for_entity(owner, ActiveHazards).reset()
        logger.info("match over: winner %s, loser %s (%s)", winner_entity, loser_entity, reason)
        self.event_bus.emit(
            EVENT_MATCH_ENDED,
            winner_entity=winner_entity,
            loser_entity=loser_entity,
            reason=reason,
        )
