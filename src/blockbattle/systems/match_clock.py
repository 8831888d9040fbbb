from __future__ import annotations

import logging

from esper import World

from blockbattle.components.active_hazards import ActiveHazards
from blockbattle.components.ledgers import GarbageLedger
from blockbattle.components.match_state import MatchPhase
from blockbattle.events.bus import (
    EventBus,
    EVENT_GRAVITY_STEP,
    EVENT_PAUSE_CHANGED,
    EVENT_TICK,
    EVENT_TIMERS_ADVANCE,
)
from blockbattle.utils.match_resources import get_match_rules, get_match_state, local_boards

logger = logging.getLogger(__name__)


class MatchClockSystem:
    """Turns host wake-ups into deterministic simulation time.

    Each EVENT_TICK(now) while running:
      1. adds the elapsed time to ``active_ms`` and records ``now``;
      2. emits EVENT_TIMERS_ADVANCE once (bomb fuses, garbage drip, time limit);
      3. feeds the drop accumulator and emits one EVENT_GRAVITY_STEP per full
         drop interval, replaying at most ``max_catch_up_steps`` after a stall.

    Nothing advances while paused; resuming pushes every fuse and drip deadline
    back by the paused duration so no stored-up time fires at once.
    """
    def __init__(self, world: World, event_bus: EventBus):
        self.world = world
        self.event_bus = event_bus
        self.event_bus.subscribe(EVENT_TICK, self.on_tick)
        self.event_bus.subscribe(EVENT_PAUSE_CHANGED, self.on_pause_changed)

    def on_tick(self, sender, **kwargs):
        now = kwargs.get("now")
        if now is None:
            return
        self.advance(float(now))

    def advance(self, now: float) -> int:
        """Advance the match to ``now``; returns the gravity steps applied."""
        state = get_match_state(self.world)
        if not state.running:
            return 0
        rules = get_match_rules(self.world)
        elapsed = 0.0 if state.last_tick_at is None else max(0.0, now - state.last_tick_at)
        state.last_tick_at = now
        state.now = now
        state.active_ms += elapsed

        self.event_bus.emit(EVENT_TIMERS_ADVANCE, now=now)
        if not state.running:
            return 0

        level = rules.level_for(state.active_ms)
        interval = rules.drop_interval(level)
        state.drop_accumulator += elapsed
        if state.drop_accumulator > interval * rules.max_catch_up_steps:
            logger.debug("clock stalled for %.0fms; clamping to one step", state.drop_accumulator)
            state.drop_accumulator = interval

        steps = 0
        while state.drop_accumulator >= interval and state.running:
            state.drop_accumulator -= interval
            steps += 1
            self.event_bus.emit(EVENT_GRAVITY_STEP, now=now, level=level)
        return steps

    def on_pause_changed(self, sender, **kwargs):
        paused = kwargs.get("paused")
        if paused is None:
            return
        now = kwargs.get("now")
        requested_by = kwargs.get("requested_by")
        if paused:
            self.pause(now, requested_by=requested_by, can_unpause=kwargs.get("can_unpause", True))
        else:
            self.resume(now, requested_by=requested_by)

    def pause(self, now: float | None = None, *, requested_by: int | None = None, can_unpause: bool = True) -> bool:
        state = get_match_state(self.world)
        if state.phase is not MatchPhase.RUNNING:
            return False
        state.phase = MatchPhase.PAUSED
        state.paused_at = now if now is not None else state.now
        state.paused_by = requested_by
        state.can_unpause = bool(can_unpause)
        logger.debug("match paused at %s by %s", state.paused_at, requested_by)
        return True

    def resume(self, now: float | None = None, *, requested_by: int | None = None) -> bool:
        """Resume a paused match; ignored when this side may not unpause."""
        state = get_match_state(self.world)
        if state.phase is not MatchPhase.PAUSED:
            return False
        allowed = state.can_unpause or (requested_by is not None and requested_by == state.paused_by)
        if not allowed:
            logger.debug("resume by %s ignored; only %s may unpause", requested_by, state.paused_by)
            return False
        resumed_at = now if now is not None else state.paused_at
        paused_for = 0.0
        if resumed_at is not None and state.paused_at is not None:
            paused_for = max(0.0, resumed_at - state.paused_at)
        self._shift_deadlines(paused_for)
        state.phase = MatchPhase.RUNNING
        state.paused_at = None
        state.paused_by = None
        state.can_unpause = True
        state.last_tick_at = resumed_at
        if resumed_at is not None:
            state.now = resumed_at
        return True

    def _shift_deadlines(self, delta: float) -> None:
        if delta <= 0:
            return
        for owner in local_boards(self.world):
            if self.world.has_component(owner, ActiveHazards):
                for fuse in self.world.component_for_entity(owner, ActiveHazards).fuses.values():
                    fuse.expires_at += delta
            if self.world.has_component(owner, GarbageLedger):
                ledger = self.world.component_for_entity(owner, GarbageLedger)
                if ledger.next_drip_at is not None:
                    ledger.next_drip_at += delta
