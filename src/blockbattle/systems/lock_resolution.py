from __future__ import annotations

import logging

from esper import World

from blockbattle.components.ledgers import ComboState, MatchStats, PowerUpLedger
from blockbattle.constants import LINE_CLEAR_SCORES, LOCK_SCORE
from blockbattle.events.bus import (
    EventBus,
    EVENT_ATTACK_SENT,
    EVENT_CURRENCY_CHANGED,
    EVENT_LINE_CLEAR_CELEBRATION,
    EVENT_PIECE_LOCKED,
)
from blockbattle.systems.attack import calculate_attack, scale_for_counter
from blockbattle.systems.garbage_system import GarbageSystem
from blockbattle.utils.match_resources import get_match_rules, opponent_of

logger = logging.getLogger(__name__)


class LockResolutionSystem:
    """Turns each lock into garbage countering, attacks, currency and score.

    Order per lock: counter pending garbage with the cleared lines, compute the
    attack (combo and back-to-back bookkeeping happen here), scale it by the
    share of lines that were not spent countering, credit currency, then send
    whatever attack is left to the opponent.
    """
    def __init__(self, world: World, event_bus: EventBus, garbage_system: GarbageSystem):
        self.world = world
        self.event_bus = event_bus
        self.garbage_system = garbage_system
        self.event_bus.subscribe(EVENT_PIECE_LOCKED, self.on_piece_locked)

    def on_piece_locked(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None:
            return
        self.resolve(
            owner_entity,
            int(kwargs.get("lines_cleared", 0) or 0),
            bool(kwargs.get("t_spin", False)),
        )

    def resolve(self, owner_entity: int, lines_cleared: int, t_spin: bool) -> int:
        """Run the lock pipeline for one board; returns the attack sent."""
        try:
            combo = self.world.component_for_entity(owner_entity, ComboState)
            power = self.world.component_for_entity(owner_entity, PowerUpLedger)
            stats = self.world.component_for_entity(owner_entity, MatchStats)
        except KeyError:
            return 0
        rules = get_match_rules(self.world)

        remaining = self.garbage_system.counter(owner_entity, lines_cleared)
        breakdown = calculate_attack(combo, lines_cleared, t_spin)
        attack = scale_for_counter(breakdown.total, remaining, lines_cleared, rules.counter_mode)

        if lines_cleared > 0:
            power.add(lines_cleared)
            self.event_bus.emit(
                EVENT_CURRENCY_CHANGED,
                owner_entity=owner_entity,
                currency=power.currency,
                delta=lines_cleared,
            )

        stats.pieces_locked += 1
        stats.lines_cleared += lines_cleared
        stats.score += LOCK_SCORE + LINE_CLEAR_SCORES.get(min(lines_cleared, 4), 0)

        if lines_cleared > 0:
            self.event_bus.emit(
                EVENT_LINE_CLEAR_CELEBRATION,
                owner_entity=owner_entity,
                size=lines_cleared,
                t_spin=t_spin,
                back_to_back=breakdown.back_to_back_bonus > 0,
                combo=combo.combo,
            )

        if attack <= 0:
            return 0
        target = opponent_of(self.world, owner_entity)
        if target is None:
            return 0
        stats.lines_sent += attack
        logger.debug("board %s sends %d lines to %s", owner_entity, attack, target)
        self.event_bus.emit(
            EVENT_ATTACK_SENT,
            source_entity=owner_entity,
            target_entity=target,
            lines=attack,
        )
        return attack
