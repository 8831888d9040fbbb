from __future__ import annotations

import logging
from typing import Dict

from esper import World

from blockbattle.components.ledgers import PowerUpLedger
from blockbattle.components.match_state import MatchRules
from blockbattle.components.piece import PieceKind
from blockbattle.components.piece_queue import PieceQueue
from blockbattle.events.bus import (
    EventBus,
    EVENT_BOMB_SENT,
    EVENT_CURRENCY_CHANGED,
    EVENT_POWER_UP_DENIED,
    EVENT_POWER_UP_REQUEST,
    EVENT_POWER_UP_USED,
)
from blockbattle.systems.randomizer import insert_front
from blockbattle.utils.match_resources import get_match_rules, get_match_state, opponent_of

logger = logging.getLogger(__name__)

SHIELD = "shield"
RUSH = "rush"
BOMB = "bomb"
COLOR_BUSTER = "color_buster"

# Legacy button names still accepted from clients.
ABILITY_ALIASES: Dict[str, str] = {
    "lightning": RUSH,
    "twin": BOMB,
    "colorBuster": COLOR_BUSTER,
    "buster": COLOR_BUSTER,
}


def normalize_ability(name: str | None) -> str | None:
    if not name:
        return None
    return ABILITY_ALIASES.get(name, name)


def power_up_status(ledger: PowerUpLedger, rules: MatchRules) -> Dict[str, bool]:
    """Which abilities the ledger could pay for right now."""
    return {
        SHIELD: ledger.can_spend(rules.costs[SHIELD]) and not ledger.shield_active,
        RUSH: ledger.can_spend(rules.costs[RUSH]),
        BOMB: ledger.can_spend(rules.costs[BOMB]),
        COLOR_BUSTER: ledger.can_spend(rules.costs[COLOR_BUSTER]),
    }


class PowerUpSystem:
    """Spends cleared-line currency on abilities.

    Logic:
      - On EVENT_POWER_UP_REQUEST: validate cost (and, for the shield, that no
        shield is already up), deduct, apply the effect and emit
        EVENT_POWER_UP_USED; otherwise emit EVENT_POWER_UP_DENIED.
      - Effects: shield flag, three I pieces queued first (rush), a bomb sent
        to the opponent, or a buster queued first.
    """
    def __init__(self, world: World, event_bus: EventBus):
        self.world = world
        self.event_bus = event_bus
        self.event_bus.subscribe(EVENT_POWER_UP_REQUEST, self.on_power_up_request)

    def on_power_up_request(self, sender, **kwargs):
        owner_entity = kwargs.get("owner_entity")
        if owner_entity is None:
            return
        self.spend(owner_entity, kwargs.get("ability"))

    def spend(self, owner_entity: int, ability: str | None) -> bool:
        name = normalize_ability(ability)
        rules = get_match_rules(self.world)
        if name not in rules.costs:
            return self._deny(owner_entity, ability, "unknown")
        if not get_match_state(self.world).running:
            return self._deny(owner_entity, name, "inactive")
        try:
            ledger = self.world.component_for_entity(owner_entity, PowerUpLedger)
            queue = self.world.component_for_entity(owner_entity, PieceQueue)
        except KeyError:
            return self._deny(owner_entity, name, "unknown")
        if name == SHIELD and ledger.shield_active:
            return self._deny(owner_entity, name, "shield_active")
        cost = rules.costs[name]
        if not ledger.spend(cost):
            return self._deny(owner_entity, name, "insufficient")

        if name == SHIELD:
            ledger.shield_active = True
        elif name == RUSH:
            insert_front(queue, *([PieceKind.I] * rules.rush_piece_count))
        elif name == BOMB:
            target = opponent_of(self.world, owner_entity)
            if target is not None:
                self.event_bus.emit(EVENT_BOMB_SENT, source_entity=owner_entity, target_entity=target)
        elif name == COLOR_BUSTER:
            insert_front(queue, PieceKind.BUSTER)

        logger.debug("board %s used %s for %d", owner_entity, name, cost)
        self.event_bus.emit(
            EVENT_POWER_UP_USED,
            owner_entity=owner_entity,
            ability=name,
            cost=cost,
            currency=ledger.currency,
        )
        self.event_bus.emit(
            EVENT_CURRENCY_CHANGED,
            owner_entity=owner_entity,
            currency=ledger.currency,
            delta=-cost,
        )
        return True

    def _deny(self, owner_entity: int, ability: str | None, reason: str) -> bool:
        self.event_bus.emit(
            EVENT_POWER_UP_DENIED,
            owner_entity=owner_entity,
            ability=ability,
            reason=reason,
        )
        return False
