"""Assembles a playable match: world, bus and every simulation system.

Systems subscribe in construction order, which is also the order they see
each event (hazards before the drip on a timer wake-up, for instance).
"""
from __future__ import annotations

import random

from blockbattle.components.match_state import MatchRules, PiecePalette
from blockbattle.events.bus import EventBus, EVENT_TICK
from blockbattle.sinks import EffectsSink, NetworkSink
from blockbattle.systems.board_engine import BoardEngineSystem
from blockbattle.systems.effects_cue_system import EffectsCueSystem
from blockbattle.systems.garbage_system import GarbageSystem
from blockbattle.systems.hazard_system import HazardSystem
from blockbattle.systems.lock_resolution import LockResolutionSystem
from blockbattle.systems.match_clock import MatchClockSystem
from blockbattle.systems.match_flow_system import MatchFlowSystem
from blockbattle.systems.power_up_system import PowerUpSystem
from blockbattle.systems.sync_system import SyncSystem
from blockbattle.world import create_world, player_entities


class BlockBattleMatch:
    def __init__(
        self,
        *,
        local_player: str = "p1",
        opponent: str = "p2",
        opponent_remote: bool = True,
        rules: MatchRules | None = None,
        palette: PiecePalette | None = None,
        rng: random.Random | None = None,
        network: NetworkSink | None = None,
        effects: EffectsSink | None = None,
        event_bus: EventBus | None = None,
    ):
        self.event_bus = event_bus or EventBus()
        self.world = create_world(
            self.event_bus,
            local_player=local_player,
            opponent=opponent,
            opponent_remote=opponent_remote,
            rules=rules,
            palette=palette,
            rng=rng,
        )
        self.player_entity, self.opponent_entity = player_entities(self.world)

        # Timing
        self.clock = MatchClockSystem(self.world, self.event_bus)
        self.hazard_system = HazardSystem(self.world, self.event_bus)
        self.garbage_system = GarbageSystem(self.world, self.event_bus)

        # Board and economy
        self.board_engine = BoardEngineSystem(self.world, self.event_bus)
        self.lock_resolution = LockResolutionSystem(self.world, self.event_bus, self.garbage_system)
        self.power_ups = PowerUpSystem(self.world, self.event_bus)
        self.match_flow = MatchFlowSystem(self.world, self.event_bus, self.board_engine)

        # Boundary
        self.sync = SyncSystem(self.world, self.event_bus, network)
        self.effects = EffectsCueSystem(self.world, self.event_bus, effects)

    def start(self, now: float = 0.0) -> None:
        self.match_flow.start(now)

    def tick(self, now: float) -> None:
        self.event_bus.emit(EVENT_TICK, now=now)
