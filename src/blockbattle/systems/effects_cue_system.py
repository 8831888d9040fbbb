from __future__ import annotations

from esper import World

from blockbattle.events.bus import (
    EventBus,
    EVENT_BOMB_DEFUSED,
    EVENT_BOMB_DETONATED,
    EVENT_BOMB_PLACED,
    EVENT_BUSTER_RESOLVED,
    EVENT_DANGER_CHANGED,
    EVENT_GARBAGE_APPLIED,
    EVENT_KNOCKOUT,
    EVENT_LINE_CLEAR_CELEBRATION,
    EVENT_MATCH_ENDED,
    EVENT_SHIELD_CONSUMED,
)
from blockbattle.sinks import EffectsSink, NullEffectsSink

LINE_CLEAR_CUES = {1: "single", 2: "double", 3: "triple", 4: "tetris"}


def line_clear_cue(size: int, t_spin: bool) -> str:
    bucket = LINE_CLEAR_CUES.get(min(max(size, 1), 4), "single")
    return f"t_spin_{bucket}" if t_spin else bucket


class EffectsCueSystem:
    """Forwards presentation-worthy moments to the host's effects sink."""
    def __init__(self, world: World, event_bus: EventBus, sink: EffectsSink | None = None):
        self.world = world
        self.event_bus = event_bus
        self.sink = sink or NullEffectsSink()
        self.event_bus.subscribe(EVENT_LINE_CLEAR_CELEBRATION, self.on_line_clear)
        self.event_bus.subscribe(EVENT_BOMB_PLACED, self.on_bomb_placed)
        self.event_bus.subscribe(EVENT_BOMB_DEFUSED, self.on_bomb_defused)
        self.event_bus.subscribe(EVENT_BOMB_DETONATED, self.on_bomb_detonated)
        self.event_bus.subscribe(EVENT_BUSTER_RESOLVED, self.on_buster_resolved)
        self.event_bus.subscribe(EVENT_SHIELD_CONSUMED, self.on_shield_consumed)
        self.event_bus.subscribe(EVENT_GARBAGE_APPLIED, self.on_garbage_applied)
        self.event_bus.subscribe(EVENT_DANGER_CHANGED, self.on_danger_changed)
        self.event_bus.subscribe(EVENT_KNOCKOUT, self.on_knockout)
        self.event_bus.subscribe(EVENT_MATCH_ENDED, self.on_match_ended)

    def on_line_clear(self, sender, **kwargs):
        size = kwargs.get("size") or 0
        if size <= 0:
            return
        self.sink.cue(
            line_clear_cue(size, bool(kwargs.get("t_spin"))),
            owner_entity=kwargs.get("owner_entity"),
            size=size,
            back_to_back=bool(kwargs.get("back_to_back")),
            combo=kwargs.get("combo", 0),
        )

    def on_bomb_placed(self, sender, **kwargs):
        self.sink.cue("bomb_placed", owner_entity=kwargs.get("owner_entity"), expires_at=kwargs.get("expires_at"))

    def on_bomb_defused(self, sender, **kwargs):
        self.sink.cue("bomb_defused", owner_entity=kwargs.get("owner_entity"), cells=kwargs.get("cells", []))

    def on_bomb_detonated(self, sender, **kwargs):
        self.sink.cue("bomb_detonated", owner_entity=kwargs.get("owner_entity"), cells=kwargs.get("cells", []))

    def on_buster_resolved(self, sender, **kwargs):
        if kwargs.get("color") is None:
            return
        self.sink.cue(
            "color_buster",
            owner_entity=kwargs.get("owner_entity"),
            color=kwargs.get("color"),
            removed=kwargs.get("removed", 0),
        )

    def on_shield_consumed(self, sender, **kwargs):
        self.sink.cue("shield_block", owner_entity=kwargs.get("owner_entity"), blocked=kwargs.get("blocked", 0))

    def on_garbage_applied(self, sender, **kwargs):
        self.sink.cue("garbage_rise", owner_entity=kwargs.get("owner_entity"), lines=kwargs.get("lines", 0))

    def on_danger_changed(self, sender, **kwargs):
        name = "danger_on" if kwargs.get("in_danger") else "danger_off"
        self.sink.cue(name, owner_entity=kwargs.get("owner_entity"))

    def on_knockout(self, sender, **kwargs):
        self.sink.cue("knockout", loser_entity=kwargs.get("loser_entity"), winner_entity=kwargs.get("winner_entity"))

    def on_match_ended(self, sender, **kwargs):
        self.sink.cue("match_over", winner_entity=kwargs.get("winner_entity"), reason=kwargs.get("reason"))
