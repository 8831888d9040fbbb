from esper import World

from blockbattle.components.match_state import MatchRules, MatchState, PiecePalette, default_palette
from blockbattle.components.player import LocalBoard, PlayerIdentity, RemoteMirror


def get_match_state(world: World) -> MatchState:
    """Return the shared MatchState component, creating it if absent."""
    existing = list(world.get_component(MatchState))
    if existing:
        return existing[0][1]
    world.create_entity(MatchState())
    return list(world.get_component(MatchState))[0][1]


def get_match_rules(world: World) -> MatchRules:
    existing = list(world.get_component(MatchRules))
    if existing:
        return existing[0][1]
    world.create_entity(MatchRules())
    return list(world.get_component(MatchRules))[0][1]


def get_palette(world: World) -> PiecePalette:
    for _, palette in world.get_component(PiecePalette):
        return palette
    palette = default_palette()
    world.create_entity(palette)
    return palette


def local_boards(world: World) -> list[int]:
    return sorted(entity for entity, _ in world.get_component(LocalBoard))


def is_local(world: World, entity: int) -> bool:
    return world.has_component(entity, LocalBoard)


def is_remote(world: World, entity: int) -> bool:
    return world.has_component(entity, RemoteMirror)


def entity_for_player(world: World, player_id: str) -> int | None:
    for entity, identity in world.get_component(PlayerIdentity):
        if identity.player_id == player_id:
            return entity
    return None


def opponent_of(world: World, entity: int) -> int | None:
    try:
        identity = world.component_for_entity(entity, PlayerIdentity)
    except KeyError:
        return None
    return identity.opponent_entity
