import random

from esper import World
from .events.bus import EventBus
from blockbattle.components.active_hazards import ActiveHazards
from blockbattle.components.board import Board
from blockbattle.components.ledgers import ComboState, GarbageLedger, MatchStats, PowerUpLedger
from blockbattle.components.match_state import MatchRules, MatchState, PiecePalette, default_palette
from blockbattle.components.piece_queue import HoldSlot, PieceQueue
from blockbattle.components.piece_slot import PieceSlot
from blockbattle.components.player import LocalBoard, MirrorState, PlayerIdentity, RemoteMirror


def create_local_board(world: World, player_id: str, rules: MatchRules) -> int:
    """Create a player entity that runs its own board simulation."""
    return world.create_entity(
        PlayerIdentity(player_id=player_id),
        LocalBoard(),
        Board(rows=rules.rows, cols=rules.cols),
        PieceSlot(),
        PieceQueue(preview_size=rules.preview_size),
        HoldSlot(),
        GarbageLedger(),
        PowerUpLedger(),
        ActiveHazards(),
        ComboState(),
        MatchStats(),
    )


def create_remote_board(world: World, player_id: str, rules: MatchRules) -> int:
    """Create a mirror entity for an opponent simulated on another host."""
    return world.create_entity(
        PlayerIdentity(player_id=player_id),
        RemoteMirror(),
        Board(rows=rules.rows, cols=rules.cols),
        MirrorState(),
        MatchStats(),
    )


def create_world(
    event_bus: EventBus,
    *,
    local_player: str = "p1",
    opponent: str = "p2",
    opponent_remote: bool = True,
    rules: MatchRules | None = None,
    palette: PiecePalette | None = None,
    rng: random.Random | None = None,
) -> World:
    world = World()
    setattr(world, "random", rng or random.Random())
    rules = rules or MatchRules()

    # Match-level singletons live on one resource entity.
    world.create_entity(MatchState(), rules, palette or default_palette())

    player_ent = create_local_board(world, local_player, rules)
    if opponent_remote:
        opponent_ent = create_remote_board(world, opponent, rules)
    else:
        opponent_ent = create_local_board(world, opponent, rules)

    world.component_for_entity(player_ent, PlayerIdentity).opponent_entity = opponent_ent
    world.component_for_entity(opponent_ent, PlayerIdentity).opponent_entity = player_ent
    return world


def player_entities(world: World) -> tuple[int, int]:
    """Return (local player, opponent) entity ids in creation order."""
    entities = sorted(entity for entity, _ in world.get_component(PlayerIdentity))
    if len(entities) < 2:
        return tuple()
    return entities[0], entities[1]
