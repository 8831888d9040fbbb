from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(slots=True)
class PlayerIdentity:
    player_id: str
    opponent_entity: Optional[int] = None


@dataclass(slots=True)
class LocalBoard:
    """Tag: this board runs its own physics on this host."""


@dataclass(slots=True)
class RemoteMirror:
    """Tag: this board is only ever overwritten by inbound snapshots."""


@dataclass(slots=True)
class MirrorState:
    """Extras carried by the last accepted snapshot of a remote board."""
    pending_garbage: int = 0
    active_piece: Optional[Dict[str, Any]] = None
    ko_count: int = 0
    game_over: bool = False
    snapshots_applied: int = 0
