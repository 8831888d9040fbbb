"""Outbound seams to the host: replication transport and presentation cues.

The core never talks to a socket or a speaker; it hands plain values to
whatever objects the host injects here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol


@dataclass(slots=True)
class BoardSnapshot:
    """Replicated view of one local board, sent after every lock."""
    player_id: str
    grid: List[List[Any]]
    pending_garbage: int = 0
    active_piece: Optional[Dict[str, Any]] = None
    ko_count: int = 0
    game_over: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "grid": self.grid,
            "pending_garbage": self.pending_garbage,
            "active_piece": self.active_piece,
            "ko": self.ko_count,
            "game_over": self.game_over,
        }


class NetworkSink(Protocol):
    def send_snapshot(self, snapshot: BoardSnapshot) -> None: ...

    def send_attack(self, opponent_id: str, lines: int) -> None: ...

    def send_bomb(self, opponent_id: str) -> None: ...


class EffectsSink(Protocol):
    def cue(self, name: str, **details: Any) -> None: ...


class NullNetworkSink:
    def send_snapshot(self, snapshot: BoardSnapshot) -> None:
        return None

    def send_attack(self, opponent_id: str, lines: int) -> None:
        return None

    def send_bomb(self, opponent_id: str) -> None:
        return None


class NullEffectsSink:
    def cue(self, name: str, **details: Any) -> None:
        return None


@dataclass(slots=True)
class RecordingEffectsSink:
    """Keeps every cue in order; handy for hosts that poll instead of listen."""
    cues: List[tuple] = field(default_factory=list)

    def cue(self, name: str, **details: Any) -> None:
        self.cues.append((name, details))

    def names(self) -> List[str]:
        return [name for name, _ in self.cues]
