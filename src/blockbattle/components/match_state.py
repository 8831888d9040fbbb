"""Match-level singleton resources: phase, clock bookkeeping and tunables."""
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Optional, Tuple

from blockbattle import constants
from blockbattle.components.piece import PieceKind


class MatchPhase(Enum):
    WAITING = auto()
    RUNNING = auto()
    PAUSED = auto()
    OVER = auto()


@dataclass(slots=True)
class MatchState:
    """Singleton component describing where the match is in time.

    ``now`` is the timestamp of the latest scheduler wake-up and is what
    input-driven actions (hard drops, power-ups) use as the current time.
    """
    phase: MatchPhase = MatchPhase.WAITING
    started_at: Optional[float] = None
    now: float = 0.0
    active_ms: float = 0.0
    last_tick_at: Optional[float] = None
    drop_accumulator: float = 0.0
    paused_at: Optional[float] = None
    paused_by: Optional[int] = None
    can_unpause: bool = True
    winner_entity: Optional[int] = None
    end_reason: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.phase is MatchPhase.RUNNING


@dataclass(slots=True)
class MatchRules:
    """Every tunable of the battle economy and simulation clock."""
    rows: int = constants.GRID_ROWS
    cols: int = constants.GRID_COLS
    preview_size: int = constants.QUEUE_PREVIEW
    danger_rows: int = constants.DANGER_ROWS
    bomb_fuse_ms: float = constants.BOMB_FUSE_MS
    bomb_penalty_lines: int = constants.BOMB_PENALTY_LINES
    drip_interval_ms: float = constants.GARBAGE_DRIP_INTERVAL_MS
    drip_lines: int = constants.GARBAGE_DRIP_LINES
    base_drop_interval_ms: float = constants.BASE_DROP_INTERVAL_MS
    drop_interval_step_ms: float = constants.DROP_INTERVAL_STEP_MS
    min_drop_interval_ms: float = constants.MIN_DROP_INTERVAL_MS
    level_duration_ms: float = constants.LEVEL_DURATION_MS
    max_catch_up_steps: int = constants.MAX_CATCH_UP_STEPS
    costs: Dict[str, int] = field(default_factory=lambda: {
        "shield": constants.SHIELD_COST,
        "rush": constants.RUSH_COST,
        "bomb": constants.BOMB_COST,
        "color_buster": constants.COLOR_BUSTER_COST,
    })
    rush_piece_count: int = constants.RUSH_PIECE_COUNT
    # "ratio" scales the attack by remaining/cleared lines, "subtract" removes countered lines.
    counter_mode: str = "ratio"
    knockouts_to_win: int = 1
    time_limit_ms: Optional[float] = None

    def drop_interval(self, level: int) -> float:
        interval = self.base_drop_interval_ms - (max(1, level) - 1) * self.drop_interval_step_ms
        return max(self.min_drop_interval_ms, interval)

    def level_for(self, active_ms: float) -> int:
        if self.level_duration_ms <= 0:
            return 1
        return int(active_ms // self.level_duration_ms) + 1


RGB = Tuple[int, int, int]


@dataclass(slots=True)
class PiecePalette:
    """Colour registry for standard kinds; the Color Buster targets colours, not kinds."""
    colors: Dict[PieceKind, RGB]

    def color_of(self, kind: PieceKind | None) -> RGB | None:
        if kind is None:
            return None
        return self.colors.get(kind)


def default_palette() -> PiecePalette:
    return PiecePalette(
        colors={
            PieceKind.I: (0, 240, 240),
            PieceKind.J: (0, 0, 240),
            PieceKind.L: (240, 160, 0),
            PieceKind.O: (240, 240, 0),
            PieceKind.S: (0, 240, 0),
            PieceKind.T: (160, 0, 240),
            PieceKind.Z: (240, 0, 0),
        }
    )
