from blinker import Signal
from typing import Dict

class EventBus:
    """Simple event bus leveraging blinker Signal objects."""
    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def subscribe(self, name: str, fn):
        sig = self._signals.setdefault(name, Signal(name))
        # Use weak=False to retain strong reference to bound methods so systems not kept in a variable still receive events.
        sig.connect(fn, weak=False)

    def unsubscribe(self, name: str, fn):
        sig = self._signals.get(name)
        if sig:
            sig.disconnect(fn)

    def emit(self, name: str, **payload):
        sig = self._signals.get(name)
        if sig:
            sig.send(self, **payload)


# ============================================================================
# SYSTEM & TIMING
# ============================================================================
EVENT_TICK = "tick"                                # payload: now=float (ms)
EVENT_TIMERS_ADVANCE = "timers_advance"            # payload: now=float (ms)
EVENT_GRAVITY_STEP = "gravity_step"                # payload: now=float (ms), level=int
EVENT_PAUSE_CHANGED = "pause_changed"              # payload: paused=bool, can_unpause=bool, now=float|None, requested_by=int|None


# ============================================================================
# PLAYER INPUT (already mapped from devices by the host)
# ============================================================================
EVENT_MOVE_REQUEST = "move_request"                # payload: owner_entity=int, dx=int
EVENT_ROTATE_REQUEST = "rotate_request"            # payload: owner_entity=int, direction=int (+1 cw, -1 ccw)
EVENT_SOFT_DROP_REQUEST = "soft_drop_request"      # payload: owner_entity=int
EVENT_HARD_DROP_REQUEST = "hard_drop_request"      # payload: owner_entity=int
EVENT_HOLD_REQUEST = "hold_request"                # payload: owner_entity=int


# ============================================================================
# PIECE LIFECYCLE
# ============================================================================
EVENT_PIECE_SPAWNED = "piece_spawned"              # payload: owner_entity=int, kind=PieceKind, disguise=PieceKind|None
EVENT_PIECE_MOVED = "piece_moved"                  # payload: owner_entity=int, piece=ActivePiece, reason=str
EVENT_PIECE_HELD = "piece_held"                    # payload: owner_entity=int, held=PieceKind, current=PieceKind
EVENT_PIECE_LOCKED = "piece_locked"                # payload: owner_entity=int, kind=PieceKind, lines_cleared=int, cleared_rows=list[int], t_spin=bool, now=float
EVENT_BOARD_SETTLED = "board_settled"              # payload: owner_entity=int (lock fully resolved, next piece spawned)
EVENT_BOARD_TOPPED_OUT = "board_topped_out"        # payload: owner_entity=int, reason=str
EVENT_DANGER_CHANGED = "danger_changed"            # payload: owner_entity=int, in_danger=bool
EVENT_BOARD_RESET = "board_reset"                  # payload: owner_entity=int, reason=str


# ============================================================================
# HAZARDS
# ============================================================================
EVENT_BOMB_PLACED = "bomb_placed"                  # payload: owner_entity=int, bomb_id=int, cells=list[(r,c)], expires_at=float
EVENT_BOMB_DEFUSED = "bomb_defused"                # payload: owner_entity=int, bomb_id=int, cells=list[(r,c)]
EVENT_BOMB_DETONATED = "bomb_detonated"            # payload: owner_entity=int, bomb_id=int, cells=list[(r,c)], penalty=int
EVENT_BUSTER_RESOLVED = "buster_resolved"          # payload: owner_entity=int, color=tuple|None, removed=int


# ============================================================================
# GARBAGE & ATTACKS
# ============================================================================
EVENT_ATTACK_RECEIVED = "attack_received"          # payload: owner_entity=int, lines=int
EVENT_GARBAGE_INCOMING = "garbage_incoming"        # payload: owner_entity=int, lines=int, pending=int
EVENT_GARBAGE_APPLIED = "garbage_applied"          # payload: owner_entity=int, lines=int, pending=int, holes=list[int]
EVENT_GARBAGE_COUNTERED = "garbage_countered"      # payload: owner_entity=int, countered=int, pending=int
EVENT_SHIELD_CONSUMED = "shield_consumed"          # payload: owner_entity=int, blocked=int
EVENT_ATTACK_SENT = "attack_sent"                  # payload: source_entity=int, target_entity=int, lines=int
EVENT_LINE_CLEAR_CELEBRATION = "line_clear_celebration"  # payload: owner_entity=int, size=int, t_spin=bool, back_to_back=bool, combo=int


# ============================================================================
# POWER-UPS
# ============================================================================
EVENT_POWER_UP_REQUEST = "power_up_request"        # payload: owner_entity=int, ability=str
EVENT_POWER_UP_USED = "power_up_used"              # payload: owner_entity=int, ability=str, cost=int, currency=int
EVENT_POWER_UP_DENIED = "power_up_denied"          # payload: owner_entity=int, ability=str, reason=str
EVENT_CURRENCY_CHANGED = "currency_changed"        # payload: owner_entity=int, currency=int, delta=int
EVENT_BOMB_SENT = "bomb_sent"                      # payload: source_entity=int, target_entity=int
EVENT_BOMB_RECEIVED = "bomb_received"              # payload: owner_entity=int


# ============================================================================
# SYNCHRONIZATION BOUNDARY
# ============================================================================
EVENT_SNAPSHOT_RECEIVED = "snapshot_received"      # payload: owner_entity=int, grid=list|str, pending_garbage=int|None, active_piece=dict|None, ko=int|None, game_over=bool
EVENT_SNAPSHOT_REJECTED = "snapshot_rejected"      # payload: owner_entity=int|None, reason=str
EVENT_REMOTE_ATTACK = "remote_attack"              # payload: player_id=str, lines=int
EVENT_REMOTE_BOMB = "remote_bomb"                  # payload: player_id=str


# ============================================================================
# MATCH FLOW
# ============================================================================
EVENT_MATCH_START_REQUEST = "match_start_request"  # payload: now=float|None
EVENT_MATCH_STARTED = "match_started"              # payload: now=float
EVENT_KNOCKOUT = "knockout"                        # payload: loser_entity=int, winner_entity=int|None, ko_count=int
EVENT_MATCH_ENDED = "match_ended"                  # payload: winner_entity=int|None, loser_entity=int|None, reason=str
