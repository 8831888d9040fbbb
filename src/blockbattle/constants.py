GRID_ROWS = 20
GRID_COLS = 12

# Number of upcoming pieces kept visible in the queue.
QUEUE_PREVIEW = 3

# Rows counted from the top; any filled cell in this band puts the board in danger.
DANGER_ROWS = 6

# ============================================================================
# TIMING (milliseconds)
# ============================================================================
BOMB_FUSE_MS = 10_000
GARBAGE_DRIP_INTERVAL_MS = 2_000
# Gravity starts at 1200ms per row, gets 50ms faster every level, never below 180ms.
BASE_DROP_INTERVAL_MS = 1_200
DROP_INTERVAL_STEP_MS = 50
MIN_DROP_INTERVAL_MS = 180
LEVEL_DURATION_MS = 15_000
# Upper bound on gravity steps replayed in one wake-up after a stall.
MAX_CATCH_UP_STEPS = 10

# ============================================================================
# GARBAGE
# ============================================================================
GARBAGE_DRIP_LINES = 2
BOMB_PENALTY_LINES = 2

# ============================================================================
# POWER-UP COSTS (cleared lines)
# ============================================================================
SHIELD_COST = 3
RUSH_COST = 6
BOMB_COST = 9
COLOR_BUSTER_COST = 17
RUSH_PIECE_COUNT = 3

# ============================================================================
# SCORING
# ============================================================================
LOCK_SCORE = 25
LINE_CLEAR_SCORES = {1: 100, 2: 300, 3: 500, 4: 800}

# Lines needed per extra combo attack line.
COMBO_DIVISOR = 3
T_SPIN_BONUS = 2
BACK_TO_BACK_BONUS = 1
