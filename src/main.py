"""Headless demo: two local boards hard-dropping until one tops out.

Runs the simulation with a seeded RNG and a fake clock and logs the result.
"""
import logging
import random
import sys

from blockbattle.components.ledgers import MatchStats
from blockbattle.components.match_state import MatchRules
from blockbattle.match import BlockBattleMatch
from blockbattle.utils.match_resources import get_match_state

FRAME_MS = 250


def run(seed: int = 7, max_frames: int = 4000) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    match = BlockBattleMatch(
        opponent_remote=False,
        rules=MatchRules(time_limit_ms=120_000),
        rng=random.Random(seed),
    )
    match.start(0.0)
    state = get_match_state(match.world)
    boards = (match.player_entity, match.opponent_entity)
    for frame in range(1, max_frames + 1):
        match.tick(frame * FRAME_MS)
        if not state.running:
            break
        owner = boards[frame % 2]
        shift = match.world.random.randint(-2, 2)
        for _ in range(abs(shift)):
            match.board_engine.move(owner, 1 if shift > 0 else -1)
        match.board_engine.hard_drop(owner)
    for owner in boards:
        stats = match.world.component_for_entity(owner, MatchStats)
        logging.info(
            "board %s: score=%d lines=%d sent=%d kos=%d",
            owner, stats.score, stats.lines_cleared, stats.lines_sent, stats.ko_count,
        )
    logging.info("winner=%s reason=%s", state.winner_entity, state.end_reason)
    return 0


if __name__ == "__main__":
    sys.exit(run(int(sys.argv[1]) if len(sys.argv) > 1 else 7))
