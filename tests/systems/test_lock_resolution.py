from blockbattle.components.ledgers import ComboState, GarbageLedger, MatchStats, PowerUpLedger
from blockbattle.components.match_state import MatchRules
from blockbattle.events.bus import EVENT_ATTACK_SENT, EVENT_CURRENCY_CHANGED, EVENT_PIECE_LOCKED
from tests.helpers import capture, start_match


def test_countered_clear_sends_nothing_even_with_bonuses():
    match = start_match()
    owner = match.player_entity
    ledger = match.world.component_for_entity(owner, GarbageLedger)
    ledger.pending = 5
    ledger.drip_active = True
    sent = capture(match.event_bus, EVENT_ATTACK_SENT)

    attack = match.lock_resolution.resolve(owner, 3, t_spin=True)

    assert attack == 0
    assert ledger.pending == 2
    assert sent == []


def test_partial_counter_scales_attack_down():
    match = start_match()
    owner = match.player_entity
    match.world.component_for_entity(owner, GarbageLedger).pending = 3
    # Tetris is worth 3; one of four lines survives the counter.
    assert match.lock_resolution.resolve(owner, 4, t_spin=False) == 0
    match.world.component_for_entity(owner, GarbageLedger).pending = 1
    combo = match.world.component_for_entity(owner, ComboState)
    combo.combo = 0
    combo.back_to_back = False
    assert match.lock_resolution.resolve(owner, 4, t_spin=False) == 2


def test_subtract_counter_mode():
    match = start_match(rules=MatchRules(counter_mode="subtract"))
    owner = match.player_entity
    match.world.component_for_entity(owner, GarbageLedger).pending = 1
    assert match.lock_resolution.resolve(owner, 4, t_spin=False) == 2


def test_currency_and_score_follow_cleared_lines():
    match = start_match()
    owner = match.player_entity
    currency = capture(match.event_bus, EVENT_CURRENCY_CHANGED)
    match.lock_resolution.resolve(owner, 2, t_spin=False)
    match.lock_resolution.resolve(owner, 0, t_spin=False)
    power = match.world.component_for_entity(owner, PowerUpLedger)
    stats = match.world.component_for_entity(owner, MatchStats)
    assert power.currency == 2
    assert currency[-1] == {"owner_entity": owner, "currency": 2, "delta": 2}
    assert stats.score == 25 + 300 + 25
    assert stats.lines_cleared == 2
    assert stats.pieces_locked == 2


def test_attack_goes_to_the_opponent_through_the_lock_event():
    match = start_match()
    owner = match.player_entity
    sent = capture(match.event_bus, EVENT_ATTACK_SENT)
    match.event_bus.emit(EVENT_PIECE_LOCKED, owner_entity=owner, lines_cleared=3, t_spin=False)
    assert sent[-1] == {"source_entity": owner, "target_entity": match.opponent_entity, "lines": 2}
    assert match.world.component_for_entity(match.opponent_entity, GarbageLedger).pending == 2
