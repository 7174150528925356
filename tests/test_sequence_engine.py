import pytest

import difficulty_policy
from game_models import Difficulty, GameType, RoundPhase
from random_source import make_random_source
from sequence_engine import SequenceGameEngine


class ScriptedRandom:
    """Random source that replays fixed cells."""

    def __init__(self, cells):
        self._cells = list(cells)
        self._position = 0

    def randrange(self, stop):
        value = self._cells[self._position % len(self._cells)] % stop
        self._position += 1
        return value

    def sample(self, population, k):
        return list(population)[:k]


def _make_engine(difficulty=Difficulty.EASY, rng=None, level=1):
    engine = SequenceGameEngine(difficulty, random_source=rng, level=level)
    outcomes = []
    engine.add_outcome_listener(outcomes.append)
    return engine, outcomes


def _play_until_input(engine, step=0.05):
    while engine.phase is RoundPhase.SHOWING:
        engine.tick(step)
    assert engine.phase is RoundPhase.PLAYING


def _wrong_cell(engine):
    expected = engine.target_sequence[len(engine.player_input)]
    for cell in range(engine.board_size * engine.board_size):
        if cell != expected and cell not in engine.player_input:
            return cell
    raise AssertionError('no wrong cell available')


def test_easy_level_one_scenario(rng):
    engine, outcomes = _make_engine(rng=rng)
    engine.start()

    assert engine.board_size == 2
    assert len(engine.target_sequence) == 3
    assert len(set(engine.target_sequence)) == 3

    _play_until_input(engine)
    engine.tick(engine.time_remaining - 10.0)
    assert engine.time_remaining == pytest.approx(10.0)

    for cell in engine.target_sequence:
        engine.tap(cell)

    assert engine.phase is RoundPhase.LEVEL_COMPLETE
    assert engine.score == 100
    assert engine.accuracy == 100.0
    assert len(outcomes) == 1
    assert outcomes[0].completed
    assert outcomes[0].game_type is GameType.SEQUENCE_GAME
    assert outcomes[0].score == 100


def test_reveal_shows_each_target_then_starts_countdown(rng):
    engine, _outcomes = _make_engine(rng=rng)
    engine.start()
    assert engine.phase is RoundPhase.SHOWING

    revealed = []
    previous = None
    while engine.phase is RoundPhase.SHOWING:
        engine.tick(0.05)
        current = engine.highlighted_cell
        if current is not None and current != previous:
            revealed.append(current)
        previous = current

    assert revealed == list(engine.target_sequence)
    assert engine.highlighted_cell is None


def test_reveal_duration_follows_timing(rng):
    # 0.5 lead-in + 3 x 0.6 highlight + 3 x 0.2 pause + 0.5 lead-out
    engine, _outcomes = _make_engine(rng=rng)
    engine.start()
    engine.tick(3.3)
    assert engine.phase is RoundPhase.SHOWING
    engine.tick(0.1)
    assert engine.phase is RoundPhase.PLAYING
    assert engine.time_remaining == pytest.approx(21.0)


def test_wrong_tap_ends_round_with_partial_accuracy(rng):
    engine, outcomes = _make_engine(Difficulty.MEDIUM, rng=rng)
    engine.start()
    _play_until_input(engine)

    engine.tap(engine.target_sequence[0])
    engine.tap(_wrong_cell(engine))

    length = len(engine.target_sequence)
    assert engine.phase is RoundPhase.GAME_OVER
    assert engine.accuracy == pytest.approx(1 / length * 100.0)
    assert len(outcomes) == 1 and not outcomes[0].completed


def test_timer_expiry_without_taps_scores_zero_accuracy(rng):
    engine, outcomes = _make_engine(rng=rng)
    engine.start()
    _play_until_input(engine)

    engine.tick(engine.time_remaining + 1.0)

    assert engine.phase is RoundPhase.GAME_OVER
    assert engine.time_remaining == 0.0
    assert engine.accuracy == 0.0
    assert len(outcomes) == 1 and outcomes[0].accuracy == 0.0


def test_countdown_does_not_drift(rng):
    engine, _outcomes = _make_engine(rng=rng)
    engine.start()
    _play_until_input(engine)
    for _ in range(50):
        engine.tick(0.1)
    assert engine.time_remaining == pytest.approx(16.0)


def test_taps_outside_playing_are_ignored(rng):
    engine, outcomes = _make_engine(rng=rng)
    engine.tap(0)
    assert engine.phase is RoundPhase.READY

    engine.start()
    engine.tap(engine.target_sequence[0])
    assert engine.player_input == ()
    assert outcomes == []


def test_repeated_tap_on_selected_cell_is_ignored(rng):
    engine, _outcomes = _make_engine(rng=rng)
    engine.start()
    _play_until_input(engine)

    first = engine.target_sequence[0]
    engine.tap(first)
    engine.tap(first)

    assert engine.phase is RoundPhase.PLAYING
    assert engine.player_input == (first,)


def test_hard_mode_repeated_cells_are_solvable():
    engine, outcomes = _make_engine(Difficulty.HARD, rng=ScriptedRandom([4, 4, 2, 7, 1]))
    engine.start()
    assert engine.target_sequence == (4, 4, 2, 7, 1)
    _play_until_input(engine)

    engine.tap(4)
    engine.tap(4)
    # 4 is already selected and is not the next target: ignored.
    engine.tap(4)
    assert engine.player_input == (4, 4)
    assert engine.phase is RoundPhase.PLAYING

    for cell in (2, 7, 1):
        engine.tap(cell)
    assert engine.phase is RoundPhase.LEVEL_COMPLETE
    assert outcomes[0].completed


def test_pause_freezes_countdown_and_input(rng):
    engine, _outcomes = _make_engine(rng=rng)
    engine.start()
    _play_until_input(engine)
    before = engine.time_remaining

    engine.pause()
    engine.tick(5.0)
    engine.tap(engine.target_sequence[0])
    assert engine.time_remaining == before
    assert engine.player_input == ()
    assert engine.phase is RoundPhase.PLAYING

    engine.resume()
    engine.tick(1.0)
    assert engine.time_remaining == pytest.approx(before - 1.0)


def test_pause_freezes_reveal(rng):
    engine, _outcomes = _make_engine(rng=rng)
    engine.start()
    engine.pause()
    engine.tick(60.0)
    assert engine.phase is RoundPhase.SHOWING
    assert engine.highlighted_cell is None


def test_score_carries_across_levels_and_restart_resets(rng):
    engine, outcomes = _make_engine(rng=rng)
    engine.start()
    _play_until_input(engine)
    for cell in engine.target_sequence:
        engine.tap(cell)
    first_score = engine.score
    assert first_score > 0

    engine.advance()
    assert engine.phase is RoundPhase.READY
    assert engine.level == 2
    engine.start()
    _play_until_input(engine)
    for cell in engine.target_sequence:
        engine.tap(cell)
    assert engine.score > first_score
    assert [outcome.level for outcome in outcomes] == [1, 2]

    engine.restart()
    assert engine.phase is RoundPhase.READY
    assert engine.level == 1
    assert engine.score == 0


def test_advance_from_last_level_finishes(rng):
    engine, _outcomes = _make_engine(rng=rng, level=10)
    engine.start()
    _play_until_input(engine)
    for cell in engine.target_sequence:
        engine.tap(cell)
    engine.advance()
    assert engine.phase is RoundPhase.FINISHED


def test_advance_outside_level_complete_is_noop(rng):
    engine, _outcomes = _make_engine(rng=rng)
    engine.advance()
    assert engine.phase is RoundPhase.READY and engine.level == 1


def test_exit_is_terminal(rng):
    engine, outcomes = _make_engine(rng=rng)
    engine.start()
    engine.exit()
    engine.tick(100.0)
    assert engine.phase is RoundPhase.FINISHED
    assert outcomes == []


def test_next_wake_time_tracks_reveal(rng):
    engine, _outcomes = _make_engine(rng=rng)
    assert engine.next_wake_time is None
    engine.start()
    assert engine.next_wake_time == pytest.approx(0.5)
    engine.tick(0.5)
    assert engine.highlighted_cell == engine.target_sequence[0]
    assert engine.next_wake_time == pytest.approx(1.1)


@pytest.mark.parametrize('level', [0, 11])
def test_invalid_level_raises(level):
    with pytest.raises(ValueError):
        SequenceGameEngine(Difficulty.EASY, level=level)


@pytest.mark.parametrize('level', [1, 4, 7, 10])
def test_medium_sequences_never_repeat_cells(level):
    for seed in range(5):
        engine, _outcomes = _make_engine(Difficulty.MEDIUM, rng=make_random_source(seed), level=level)
        engine.start()
        target = engine.target_sequence
        assert len(target) == difficulty_policy.sequence_length(Difficulty.MEDIUM, level)
        assert len(set(target)) == len(target)
        assert all(0 <= cell < engine.board_size * engine.board_size for cell in target)


def test_hard_sequences_may_repeat_cells():
    repeated = 0
    for seed in range(20):
        engine, _outcomes = _make_engine(Difficulty.HARD, rng=make_random_source(seed))
        engine.start()
        target = engine.target_sequence
        assert all(0 <= cell < engine.board_size * engine.board_size for cell in target)
        if len(set(target)) < len(target):
            repeated += 1
    assert repeated > 0
