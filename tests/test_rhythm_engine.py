import pytest

import note_field
import rhythm_judge
from game_models import Difficulty, GameType, RoundPhase
from rhythm_engine import RhythmGameEngine


class SingleLaneRandom:
    """Puts every note in lane 0."""

    def randrange(self, stop):
        return 0

    def sample(self, population, k):
        return list(population)[:k]


def _make_engine(difficulty=Difficulty.EASY, rng=None, level=1):
    engine = RhythmGameEngine(difficulty, random_source=rng if rng is not None else SingleLaneRandom(), level=level)
    outcomes = []
    engine.add_outcome_listener(outcomes.append)
    return engine, outcomes


def _play_perfectly(engine):
    while engine.phase is RoundPhase.PLAYING:
        engine.step_frame()
        for note in engine.notes:
            if note.is_live and engine.distance_to_hit_line(note) < 1e-6:
                engine.tap(note.lane)


def test_hard_level_one_game_over_after_four_misses():
    engine, outcomes = _make_engine(Difficulty.HARD)
    engine.start()
    assert len(engine.notes) == 18

    while engine.phase is RoundPhase.PLAYING:
        engine.step_frame()
        if engine.score_state.misses < 4:
            assert engine.phase is RoundPhase.PLAYING

    assert engine.phase is RoundPhase.GAME_OVER
    assert engine.score_state.misses == 4
    assert len(outcomes) == 1
    assert not outcomes[0].completed
    assert outcomes[0].game_type is GameType.RHYTHM_GAME


def test_game_over_regardless_of_prior_hits():
    engine, _outcomes = _make_engine(Difficulty.HARD)
    engine.start()
    hits = 0
    while engine.phase is RoundPhase.PLAYING:
        engine.step_frame()
        for note in engine.notes:
            # Hard spacing is not a whole number of frames, so accept the closest frame.
            if hits < 5 and note.is_live and engine.distance_to_hit_line(note) <= engine.geometry.note_speed / 2.0:
                engine.tap(note.lane)
                hits += 1
    assert engine.phase is RoundPhase.GAME_OVER
    assert engine.score_state.hits == 5
    assert engine.score_state.misses == 4


def test_perfect_play_completes_level():
    engine, outcomes = _make_engine(Difficulty.EASY)
    engine.start()
    _play_perfectly(engine)

    assert engine.phase is RoundPhase.LEVEL_COMPLETE
    assert engine.score_state.perfect_count == 10
    assert engine.score_state.max_combo == 10
    assert engine.score == 1000
    assert engine.progress == 1.0
    assert len(outcomes) == 1
    assert outcomes[0].completed and outcomes[0].accuracy == 100.0


def test_notes_reach_hit_line_at_scheduled_offset():
    engine, _outcomes = _make_engine(Difficulty.EASY)
    engine.start()
    geometry = engine.geometry
    for note in engine.notes:
        travel_seconds = (geometry.hit_line_y - note.y) / geometry.speed_per_second
        assert travel_seconds == pytest.approx(note.scheduled_offset)


def test_tick_converts_elapsed_time_into_frames():
    engine, _outcomes = _make_engine(Difficulty.EASY)
    engine.start()
    first = engine.notes[0]
    start_y = first.y

    engine.tick(10.0 / 60.0)
    assert engine.notes[0].y == pytest.approx(start_y + 40.0)

    engine.tick(0.5 / 60.0)
    assert engine.notes[0].y == pytest.approx(start_y + 40.0)
    engine.tick(0.5 / 60.0)
    assert engine.notes[0].y == pytest.approx(start_y + 44.0)


def test_tap_without_note_in_window_is_noop():
    engine, _outcomes = _make_engine(Difficulty.EASY)
    engine.start()
    before = engine.snapshot()

    assert engine.tap(0) is None
    assert engine.tap(1) is None
    assert engine.tap(99) is None

    after = engine.snapshot()
    assert after == before


def test_pause_freezes_notes_and_ignores_taps():
    engine, _outcomes = _make_engine(Difficulty.EASY)
    engine.start()
    engine.pause()
    start_y = engine.notes[0].y
    engine.tick(5.0)
    engine.step_frame()
    assert engine.notes[0].y == start_y
    assert engine.tap(0) is None
    engine.resume()
    engine.step_frame()
    assert engine.notes[0].y == start_y + engine.geometry.note_speed


def test_advance_keeps_score_and_max_combo():
    engine, _outcomes = _make_engine(Difficulty.EASY)
    engine.start()
    _play_perfectly(engine)
    score = engine.score

    engine.advance()
    assert engine.phase is RoundPhase.READY
    assert engine.level == 2
    assert engine.score == score
    assert engine.score_state.max_combo == 10
    assert engine.score_state.hits == 0
    assert engine.score_state.combo == 0

    engine.start()
    assert len(engine.notes) == 12


def test_restart_resets_all_counters():
    engine, _outcomes = _make_engine(Difficulty.EASY)
    engine.start()
    _play_perfectly(engine)
    engine.restart()

    state = engine.score_state
    assert engine.phase is RoundPhase.READY
    assert engine.level == 1
    assert (state.score, state.combo, state.max_combo, state.hits, state.misses) == (0, 0, 0, 0, 0)
    assert (state.perfect_count, state.good_count) == (0, 0)


def test_exit_is_terminal():
    engine, outcomes = _make_engine(Difficulty.EASY)
    engine.start()
    engine.exit()
    engine.step_frame()
    assert engine.phase is RoundPhase.FINISHED
    assert outcomes == []


def test_perfect_scores_more_than_good_for_equal_combo():
    geometry = note_field.PlayfieldGeometry()
    windows = rhythm_judge.JudgementWindows(perfect=80.0, good=120.0)

    perfect_field = note_field.NoteField(
        [note_field.RhythmNote(index=0, lane=0, scheduled_offset=0.0, y=geometry.hit_line_y - 10.0)], geometry
    )
    good_field = note_field.NoteField(
        [note_field.RhythmNote(index=0, lane=0, scheduled_offset=0.0, y=geometry.hit_line_y - 100.0)], geometry
    )

    perfect_event = rhythm_judge.RhythmJudge(perfect_field, windows, score_multiplier=2).on_tap(0)
    good_event = rhythm_judge.RhythmJudge(good_field, windows, score_multiplier=2).on_tap(0)

    assert perfect_event.judgement is rhythm_judge.Judgement.PERFECT
    assert good_event.judgement is rhythm_judge.Judgement.GOOD
    assert perfect_event.points == 200
    assert good_event.points == 100


def test_tap_outside_good_window_leaves_note_live():
    geometry = note_field.PlayfieldGeometry()
    note = note_field.RhythmNote(index=0, lane=0, scheduled_offset=0.0, y=geometry.hit_line_y - 200.0)
    judge = rhythm_judge.RhythmJudge(
        note_field.NoteField([note], geometry), rhythm_judge.JudgementWindows(80.0, 120.0), score_multiplier=1
    )
    assert judge.on_tap(0) is None
    assert note.is_live
    assert judge.score_state().combo == 0


def test_combo_bonus_uses_combo_before_hit():
    state = rhythm_judge.ScoreState(combo=9)
    assert state.apply_judgement(rhythm_judge.Judgement.PERFECT, 1) == 100
    assert state.combo == 10
    assert state.apply_judgement(rhythm_judge.Judgement.PERFECT, 1) == 200
    assert state.apply_judgement(rhythm_judge.Judgement.GOOD, 3) == 300
    assert state.apply_judgement(rhythm_judge.Judgement.MISS, 3) == 0
    assert state.combo == 0
    assert state.max_combo == 12


def test_nearest_note_in_lane_is_judged():
    geometry = note_field.PlayfieldGeometry()
    near = note_field.RhythmNote(index=1, lane=2, scheduled_offset=1.0, y=geometry.hit_line_y - 5.0)
    far = note_field.RhythmNote(index=0, lane=2, scheduled_offset=0.5, y=geometry.hit_line_y + 50.0)
    judge = rhythm_judge.RhythmJudge(
        note_field.NoteField([far, near], geometry), rhythm_judge.JudgementWindows(80.0, 120.0), score_multiplier=1
    )
    event = judge.on_tap(2)
    assert event.note_index == 1
    assert near.is_hit and far.is_live


def test_accuracy_is_hits_over_judged_notes():
    state = rhythm_judge.ScoreState(hits=3, misses=1)
    assert state.accuracy == pytest.approx(75.0)
    assert rhythm_judge.ScoreState().accuracy == 0.0
