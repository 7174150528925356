import pytest

from PyQt6.QtCore import QCoreApplication

from game_controller import GameController, build_engine
from game_models import Difficulty, GameType, RoundPhase
from random_source import make_random_source
from rhythm_engine import RhythmGameEngine
from sequence_engine import SequenceGameEngine
from session_recorder import SessionRecorder
from tick_driver import TickDriver


class FakeTime:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture(scope='module')
def qt_application():
    application = QCoreApplication.instance()
    if application is None:
        application = QCoreApplication([])
    return application


@pytest.fixture()
def driver(qt_application):
    return TickDriver(16, time_source=FakeTime())


@pytest.fixture()
def controller(qt_application, store, driver):
    game_controller = GameController(
        SessionRecorder(store),
        random_source=make_random_source(7),
        tick_driver=driver,
    )
    events = {'phases': [], 'sessions': [], 'badges': [], 'states': []}
    game_controller.phaseChanged.connect(events['phases'].append)
    game_controller.sessionRecorded.connect(events['sessions'].append)
    game_controller.badgesUnlocked.connect(events['badges'].append)
    game_controller.stateUpdated.connect(events['states'].append)
    game_controller.events = events
    yield game_controller
    game_controller.dispose()


def _tick(driver, elapsed):
    driver.ticked.emit(driver.generation(), float(elapsed))


def test_build_engine_picks_engine_by_game_type():
    assert isinstance(build_engine(GameType.SEQUENCE_GAME, Difficulty.EASY), SequenceGameEngine)
    assert isinstance(build_engine(GameType.RHYTHM_GAME, Difficulty.HARD, level=3), RhythmGameEngine)


def test_tick_driver_generation_and_interval(qt_application):
    driver = TickDriver.for_frame_rate(60, time_source=FakeTime())
    assert driver.interval_ms() == 17
    assert not driver.is_running()

    generation = driver.start()
    assert driver.is_running()
    assert driver.start() == generation

    driver.stop()
    assert not driver.is_running()
    assert driver.generation() > generation


def test_sequence_round_through_controller(controller, driver, store):
    controller.start(GameType.SEQUENCE_GAME, Difficulty.EASY)
    engine = controller.engine()

    assert controller.events['phases'] == [RoundPhase.SHOWING]
    assert driver.is_running()

    while engine.phase is RoundPhase.SHOWING:
        _tick(driver, 0.1)
    assert controller.events['phases'][-1] is RoundPhase.PLAYING

    for cell in engine.target_sequence:
        controller.tap(cell)

    assert engine.phase is RoundPhase.LEVEL_COMPLETE
    assert controller.events['phases'][-1] is RoundPhase.LEVEL_COMPLETE
    assert not driver.is_running()
    assert len(controller.events['sessions']) == 1
    assert controller.events['sessions'][0].completed
    assert [badge.id for badge in controller.events['badges'][0]] == ['focused_step', 'calm_precision']
    assert store.statistics().total_sessions == 1
    assert controller.events['states'][-1].phase is RoundPhase.LEVEL_COMPLETE


def test_advance_starts_next_level(controller, driver):
    controller.start(GameType.SEQUENCE_GAME, Difficulty.EASY)
    engine = controller.engine()
    while engine.phase is RoundPhase.SHOWING:
        _tick(driver, 0.1)
    for cell in engine.target_sequence:
        controller.tap(cell)

    controller.advance()
    assert engine.level == 2
    assert engine.phase is RoundPhase.SHOWING
    assert driver.is_running()


def test_stale_ticks_are_dropped(controller, driver):
    controller.start(GameType.SEQUENCE_GAME, Difficulty.EASY)
    stale_generation = driver.generation()

    controller.restart()
    driver.ticked.emit(stale_generation, 60.0)

    engine = controller.engine()
    assert engine.phase is RoundPhase.SHOWING
    assert engine.highlighted_cell is None


def test_pause_stops_driver_and_resume_restarts_it(controller, driver):
    controller.start(GameType.RHYTHM_GAME, Difficulty.EASY)
    engine = controller.engine()
    assert engine.phase is RoundPhase.PLAYING
    paused_generation = driver.generation()

    controller.pause()
    assert not driver.is_running()
    start_y = engine.notes[0].y
    driver.ticked.emit(paused_generation, 1.0)
    assert engine.notes[0].y == start_y

    controller.resume()
    assert driver.is_running()
    _tick(driver, 1.0 / 60.0)
    assert engine.notes[0].y == start_y + engine.geometry.note_speed


def test_rhythm_tap_without_note_is_noop(controller):
    controller.start(GameType.RHYTHM_GAME, Difficulty.MEDIUM)
    engine = controller.engine()
    before = engine.snapshot()
    controller.tap(0)
    assert engine.snapshot() == before


def test_game_over_records_failed_session(controller, driver, store):
    controller.start(GameType.RHYTHM_GAME, Difficulty.HARD)
    engine = controller.engine()
    while engine.phase is RoundPhase.PLAYING:
        _tick(driver, 0.5)

    assert engine.phase is RoundPhase.GAME_OVER
    assert not driver.is_running()
    assert len(controller.events['sessions']) == 1
    assert not controller.events['sessions'][0].completed
    assert store.statistics().current_streak == 0


def test_exit_stops_driver(controller, driver):
    controller.start(GameType.SEQUENCE_GAME, Difficulty.MEDIUM)
    controller.exit()
    assert controller.engine().phase is RoundPhase.FINISHED
    assert not driver.is_running()
    assert controller.events['phases'][-1] is RoundPhase.FINISHED


def test_dispose_detaches_engine(controller, driver):
    controller.start(GameType.SEQUENCE_GAME, Difficulty.EASY)
    controller.dispose()
    assert controller.is_disposed()
    assert controller.engine() is None
    assert not driver.is_running()

    controller.start(GameType.SEQUENCE_GAME, Difficulty.EASY)
    assert controller.engine() is None


def test_starting_new_game_tears_down_previous_engine(controller, driver):
    controller.start(GameType.SEQUENCE_GAME, Difficulty.EASY)
    first_engine = controller.engine()
    controller.start(GameType.RHYTHM_GAME, Difficulty.EASY)

    assert first_engine.phase is RoundPhase.FINISHED
    assert isinstance(controller.engine(), RhythmGameEngine)
    assert controller.events['phases'][-1] is RoundPhase.PLAYING
