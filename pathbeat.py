"""
pathbeat.py

Command line entrypoint for the Pathbeat game core.

Commands
- stats     Progression summary as JSON
- badges    Badge catalog with unlock state
- reset     Reset all progression data (requires --yes)
- simulate  Headless deterministic autoplay that records real sessions
- config    Resolved configuration

Integration
- Loads config and paths
- Opens the ProgressionStore over a DirectoryKeyValueStore (or an in-memory store with --memory)
- simulate drives the same engines and SessionRecorder the GameController uses, without a Qt event loop

Output is JSON on stdout. Exit code 0 on success, 2 on error.
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from typing import Any, Dict, List, Optional

import paths
from config import AppConfig, get_config, to_json
from game_controller import GameEngine, build_engine
from game_models import Badge, Difficulty, GameSession, GameType, PathbeatError, RoundPhase
from kv_store import DirectoryKeyValueStore, InMemoryKeyValueStore
from progression_store import ProgressionStore
from random_source import make_random_source
from rhythm_engine import RhythmGameEngine
from sequence_engine import SequenceGameEngine
from session_recorder import RecordResult, SessionRecorder


logger = logging.getLogger(__name__)

_GAME_CHOICES = {
    "sequence": GameType.SEQUENCE_GAME,
    "rhythm": GameType.RHYTHM_GAME,
}

_DIFFICULTY_CHOICES = {
    "easy": Difficulty.EASY,
    "medium": Difficulty.MEDIUM,
    "hard": Difficulty.HARD,
}

# Seconds the sequence bot waits before each tap.
_SEQUENCE_THINK_SECONDS = 0.4


def _session_payload(session: GameSession) -> Dict[str, Any]:
    return {
        "id": session.id,
        "game_type": session.game_type.value,
        "difficulty": session.difficulty.value,
        "level": session.level,
        "score": session.score,
        "accuracy": round(session.accuracy, 2),
        "completed": session.completed,
        "timestamp": session.timestamp,
    }


def _badge_payload(badge: Badge) -> Dict[str, Any]:
    return {
        "id": badge.id,
        "name": badge.name,
        "description": badge.description,
        "icon_name": badge.icon_name,
        "is_unlocked": badge.is_unlocked,
        "unlocked_timestamp": badge.unlocked_timestamp,
    }


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _open_store(app_config: AppConfig, *, use_memory: bool) -> ProgressionStore:
    if use_memory:
        return ProgressionStore.open(InMemoryKeyValueStore())
    return ProgressionStore.open(DirectoryKeyValueStore(paths.progress_dir(app_config)))


# -----------------
# Autoplay
# -----------------


def _autoplay_sequence(engine: SequenceGameEngine, bot_random: random.Random, miss_rate: float, tick_seconds: float) -> None:
    while engine.phase is RoundPhase.SHOWING:
        engine.tick(tick_seconds)

    for expected in engine.target_sequence:
        if engine.phase is not RoundPhase.PLAYING:
            break
        engine.tick(_SEQUENCE_THINK_SECONDS)
        if engine.phase is not RoundPhase.PLAYING:
            break

        cell = expected
        if bot_random.random() < miss_rate:
            wrong_cells = [
                candidate
                for candidate in range(engine.board_size * engine.board_size)
                if candidate != expected and candidate not in engine.player_input
            ]
            if wrong_cells:
                cell = bot_random.choice(wrong_cells)
        engine.tap(cell)

    while engine.phase is RoundPhase.PLAYING:
        engine.tick(tick_seconds)


def _autoplay_rhythm(engine: RhythmGameEngine, bot_random: random.Random, miss_rate: float) -> None:
    skipped_notes = set()
    tap_distance = engine.parameters.perfect_window / 2.0

    while engine.phase is RoundPhase.PLAYING:
        engine.step_frame()
        for note in engine.notes:
            if engine.phase is not RoundPhase.PLAYING:
                break
            if not note.is_live or note.index in skipped_notes:
                continue
            if engine.distance_to_hit_line(note) > tap_distance:
                continue
            if bot_random.random() < miss_rate:
                skipped_notes.add(note.index)
            else:
                engine.tap(note.lane)


def simulate(
    recorder: SessionRecorder,
    *,
    game_type: GameType,
    difficulty: Difficulty,
    rounds: int,
    seed: Optional[int] = None,
    miss_rate: float = 0.0,
    app_config: Optional[AppConfig] = None,
) -> List[RecordResult]:
    """Play up to `rounds` rounds headlessly, recording each terminal outcome.

    A completed round advances to the next level; a failed one restarts from level 1.
    Stops early once the final level is completed.
    """
    resolved_config = app_config if app_config is not None else AppConfig()
    results: List[RecordResult] = []
    engine: GameEngine = build_engine(
        game_type,
        difficulty,
        random_source=make_random_source(seed),
        app_config=resolved_config,
    )
    engine.add_outcome_listener(lambda outcome: results.append(recorder.record(outcome)))
    bot_random = random.Random(None if seed is None else int(seed) + 1)

    for _round_index in range(max(0, int(rounds))):
        engine.start()
        if isinstance(engine, SequenceGameEngine):
            _autoplay_sequence(engine, bot_random, miss_rate, float(resolved_config.sequence.tick_seconds))
        else:
            _autoplay_rhythm(engine, bot_random, miss_rate)

        if engine.phase is RoundPhase.LEVEL_COMPLETE:
            engine.advance()
            if engine.phase is RoundPhase.FINISHED:
                break
        else:
            engine.restart()

    return results


# -----------------
# Commands
# -----------------


def _command_stats(app_config: AppConfig, parsed_args: argparse.Namespace) -> Dict[str, Any]:
    store = _open_store(app_config, use_memory=bool(parsed_args.memory))
    try:
        return {
            "ok": True,
            "summary": store.summary(),
            "recent_sessions": [_session_payload(session) for session in store.recent_sessions(int(parsed_args.recent))],
        }
    finally:
        store.close()


def _command_badges(app_config: AppConfig, parsed_args: argparse.Namespace) -> Dict[str, Any]:
    store = _open_store(app_config, use_memory=bool(parsed_args.memory))
    try:
        return {"ok": True, "badges": [_badge_payload(badge) for badge in store.badges()]}
    finally:
        store.close()


def _command_reset(app_config: AppConfig, parsed_args: argparse.Namespace) -> Dict[str, Any]:
    if not parsed_args.yes:
        raise ValueError("reset deletes all progress; pass --yes to confirm")
    store = _open_store(app_config, use_memory=bool(parsed_args.memory))
    try:
        store.reset_all()
        return {"ok": True, "summary": store.summary()}
    finally:
        store.close()


def _command_simulate(app_config: AppConfig, parsed_args: argparse.Namespace) -> Dict[str, Any]:
    miss_rate = float(parsed_args.miss_rate)
    if miss_rate < 0.0 or miss_rate > 1.0:
        raise ValueError("--miss-rate must be between 0 and 1")

    store = _open_store(app_config, use_memory=bool(parsed_args.memory))
    try:
        results = simulate(
            SessionRecorder(store),
            game_type=_GAME_CHOICES[parsed_args.game],
            difficulty=_DIFFICULTY_CHOICES[parsed_args.difficulty],
            rounds=int(parsed_args.levels),
            seed=parsed_args.seed,
            miss_rate=miss_rate,
            app_config=app_config,
        )
        return {
            "ok": True,
            "sessions": [_session_payload(result.session) for result in results],
            "unlocked_badges": [badge.id for result in results for badge in result.unlocked_badges],
            "summary": store.summary(),
        }
    finally:
        store.close()


def _command_config(app_config: AppConfig, config_path, parsed_args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "ok": True,
        "config_path": str(config_path) if config_path is not None else None,
        "data_dir": str(paths.progress_dir(app_config)),
        "config": json.loads(to_json(app_config)),
    }


def build_argument_parser() -> argparse.ArgumentParser:
    argument_parser = argparse.ArgumentParser(description="Pathbeat game core")
    subparsers = argument_parser.add_subparsers(dest="command", required=True)

    def add_memory_flag(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--memory", action="store_true", help="Use a throwaway in-memory store.")

    stats_parser = subparsers.add_parser("stats", help="Show progression summary.")
    stats_parser.add_argument("--recent", type=int, default=5, help="Number of recent sessions to list.")
    add_memory_flag(stats_parser)

    badges_parser = subparsers.add_parser("badges", help="Show badge catalog and unlock state.")
    add_memory_flag(badges_parser)

    reset_parser = subparsers.add_parser("reset", help="Reset all progression data.")
    reset_parser.add_argument("--yes", action="store_true", help="Confirm the reset.")
    add_memory_flag(reset_parser)

    simulate_parser = subparsers.add_parser("simulate", help="Autoplay rounds and record the sessions.")
    simulate_parser.add_argument("--game", choices=sorted(_GAME_CHOICES), default="sequence")
    simulate_parser.add_argument("--difficulty", choices=list(_DIFFICULTY_CHOICES), default="easy")
    simulate_parser.add_argument("--seed", type=int, default=None)
    simulate_parser.add_argument("--levels", type=int, default=3, help="Number of rounds to play.")
    simulate_parser.add_argument("--miss-rate", type=float, default=0.0, help="Chance the bot errs on each target.")
    add_memory_flag(simulate_parser)

    subparsers.add_parser("config", help="Show resolved configuration.")
    return argument_parser


def main(argv: Optional[List[str]] = None) -> int:
    parsed_args = build_argument_parser().parse_args(argv)

    try:
        app_config, config_path = get_config()
    except (OSError, ValueError) as exception:
        _print_json({"ok": False, "error": str(exception)})
        return 2

    logging.basicConfig(
        level=getattr(logging, app_config.logging.level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if parsed_args.command == "stats":
            payload = _command_stats(app_config, parsed_args)
        elif parsed_args.command == "badges":
            payload = _command_badges(app_config, parsed_args)
        elif parsed_args.command == "reset":
            payload = _command_reset(app_config, parsed_args)
        elif parsed_args.command == "simulate":
            payload = _command_simulate(app_config, parsed_args)
        else:
            payload = _command_config(app_config, config_path, parsed_args)
    except (OSError, ValueError, PathbeatError) as exception:
        logger.debug("Command %s failed", parsed_args.command, exc_info=True)
        _print_json({"ok": False, "error": str(exception)})
        return 2

    _print_json(payload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
