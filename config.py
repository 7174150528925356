"""
config.py

Typed configuration loading and validation for Pathbeat.

Design goals
- Load at most one UTF-8 JSON config file
- Validate with pydantic (defaults included)
- Support environment variable overrides
- No other I/O beyond reading the config file (no directory creation)

Config file location
- If PATHBEAT_CONFIG_PATH is set, that file is used and must exist.
- Otherwise Pathbeat searches these paths in order and uses the first one that exists:
  1) ./pathbeat_config.json (current working directory)
  2) <user config dir>/Pathbeat/Pathbeat/pathbeat_config.json
- When none exists, built-in defaults are used.

Example config file (pathbeat_config.json)
{
  "storage": {
    "data_dir": "/home/me/.pathbeat"
  },
  "sequence": {
    "tick_seconds": 0.1,
    "lead_in_seconds": 0.5,
    "lead_out_seconds": 0.5,
    "reveal_pause_seconds": 0.2
  },
  "rhythm": {
    "frame_rate_hz": 60,
    "note_speed": 4.0,
    "hit_line_y": 630.0,
    "spawn_y": -50.0,
    "miss_grace": 60.0
  },
  "logging": {
    "level": "INFO"
  }
}
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

import paths


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class StorageConfig(BaseModel):
    data_dir: Optional[str] = Field(default=None, description="Directory for progression data. Default: user data dir.")

    @field_validator("data_dir")
    @classmethod
    def normalize_data_dir(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None


class SequenceConfig(BaseModel):
    tick_seconds: float = Field(default=0.1, gt=0.0, le=1.0, description="Countdown tick cadence.")
    lead_in_seconds: float = Field(default=0.5, ge=0.0, description="Delay before the first reveal.")
    lead_out_seconds: float = Field(default=0.5, ge=0.0, description="Delay after the last reveal.")
    reveal_pause_seconds: float = Field(default=0.2, ge=0.0, description="Pause between two reveals.")


class RhythmConfig(BaseModel):
    frame_rate_hz: int = Field(default=60, ge=1, le=240, description="Fixed update rate while playing.")
    note_speed: float = Field(default=4.0, gt=0.0, description="Playfield units a note moves per frame.")
    hit_line_y: float = Field(default=630.0, description="Vertical position of the hit line.")
    spawn_y: float = Field(default=-50.0, description="Vertical position of the first note at round start.")
    miss_grace: float = Field(default=60.0, ge=0.0, description="Distance past the hit line before a note is missed.")


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = (value or "").strip().upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError("level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized


class AppConfig(BaseModel):
    storage: StorageConfig = Field(default_factory=StorageConfig)
    sequence: SequenceConfig = Field(default_factory=SequenceConfig)
    rhythm: RhythmConfig = Field(default_factory=RhythmConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _default_config_candidates() -> List[Path]:
    return [
        Path.cwd() / "pathbeat_config.json",
        paths.app_config_dir() / "pathbeat_config.json",
    ]


def _resolve_config_path() -> Optional[Path]:
    explicit_path_text = os.environ.get("PATHBEAT_CONFIG_PATH", "").strip()
    if explicit_path_text:
        return Path(explicit_path_text)

    for candidate_path in _default_config_candidates():
        if candidate_path.exists():
            return candidate_path

    return None


def _read_json_file_utf8(config_path: Path) -> Dict[str, Any]:
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exception:
        raise OSError(f"Failed to read config file: {config_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file is not valid JSON: {config_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Config file root must be a JSON object: {config_path}")

    return parsed


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Environment overrides are optional. Values that do not parse are ignored.

    Override variables:
    - PATHBEAT_DATA_DIR
    - PATHBEAT_LOG_LEVEL
    - PATHBEAT_SEQUENCE_TICK_SECONDS
    - PATHBEAT_RHYTHM_FRAME_RATE_HZ
    """
    def ensure_nested(config_root: Dict[str, Any], section_name: str) -> Dict[str, Any]:
        section = config_root.get(section_name)
        if isinstance(section, dict):
            section = dict(section)
        else:
            section = {}
        config_root[section_name] = section
        return section

    updated_config = dict(config_dict)

    storage_section = ensure_nested(updated_config, "storage")
    sequence_section = ensure_nested(updated_config, "sequence")
    rhythm_section = ensure_nested(updated_config, "rhythm")
    logging_section = ensure_nested(updated_config, "logging")

    def override_string(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "")
        if value_text.strip():
            target_dict[key_name] = value_text.strip()

    def override_int(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = int(value_text)
        except ValueError:
            return

    def override_float(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = float(value_text)
        except ValueError:
            return

    override_string("PATHBEAT_DATA_DIR", storage_section, "data_dir")
    override_string("PATHBEAT_LOG_LEVEL", logging_section, "level")
    override_float("PATHBEAT_SEQUENCE_TICK_SECONDS", sequence_section, "tick_seconds")
    override_int("PATHBEAT_RHYTHM_FRAME_RATE_HZ", rhythm_section, "frame_rate_hz")

    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Optional[Path]]:
    """Return the validated config and the file it came from (None when defaults were used)."""
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict: Dict[str, Any] = {}
    if resolved_path is not None:
        json_dict = _read_json_file_utf8(resolved_path)
    json_dict = _apply_environment_overrides(json_dict)

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        source_text = str(resolved_path) if resolved_path is not None else "defaults"
        raise ValueError(f"Config validation failed for {source_text}:\n{exception}") from exception

    return config, resolved_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Optional[Path]]:
    return load_config()


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(), ensure_ascii=False, indent=2)


def main() -> int:
    try:
        config, resolved_path = load_config()
    except (OSError, ValueError) as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    output_payload = {
        "ok": True,
        "config_path": str(resolved_path) if resolved_path is not None else None,
        "data_dir": str(paths.progress_dir(config)),
        "config": json.loads(to_json(config)),
    }
    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
