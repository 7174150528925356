import json
from pathlib import Path

import pytest

import config
import paths
from game_controller import playfield_geometry_from_config, sequence_timing_from_config


ENV_NAMES = [
    'PATHBEAT_CONFIG_PATH',
    'PATHBEAT_DATA_DIR',
    'PATHBEAT_LOG_LEVEL',
    'PATHBEAT_SEQUENCE_TICK_SECONDS',
    'PATHBEAT_RHYTHM_FRAME_RATE_HZ',
]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    for env_name in ENV_NAMES:
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(paths, 'app_config_dir', lambda: tmp_path / 'user-config')
    config.get_config.cache_clear()
    yield
    config.get_config.cache_clear()


def _write_config(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload), encoding='utf-8')
    return path


def test_missing_config_uses_defaults():
    app_config, resolved_path = config.load_config()
    assert resolved_path is None
    assert app_config.sequence.tick_seconds == 0.1
    assert app_config.sequence.lead_in_seconds == 0.5
    assert app_config.rhythm.frame_rate_hz == 60
    assert app_config.rhythm.hit_line_y == 630.0
    assert app_config.logging.level == 'WARNING'
    assert app_config.storage.data_dir is None


def test_working_directory_file_is_found(tmp_path):
    _write_config(tmp_path / 'pathbeat_config.json', {'rhythm': {'note_speed': 5.0}, 'logging': {'level': 'info'}})
    app_config, resolved_path = config.load_config()
    assert resolved_path == tmp_path / 'pathbeat_config.json'
    assert app_config.rhythm.note_speed == 5.0
    assert app_config.logging.level == 'INFO'


def test_user_config_dir_is_searched(tmp_path):
    user_dir = tmp_path / 'user-config'
    user_dir.mkdir()
    _write_config(user_dir / 'pathbeat_config.json', {'sequence': {'lead_out_seconds': 1.0}})
    app_config, resolved_path = config.load_config()
    assert resolved_path == user_dir / 'pathbeat_config.json'
    assert app_config.sequence.lead_out_seconds == 1.0


def test_explicit_path_must_exist(monkeypatch, tmp_path):
    monkeypatch.setenv('PATHBEAT_CONFIG_PATH', str(tmp_path / 'missing.json'))
    with pytest.raises(FileNotFoundError):
        config.load_config()


def test_invalid_values_raise_value_error(tmp_path):
    path = _write_config(tmp_path / 'bad.json', {'rhythm': {'frame_rate_hz': 0}})
    with pytest.raises(ValueError) as excinfo:
        config.load_config(path)
    assert 'frame_rate_hz' in str(excinfo.value)


def test_non_object_root_is_rejected(tmp_path):
    path = tmp_path / 'list.json'
    path.write_text('[1, 2]', encoding='utf-8')
    with pytest.raises(ValueError):
        config.load_config(path)


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv('PATHBEAT_DATA_DIR', str(tmp_path / 'data'))
    monkeypatch.setenv('PATHBEAT_LOG_LEVEL', 'debug')
    monkeypatch.setenv('PATHBEAT_SEQUENCE_TICK_SECONDS', '0.05')
    monkeypatch.setenv('PATHBEAT_RHYTHM_FRAME_RATE_HZ', 'fast')

    app_config, _resolved_path = config.load_config()
    assert app_config.storage.data_dir == str(tmp_path / 'data')
    assert app_config.logging.level == 'DEBUG'
    assert app_config.sequence.tick_seconds == 0.05
    assert app_config.rhythm.frame_rate_hz == 60
    assert paths.progress_dir(app_config) == tmp_path / 'data' / 'progress'


def test_get_config_is_cached():
    first = config.get_config()
    assert config.get_config() is first


def test_config_converts_to_engine_settings(tmp_path):
    path = _write_config(tmp_path / 'c.json', {
        'sequence': {'tick_seconds': 0.2, 'reveal_pause_seconds': 0.3},
        'rhythm': {'frame_rate_hz': 30, 'note_speed': 8.0, 'miss_grace': 40.0},
    })
    app_config, _resolved_path = config.load_config(path)

    timing = sequence_timing_from_config(app_config)
    assert timing.tick_seconds == 0.2
    assert timing.reveal_pause_seconds == 0.3

    geometry = playfield_geometry_from_config(app_config)
    assert geometry.frame_rate_hz == 30.0
    assert geometry.speed_per_second == 240.0
    assert geometry.miss_line_y == 670.0


def test_main_prints_json(capsys):
    assert config.main() == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload['ok'] is True
    assert payload['config_path'] is None
    assert payload['config']['rhythm']['frame_rate_hz'] == 60
