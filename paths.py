# -*- coding: utf-8 -*-
########################
# paths.py
########################
# Purpose:
# - Central filesystem path helpers for the app.
# - Defines where the config file and the progression data live.
#
# Design notes:
# - Keep path derivation consistent across modules.
# - No Qt usage. Return pathlib.Path only. Nothing is created here.
#
########################
# Interfaces:
# Public functions:
# - app_config_dir() -> pathlib.Path
# - app_data_dir() -> pathlib.Path
# - progress_dir(config: AppConfig) -> pathlib.Path
#
# Inputs:
# - Optional storage.data_dir from AppConfig.
#
# Outputs:
# - Paths used by config.py and the DirectoryKeyValueStore built in pathbeat.py.
#
########################

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from platformdirs import user_config_dir, user_data_dir

if TYPE_CHECKING:
    from config import AppConfig


APP_NAME = "Pathbeat"
APP_AUTHOR = "Pathbeat"


def app_config_dir() -> Path:
    """Per-user config directory (not created automatically)."""
    return Path(user_config_dir(APP_NAME, APP_AUTHOR))


def app_data_dir() -> Path:
    """Per-user data directory (not created automatically)."""
    return Path(user_data_dir(APP_NAME, APP_AUTHOR))


def progress_dir(config: "AppConfig") -> Path:
    """Directory holding one JSON file per progression entity."""
    data_dir_text = config.storage.data_dir
    if data_dir_text:
        return Path(data_dir_text).expanduser() / "progress"
    return app_data_dir() / "progress"
