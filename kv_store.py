# -*- coding: utf-8 -*-
########################
# kv_store.py
########################
# Purpose:
# - Opaque key-value persistence contract used by ProgressionStore.
# - In-memory implementation for tests and headless runs; directory implementation for the app.
#
# Design notes:
# - No Qt usage. Values are bytes; encoding is progress_codec's job.
# - DirectoryKeyValueStore writes one file per key through a temporary file and os.replace,
#   so a crash never leaves a half-written value behind.
# - Keys are restricted to [A-Za-z0-9_.-] so they map to file names unchanged.
#
########################
# Interfaces:
# Public protocols:
# - KeyValueStore
#   - load(key: str) -> Optional[bytes]
#   - save(key: str, data: bytes) -> None
#   - delete(key: str) -> None
#
# Public classes:
# - class InMemoryKeyValueStore
# - class DirectoryKeyValueStore(directory_path: pathlib.Path, suffix: str = ".json")
#
# Public functions:
# - validate_key(key: str) -> str
#
# Inputs:
# - Keys and encoded blobs from ProgressionStore.
#
# Outputs:
# - Blobs read back for hydration.
#
########################

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


def validate_key(key: str) -> str:
    text = str(key)
    if not _KEY_PATTERN.match(text) or text in {".", ".."}:
        raise ValueError(f"Invalid storage key: {key!r}")
    return text


@runtime_checkable
class KeyValueStore(Protocol):
    def load(self, key: str) -> Optional[bytes]:
        ...

    def save(self, key: str, data: bytes) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._values: Dict[str, bytes] = {}
        for key, value in (initial or {}).items():
            self._values[validate_key(key)] = bytes(value)

    def load(self, key: str) -> Optional[bytes]:
        return self._values.get(validate_key(key))

    def save(self, key: str, data: bytes) -> None:
        self._values[validate_key(key)] = bytes(data)

    def delete(self, key: str) -> None:
        self._values.pop(validate_key(key), None)

    def keys(self) -> List[str]:
        return sorted(self._values.keys())


class DirectoryKeyValueStore:
    def __init__(self, directory_path: Path, suffix: str = ".json") -> None:
        self._directory_path = Path(directory_path)
        self._suffix = str(suffix)

    @property
    def directory_path(self) -> Path:
        return self._directory_path

    def _path_for_key(self, key: str) -> Path:
        return self._directory_path / f"{validate_key(key)}{self._suffix}"

    def load(self, key: str) -> Optional[bytes]:
        path = self._path_for_key(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def save(self, key: str, data: bytes) -> None:
        path = self._path_for_key(key)
        self._directory_path.mkdir(parents=True, exist_ok=True)
        file_descriptor, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(self._directory_path))
        try:
            with os.fdopen(file_descriptor, "wb") as handle:
                handle.write(bytes(data))
            os.replace(temp_name, str(path))
        except BaseException:
            try:
                os.unlink(temp_name)
            except OSError:
                pass
            raise

    def delete(self, key: str) -> None:
        try:
            self._path_for_key(key).unlink()
        except FileNotFoundError:
            pass

    def keys(self) -> List[str]:
        if not self._directory_path.is_dir():
            return []
        return sorted(
            path.name[: -len(self._suffix)] if self._suffix else path.name
            for path in self._directory_path.iterdir()
            if path.is_file() and path.name.endswith(self._suffix) and not path.name.startswith(".")
        )


def _run_unit_tests() -> None:
    memory_store = InMemoryKeyValueStore()
    assert memory_store.load("missing") is None
    memory_store.save("alpha", b"1")
    assert memory_store.load("alpha") == b"1"
    memory_store.delete("alpha")
    assert memory_store.keys() == []

    with tempfile.TemporaryDirectory() as temp_dir:
        directory_store = DirectoryKeyValueStore(Path(temp_dir) / "progress")
        assert directory_store.load("player_statistics") is None
        directory_store.save("player_statistics", b"{}")
        directory_store.save("player_statistics", b"{\"a\": 1}")
        assert directory_store.load("player_statistics") == b"{\"a\": 1}"
        assert directory_store.keys() == ["player_statistics"]

    try:
        validate_key("../escape")
    except ValueError:
        pass
    else:
        raise AssertionError("Expected ValueError for path-like key")


if __name__ == "__main__":
    _run_unit_tests()
    print("kv_store.py: ok")
