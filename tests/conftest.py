import os
import sys

import pytest

# Ensure the project root (containing the flat modules) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from kv_store import InMemoryKeyValueStore
from progression_store import ProgressionStore
from random_source import make_random_source


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = float(start)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += float(seconds)


@pytest.fixture()
def rng():
    return make_random_source(1234)


@pytest.fixture()
def memory_kv():
    return InMemoryKeyValueStore()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(memory_kv, clock):
    progression_store = ProgressionStore.open(memory_kv, clock=clock)
    yield progression_store
    progression_store.close()
