# -*- coding: utf-8 -*-
########################
# random_source.py
########################
# Purpose:
# - Seedable randomness boundary for sequence and note generation.
#
# Design notes:
# - Engines never import random directly; they receive a RandomSource.
# - random.Random satisfies the protocol.
#
########################
# Interfaces:
# Public protocols:
# - RandomSource
#   - randrange(stop: int) -> int
#   - sample(population: Sequence[int], k: int) -> list[int]
#
# Public functions:
# - make_random_source(seed: Optional[int] = None) -> RandomSource
#
########################

from __future__ import annotations

import random
from typing import List, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class RandomSource(Protocol):
    def randrange(self, stop: int) -> int:
        ...

    def sample(self, population: Sequence[int], k: int) -> List[int]:
        ...


def make_random_source(seed: Optional[int] = None) -> RandomSource:
    return random.Random(seed)


def _run_unit_tests() -> None:
    first = make_random_source(7)
    second = make_random_source(7)
    assert [first.randrange(10) for _ in range(20)] == [second.randrange(10) for _ in range(20)]
    assert isinstance(first, RandomSource)


if __name__ == "__main__":
    _run_unit_tests()
    print("random_source.py: ok")
