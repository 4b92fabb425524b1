from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from orrery.core.ephemeris import EphemerisResolver
from orrery.core.model import days_since_j2000
from orrery.core.store import OrbitStore
from orrery.data.bodies import CATALOG

T0 = datetime(2024, 3, 4, tzinfo=timezone.utc)


class FakeOracle:
    """Circular orbits with Kepler-ish periods; records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.failing: set = set()

    def __call__(self, body, instant, reference_frame):
        self.calls.append((body, instant))
        if body in self.failing:
            raise RuntimeError(f"{body.value} out of range")
        distance = CATALOG[body].distance
        period_days = 365.25 * max(distance, 0.1) ** 1.5
        angle = 2.0 * math.pi * days_since_j2000(instant) / period_days
        return [distance * math.cos(angle), distance * math.sin(angle), 0.0]

    def calls_for(self, body) -> int:
        return sum(1 for called, _ in self.calls if called is body)


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def resolver(oracle) -> EphemerisResolver:
    return EphemerisResolver(oracle)


@pytest.fixture
def store(resolver) -> OrbitStore:
    return OrbitStore(resolver, start=T0)
