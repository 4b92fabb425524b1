import csv
from datetime import timedelta

import numpy as np

from orrery.core.ephemeris import EphemerisResolver
from orrery.core.logging_utils import TelemetryLogger
from orrery.data.bodies import CATALOG, PLANET_ORDER, Body

from conftest import T0


def test_same_instant_reaches_oracle_once(resolver, oracle):
    first = resolver.resolve(Body.MARS, T0)
    second = resolver.resolve(Body.MARS, T0)
    assert first is second
    assert oracle.calls_for(Body.MARS) == 1
    assert resolver.stats.hits == 1
    assert resolver.stats.misses == 1


def test_new_instant_is_resolved_fresh(resolver, oracle):
    t1 = T0
    t2 = T0 + timedelta(days=30)
    at_t1 = resolver.resolve(Body.EARTH, t1)
    at_t2 = resolver.resolve(Body.EARTH, t2)
    assert at_t2.sample.instant == t2
    assert not np.allclose(at_t1.sample.position, at_t2.sample.position)
    assert np.allclose(at_t2.sample.position, oracle(Body.EARTH, t2, "ecliptic"))


def test_batch_is_one_call_per_body(resolver, oracle):
    for _ in range(5):
        batch = resolver.resolve_batch(PLANET_ORDER, T0)
    assert list(batch) == list(PLANET_ORDER)
    assert len(oracle.calls) == len(PLANET_ORDER)


def test_positions_are_read_only(resolver):
    sample = resolver.resolve(Body.VENUS, T0).sample
    assert not sample.position.flags.writeable


def test_failure_reuses_last_known_good(resolver, oracle):
    good = resolver.resolve(Body.MARS, T0)
    oracle.failing.add(Body.MARS)
    later = resolver.resolve(Body.MARS, T0 + timedelta(days=1))
    assert later.stale
    assert later.sample is good.sample
    assert resolver.stats.failures == 1


def test_failure_without_history_falls_back_to_catalog_distance(resolver, oracle):
    oracle.failing.add(Body.SATURN)
    result = resolver.resolve(Body.SATURN, T0)
    assert result.stale
    assert np.allclose(result.sample.position, [CATALOG[Body.SATURN].distance, 0.0, 0.0])


def test_non_finite_vector_is_a_failure():
    resolver = EphemerisResolver(lambda body, instant, frame: [float("nan"), 0.0, 0.0])
    assert resolver.resolve(Body.EARTH, T0).stale


def test_wrong_shape_is_a_failure():
    resolver = EphemerisResolver(lambda body, instant, frame: [1.0, 2.0])
    assert resolver.resolve(Body.EARTH, T0).stale


def test_clear_drops_memo_but_keeps_history(resolver, oracle):
    resolver.resolve(Body.EARTH, T0)
    resolver.clear()
    assert resolver.stats.memo_size == 0
    resolver.resolve(Body.EARTH, T0)
    assert oracle.calls_for(Body.EARTH) == 2
    assert resolver.last_known_good(Body.EARTH) is not None


def test_failures_are_written_to_telemetry(tmp_path, oracle):
    oracle.failing.add(Body.JUPITER)
    with TelemetryLogger(tmp_path, "failures") as telemetry:
        resolver = EphemerisResolver(oracle, telemetry=telemetry)
        resolver.resolve(Body.JUPITER, T0)
    with (tmp_path / "failures" / "events.csv").open(newline="", encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert rows[0]["type"] == "oracle_failure"
    assert rows[0]["subject"] == "Jupiter"
