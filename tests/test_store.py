from datetime import timedelta

import numpy as np
import pytest

from orrery.core.config import EphemerisCfg
from orrery.core.model import ClockMode, days_between
from orrery.core.store import OrbitStore
from orrery.data.bodies import PLANET_ORDER, Body
from orrery.data.deeplink import DeepLink, parse_query

from conftest import T0


def test_initial_snapshot_has_every_planet_in_catalog_order(store):
    snapshot = store.snapshot
    assert list(snapshot.planets) == [body.value for body in PLANET_ORDER]
    assert snapshot.instant == T0
    assert snapshot.sequence == 0
    assert snapshot.mode is ClockMode.RUNNING
    assert snapshot.selected_planet is None


def test_snapshot_planets_are_read_only(store):
    with pytest.raises(TypeError):
        store.snapshot.planets["Pluto"] = None


def test_advance_time_publishes_new_instant(store):
    before = store.snapshot
    after = store.advance_time(0.5)
    assert after is not before
    assert after.sequence == before.sequence + 1
    assert after.instant == T0 + timedelta(days=0.5)
    for planet in after.planets.values():
        assert not planet.stale


def test_oracle_failure_for_one_body_keeps_its_prior_sample(store, oracle):
    previous = store.advance_time(1.0)
    oracle.failing.add(Body.MARS)
    current = store.advance_time(1.0)

    mars_before = previous.planets["Mars"]
    mars_now = current.planets["Mars"]
    assert mars_now.stale
    assert np.array_equal(mars_now.position, mars_before.position)
    assert current.stale_bodies == ("Mars",)
    for name in ("Earth", "Jupiter", "Neptune"):
        assert not current.planets[name].stale
        assert not np.array_equal(current.planets[name].position, previous.planets[name].position)


def test_one_oracle_call_per_body_per_tick(store, oracle):
    oracle.calls.clear()
    store.advance_time(0.1)
    store.toggle_labels_visible()
    store.select_planet("Earth")
    assert len(oracle.calls) == len(PLANET_ORDER)


def test_tick_interval_gates_advancement(resolver):
    store = OrbitStore(resolver, start=T0, tick_interval=0.1)
    held = store.advance_time(0.05)
    assert held is store.snapshot
    assert held.instant == T0
    released = store.advance_time(0.06)
    assert days_between(T0, released.instant) == pytest.approx(0.11)


def test_paused_store_does_not_advance(store):
    store.set_speed(0)
    paused = store.snapshot
    for _ in range(10):
        assert store.advance_time(0.5) is paused
    assert store.snapshot.instant == paused.instant


def test_invalid_speed_is_ignored(store):
    before = store.snapshot
    assert store.set_speed(float("inf")) is before
    assert store.snapshot.speed == 1.0


def test_toggle_pause_round_trip(store):
    store.set_speed(12)
    assert store.toggle_pause().paused
    assert store.toggle_pause().speed == 12


def test_deep_link_planet_is_in_first_snapshot(resolver):
    store = OrbitStore(resolver, start=T0, deep_link=parse_query("planet=Earth"))
    assert store.snapshot.selected_planet == "Earth"
    assert store.snapshot.sequence == 0


def test_deep_link_cinematic_starts_tour(resolver):
    store = OrbitStore(resolver, start=T0, deep_link=DeepLink(cinematic=True, speed=4.0))
    assert store.snapshot.cinematic_playing
    assert store.snapshot.cursor.index == 0
    assert store.snapshot.speed == 4.0


def test_deep_link_restores_instant_and_toggles(resolver):
    instant = T0 + timedelta(days=400)
    link = DeepLink(instant=instant, show_orbits=False, show_labels=False)
    store = OrbitStore(resolver, start=T0, deep_link=link)
    assert store.snapshot.instant == instant
    assert not store.snapshot.show_orbits
    assert not store.snapshot.show_labels


@pytest.mark.parametrize(
    "start, step, expected",
    [
        (None, "next", "Mercury"),
        (None, "previous", "Neptune"),
        ("Neptune", "next", "Mercury"),
        ("Mercury", "previous", "Neptune"),
        ("Earth", "next", "Mars"),
        ("Earth", "previous", "Venus"),
        ("Saturn", "first", "Mercury"),
        ("Mars", "last", "Neptune"),
    ],
)
def test_navigation_wraps_around(store, start, step, expected):
    if start is not None:
        store.select_planet(start)
    assert store.select_planet(step).selected_planet == expected


def test_selection_is_case_insensitive(store):
    assert store.select_planet("jUpItEr").selected_planet == "Jupiter"
    assert store.select_planet(Body.VENUS).selected_planet == "Venus"


def test_unknown_selection_is_a_silent_no_op(store):
    store.select_planet("Mars")
    before = store.snapshot
    assert store.select_planet("Vulcan") is before
    assert store.select_planet("Pluto") is before
    assert store.snapshot.selected_planet == "Mars"


def test_clear_selection(store):
    store.select_planet("Mars")
    assert store.select_planet(None).selected_planet is None


def test_selection_during_cinematic_keeps_playing(store):
    store.start_cinematic()
    snapshot = store.select_planet("Saturn")
    assert snapshot.cinematic_playing
    assert snapshot.selected_planet == "Saturn"


def test_toggle_cinematic_round_trip(store):
    store.set_speed(3)
    assert store.toggle_cinematic().cinematic_playing
    stopped = store.toggle_cinematic()
    assert not stopped.cinematic_playing
    assert stopped.speed == 3


def test_stop_cinematic_when_idle_publishes_nothing(store):
    before = store.snapshot
    assert store.stop_cinematic() is before


def test_visibility_toggles(store):
    assert not store.toggle_orbits_visible().show_orbits
    assert store.toggle_orbits_visible().show_orbits
    assert not store.toggle_labels_visible().show_labels


def test_jump_to_date_clears_memo(store, oracle):
    target = T0 - timedelta(days=1000)
    oracle.calls.clear()
    snapshot = store.jump_to_date(target)
    assert snapshot.instant == target
    assert len(oracle.calls) == len(PLANET_ORDER)


def test_subscribers_see_every_publish(store):
    seen = []

    def broken(snapshot):
        raise RuntimeError("consumer bug")

    store.subscribe(broken)
    unsubscribe = store.subscribe(seen.append)
    store.advance_time(0.2)
    store.select_planet("Earth")
    assert [s.sequence for s in seen] == [1, 2]
    assert seen[-1] is store.snapshot

    unsubscribe()
    store.toggle_orbits_visible()
    assert len(seen) == 2


def test_dwarf_planets_and_moon_are_optional(resolver):
    cfg = EphemerisCfg(include_dwarf_planets=True, include_moon=True)
    store = OrbitStore(resolver, start=T0, ephemeris_cfg=cfg)
    assert "Pluto" in store.snapshot.planets
    assert "Moon" in store.snapshot.planets
    assert store.navigation_order[-1] is Body.PLUTO
    assert Body.MOON not in store.navigation_order


def test_set_tick_interval(store):
    store.set_tick_interval(0.05)
    assert store.tick_interval == 0.05
    store.set_tick_interval(-1)
    assert store.tick_interval == 0.0
