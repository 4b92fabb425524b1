import pytest

from orrery.core.commands import handle_key, normalize_key


@pytest.mark.parametrize(
    "raw, expected",
    [("ArrowLeft", "left"), ("SPACE", "space"), (" ", " "), ("Home", "home"), ("?", "?")],
)
def test_normalize_key(raw, expected):
    assert normalize_key(raw) == expected


def test_orbit_and_label_toggles(store):
    assert handle_key(store, "o") == "Orbits hidden."
    assert not store.snapshot.show_orbits
    assert handle_key(store, "o") == "Orbits shown."
    assert handle_key(store, "l") == "Labels hidden."


def test_space_pauses_and_resumes(store):
    assert handle_key(store, "space") == "Time paused."
    assert store.snapshot.paused
    assert handle_key(store, " ") == "Time resumed."
    assert store.snapshot.speed == 1.0


def test_cinematic_toggle(store):
    assert handle_key(store, "c") == "Cinematic mode on."
    assert store.snapshot.cinematic_playing
    assert handle_key(store, "c") == "Cinematic mode off."


def test_arrow_navigation_wraps(store):
    assert handle_key(store, "right") == "Selected Mercury"
    assert handle_key(store, "left") == "Selected Neptune"
    assert handle_key(store, "down") == "Selected Mercury"
    assert handle_key(store, "up") == "Selected Neptune"
    assert handle_key(store, "ArrowRight") == "Selected Mercury"


def test_home_and_end(store):
    assert handle_key(store, "end") == "Selected Neptune"
    assert handle_key(store, "home") == "Selected Mercury"


def test_escape_clears_selection(store):
    assert handle_key(store, "escape") is None
    handle_key(store, "home")
    assert handle_key(store, "escape") == "Selection cleared."
    assert store.snapshot.selected_planet is None


def test_help_and_unbound_keys_do_nothing(store):
    before = store.snapshot
    assert handle_key(store, "?") is None
    assert handle_key(store, "x") is None
    assert store.snapshot is before
