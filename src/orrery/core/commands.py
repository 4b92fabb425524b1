"""Keyboard command surface shared by every front end."""
from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional

from .model import OrbitSnapshot

if TYPE_CHECKING:
    from .store import OrbitStore


def _toggle_orbits(store: "OrbitStore") -> str:
    snapshot = store.toggle_orbits_visible()
    return "Orbits shown." if snapshot.show_orbits else "Orbits hidden."


def _toggle_labels(store: "OrbitStore") -> str:
    snapshot = store.toggle_labels_visible()
    return "Labels shown." if snapshot.show_labels else "Labels hidden."


def _toggle_cinematic(store: "OrbitStore") -> str:
    snapshot = store.toggle_cinematic()
    return "Cinematic mode on." if snapshot.cinematic_playing else "Cinematic mode off."


def _toggle_pause(store: "OrbitStore") -> str:
    snapshot = store.toggle_pause()
    return "Time paused." if snapshot.paused else "Time resumed."


def _select(step: str) -> Callable[["OrbitStore"], Optional[str]]:
    def handler(store: "OrbitStore") -> Optional[str]:
        snapshot = store.select_planet(step)
        return _selection_message(snapshot)

    return handler


def _clear_selection(store: "OrbitStore") -> Optional[str]:
    if store.snapshot.selected_planet is None:
        return None
    store.select_planet(None)
    return "Selection cleared."


def _selection_message(snapshot: OrbitSnapshot) -> Optional[str]:
    if snapshot.selected_planet is None:
        return None
    return f"Selected {snapshot.selected_planet}"


KEY_BINDINGS: dict[str, Callable[["OrbitStore"], Optional[str]]] = {
    "o": _toggle_orbits,
    "l": _toggle_labels,
    "c": _toggle_cinematic,
    "space": _toggle_pause,
    " ": _toggle_pause,
    "left": _select("previous"),
    "up": _select("previous"),
    "right": _select("next"),
    "down": _select("next"),
    "home": _select("first"),
    "end": _select("last"),
    "escape": _clear_selection,
}

# Keys the front end handles itself (help overlay).
UI_LOCAL_KEYS = frozenset({"?", "/"})


def normalize_key(key: str) -> str:
    key = key.strip().lower() if key.strip() else key
    if key.startswith("arrow"):
        key = key[len("arrow"):]
    return key


def handle_key(store: "OrbitStore", key: str) -> Optional[str]:
    """Run the store command bound to *key* and return the announcement.

    Returns ``None`` for unbound keys and for keys the UI handles locally.
    """

    key = normalize_key(key)
    if key in UI_LOCAL_KEYS:
        return None
    handler = KEY_BINDINGS.get(key)
    if handler is None:
        return None
    return handler(store)


__all__ = ["KEY_BINDINGS", "UI_LOCAL_KEYS", "handle_key", "normalize_key"]
