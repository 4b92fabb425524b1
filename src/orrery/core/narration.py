"""Plain-language descriptions of a snapshot for screen readers and logs."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from orrery.data.bodies import CATALOG, BodyKind

from .model import OrbitSnapshot


def format_date(instant: datetime) -> str:
    """``"March 4, 2031"`` style date."""

    return f"{instant:%B} {instant.day}, {instant.year}"


def playback_status(snapshot: OrbitSnapshot) -> str:
    if snapshot.cinematic_playing:
        return "Cinematic tour is playing."
    if snapshot.paused:
        return "Simulation is paused."
    if snapshot.speed < 0:
        return f"Simulation rewinding at {-snapshot.speed:g} days per second."
    return f"Simulation running at {snapshot.speed:g} days per second."


def describe_scene(snapshot: OrbitSnapshot) -> str:
    planets = []
    others = []
    for planet in snapshot.planets_by_distance:
        if CATALOG[planet.body].kind is BodyKind.PLANET:
            planets.append(planet.name)
        else:
            others.append(planet.name)
    parts = [
        f"3D Solar System visualization showing the Sun and {len(planets)} planets: {', '.join(planets)}.",
        f"Current simulation date: {format_date(snapshot.instant)}.",
        playback_status(snapshot),
    ]
    if others:
        parts.insert(1, f"Also shown: {', '.join(others)}.")
    if snapshot.selected_planet:
        parts.append(f"Currently focused on {snapshot.selected_planet}.")
    parts.append("Press question mark for help and the arrow keys to move between planets.")
    return " ".join(parts)


def describe_selected(snapshot: OrbitSnapshot) -> Optional[str]:
    """Fact sheet for the selected planet, or ``None`` without a selection."""

    if not snapshot.selected_planet:
        return None
    planet = snapshot.planets.get(snapshot.selected_planet)
    if planet is None:
        return None
    text = (
        f"{planet.name} details: "
        f"Distance from Sun: {planet.distance:.2f} astronomical units. "
        f"Orbital velocity: {planet.velocity:.1f} kilometers per second. "
        f"Surface temperature: {planet.temperature:g} Kelvin. "
        f"Mass: {planet.mass:.2f} Earth masses. "
        f"Radius: {planet.radius:.2f} Earth radii. "
        f"Number of moons: {planet.moons}."
    )
    if planet.stale:
        text += " Position data is temporarily out of date."
    return text


__all__ = ["describe_scene", "describe_selected", "format_date", "playback_status"]
