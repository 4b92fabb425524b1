"""Immutable value types shared by the clock, resolver, store and consumers."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

import numpy as np

from orrery.data.bodies import Body, BodyInfo

J2000 = datetime(2000, 1, 1, 12, 0, tzinfo=timezone.utc)
MIN_INSTANT = datetime.min.replace(tzinfo=timezone.utc)
MAX_INSTANT = datetime.max.replace(tzinfo=timezone.utc)


def as_instant(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def shift_days(instant: datetime, days: float) -> datetime:
    """Move *instant* by fractional *days*, saturating at the datetime range."""

    try:
        return instant + timedelta(days=days)
    except OverflowError:
        return MAX_INSTANT if days > 0 else MIN_INSTANT


def days_between(start: datetime, end: datetime) -> float:
    return (end - start) / timedelta(days=1)


def days_since_j2000(instant: datetime) -> float:
    return days_between(J2000, instant)


def frozen_vector(values) -> np.ndarray:
    vector = np.array(values, dtype=float).reshape(3)
    vector.flags.writeable = False
    return vector


class ClockMode(Enum):
    PAUSED = "paused"
    RUNNING = "running"
    CINEMATIC = "cinematic"


@dataclass(frozen=True)
class Viewpoint:
    """Where a cinematic camera looks: a body (or ``None`` for overview)."""

    target: Optional[str] = None
    distance: float = 2.0
    elevation: float = 0.5


@dataclass(frozen=True)
class PositionSample:
    body: Body
    instant: datetime
    position: np.ndarray = field(compare=False)


@dataclass(frozen=True)
class Resolution:
    sample: PositionSample
    stale: bool = False


@dataclass(frozen=True)
class PlanetViewModel:
    body: Body
    position: np.ndarray = field(compare=False)
    stale: bool
    distance: float
    velocity: float
    temperature: float
    mass: float
    radius: float
    moons: int
    color: tuple[int, int, int]

    @property
    def name(self) -> str:
        return self.body.value

    @classmethod
    def from_resolution(cls, info: BodyInfo, resolution: Resolution) -> "PlanetViewModel":
        return cls(
            body=info.body,
            position=resolution.sample.position,
            stale=resolution.stale,
            distance=info.distance,
            velocity=info.velocity,
            temperature=info.temperature,
            mass=info.mass,
            radius=info.radius,
            moons=info.moons,
            color=info.color,
        )


@dataclass(frozen=True)
class CinematicCursor:
    track_name: str
    index: int
    elapsed: float
    viewpoint: Viewpoint


@dataclass(frozen=True)
class OrbitSnapshot:
    """Published engine state; replaced wholesale on every change."""

    planets: Mapping[str, PlanetViewModel]
    instant: datetime
    speed: float
    mode: ClockMode
    selected_planet: Optional[str] = None
    cursor: Optional[CinematicCursor] = None
    show_orbits: bool = True
    show_labels: bool = True
    sequence: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.planets, MappingProxyType):
            object.__setattr__(self, "planets", MappingProxyType(dict(self.planets)))

    @property
    def cinematic_playing(self) -> bool:
        return self.mode is ClockMode.CINEMATIC

    @property
    def paused(self) -> bool:
        return self.mode is ClockMode.PAUSED

    @property
    def planets_by_distance(self) -> list[PlanetViewModel]:
        return sorted(self.planets.values(), key=lambda planet: planet.distance)

    @property
    def stale_bodies(self) -> tuple[str, ...]:
        return tuple(name for name, planet in self.planets.items() if planet.stale)


__all__ = [
    "J2000",
    "MAX_INSTANT",
    "MIN_INSTANT",
    "CinematicCursor",
    "ClockMode",
    "OrbitSnapshot",
    "PlanetViewModel",
    "PositionSample",
    "Resolution",
    "Viewpoint",
    "as_instant",
    "days_between",
    "days_since_j2000",
    "frozen_vector",
    "shift_days",
]
