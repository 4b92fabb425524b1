"""Static catalog of the bodies shown in the orrery."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Body(str, Enum):
    SUN = "Sun"
    MERCURY = "Mercury"
    VENUS = "Venus"
    EARTH = "Earth"
    MARS = "Mars"
    JUPITER = "Jupiter"
    SATURN = "Saturn"
    URANUS = "Uranus"
    NEPTUNE = "Neptune"
    MOON = "Moon"
    PLUTO = "Pluto"

    def __str__(self) -> str:
        return self.value


class BodyKind(Enum):
    STAR = "star"
    PLANET = "planet"
    DWARF = "dwarf"
    MOON = "moon"


@dataclass(frozen=True)
class BodyInfo:
    body: Body
    kind: BodyKind
    radius: float  # Earth radii
    mass: float  # Earth masses
    distance: float  # mean distance from the Sun, AU
    velocity: float  # mean orbital velocity, km/s
    temperature: float  # K
    moons: int
    color: tuple[int, int, int]

    @property
    def name(self) -> str:
        return self.body.value

    @property
    def navigable(self) -> bool:
        return self.kind in (BodyKind.PLANET, BodyKind.DWARF)


BODY_DEFINITIONS: tuple[BodyInfo, ...] = (
    BodyInfo(Body.SUN, BodyKind.STAR, 109.2, 333_000.0, 0.0, 0.0, 5_772.0, 0, (255, 204, 64)),
    BodyInfo(Body.MERCURY, BodyKind.PLANET, 0.383, 0.055, 0.39, 47.36, 440.0, 0, (140, 120, 83)),
    BodyInfo(Body.VENUS, BodyKind.PLANET, 0.949, 0.815, 0.72, 35.02, 737.0, 0, (255, 198, 73)),
    BodyInfo(Body.EARTH, BodyKind.PLANET, 1.0, 1.0, 1.0, 29.78, 288.0, 1, (74, 144, 226)),
    BodyInfo(Body.MARS, BodyKind.PLANET, 0.532, 0.107, 1.52, 24.07, 210.0, 2, (226, 123, 88)),
    BodyInfo(Body.JUPITER, BodyKind.PLANET, 11.21, 317.8, 5.2, 13.06, 165.0, 95, (200, 139, 58)),
    BodyInfo(Body.SATURN, BodyKind.PLANET, 9.45, 95.2, 9.54, 9.68, 134.0, 146, (250, 213, 165)),
    BodyInfo(Body.URANUS, BodyKind.PLANET, 4.01, 14.5, 19.19, 6.80, 76.0, 28, (79, 208, 231)),
    BodyInfo(Body.NEPTUNE, BodyKind.PLANET, 3.88, 17.1, 30.07, 5.43, 72.0, 16, (65, 102, 245)),
    BodyInfo(Body.MOON, BodyKind.MOON, 0.273, 0.0123, 1.0, 1.02, 250.0, 0, (200, 200, 200)),
    BodyInfo(Body.PLUTO, BodyKind.DWARF, 0.186, 0.0022, 39.48, 4.74, 44.0, 5, (210, 190, 170)),
)

CATALOG: dict[Body, BodyInfo] = {info.body: info for info in BODY_DEFINITIONS}
PLANET_ORDER: tuple[Body, ...] = tuple(
    info.body for info in BODY_DEFINITIONS if info.kind is BodyKind.PLANET
)

_BY_NAME: dict[str, Body] = {body.value.lower(): body for body in Body}


def find_body(name: object) -> Optional[Body]:
    """Look up a body by enum member or case-insensitive name."""

    if isinstance(name, Body):
        return name
    if not isinstance(name, str):
        return None
    return _BY_NAME.get(name.strip().lower())


def visible_bodies(*, include_dwarf_planets: bool = False, include_moon: bool = False) -> tuple[Body, ...]:
    """Bodies resolved every tick, in catalog order. The Sun sits at the origin."""

    kinds = {BodyKind.PLANET}
    if include_dwarf_planets:
        kinds.add(BodyKind.DWARF)
    if include_moon:
        kinds.add(BodyKind.MOON)
    return tuple(info.body for info in BODY_DEFINITIONS if info.kind in kinds)


__all__ = [
    "BODY_DEFINITIONS",
    "CATALOG",
    "PLANET_ORDER",
    "Body",
    "BodyInfo",
    "BodyKind",
    "find_body",
    "visible_bodies",
]
