"""Cinematic track definitions and loaders."""
from __future__ import annotations

import bisect
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from orrery.core.model import Viewpoint, as_instant, days_between, shift_days
from orrery.data.bodies import CATALOG, PLANET_ORDER, Body


@dataclass(frozen=True)
class Keyframe:
    offset: float  # real seconds from track start
    instant: datetime
    viewpoint: Viewpoint


@dataclass(frozen=True)
class CinematicTrack:
    """Ordered keyframe schedule played independently of the user speed."""

    name: str
    keyframes: tuple[Keyframe, ...]

    def __post_init__(self) -> None:
        keyframes = tuple(self.keyframes)
        if not keyframes:
            raise ValueError(f"Track '{self.name}' has no keyframes")
        if keyframes[0].offset != 0.0:
            raise ValueError(f"Track '{self.name}' must start at offset 0")
        for previous, current in zip(keyframes, keyframes[1:]):
            if current.offset <= previous.offset:
                raise ValueError(f"Track '{self.name}' offsets must be strictly increasing")
        for keyframe in keyframes:
            if keyframe.instant.tzinfo is None:
                raise ValueError(f"Track '{self.name}' instants must be timezone-aware")
        object.__setattr__(self, "keyframes", keyframes)
        object.__setattr__(self, "_offsets", [keyframe.offset for keyframe in keyframes])

    @property
    def duration(self) -> float:
        return self.keyframes[-1].offset

    def segment_at(self, elapsed: float) -> int:
        """Index of the keyframe that starts the segment containing *elapsed*."""

        index = bisect.bisect_right(self._offsets, elapsed) - 1  # type: ignore[attr-defined]
        return max(0, min(index, len(self.keyframes) - 1))

    def instant_at(self, elapsed: float) -> datetime:
        index = self.segment_at(elapsed)
        start = self.keyframes[index]
        if index + 1 >= len(self.keyframes):
            return start.instant
        end = self.keyframes[index + 1]
        fraction = (elapsed - start.offset) / (end.offset - start.offset)
        fraction = max(0.0, min(1.0, fraction))
        return shift_days(start.instant, days_between(start.instant, end.instant) * fraction)


def grand_tour(
    start: datetime,
    bodies: Iterable[Body] = PLANET_ORDER,
    *,
    hold_seconds: float = 5.0,
    days_per_stop: float = 30.0,
    name: str = "grand-tour",
) -> CinematicTrack:
    """Visit each body in turn, *hold_seconds* per stop, advancing the date."""

    start = as_instant(start)
    keyframes = [Keyframe(0.0, start, Viewpoint(target=None, distance=40.0, elevation=0.9))]
    for stop, body in enumerate(bodies, start=1):
        info = CATALOG[body]
        keyframes.append(
            Keyframe(
                offset=stop * hold_seconds,
                instant=shift_days(start, stop * days_per_stop),
                viewpoint=Viewpoint(target=info.name, distance=0.2 + info.radius * 0.03),
            )
        )
    return CinematicTrack(name=name, keyframes=tuple(keyframes))


def track_from_dict(data: Mapping[str, Any]) -> CinematicTrack:
    """Build a track from its JSON form.

    ``{"name": str, "keyframes": [{"offset", "instant", "target",
    "distance", "elevation"}]}`` with ISO 8601 instants.
    """

    raw_keyframes: Sequence[Mapping[str, Any]] = data.get("keyframes") or []
    keyframes = []
    for raw in raw_keyframes:
        try:
            instant = as_instant(datetime.fromisoformat(str(raw["instant"])))
            keyframes.append(
                Keyframe(
                    offset=float(raw["offset"]),
                    instant=instant,
                    viewpoint=Viewpoint(
                        target=raw.get("target"),
                        distance=float(raw.get("distance", 2.0)),
                        elevation=float(raw.get("elevation", 0.5)),
                    ),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid keyframe {raw!r}: {exc}") from exc
    return CinematicTrack(name=str(data.get("name", "track")), keyframes=tuple(keyframes))


def load_track(path: str | Path) -> CinematicTrack:
    with Path(path).open("r", encoding="utf-8") as fh:
        return track_from_dict(json.load(fh))


__all__ = [
    "CinematicTrack",
    "Keyframe",
    "grand_tour",
    "load_track",
    "track_from_dict",
]
