"""Share links: encode a snapshot as a query string and read it back."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Mapping, Optional, Union
from urllib.parse import parse_qs, urlencode, urlsplit

from orrery.core.config import CLOCK_CFG, ClockCfg
from orrery.data.bodies import Body, find_body

if TYPE_CHECKING:
    from orrery.core.model import OrbitSnapshot

QUERY_VERSION = "1"


@dataclass(frozen=True)
class DeepLink:
    """Initial state requested by a share link. ``None`` means "leave as is"."""

    planet: Optional[Body] = None
    speed: Optional[float] = None
    instant: Optional[datetime] = None
    show_orbits: Optional[bool] = None
    show_labels: Optional[bool] = None
    cinematic: bool = False

    @property
    def empty(self) -> bool:
        return self == DeepLink()


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in ("1", "true"):
        return True
    if lowered in ("0", "false"):
        return False
    return None


def _parse_speed(value: Optional[str], cfg: ClockCfg) -> Optional[float]:
    if not value:
        return None
    try:
        speed = float(value)
    except ValueError:
        return None
    if not math.isfinite(speed):
        return None
    return max(-cfg.max_speed, min(cfg.max_speed, speed))


def _parse_epoch_ms(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000.0, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def parse_query(query: Union[str, Mapping[str, str]], cfg: ClockCfg = CLOCK_CFG) -> DeepLink:
    """Read a share query (``"?planet=Mars&t=..."``, a full URL or a mapping).

    Malformed values are ignored individually. ``cin=1`` only applies when no
    planet is requested.
    """

    if isinstance(query, str):
        text = urlsplit(query).query if "://" in query else query.lstrip("?")
        params = {key: values[-1] for key, values in parse_qs(text).items()}
    else:
        params = dict(query)

    planet = find_body(params.get("planet"))
    cinematic = _parse_bool(params.get("cin")) is True and planet is None
    return DeepLink(
        planet=planet,
        speed=_parse_speed(params.get("speed"), cfg),
        instant=_parse_epoch_ms(params.get("t")),
        show_orbits=_parse_bool(params.get("o")),
        show_labels=_parse_bool(params.get("l")),
        cinematic=cinematic,
    )


def build_query(snapshot: "OrbitSnapshot") -> str:
    """Query string (without ``?``) that reproduces *snapshot* when parsed."""

    params: dict[str, str] = {"v": QUERY_VERSION}
    if snapshot.selected_planet:
        params["planet"] = snapshot.selected_planet
    if snapshot.speed != 1.0:
        params["speed"] = f"{snapshot.speed:g}"
    if not snapshot.show_orbits:
        params["o"] = "0"
    if not snapshot.show_labels:
        params["l"] = "0"
    if snapshot.cinematic_playing and not snapshot.selected_planet:
        params["cin"] = "1"
    params["t"] = str(int(round(snapshot.instant.timestamp() * 1000)))
    return urlencode(params)


__all__ = ["QUERY_VERSION", "DeepLink", "build_query", "parse_query"]
