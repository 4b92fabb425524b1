"""Default ephemeris oracle backed by :mod:`astropy`."""
from __future__ import annotations

import math
import warnings
from datetime import datetime

import numpy as np
from astropy import units as u
from astropy.coordinates import get_body_barycentric, solar_system_ephemeris
from astropy.time import Time
from erfa import ErfaWarning

from orrery.data.bodies import Body

# ERFA complains about "dubious year" far from the present; harmless here.
warnings.filterwarnings("ignore", category=ErfaWarning)

OBLIQUITY_J2000_DEG = 23.4392911
_C = math.cos(math.radians(OBLIQUITY_J2000_DEG))
_S = math.sin(math.radians(OBLIQUITY_J2000_DEG))

FRAMES = ("icrs", "ecliptic")


def to_ecliptic(vector: np.ndarray) -> np.ndarray:
    """Rotate an equatorial (ICRS) vector to ecliptic J2000 about the x axis."""

    x, y, z = vector
    return np.array([x, _C * y + _S * z, -_S * y + _C * z])


class AstropyOracle:
    """Heliocentric positions in AU from ``get_body_barycentric``.

    The builtin ephemeris covers the Sun, Moon and the eight planets; Pluto
    needs a JPL kernel such as ``"de432s"`` (which pulls in ``jplephem``).
    Unsupported bodies raise, which the resolver treats as an oracle failure.
    """

    def __init__(self, ephemeris: str = "builtin") -> None:
        self.ephemeris = ephemeris

    def __call__(self, body: Body, instant: datetime, reference_frame: str) -> np.ndarray:
        if reference_frame not in FRAMES:
            raise ValueError(f"Unsupported reference frame '{reference_frame}'")
        if body is Body.SUN:
            return np.zeros(3)

        t = Time(instant)
        with solar_system_ephemeris.set(self.ephemeris):
            p = get_body_barycentric(body.value.lower(), t)
            s = get_body_barycentric("sun", t)
        heliocentric = np.array([
            (p.x - s.x).to_value(u.au),
            (p.y - s.y).to_value(u.au),
            (p.z - s.z).to_value(u.au),
        ])
        if reference_frame == "ecliptic":
            return to_ecliptic(heliocentric)
        return heliocentric


__all__ = ["FRAMES", "OBLIQUITY_J2000_DEG", "AstropyOracle", "to_ecliptic"]
