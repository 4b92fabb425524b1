from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from orrery.core.model import OrbitSnapshot


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def compress_radius(radius: float, exponent: float) -> float:
    """Radial compression so Mercury and Neptune fit on one screen."""

    if radius <= 0.0:
        return 0.0
    return radius ** exponent


@dataclass
class CameraState:
    center: np.ndarray
    target: np.ndarray
    ppa: float
    ppa_target: float


class CameraRig:
    """Top-down camera over the ecliptic plane.

    World coordinates are radially compressed AU (see :func:`compress_radius`);
    ``ppa`` is pixels per compressed AU. The rig follows the selected planet,
    or the cinematic viewpoint while a track is playing.
    """

    def __init__(
        self,
        size: tuple[int, int],
        ppa: float,
        *,
        min_ppa: float,
        max_ppa: float,
        radial_exponent: float = 0.55,
    ) -> None:
        self._size = size
        self._min_ppa = min_ppa
        self._max_ppa = max_ppa
        self._exponent = radial_exponent
        ppa = _clamp(ppa, min_ppa, max_ppa)
        self._state = CameraState(
            center=np.array([0.0, 0.0], dtype=float),
            target=np.array([0.0, 0.0], dtype=float),
            ppa=ppa,
            ppa_target=ppa,
        )
        self._pan_anchor: tuple[int, int] | None = None
        self._following: Optional[str] = None

    @property
    def size(self) -> tuple[int, int]:
        return self._size

    def update_size(self, size: tuple[int, int]) -> None:
        self._size = size

    @property
    def ppa(self) -> float:
        return self._state.ppa

    @property
    def ppa_target(self) -> float:
        return self._state.ppa_target

    @property
    def center(self) -> np.ndarray:
        return self._state.center

    @property
    def target(self) -> np.ndarray:
        return self._state.target

    @property
    def following(self) -> Optional[str]:
        return self._following

    def project(self, position: Sequence[float]) -> np.ndarray:
        """Heliocentric AU vector to compressed ecliptic-plane world coordinates."""

        x, y = float(position[0]), float(position[1])
        radius = float(np.hypot(x, y))
        if radius <= 0.0:
            return np.array([0.0, 0.0])
        scale = compress_radius(radius, self._exponent) / radius
        return np.array([x * scale, y * scale])

    def set_center(self, position: tuple[float, float]) -> None:
        self._state.center[:] = position
        self._state.target[:] = position

    def set_target(self, position: Sequence[float]) -> None:
        self._state.target[:] = position

    def set_zoom_target(self, ppa: float) -> None:
        self._state.ppa_target = _clamp(ppa, self._min_ppa, self._max_ppa)

    def zoom_by_factor(self, factor: float) -> None:
        self.set_zoom_target(self._state.ppa_target * factor)

    def zoom_for_distance(self, distance: float) -> float:
        """Pixels per world unit that fit *distance* AU into half the short side."""

        half_extent = min(self._size) / 2.0
        return half_extent / max(compress_radius(distance, self._exponent), 1e-6)

    def follow(self, snapshot: "OrbitSnapshot") -> None:
        """Aim at the cinematic viewpoint or the selected planet."""

        viewpoint = snapshot.cursor.viewpoint if snapshot.cursor is not None else None
        name = viewpoint.target if viewpoint is not None else snapshot.selected_planet
        planet = snapshot.planets.get(name) if name else None
        if planet is not None:
            self.set_target(self.project(planet.position))
            self._following = planet.name
        elif viewpoint is not None or self._following is not None:
            self.set_target((0.0, 0.0))
            self._following = None
        if viewpoint is not None:
            self.set_zoom_target(self.zoom_for_distance(viewpoint.distance))

    def update(self, smoothing: float = 0.1) -> None:
        state = self._state
        state.ppa += (state.ppa_target - state.ppa) * smoothing
        state.ppa = _clamp(state.ppa, self._min_ppa, self._max_ppa)
        state.center += (state.target - state.center) * smoothing

    def begin_pan(self, position: tuple[int, int]) -> None:
        self._pan_anchor = position

    def pan(self, position: tuple[int, int]) -> None:
        if self._pan_anchor is None:
            return
        dx = position[0] - self._pan_anchor[0]
        dy = position[1] - self._pan_anchor[1]
        if dx == 0 and dy == 0:
            return
        ppa = max(self.ppa, 1e-9)
        self._state.center[0] -= dx / ppa
        self._state.center[1] += dy / ppa
        self._state.target[:] = self._state.center
        self._following = None
        self._pan_anchor = position

    def end_pan(self) -> None:
        self._pan_anchor = None

    def world_to_screen(self, x: float, y: float) -> tuple[int, int]:
        width, height = self._size
        cx, cy = self._state.center
        sx = width // 2 + int((x - cx) * self._state.ppa)
        sy = height // 2 - int((y - cy) * self._state.ppa)
        return sx, sy

    def body_to_screen(self, position: Sequence[float]) -> tuple[int, int]:
        wx, wy = self.project(position)
        return self.world_to_screen(wx, wy)

    def screen_to_world(self, sx: float, sy: float) -> tuple[float, float]:
        width, height = self._size
        cx, cy = self._state.center
        x = (sx - width / 2.0) / max(self._state.ppa, 1e-9) + cx
        y = (height / 2.0 - sy) / max(self._state.ppa, 1e-9) + cy
        return x, y
