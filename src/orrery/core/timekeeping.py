"""Simulation clock, cinematic playback and frame timing."""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .config import CLOCK_CFG, ClockCfg
from .errors import ValidationError
from .model import CinematicCursor, ClockMode, as_instant, shift_days
from orrery.data.tracks import CinematicTrack

log = logging.getLogger(__name__)


@dataclass
class FrameTimer:
    """High resolution timer based on :func:`time.perf_counter`."""

    last_time: float = field(default_factory=time.perf_counter)

    def tick(self) -> float:
        now = time.perf_counter()
        dt = now - self.last_time
        self.last_time = now
        return dt


@dataclass
class TickAccumulator:
    """Gathers real frame time until at least ``interval`` seconds are due.

    The whole gathered amount is released at once, so advancement stays
    proportional to elapsed frame time rather than quantized.
    """

    interval: float
    value: float = 0.0

    def accrue(self, delta: float) -> None:
        if delta > 0.0:
            self.value += delta

    def clear(self) -> None:
        self.value = 0.0

    def consume(self) -> float:
        if self.value <= 0.0 or self.value < self.interval:
            return 0.0
        released = self.value
        self.value = 0.0
        return released


def validate_speed(speed: float, cfg: ClockCfg = CLOCK_CFG) -> float:
    try:
        value = float(speed)
    except (TypeError, ValueError):
        raise ValidationError("Time speed must be a number", field="speed", value=speed) from None
    if not math.isfinite(value):
        raise ValidationError("Time speed must be finite", field="speed", value=speed)
    if abs(value) > cfg.max_speed:
        raise ValidationError(
            f"Time speed {value} exceeds ±{cfg.max_speed} days per second",
            field="speed",
            value=speed,
        )
    return value


class SimulationClock:
    """Owns the simulated instant.

    States are PAUSED, RUNNING(speed) and CINEMATIC(track, cursor). Speeds are
    signed days per real second; negative speeds rewind.
    """

    def __init__(
        self,
        start: datetime,
        speed: Optional[float] = None,
        *,
        cfg: ClockCfg = CLOCK_CFG,
    ) -> None:
        self._cfg = cfg
        self._instant = as_instant(start)
        self._speed = validate_speed(cfg.default_speed if speed is None else speed, cfg)
        self._last_nonzero_speed = self._speed or cfg.resume_speed
        self._track: Optional[CinematicTrack] = None
        self._cursor: Optional[CinematicCursor] = None
        self._resume_speed = self._speed

    @property
    def instant(self) -> datetime:
        return self._instant

    @property
    def speed(self) -> float:
        """User speed; during cinematic playback, the speed that will be restored."""

        if self._track is not None:
            return self._resume_speed
        return self._speed

    @property
    def mode(self) -> ClockMode:
        if self._track is not None:
            return ClockMode.CINEMATIC
        return ClockMode.PAUSED if self._speed == 0.0 else ClockMode.RUNNING

    @property
    def track(self) -> Optional[CinematicTrack]:
        return self._track

    @property
    def cursor(self) -> Optional[CinematicCursor]:
        return self._cursor

    def set_speed(self, speed: float) -> None:
        value = validate_speed(speed, self._cfg)
        if self._track is not None:
            log.debug("Speed change cancels cinematic track '%s'", self._track.name)
            self._clear_track()
        self._speed = value
        if value != 0.0:
            self._last_nonzero_speed = value

    def toggle_pause(self) -> None:
        if self.mode is ClockMode.PAUSED:
            self.set_speed(self._last_nonzero_speed or self._cfg.resume_speed)
        else:
            self.set_speed(0.0)

    def start_cinematic(self, track: CinematicTrack) -> None:
        if self._track is None:
            self._resume_speed = self._speed
        first = track.keyframes[0]
        self._track = track
        self._cursor = CinematicCursor(track.name, 0, 0.0, first.viewpoint)
        self._instant = first.instant
        log.info("Cinematic track '%s' started (%.1f s)", track.name, track.duration)

    def stop_cinematic(self) -> bool:
        """Cancel playback and restore the speed active before it started."""

        if self._track is None:
            return False
        log.info("Cinematic track '%s' stopped", self._track.name)
        self._clear_track()
        return True

    def jump_to(self, instant: datetime) -> None:
        if self._track is not None:
            self._clear_track()
        self._instant = as_instant(instant)

    def tick(self, delta: float) -> datetime:
        """Advance by one frame of *delta* real seconds and return the instant."""

        delta = max(0.0, min(float(delta), self._cfg.max_frame_delta))
        if self._track is not None:
            self._advance_track(delta)
        elif self._speed != 0.0 and delta > 0.0:
            days = delta * self._speed
            limit = self._cfg.max_days_per_tick
            days = max(-limit, min(limit, days))
            self._instant = shift_days(self._instant, days)
        return self._instant

    def _advance_track(self, delta: float) -> None:
        track = self._track
        cursor = self._cursor
        if track is None or cursor is None:
            return
        elapsed = cursor.elapsed + delta
        if elapsed >= track.duration:
            self._instant = track.keyframes[-1].instant
            log.info("Cinematic track '%s' finished", track.name)
            self._clear_track()
            return
        index = max(cursor.index, track.segment_at(elapsed))
        self._instant = track.instant_at(elapsed)
        self._cursor = CinematicCursor(track.name, index, elapsed, track.keyframes[index].viewpoint)

    def _clear_track(self) -> None:
        self._track = None
        self._cursor = None
        self._speed = self._resume_speed
        if self._speed != 0.0:
            self._last_nonzero_speed = self._speed


__all__ = [
    "FrameTimer",
    "SimulationClock",
    "TickAccumulator",
    "validate_speed",
]
