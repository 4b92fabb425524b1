"""Memoizing front end to the ephemeris oracle."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

import numpy as np

from .config import EPHEMERIS_CFG, EphemerisCfg
from .errors import OracleFailure
from .logging_utils import TelemetryLogger
from .model import PositionSample, Resolution, as_instant, frozen_vector
from orrery.data.bodies import CATALOG, Body

log = logging.getLogger(__name__)

Oracle = Callable[[Body, datetime, str], Sequence[float]]


@dataclass
class ResolverStats:
    hits: int = 0
    misses: int = 0
    failures: int = 0
    memo_size: int = 0


@dataclass(frozen=True)
class _MemoEntry:
    instant: datetime
    resolution: Resolution


def _checked_vector(raw: Sequence[float]) -> np.ndarray:
    vector = np.asarray(raw, dtype=float)
    if vector.shape != (3,):
        raise ValueError(f"expected a 3-vector, got shape {vector.shape}")
    if not np.all(np.isfinite(vector)):
        raise ValueError("position contains non-finite values")
    return frozen_vector(vector)


class EphemerisResolver:
    """Turns (body, instant) requests into :class:`Resolution` values.

    Only the most recent result per body is kept, keyed by exact instant
    equality, so repeated requests within a frame reach the oracle once.
    Oracle failures fall back to the body's last known-good sample, flagged
    stale.
    """

    def __init__(
        self,
        oracle: Oracle,
        *,
        cfg: EphemerisCfg = EPHEMERIS_CFG,
        telemetry: Optional[TelemetryLogger] = None,
    ) -> None:
        self._oracle = oracle
        self._frame = cfg.reference_frame
        self._telemetry = telemetry
        self._memo: dict[Body, _MemoEntry] = {}
        self._known_good: dict[Body, PositionSample] = {}
        self.stats = ResolverStats()

    @property
    def reference_frame(self) -> str:
        return self._frame

    def attach_telemetry(self, telemetry: Optional[TelemetryLogger]) -> None:
        self._telemetry = telemetry

    def resolve(self, body: Body, instant: datetime) -> Resolution:
        instant = as_instant(instant)
        entry = self._memo.get(body)
        if entry is not None and entry.instant == instant:
            self.stats.hits += 1
            return entry.resolution

        self.stats.misses += 1
        try:
            position = _checked_vector(self._oracle(body, instant, self._frame))
        except Exception as exc:  # the oracle is an untrusted collaborator
            resolution = self._recover(OracleFailure(body.value, instant, exc))
        else:
            sample = PositionSample(body, instant, position)
            self._known_good[body] = sample
            resolution = Resolution(sample)

        self._memo[body] = _MemoEntry(instant, resolution)
        self.stats.memo_size = len(self._memo)
        return resolution

    def resolve_batch(self, bodies: Iterable[Body], instant: datetime) -> dict[Body, Resolution]:
        """Resolve every body for one tick, in the given order."""

        instant = as_instant(instant)
        return {body: self.resolve(body, instant) for body in bodies}

    def last_known_good(self, body: Body) -> Optional[PositionSample]:
        return self._known_good.get(body)

    def clear(self) -> None:
        """Forget the per-frame memo; known-good samples are kept for fallback."""

        self._memo.clear()
        self.stats.memo_size = 0

    def _recover(self, failure: OracleFailure) -> Resolution:
        self.stats.failures += 1
        body = Body(failure.body)
        log.warning("%s; reusing last known-good sample", failure)
        if self._telemetry is not None:
            self._telemetry.log_event(
                "oracle_failure", body.value, {"instant": failure.instant.isoformat()}
            )
        previous = self._known_good.get(body)
        if previous is not None:
            return Resolution(previous, stale=True)
        fallback = frozen_vector([CATALOG[body].distance, 0.0, 0.0])
        return Resolution(PositionSample(body, failure.instant, fallback), stale=True)


__all__ = ["EphemerisResolver", "Oracle", "ResolverStats"]
