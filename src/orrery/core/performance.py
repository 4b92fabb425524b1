"""Frame-time monitoring and the one-shot quality degrade signal."""
from __future__ import annotations

import logging
import os
import sys
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .config import PERFORMANCE_CFG, PerformanceCfg

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DegradeSignal:
    sequence: int
    reason: str
    smoothed_ms: float


@dataclass(frozen=True)
class FrameStats:
    frames: int
    fps: float
    mean_ms: float
    p95_ms: float
    max_ms: float
    smoothed_ms: float
    memory_fraction: Optional[float]


def process_memory_fraction() -> Optional[float]:
    """Resident memory of this process over physical memory, if knowable."""

    try:
        import resource

        rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        # ru_maxrss is bytes on macOS and kilobytes elsewhere.
        rss_bytes = rss if sys.platform == "darwin" else rss * 1024
        total = os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    except (ImportError, AttributeError, ValueError, OSError):
        return None
    if total <= 0:
        return None
    return rss_bytes / total


class PerformanceMonitor:
    """Watches rendered frame durations and asks for a quality step-down.

    The first ``warmup_frames`` frames are ignored. After that every frame
    updates an exponentially smoothed frame time; once it has stayed above
    the budget (or memory pressure above its limit) for ``sustain_frames``
    consecutive frames a single :class:`DegradeSignal` is emitted and the
    window starts over.
    """

    def __init__(self, cfg: PerformanceCfg = PERFORMANCE_CFG) -> None:
        self.cfg = cfg
        self._window: deque[float] = deque(maxlen=max(1, cfg.window_frames))
        self._subscribers: list[Callable[[DegradeSignal], None]] = []
        self._frames_seen = 0
        self._smoothed_ms: Optional[float] = None
        self._over_budget = 0
        self._memory_fraction: Optional[float] = None
        self.signals_emitted = 0

    def subscribe(self, callback: Callable[[DegradeSignal], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def record_frame(
        self, seconds: float, memory_fraction: Optional[float] = None
    ) -> Optional[DegradeSignal]:
        self._frames_seen += 1
        if memory_fraction is not None:
            self._memory_fraction = memory_fraction
        if self._frames_seen <= self.cfg.warmup_frames or seconds <= 0.0:
            return None

        frame_ms = seconds * 1000.0
        self._window.append(frame_ms)
        if self._smoothed_ms is None:
            self._smoothed_ms = frame_ms
        else:
            alpha = self.cfg.smoothing
            self._smoothed_ms = alpha * frame_ms + (1.0 - alpha) * self._smoothed_ms

        slow = self._smoothed_ms > self.cfg.frame_budget_ms
        pressured = (
            self._memory_fraction is not None
            and self._memory_fraction > self.cfg.memory_pressure_limit
        )
        if not (slow or pressured):
            self._over_budget = 0
            return None

        self._over_budget += 1
        if self._over_budget < self.cfg.sustain_frames:
            return None
        return self._emit("frame_time" if slow else "memory_pressure")

    def _emit(self, reason: str) -> DegradeSignal:
        self.signals_emitted += 1
        signal = DegradeSignal(self.signals_emitted, reason, float(self._smoothed_ms or 0.0))
        log.warning(
            "Sustained %s over budget (smoothed %.1f ms); requesting quality step-down",
            reason.replace("_", " "), signal.smoothed_ms,
        )
        self._window.clear()
        self._smoothed_ms = None
        self._over_budget = 0
        for callback in list(self._subscribers):
            try:
                callback(signal)
            except Exception:
                log.exception("Performance subscriber failed")
        return signal

    def stats(self) -> FrameStats:
        if not self._window:
            return FrameStats(0, 0.0, 0.0, 0.0, 0.0, 0.0, self._memory_fraction)
        samples = np.fromiter(self._window, dtype=float)
        mean_ms = float(samples.mean())
        return FrameStats(
            frames=int(samples.size),
            fps=1000.0 / mean_ms if mean_ms > 0 else 0.0,
            mean_ms=mean_ms,
            p95_ms=float(np.percentile(samples, 95)),
            max_ms=float(samples.max()),
            smoothed_ms=float(self._smoothed_ms or 0.0),
            memory_fraction=self._memory_fraction,
        )

    @property
    def verdict(self) -> str:
        stats = self.stats()
        if stats.frames == 0:
            return "warming up"
        if stats.smoothed_ms > self.cfg.frame_budget_ms:
            return "degraded"
        return "ok"

    def report(self) -> dict[str, object]:
        stats = self.stats()
        return {
            "verdict": self.verdict,
            "fps": round(stats.fps, 1),
            "mean_ms": round(stats.mean_ms, 2),
            "p95_ms": round(stats.p95_ms, 2),
            "max_ms": round(stats.max_ms, 2),
            "memory_fraction": stats.memory_fraction,
            "signals": self.signals_emitted,
        }


__all__ = [
    "DegradeSignal",
    "FrameStats",
    "PerformanceMonitor",
    "process_memory_fraction",
]
