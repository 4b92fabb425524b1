"""Host capability detection and the device context that owns quality settings.

Probes are plain objects with one method per probe (``form_factor``,
``display``, ``network``, ``preferences``, ``graphics``, ``hardware``), each
returning a dict of profile fields. :class:`HostProbes` inspects the real
machine; tests pass their own object with the same methods.
"""
from __future__ import annotations

import logging
import os
import re
import sys
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional

from .config import DEVICE_CFG, DeviceCfg
from .errors import CapabilityProbeFailure
from .logging_utils import TelemetryLogger
from .performance import DegradeSignal
from .quality import QualitySettings, derive_settings, step_down

log = logging.getLogger(__name__)

PROBE_NAMES = ("form_factor", "display", "network", "preferences", "graphics", "hardware")

_HIGH_END_RENDERER = re.compile(r"nvidia|geforce|radeon|adreno [67]|apple (gpu|m\d)", re.IGNORECASE)
_INTEGRATED_RENDERER = re.compile(r"intel|mali|adreno [34]|powervr|llvmpipe|software", re.IGNORECASE)


class GpuTier(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class CapabilityProfile:
    is_mobile: bool = False
    is_tablet: bool = False
    is_touch: bool = False
    has_vibration: bool = False
    pixel_ratio: float = 1.0
    screen_width: int = 1280
    screen_height: int = 800
    is_low_end: bool = True
    connection_type: str = "unknown"
    save_data: bool = False
    reduced_motion: bool = False
    supports_modern_gl: bool = False
    max_texture_size: int = 2048
    gpu_tier: GpuTier = GpuTier.LOW
    failed_probes: tuple[str, ...] = ()


# Used until detection finishes and for every field whose probe failed.
CONSERVATIVE_PROFILE = CapabilityProfile()

_CONSERVATIVE_FIELDS: dict[str, dict[str, Any]] = {
    "form_factor": {"is_mobile": False, "is_tablet": False, "is_touch": False, "has_vibration": False},
    "display": {"pixel_ratio": 1.0, "screen_width": 1280, "screen_height": 800},
    "network": {"connection_type": "unknown", "save_data": False},
    "preferences": {"reduced_motion": False},
    "graphics": {"supports_modern_gl": False, "max_texture_size": 2048, "renderer": ""},
    "hardware": {"cpu_count": 1, "memory_gb": None},
}


def classify_gpu(max_texture_size: int, renderer: str) -> GpuTier:
    if max_texture_size >= 8192 and _HIGH_END_RENDERER.search(renderer):
        return GpuTier.HIGH
    if max_texture_size >= 4096 and not _INTEGRATED_RENDERER.search(renderer):
        return GpuTier.MEDIUM
    return GpuTier.LOW


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


class HostProbes:
    """Probes for a desktop host running the pygame front end.

    Environment variables ``ORRERY_FORM_FACTOR`` (``mobile``/``tablet``),
    ``ORRERY_PIXEL_RATIO``, ``ORRERY_CONNECTION``, ``ORRERY_SAVE_DATA`` and
    ``ORRERY_REDUCED_MOTION`` stand in for the platform hints a browser would
    expose.
    """

    def __init__(self, window_size: Optional[Callable[[], tuple[int, int]]] = None) -> None:
        self._window_size = window_size

    def form_factor(self) -> dict[str, Any]:
        hint = os.environ.get("ORRERY_FORM_FACTOR", "").lower()
        is_mobile = hint == "mobile" or sys.platform in ("android", "ios") or hasattr(sys, "getandroidapilevel")
        is_tablet = hint == "tablet"
        return {
            "is_mobile": is_mobile,
            "is_tablet": is_tablet,
            "is_touch": is_mobile or is_tablet,
            "has_vibration": is_mobile,
        }

    def display(self) -> dict[str, Any]:
        import pygame

        if self._window_size is not None:
            width, height = self._window_size()
        else:
            if not pygame.display.get_init():
                pygame.display.init()
            sizes = pygame.display.get_desktop_sizes()
            width, height = sizes[0] if sizes else (1280, 800)
        ratio = float(os.environ.get("ORRERY_PIXEL_RATIO", "1") or 1.0)
        return {
            "pixel_ratio": min(max(ratio, 1.0), 3.0),
            "screen_width": int(width),
            "screen_height": int(height),
        }

    def network(self) -> dict[str, Any]:
        return {
            "connection_type": os.environ.get("ORRERY_CONNECTION", "unknown").lower(),
            "save_data": _env_flag("ORRERY_SAVE_DATA"),
        }

    def preferences(self) -> dict[str, Any]:
        return {"reduced_motion": _env_flag("ORRERY_REDUCED_MOTION")}

    def graphics(self) -> dict[str, Any]:
        import moderngl

        ctx = moderngl.create_standalone_context()
        try:
            info = ctx.info
            return {
                "supports_modern_gl": ctx.version_code >= 330,
                "max_texture_size": int(info.get("GL_MAX_TEXTURE_SIZE", 2048)),
                "renderer": str(info.get("GL_RENDERER", "")),
            }
        finally:
            ctx.release()

    def hardware(self) -> dict[str, Any]:
        memory_gb: Optional[float] = None
        try:
            memory_gb = os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES") / 1024**3
        except (AttributeError, ValueError, OSError):
            memory_gb = None
        return {"cpu_count": os.cpu_count() or 1, "memory_gb": memory_gb}


def run_in_daemon(func: Callable[[], Any], name: str) -> Future:
    """Run *func* on a daemon thread and return a future for its result.

    The thread is a daemon, so a call that never returns does not delay
    interpreter exit.
    """

    future: Future = Future()

    def target() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = func()
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)

    threading.Thread(target=target, name=name, daemon=True).start()
    return future


class CapabilityClassifier:
    """Runs every probe with a bounded wait and builds a :class:`CapabilityProfile`."""

    def __init__(self, probes: Any, *, cfg: DeviceCfg = DEVICE_CFG) -> None:
        self._probes = probes
        self._cfg = cfg

    def detect(self) -> CapabilityProfile:
        results: dict[str, dict[str, Any]] = {}
        failed: list[str] = []
        futures = {
            name: run_in_daemon(getattr(self._probes, name), f"probe-{name}") for name in PROBE_NAMES
        }
        for name, future in futures.items():
            try:
                value = future.result(timeout=self._cfg.probe_timeout)
                if not isinstance(value, dict):
                    raise TypeError(f"expected dict, got {type(value).__name__}")
                results[name] = value
            except FutureTimeoutError:
                # abandoned; the daemon thread's late result is dropped
                self._record_failure(name, f"no answer within {self._cfg.probe_timeout:.2f} s")
                failed.append(name)
            except Exception as exc:  # any probe error falls back to defaults
                self._record_failure(name, repr(exc))
                failed.append(name)
        return self._build(results, tuple(failed))

    @staticmethod
    def _record_failure(name: str, reason: str) -> None:
        log.warning("%s; using conservative defaults", CapabilityProbeFailure(name, reason))

    @staticmethod
    def _build(results: dict[str, dict[str, Any]], failed: tuple[str, ...]) -> CapabilityProfile:
        merged: dict[str, Any] = {}
        for name in PROBE_NAMES:
            merged.update(_CONSERVATIVE_FIELDS[name])
            merged.update(results.get(name, {}))

        connection = str(merged["connection_type"])
        max_texture = int(merged["max_texture_size"])
        gpu_tier = classify_gpu(max_texture, str(merged["renderer"]))
        memory_gb = merged["memory_gb"]
        is_low_end = bool(
            failed
            or (merged["is_mobile"] and gpu_tier is GpuTier.LOW)
            or int(merged["cpu_count"]) <= 4
            or (memory_gb is not None and memory_gb <= 4)
            or connection in ("slow-2g", "2g")
        )
        return CapabilityProfile(
            is_mobile=bool(merged["is_mobile"]),
            is_tablet=bool(merged["is_tablet"]),
            is_touch=bool(merged["is_touch"]),
            has_vibration=bool(merged["has_vibration"]),
            pixel_ratio=float(merged["pixel_ratio"]),
            screen_width=int(merged["screen_width"]),
            screen_height=int(merged["screen_height"]),
            is_low_end=is_low_end,
            connection_type=connection,
            save_data=bool(merged["save_data"]),
            reduced_motion=bool(merged["reduced_motion"]),
            supports_modern_gl=bool(merged["supports_modern_gl"]),
            max_texture_size=max_texture,
            gpu_tier=gpu_tier,
            failed_probes=failed,
        )


def _breakpoint_band(width: int, breakpoints: tuple[int, ...]) -> int:
    return sum(1 for limit in breakpoints if width >= limit)


@dataclass
class _PendingViewport:
    width: int
    height: int
    since: float


@dataclass
class DeviceContext:
    """Owns the capability profile and quality settings for one mount.

    Starts from :data:`CONSERVATIVE_PROFILE`; detection runs in the
    background and is applied by :meth:`poll` from the frame loop, so the
    first frames never wait on a probe.
    """

    classifier: CapabilityClassifier
    cfg: DeviceCfg = DEVICE_CFG
    telemetry: Optional[TelemetryLogger] = None
    profile: CapabilityProfile = CONSERVATIVE_PROFILE
    settings: QualitySettings = field(default_factory=lambda: derive_settings(CONSERVATIVE_PROFILE))
    degrade_steps: int = 0
    loading: bool = True

    def __post_init__(self) -> None:
        self._future: Optional[Future] = None
        self._pending_viewport: Optional[_PendingViewport] = None
        self._handled_signals: set[int] = set()
        self._subscribers: list[Callable[[CapabilityProfile, QualitySettings], None]] = []
        self._lock = threading.Lock()

    def mount(self, *, blocking: bool = False) -> None:
        if blocking:
            self._apply_profile(self.classifier.detect(), reason="mount")
            return
        self._start_detection()

    def unmount(self) -> None:
        # a detection still running is abandoned, never joined
        self._future = None
        self._subscribers.clear()

    def subscribe(self, callback: Callable[[CapabilityProfile, QualitySettings], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def notify_viewport(self, width: int, height: int, now: float) -> None:
        self._pending_viewport = _PendingViewport(int(width), int(height), now)

    def notify_connection_change(self) -> None:
        self._start_detection()

    def poll(self, now: float) -> bool:
        """Apply finished detections and debounced viewport changes.

        Returns ``True`` when the settings were replaced.
        """

        changed = False
        future = self._future
        if future is not None and future.done():
            self._future = None
            try:
                profile = future.result()
            except Exception as exc:  # detection itself must not break the frame loop
                log.warning("Capability detection failed: %r; keeping current profile", exc)
                self.loading = False
            else:
                self._apply_profile(profile, reason="detect")
                changed = True

        pending = self._pending_viewport
        if pending is not None and now - pending.since >= self.cfg.resize_debounce:
            self._pending_viewport = None
            old_band = _breakpoint_band(self.profile.screen_width, self.cfg.width_breakpoints)
            new_band = _breakpoint_band(pending.width, self.cfg.width_breakpoints)
            if old_band != new_band:
                log.info("Viewport %dx%d crossed a breakpoint; re-detecting", pending.width, pending.height)
                self._start_detection()
            else:
                self.profile = replace(
                    self.profile, screen_width=pending.width, screen_height=pending.height
                )
        return changed

    def apply_degrade(self, signal: DegradeSignal) -> bool:
        """Step settings down once per signal; repeats and the floor are no-ops."""

        if signal.sequence in self._handled_signals:
            return False
        self._handled_signals.add(signal.sequence)
        lowered = step_down(self.settings)
        if lowered is self.settings:
            log.debug("Degrade signal %d ignored; already at the lowest tier", signal.sequence)
            return False
        self.degrade_steps += 1
        log.info(
            "Quality stepped down to %s (%s, smoothed %.1f ms)",
            lowered.tier.name, signal.reason, signal.smoothed_ms,
        )
        if self.telemetry is not None:
            self.telemetry.log_event("degrade", lowered.tier.name, {"reason": signal.reason})
        self._publish(self.profile, lowered)
        return True

    def _start_detection(self) -> None:
        if self._future is not None and not self._future.done():
            return
        self._future = run_in_daemon(self.classifier.detect, "capability")

    def _apply_profile(self, profile: CapabilityProfile, *, reason: str) -> None:
        settings = derive_settings(profile)
        for _ in range(self.degrade_steps):
            settings = step_down(settings)
        self.loading = False
        log.info(
            "Capability profile (%s): gpu=%s low_end=%s -> tier %s",
            reason, profile.gpu_tier.value, profile.is_low_end, settings.tier.name,
        )
        if self.telemetry is not None:
            self.telemetry.log_event(
                "capability", reason,
                {"gpu_tier": profile.gpu_tier.value, "low_end": profile.is_low_end,
                 "failed": list(profile.failed_probes)},
            )
        self._publish(profile, settings)

    def _publish(self, profile: CapabilityProfile, settings: QualitySettings) -> None:
        with self._lock:
            self.profile = profile
            self.settings = settings
        for callback in list(self._subscribers):
            try:
                callback(profile, settings)
            except Exception:
                log.exception("Device subscriber failed")


__all__ = [
    "CONSERVATIVE_PROFILE",
    "PROBE_NAMES",
    "CapabilityClassifier",
    "CapabilityProfile",
    "DeviceContext",
    "GpuTier",
    "HostProbes",
    "classify_gpu",
    "run_in_daemon",
]
