"""Configuration dataclasses for the orrery engine."""
from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, TypeVar


@dataclass(frozen=True)
class ClockCfg:
    default_speed: float = 1.0
    resume_speed: float = 30.0
    max_speed: float = 36_500.0
    max_frame_delta: float = 1.0
    max_days_per_tick: float = 3_650.0


@dataclass(frozen=True)
class EphemerisCfg:
    reference_frame: str = "ecliptic"
    ephemeris: str = "builtin"
    include_dwarf_planets: bool = False
    include_moon: bool = False


@dataclass(frozen=True)
class CinematicCfg:
    hold_seconds: float = 5.0
    days_per_stop: float = 30.0
    track_name: str = "grand-tour"


@dataclass(frozen=True)
class PerformanceCfg:
    window_frames: int = 60
    warmup_frames: int = 30
    frame_budget_ms: float = 1000.0 / 45.0
    sustain_frames: int = 90
    smoothing: float = 0.1
    memory_pressure_limit: float = 0.8


@dataclass(frozen=True)
class DeviceCfg:
    probe_timeout: float = 0.5
    resize_debounce: float = 0.25
    width_breakpoints: tuple[int, ...] = (768, 1024)


@dataclass(frozen=True)
class TelemetryCfg:
    root_dir: str = "data/runs"
    log_every_frames: int = 10
    timeseries_flush_threshold: int = 200
    events_flush_threshold: int = 50


@dataclass(frozen=True)
class RenderCfg:
    width: int = 1280
    height: int = 800
    fps_cap: int = 120
    log_level: str = "INFO"
    background_color: tuple[int, int, int] = (4, 8, 20)
    sun_color: tuple[int, int, int] = (255, 204, 64)
    orbit_color: tuple[int, int, int, int] = (150, 170, 200, 70)
    selection_color: tuple[int, int, int] = (46, 209, 195)
    label_color: tuple[int, int, int] = (234, 241, 255)
    hud_text_color: tuple[int, int, int] = (234, 241, 255)
    hud_background_color: tuple[int, int, int, int] = (12, 18, 30, 170)
    stale_color: tuple[int, int, int] = (255, 176, 120)
    pixels_per_au: float = 60.0
    min_pixels_per_au: float = 4.0
    max_pixels_per_au: float = 4_000.0
    radial_exponent: float = 0.55
    star_density: float = 0.1
    starfield_parallax: float = 0.02
    camera_smoothing: float = 0.12
    orbit_segments_per_sphere_segment: int = 4
    font_names: tuple[str, ...] = ("Inter", "Segoe UI", "DejaVu Sans", "Arial")


CLOCK_CFG = ClockCfg()
EPHEMERIS_CFG = EphemerisCfg()
CINEMATIC_CFG = CinematicCfg()
PERFORMANCE_CFG = PerformanceCfg()
DEVICE_CFG = DeviceCfg()
TELEMETRY_CFG = TelemetryCfg()
RENDER_CFG = RenderCfg()

SETTINGS_PATH = Path.home() / ".orrery" / "settings.json"

CfgT = TypeVar("CfgT")


def load_user_settings(path: Path = SETTINGS_PATH) -> dict[str, Any]:
    """Return the user's settings file as a dict, or ``{}`` if it is unusable."""

    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError):
        return {}
    if isinstance(data, dict):
        return data
    return {}


def apply_overrides(cfg: CfgT, overrides: Mapping[str, Any] | None) -> CfgT:
    """Return *cfg* with the known fields from *overrides* replaced.

    Unknown keys are dropped. Lists are converted to tuples so the frozen
    configs stay hashable.
    """

    if not overrides:
        return cfg
    known = {f.name for f in dataclasses.fields(cfg)}  # type: ignore[arg-type]
    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in known:
            continue
        changes[key] = tuple(value) if isinstance(value, list) else value
    if not changes:
        return cfg
    return dataclasses.replace(cfg, **changes)  # type: ignore[type-var]


__all__ = [
    "CINEMATIC_CFG",
    "CLOCK_CFG",
    "DEVICE_CFG",
    "EPHEMERIS_CFG",
    "PERFORMANCE_CFG",
    "RENDER_CFG",
    "SETTINGS_PATH",
    "TELEMETRY_CFG",
    "CinematicCfg",
    "ClockCfg",
    "DeviceCfg",
    "EphemerisCfg",
    "PerformanceCfg",
    "RenderCfg",
    "TelemetryCfg",
    "apply_overrides",
    "load_user_settings",
]
