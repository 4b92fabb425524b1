"""Derivation of rendering quality settings from a capability profile.

Every adjustment after the form-factor base is a *cap*: integer budgets take
the element-wise minimum, toggles are AND-ed and the tick interval takes the
maximum. Caps therefore only ever lower fidelity, which keeps the derivation
monotonic in GPU tier, low-end and reduced-motion flags.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .device import CapabilityProfile


class QualityTier(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2


ShaderQuality = QualityTier


@dataclass(frozen=True)
class QualitySettings:
    tier: QualityTier
    particle_count: int
    star_count: int
    sphere_segments: int
    enable_bloom: bool
    enable_shadows: bool
    dpr: tuple[float, float]
    antialias: bool
    shader_quality: ShaderQuality
    touch_sensitivity: float
    enable_haptics: bool
    max_texture_size: int
    sim_tick_interval: float


@dataclass(frozen=True)
class QualityCap:
    tier: QualityTier
    particle_count: int
    star_count: int
    sphere_segments: int
    enable_bloom: bool
    enable_shadows: bool
    max_dpr: float
    antialias: bool
    shader_quality: ShaderQuality
    max_texture_size: int
    sim_tick_interval: float


_UNBOUNDED = 1 << 30

TIER_CAPS: dict[QualityTier, QualityCap] = {
    QualityTier.HIGH: QualityCap(
        QualityTier.HIGH, _UNBOUNDED, _UNBOUNDED, _UNBOUNDED, True, True, 3.0, True,
        ShaderQuality.HIGH, _UNBOUNDED, 0.0,
    ),
    QualityTier.MEDIUM: QualityCap(
        QualityTier.MEDIUM, 3000, 4000, 24, True, False, 1.5, True,
        ShaderQuality.MEDIUM, 4096, 1.0 / 60.0,
    ),
    QualityTier.LOW: QualityCap(
        QualityTier.LOW, 1000, 2000, 16, False, False, 1.0, False,
        ShaderQuality.LOW, 2048, 1.0 / 30.0,
    ),
}

REDUCED_MOTION_CAP = replace(
    TIER_CAPS[QualityTier.HIGH],
    particle_count=1000,
    enable_bloom=False,
    enable_shadows=False,
)

METERED_NETWORK_CAP = replace(
    TIER_CAPS[QualityTier.HIGH],
    sphere_segments=16,
    max_texture_size=1024,
)


def _dpr_range(pixel_ratio: float, cap: float) -> tuple[float, float]:
    """``(low, high)`` device pixel ratio range; low never exceeds high."""

    high = min(pixel_ratio, cap)
    return (min(1.0, high), high)


def _desktop(profile: "CapabilityProfile") -> QualitySettings:
    return QualitySettings(
        tier=QualityTier.HIGH,
        particle_count=5000,
        star_count=6000,
        sphere_segments=32,
        enable_bloom=True,
        enable_shadows=True,
        dpr=_dpr_range(profile.pixel_ratio, 2.0),
        antialias=True,
        shader_quality=ShaderQuality.HIGH,
        touch_sensitivity=1.0,
        enable_haptics=False,
        max_texture_size=8192,
        sim_tick_interval=1.0 / 120.0,
    )


def _tablet(profile: "CapabilityProfile") -> QualitySettings:
    return QualitySettings(
        tier=QualityTier.MEDIUM,
        particle_count=2000,
        star_count=3000,
        sphere_segments=24,
        enable_bloom=True,
        enable_shadows=False,
        dpr=_dpr_range(profile.pixel_ratio, 2.0),
        antialias=True,
        shader_quality=ShaderQuality.MEDIUM,
        touch_sensitivity=1.0,
        enable_haptics=profile.has_vibration,
        max_texture_size=4096,
        sim_tick_interval=1.0 / 60.0,
    )


def _mobile(profile: "CapabilityProfile") -> QualitySettings:
    return QualitySettings(
        tier=QualityTier.MEDIUM,
        particle_count=1000,
        star_count=2000,
        sphere_segments=16,
        enable_bloom=True,
        enable_shadows=False,
        dpr=_dpr_range(profile.pixel_ratio, 1.5),
        antialias=True,
        shader_quality=ShaderQuality.MEDIUM,
        touch_sensitivity=1.2,
        enable_haptics=profile.has_vibration,
        max_texture_size=2048,
        sim_tick_interval=1.0 / 60.0,
    )


def _low_end(profile: "CapabilityProfile") -> QualitySettings:
    return QualitySettings(
        tier=QualityTier.LOW,
        particle_count=500,
        star_count=1000,
        sphere_segments=12,
        enable_bloom=False,
        enable_shadows=False,
        dpr=(1.0, 1.0),
        antialias=False,
        shader_quality=ShaderQuality.LOW,
        touch_sensitivity=1.5,
        enable_haptics=profile.has_vibration,
        max_texture_size=1024,
        sim_tick_interval=1.0 / 20.0,
    )


def apply_cap(settings: QualitySettings, cap: QualityCap) -> QualitySettings:
    low_dpr, high_dpr = settings.dpr
    return replace(
        settings,
        tier=min(settings.tier, cap.tier),
        particle_count=min(settings.particle_count, cap.particle_count),
        star_count=min(settings.star_count, cap.star_count),
        sphere_segments=min(settings.sphere_segments, cap.sphere_segments),
        enable_bloom=settings.enable_bloom and cap.enable_bloom,
        enable_shadows=settings.enable_shadows and cap.enable_shadows,
        dpr=(min(low_dpr, cap.max_dpr), min(high_dpr, cap.max_dpr)),
        antialias=settings.antialias and cap.antialias,
        shader_quality=min(settings.shader_quality, cap.shader_quality),
        max_texture_size=min(settings.max_texture_size, cap.max_texture_size),
        sim_tick_interval=max(settings.sim_tick_interval, cap.sim_tick_interval),
    )


def is_metered(profile: "CapabilityProfile") -> bool:
    return profile.save_data or profile.connection_type in ("slow-2g", "2g", "3g")


def derive_settings(profile: "CapabilityProfile") -> QualitySettings:
    """Map a capability profile to the settings bundle the renderer uses."""

    if profile.is_low_end or profile.save_data or profile.connection_type in ("slow-2g", "2g"):
        settings = _low_end(profile)
    elif profile.is_mobile:
        settings = _mobile(profile)
    elif profile.is_tablet:
        settings = _tablet(profile)
    else:
        settings = _desktop(profile)

    settings = apply_cap(settings, TIER_CAPS[QualityTier[profile.gpu_tier.name]])
    if profile.reduced_motion:
        settings = apply_cap(settings, REDUCED_MOTION_CAP)
    if is_metered(profile):
        settings = apply_cap(settings, METERED_NETWORK_CAP)
    return settings


def step_down(settings: QualitySettings) -> QualitySettings:
    """One tier lower; the lowest tier is returned unchanged."""

    if settings.tier is QualityTier.LOW:
        return settings
    return apply_cap(settings, TIER_CAPS[QualityTier(settings.tier - 1)])


__all__ = [
    "METERED_NETWORK_CAP",
    "REDUCED_MOTION_CAP",
    "TIER_CAPS",
    "QualityCap",
    "QualitySettings",
    "QualityTier",
    "ShaderQuality",
    "apply_cap",
    "derive_settings",
    "is_metered",
    "step_down",
]
