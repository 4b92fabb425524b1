import os
import subprocess
import sys
import time
from collections import Counter

import pytest

from orrery.core.config import DeviceCfg
from orrery.core.device import (
    CONSERVATIVE_PROFILE,
    CapabilityClassifier,
    DeviceContext,
    GpuTier,
    classify_gpu,
)
from orrery.core.performance import DegradeSignal
from orrery.core.quality import QualityTier

FAST_CFG = DeviceCfg(probe_timeout=0.2, resize_debounce=0.25)


class FakeProbes:
    def __init__(self, **overrides):
        self.calls = Counter()
        self.results = {
            "form_factor": {"is_mobile": False, "is_tablet": False, "is_touch": False, "has_vibration": False},
            "display": {"pixel_ratio": 2.0, "screen_width": 1280, "screen_height": 800},
            "network": {"connection_type": "4g", "save_data": False},
            "preferences": {"reduced_motion": False},
            "graphics": {
                "supports_modern_gl": True,
                "max_texture_size": 16384,
                "renderer": "NVIDIA GeForce RTX 3070",
            },
            "hardware": {"cpu_count": 16, "memory_gb": 32.0},
        }
        self.results.update(overrides)

    def _answer(self, name):
        self.calls[name] += 1
        result = self.results[name]
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result()
        return result

    def form_factor(self):
        return self._answer("form_factor")

    def display(self):
        return self._answer("display")

    def network(self):
        return self._answer("network")

    def preferences(self):
        return self._answer("preferences")

    def graphics(self):
        return self._answer("graphics")

    def hardware(self):
        return self._answer("hardware")


def _slow():
    time.sleep(0.5)
    return {"cpu_count": 16, "memory_gb": 32.0}


def _wait_for_detection(context, now=0.0, timeout=3.0):
    deadline = time.monotonic() + timeout
    while context.loading and time.monotonic() < deadline:
        context.poll(now)
        time.sleep(0.01)
    assert not context.loading


@pytest.mark.parametrize(
    "texture, renderer, expected",
    [
        (16384, "NVIDIA GeForce RTX 3070", GpuTier.HIGH),
        (16384, "Apple M2", GpuTier.HIGH),
        (8192, "AMD Custom GPU", GpuTier.MEDIUM),
        (8192, "Intel(R) UHD Graphics 620", GpuTier.LOW),
        (4096, "llvmpipe (LLVM 15.0.7, 256 bits)", GpuTier.LOW),
        (2048, "NVIDIA GeForce GTX 650", GpuTier.LOW),
    ],
)
def test_classify_gpu(texture, renderer, expected):
    assert classify_gpu(texture, renderer) is expected


def test_detect_high_end_desktop():
    profile = CapabilityClassifier(FakeProbes(), cfg=FAST_CFG).detect()
    assert profile.gpu_tier is GpuTier.HIGH
    assert not profile.is_low_end
    assert profile.failed_probes == ()
    assert profile.pixel_ratio == 2.0


def test_probe_error_yields_low_end_profile():
    probes = FakeProbes(graphics=RuntimeError("no GL context"))
    profile = CapabilityClassifier(probes, cfg=FAST_CFG).detect()
    assert profile.failed_probes == ("graphics",)
    assert profile.is_low_end
    assert profile.gpu_tier is GpuTier.LOW
    assert not profile.supports_modern_gl


def test_probe_timeout_yields_low_end_profile():
    probes = FakeProbes(hardware=_slow)
    started = time.monotonic()
    profile = CapabilityClassifier(probes, cfg=DeviceCfg(probe_timeout=0.05)).detect()
    assert time.monotonic() - started < 0.45
    assert "hardware" in profile.failed_probes
    assert profile.is_low_end


@pytest.mark.parametrize(
    "overrides",
    [
        {"hardware": {"cpu_count": 4, "memory_gb": 32.0}},
        {"hardware": {"cpu_count": 16, "memory_gb": 4.0}},
        {"network": {"connection_type": "2g", "save_data": False}},
    ],
)
def test_low_end_rules(overrides):
    profile = CapabilityClassifier(FakeProbes(**overrides), cfg=FAST_CFG).detect()
    assert profile.is_low_end


def test_context_starts_conservative():
    context = DeviceContext(CapabilityClassifier(FakeProbes(), cfg=FAST_CFG), cfg=FAST_CFG)
    assert context.loading
    assert context.profile is CONSERVATIVE_PROFILE
    assert context.settings.tier is QualityTier.LOW


def test_background_mount_applies_on_poll():
    context = DeviceContext(CapabilityClassifier(FakeProbes(), cfg=FAST_CFG), cfg=FAST_CFG)
    updates = []
    context.subscribe(lambda profile, settings: updates.append(settings.tier))
    context.mount()
    _wait_for_detection(context)
    assert context.settings.tier is QualityTier.HIGH
    assert updates == [QualityTier.HIGH]
    context.unmount()


def test_degrade_is_idempotent_per_signal():
    context = DeviceContext(CapabilityClassifier(FakeProbes(), cfg=FAST_CFG), cfg=FAST_CFG)
    context.mount(blocking=True)
    signal = DegradeSignal(1, "frame_time", 40.0)
    assert context.apply_degrade(signal)
    assert not context.apply_degrade(signal)
    assert context.settings.tier is QualityTier.MEDIUM
    assert context.degrade_steps == 1


def test_degrade_stops_at_lowest_tier():
    context = DeviceContext(CapabilityClassifier(FakeProbes(), cfg=FAST_CFG), cfg=FAST_CFG)
    context.mount(blocking=True)
    for sequence in range(1, 6):
        context.apply_degrade(DegradeSignal(sequence, "frame_time", 40.0))
    assert context.settings.tier is QualityTier.LOW
    assert context.degrade_steps == 2


def test_redetection_keeps_degrade_steps():
    context = DeviceContext(CapabilityClassifier(FakeProbes(), cfg=FAST_CFG), cfg=FAST_CFG)
    context.mount(blocking=True)
    context.apply_degrade(DegradeSignal(1, "frame_time", 40.0))
    context.mount(blocking=True)
    assert context.settings.tier is QualityTier.MEDIUM


def test_viewport_change_across_breakpoint_redetects_after_debounce():
    probes = FakeProbes()
    context = DeviceContext(CapabilityClassifier(probes, cfg=FAST_CFG), cfg=FAST_CFG)
    context.mount(blocking=True)
    assert probes.calls["display"] == 1

    context.notify_viewport(700, 800, now=10.0)
    context.poll(10.1)
    assert probes.calls["display"] == 1

    context.poll(10.3)
    deadline = time.monotonic() + 3.0
    while probes.calls["display"] < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    assert probes.calls["display"] == 2
    context.unmount()


def test_viewport_change_within_band_only_updates_size():
    probes = FakeProbes()
    context = DeviceContext(CapabilityClassifier(probes, cfg=FAST_CFG), cfg=FAST_CFG)
    context.mount(blocking=True)
    context.notify_viewport(1100, 700, now=0.0)
    context.poll(1.0)
    assert probes.calls["display"] == 1
    assert context.profile.screen_width == 1100
    assert context.profile.screen_height == 700


def test_subscriber_errors_do_not_break_context():
    context = DeviceContext(CapabilityClassifier(FakeProbes(), cfg=FAST_CFG), cfg=FAST_CFG)

    def broken(profile, settings):
        raise RuntimeError("listener bug")

    context.subscribe(broken)
    context.mount(blocking=True)
    assert context.settings.tier is QualityTier.HIGH


HUNG_PROBE_SCRIPT = """
import time

from orrery.core.config import DeviceCfg
from orrery.core.device import PROBE_NAMES, CapabilityClassifier, DeviceContext


class HungGraphics:
    def __getattr__(self, name):
        if name not in PROBE_NAMES:
            raise AttributeError(name)
        if name == "graphics":
            return lambda: time.sleep(30) or {}
        return lambda: {}


cfg = DeviceCfg(probe_timeout=0.1)
profile = CapabilityClassifier(HungGraphics(), cfg=cfg).detect()
print(",".join(profile.failed_probes))
context = DeviceContext(CapabilityClassifier(HungGraphics(), cfg=cfg), cfg=cfg)
context.mount()
context.unmount()
"""


def test_hung_probe_does_not_block_interpreter_exit():
    env = dict(os.environ, PYTHONPATH=os.pathsep.join(p for p in sys.path if p))
    started = time.monotonic()
    completed = subprocess.run(
        [sys.executable, "-c", HUNG_PROBE_SCRIPT],
        env=env,
        capture_output=True,
        text=True,
        timeout=25,
    )
    assert completed.returncode == 0, completed.stderr
    assert completed.stdout.strip() == "graphics"
    assert time.monotonic() - started < 10.0
