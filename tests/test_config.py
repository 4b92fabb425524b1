import json

from orrery.core.config import DeviceCfg, RenderCfg, apply_overrides, load_user_settings


def test_missing_settings_file(tmp_path):
    assert load_user_settings(tmp_path / "nope.json") == {}


def test_malformed_settings_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_user_settings(path) == {}


def test_non_object_settings_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert load_user_settings(path) == {}


def test_settings_file_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"render": {"fps_cap": 60}}), encoding="utf-8")
    assert load_user_settings(path) == {"render": {"fps_cap": 60}}


def test_apply_overrides_keeps_known_fields_only():
    cfg = apply_overrides(RenderCfg(), {"fps_cap": 30, "warp_drive": True})
    assert cfg.fps_cap == 30
    assert not hasattr(cfg, "warp_drive")


def test_apply_overrides_converts_lists_to_tuples():
    cfg = apply_overrides(DeviceCfg(), {"width_breakpoints": [600, 900]})
    assert cfg.width_breakpoints == (600, 900)
    hash(cfg)


def test_apply_overrides_returns_same_object_without_changes():
    base = RenderCfg()
    assert apply_overrides(base, None) is base
    assert apply_overrides(base, {}) is base
    assert apply_overrides(base, {"unknown": 1}) is base
