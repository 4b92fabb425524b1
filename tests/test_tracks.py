import json
from datetime import datetime, timedelta

import pytest

from orrery.core.model import Viewpoint
from orrery.data.bodies import PLANET_ORDER
from orrery.data.tracks import CinematicTrack, Keyframe, grand_tour, load_track, track_from_dict

from conftest import T0


def test_track_requires_keyframes():
    with pytest.raises(ValueError):
        CinematicTrack("empty", ())


def test_track_must_start_at_zero():
    with pytest.raises(ValueError):
        CinematicTrack("late", (Keyframe(1.0, T0, Viewpoint()),))


def test_track_offsets_strictly_increase():
    with pytest.raises(ValueError):
        CinematicTrack(
            "stutter",
            (Keyframe(0.0, T0, Viewpoint()), Keyframe(0.0, T0, Viewpoint())),
        )


def test_track_rejects_naive_instants():
    with pytest.raises(ValueError):
        CinematicTrack("naive", (Keyframe(0.0, datetime(2024, 1, 1), Viewpoint()),))


def test_instant_at_interpolates_and_holds_at_end():
    track = CinematicTrack(
        "two",
        (
            Keyframe(0.0, T0, Viewpoint()),
            Keyframe(4.0, T0 + timedelta(days=8), Viewpoint(target="Venus")),
        ),
    )
    assert track.duration == 4.0
    assert track.instant_at(1.0) == T0 + timedelta(days=2)
    assert track.instant_at(10.0) == T0 + timedelta(days=8)
    assert track.segment_at(-1.0) == 0
    assert track.segment_at(4.0) == 1


def test_grand_tour_visits_every_planet():
    track = grand_tour(T0, hold_seconds=5.0, days_per_stop=30.0)
    assert len(track.keyframes) == len(PLANET_ORDER) + 1
    assert track.keyframes[0].viewpoint.target is None
    assert [kf.viewpoint.target for kf in track.keyframes[1:]] == [b.value for b in PLANET_ORDER]
    assert track.duration == 5.0 * len(PLANET_ORDER)
    assert track.keyframes[-1].instant == T0 + timedelta(days=30 * len(PLANET_ORDER))


def test_track_from_dict_and_file(tmp_path):
    data = {
        "name": "inner",
        "keyframes": [
            {"offset": 0, "instant": "2024-01-01T00:00:00+00:00"},
            {"offset": 3, "instant": "2024-02-01T00:00:00", "target": "Mars", "distance": 0.5},
        ],
    }
    track = track_from_dict(data)
    assert track.name == "inner"
    assert track.keyframes[1].viewpoint.target == "Mars"
    assert track.keyframes[1].instant.tzinfo is not None

    path = tmp_path / "inner.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    assert load_track(path) == track


def test_track_from_dict_reports_bad_keyframe():
    with pytest.raises(ValueError):
        track_from_dict({"keyframes": [{"offset": 0}]})
