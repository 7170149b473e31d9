"""Tests for request parsing."""

import json

import pytest

from route_lanes.request import RequestError, load_request, parse_request


def _request(**overrides):
    data = {
        "stop": {"lat": 0.0, "lon": 0.0},
        "segments": [
            {
                "overlapRouteId": "12:s1",
                "directionId": 0,
                "points": [[0.0, 0.0], [0.0, 0.001]],
                "color": "e11d48",
                "label": "12",
                "activeHoursText": "6:00am-11:00pm",
            }
        ],
        "markers": [{"routeId": "12:s1", "lat": 0.0, "lon": 0.001}],
    }
    data.update(overrides)
    return data


def test_parse_request():
    req = parse_request(_request())
    assert req.stop == (0.0, 0.0)
    seg = req.segments[0]
    assert seg.overlap_route_id == "12:s1"
    assert seg.points == ((0.0, 0.0), (0.0, 0.001))
    assert seg.color == "#e11d48"
    assert seg.direction_id == "0"
    assert seg.active_hours_text == "6:00am-11:00pm"
    assert req.markers[0].route_id == "12:s1"


def test_optional_fields_default():
    data = _request(markers=None)
    del data["markers"]
    data["segments"] = [{"overlapRouteId": "7", "points": [[0, 0], [1, 1]]}]
    req = parse_request(data)
    seg = req.segments[0]
    assert seg.label == "7"
    assert seg.color == "#3b82f6"
    assert seg.direction_id is None
    assert req.markers == []


def test_stop_accepts_pair():
    assert parse_request(_request(stop=[1.5, 2.5])).stop == (1.5, 2.5)


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"stop": None}, "stop"),
        ({"stop": {"lat": "x", "lon": 0}}, "stop.lat"),
        ({"segments": {}}, "segments"),
        ({"segments": [{"points": []}]}, "overlapRouteId"),
        ({"segments": [{"overlapRouteId": "a", "points": [[0, True]]}]}, r"points\[0\]"),
        ({"markers": [{"lat": 0, "lon": 0}]}, "routeId"),
    ],
)
def test_malformed_requests(overrides, message):
    with pytest.raises(RequestError, match=message):
        parse_request(_request(**overrides))


def test_missing_stop():
    data = _request()
    del data["stop"]
    with pytest.raises(RequestError, match="missing 'stop'"):
        parse_request(data)


def test_request_error_is_value_error():
    assert issubclass(RequestError, ValueError)


def test_load_request(tmp_path):
    path = tmp_path / "req.json"
    path.write_text(json.dumps(_request()))
    assert load_request(path).segments[0].label == "12"


def test_load_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(RequestError, match="invalid JSON"):
        load_request(path)
