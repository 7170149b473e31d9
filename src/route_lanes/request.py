"""Parse lane layout requests from JSON.

A request looks like::

    {
      "stop": {"lat": 40.0, "lon": -75.0},
      "segments": [
        {"overlapRouteId": "12:shp1", "directionId": "0",
         "points": [[40.0, -75.0], [40.001, -75.0]],
         "color": "#e11d48", "label": "12", "activeHoursText": "6:00am-11:00pm"}
      ],
      "markers": [{"routeId": "12:shp1", "lat": 40.001, "lon": -75.0}]
    }

``markers`` is optional and lists downstream stops to place on the lanes.
"""

from __future__ import annotations

__all__ = ["MarkerRequest", "RequestError", "load_request", "parse_request"]

import json
from dataclasses import dataclass, field
from pathlib import Path

from route_lanes.model import RouteSegment
from route_lanes.prepare import normalize_color


class RequestError(ValueError):
    """Raised for malformed lane layout requests."""


@dataclass
class MarkerRequest:
    route_id: str
    lat: float
    lon: float


@dataclass
class LaneRequest:
    stop: tuple[float, float]
    segments: list[RouteSegment] = field(default_factory=list)
    markers: list[MarkerRequest] = field(default_factory=list)


def _number(value, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RequestError(f"{where}: expected a number, got {value!r}")
    return float(value)


def _latlon(obj, where: str) -> tuple[float, float]:
    if isinstance(obj, dict):
        if "lat" not in obj or "lon" not in obj:
            raise RequestError(f"{where}: missing 'lat' or 'lon'")
        return _number(obj["lat"], f"{where}.lat"), _number(obj["lon"], f"{where}.lon")
    if isinstance(obj, (list, tuple)) and len(obj) == 2:
        return _number(obj[0], f"{where}[0]"), _number(obj[1], f"{where}[1]")
    raise RequestError(f"{where}: expected {{lat, lon}} or [lat, lon], got {obj!r}")


def _text(value, where: str, default: str = "") -> str:
    if value is None:
        return default
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise RequestError(f"{where}: expected a string, got {value!r}")
    return str(value)


def _segment(obj, index: int) -> RouteSegment:
    where = f"segments[{index}]"
    if not isinstance(obj, dict):
        raise RequestError(f"{where}: expected an object")
    rid = obj.get("overlapRouteId")
    if rid is None or rid == "":
        raise RequestError(f"{where}: missing 'overlapRouteId'")
    points = obj.get("points")
    if not isinstance(points, list):
        raise RequestError(f"{where}.points: expected a list")
    direction = obj.get("directionId")
    return RouteSegment(
        overlap_route_id=_text(rid, f"{where}.overlapRouteId"),
        points=tuple(_latlon(p, f"{where}.points[{i}]") for i, p in enumerate(points)),
        color=normalize_color(obj.get("color")),
        label=_text(obj.get("label"), f"{where}.label", default=str(rid)),
        direction_id=None if direction is None else _text(direction, f"{where}.directionId"),
        active_hours_text=_text(obj.get("activeHoursText"), f"{where}.activeHoursText"),
    )


def parse_request(data: dict) -> LaneRequest:
    """Validate a decoded request and build its RouteSegments."""
    if not isinstance(data, dict):
        raise RequestError("Request must be a JSON object")
    if "stop" not in data:
        raise RequestError("Request is missing 'stop'")
    stop = _latlon(data["stop"], "stop")

    raw_segments = data.get("segments", [])
    if not isinstance(raw_segments, list):
        raise RequestError("segments: expected a list")
    segments = [_segment(obj, i) for i, obj in enumerate(raw_segments)]

    raw_markers = data.get("markers", [])
    if not isinstance(raw_markers, list):
        raise RequestError("markers: expected a list")
    markers = []
    for i, obj in enumerate(raw_markers):
        if not isinstance(obj, dict) or "routeId" not in obj:
            raise RequestError(f"markers[{i}]: expected an object with 'routeId'")
        lat, lon = _latlon(obj, f"markers[{i}]")
        markers.append(MarkerRequest(_text(obj["routeId"], f"markers[{i}].routeId"), lat, lon))

    return LaneRequest(stop=stop, segments=segments, markers=markers)


def load_request(path: str | Path) -> LaneRequest:
    """Read and parse a request JSON file."""
    try:
        data = json.loads(Path(path).read_text())
    except json.JSONDecodeError as exc:
        raise RequestError(f"{path}: invalid JSON ({exc})") from exc
    return parse_request(data)
