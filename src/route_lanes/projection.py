"""Web Mercator projection fitted to a sign-map canvas."""

from __future__ import annotations

__all__ = ["fit_projection", "local_projection", "mercator"]

import math
from typing import Callable, Iterable

Projection = Callable[[float, float], tuple[float, float]]

# Latitude clamp used by web map tiles
MAX_LATITUDE = 85.05112878


def mercator(lat: float, lon: float) -> tuple[float, float]:
    """Unit Web Mercator: x in [0, 1) eastward, y in [0, 1) southward."""
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    x = (lon + 180.0) / 360.0
    s = math.sin(math.radians(lat))
    y = 0.5 - math.log((1 + s) / (1 - s)) / (4 * math.pi)
    return x, y


def fit_projection(
    points: Iterable[tuple[float, float]],
    width: float,
    height: float,
    padding: float = 24.0,
) -> Projection:
    """Projection that fits ``points`` (lat, lon) inside a padded canvas.

    The scale is uniform so shapes keep their proportions; the fitted
    extent is centred in the canvas. A single point (or none) maps to the
    canvas centre at a fixed city-block scale.
    """
    merc = [mercator(lat, lon) for lat, lon in points]
    cx, cy = width / 2, height / 2
    if not merc:
        return lambda lat, lon: (cx, cy)

    min_x = min(p[0] for p in merc)
    max_x = max(p[0] for p in merc)
    min_y = min(p[1] for p in merc)
    max_y = max(p[1] for p in merc)
    span_x, span_y = max_x - min_x, max_y - min_y
    avail_w = max(width - 2 * padding, 1.0)
    avail_h = max(height - 2 * padding, 1.0)
    if span_x <= 0 and span_y <= 0:
        scale = 2.0**22
    elif span_x <= 0:
        scale = avail_h / span_y
    elif span_y <= 0:
        scale = avail_w / span_x
    else:
        scale = min(avail_w / span_x, avail_h / span_y)
    mid_x, mid_y = (min_x + max_x) / 2, (min_y + max_y) / 2

    def project(lat: float, lon: float) -> tuple[float, float]:
        x, y = mercator(lat, lon)
        return cx + (x - mid_x) * scale, cy + (y - mid_y) * scale

    return project


def local_projection(
    origin: tuple[float, float], px_per_degree: float = 100_000.0
) -> Projection:
    """Equirectangular projection around ``origin`` (lat, lon).

    Longitude is scaled by the cosine of the origin latitude; good enough
    for the few kilometres a departure sign covers.
    """
    lat0, lon0 = origin
    kx = px_per_degree * math.cos(math.radians(lat0))

    def project(lat: float, lon: float) -> tuple[float, float]:
        return (lon - lon0) * kx, (lat0 - lat) * px_per_degree

    return project
