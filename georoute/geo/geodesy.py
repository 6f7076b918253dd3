# georoute/geo/geodesy.py
# -*- coding: utf-8 -*-
"""
Pure geodesy helpers
====================

Public API
----------
- haversine_km(a, b) -> float
- path_length_km(points) -> float
- bounding_box(points) -> BoundingBox          (raises EmptyInputError)
- decimate(points, max_count) -> list

Notes
-----
- Inputs are anything exposing `.lat` / `.lng` (Coordinate, Location,
  SnappedPoint, ...). No I/O, no state.
- Earth radius is the plain 6371 km sphere.
"""

from __future__ import annotations

import math
from typing import List, Sequence, TypeVar

from georoute.core.errors import EmptyInputError
from georoute.core.models import BoundingBox, Coordinate
from georoute.core.types import HasLatLng

EARTH_RADIUS_KM = 6371.0

P = TypeVar("P", bound=HasLatLng)


# ────────────────────────────────────────────────────────────────────────────────
# Distances
# ────────────────────────────────────────────────────────────────────────────────
def haversine_km(a: HasLatLng, b: HasLatLng) -> float:
    """
    Great-circle distance between two points (km).
    """
    p1, p2 = math.radians(a.lat), math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dl = math.radians(b.lng - a.lng)
    h = math.sin(dphi / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))  # guard for rounding


def path_length_km(points: Sequence[HasLatLng]) -> float:
    """Sum of consecutive haversine distances; 0.0 for fewer than two points."""
    return sum(haversine_km(points[i], points[i + 1]) for i in range(len(points) - 1))


# ────────────────────────────────────────────────────────────────────────────────
# Bounds
# ────────────────────────────────────────────────────────────────────────────────
def bounding_box(points: Sequence[HasLatLng]) -> BoundingBox:
    """
    Min/max over latitude and longitude independently.

    Raises
    ------
    EmptyInputError
        If `points` is empty.
    """
    if not points:
        raise EmptyInputError("bounding_box() needs at least one point")

    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return BoundingBox(
          southwest=Coordinate(min(lats), min(lngs))
        , northeast=Coordinate(max(lats), max(lngs))
    )


# ────────────────────────────────────────────────────────────────────────────────
# Sampling
# ────────────────────────────────────────────────────────────────────────────────
def decimate(points: Sequence[P], max_count: int) -> List[P]:
    """
    Deterministic even-stride subsample of at most `max_count` points.

    The first and last points are always kept and order is preserved.
    When `len(points) <= max_count` the input is returned unchanged (as a list).
    """
    if max_count < 1:
        raise ValueError(f"max_count must be >= 1, got {max_count}")

    n = len(points)
    if n <= max_count:
        return list(points)
    if max_count == 1:
        return [points[0]]

    # n > max_count, so consecutive indices are always distinct
    stride = (n - 1) / (max_count - 1)
    return [points[round(i * stride)] for i in range(max_count)]
