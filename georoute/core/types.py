# georoute/core/types.py
# -*- coding: utf-8 -*-

"""
Duck-typed coordinate protocol.

Coordinates, Locations, snapped points and place suggestions all expose
`lat` / `lng`, so geodesy and the adapters accept any of them without
converting first. Kept apart from `models` so low-level helpers can import
it without pulling in the dataclasses.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class HasLatLng(Protocol):
    """Anything with decimal-degree `lat` and `lng` attributes."""

    lat: float
    lng: float
