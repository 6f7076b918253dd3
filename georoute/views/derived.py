# georoute/views/derived.py
# -*- coding: utf-8 -*-
"""
Read-only views over a finished RouteResult (no I/O).

- route_statistics(route) -> RouteStatistics
- generate_markers(start, end, waypoints, current) -> list[Marker]
- leg_summaries(route) -> list[dict]
- tile_layer(style) -> TileLayer
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from georoute.core.models import Coordinate, Location, Marker, RouteResult, RouteStatistics
from georoute.core.types import HasLatLng

# Used when a route carries no speed limits at all
DEFAULT_MAX_SPEED_KPH = 60.0
DEFAULT_MIN_SPEED_KPH = 20.0

# Share of total distance per road class. A fixed estimate, not measured.
ROAD_TYPE_SHARES: Dict[str, float] = {
      "highway": 0.30
    , "primary": 0.40
    , "secondary": 0.20
    , "tertiary": 0.08
    , "residential": 0.02
}


# ────────────────────────────────────────────────────────────────────────────────
# Statistics
# ────────────────────────────────────────────────────────────────────────────────

def route_statistics(route: RouteResult) -> RouteStatistics:
    """
    Summary figures for a route.

    Average speed is distance / base duration (kph); 0.0 for a zero-length
    duration. Speed limits are compared in kph; with no limits the max/min
    default to 60/20 kph and `speed_limits_defaulted` is set.
    """
    limits_kph = [s.kph for s in (route.speed_limits or ())]
    defaulted = not limits_kph

    avg = (route.distance_km / route.base_duration_min) * 60.0 if route.base_duration_min > 0 else 0.0

    return RouteStatistics(
          total_distance_km=route.distance_km
        , total_duration_min=route.base_duration_min
        , total_duration_with_traffic_min=route.traffic_duration_min
        , average_speed_kph=avg
        , max_speed_limit_kph=DEFAULT_MAX_SPEED_KPH if defaulted else max(limits_kph)
        , min_speed_limit_kph=DEFAULT_MIN_SPEED_KPH if defaulted else min(limits_kph)
        , speed_limits_defaulted=defaulted
        , snapped_points_count=len(route.snapped_points or ())
        , road_types_km={k: route.distance_km * share for k, share in ROAD_TYPE_SHARES.items()}
    )


# ────────────────────────────────────────────────────────────────────────────────
# Markers
# ────────────────────────────────────────────────────────────────────────────────

START_STYLE = ("Start", "#10B981", "🚗")
END_STYLE = ("Destination", "#EF4444", "📍")
STOP_STYLE = ("Stop {n}", "#F59E0B", "⏱️")
CURRENT_STYLE = ("Current Location", "#3B82F6", "📍")


def _marker(p: HasLatLng, style: Tuple[str, str, str], **fmt) -> Marker:
    title, color, icon = style
    return Marker(
          position=Coordinate(p.lat, p.lng)
        , title=title.format(**fmt)
        , color=color
        , icon=icon
    )


def generate_markers(
      start: Location
    , end: Location
    , waypoints: Sequence[Location] = ()
    , current: Optional[Location] = None
) -> List[Marker]:
    """
    Order is fixed: start, end, waypoints in input order ("Stop 1", ...),
    then the current location when given.
    """
    markers = [_marker(start, START_STYLE), _marker(end, END_STYLE)]
    markers.extend(_marker(w, STOP_STYLE, n=i) for i, w in enumerate(waypoints, start=1))
    if current is not None:
        markers.append(_marker(current, CURRENT_STYLE))
    return markers


# ────────────────────────────────────────────────────────────────────────────────
# Leg text
# ────────────────────────────────────────────────────────────────────────────────

def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def leg_summaries(route: RouteResult) -> List[Dict[str, object]]:
    """
    Human-readable distance/duration per leg, e.g.
    {"distance": "8.4 km", "duration": "22 min", "duration_in_traffic": "33 min", ...}
    """
    mult = route.traffic.multiplier
    out: List[Dict[str, object]] = []
    for leg in route.legs:
        in_traffic = leg.duration_min * mult
        out.append(
            {
                  "distance": f"{leg.distance_km:.1f} km"
                , "distance_m": leg.distance_km * 1000.0
                , "duration": f"{_round_half_up(leg.duration_min)} min"
                , "duration_s": leg.duration_min * 60.0
                , "duration_in_traffic": f"{_round_half_up(in_traffic)} min"
                , "duration_in_traffic_s": in_traffic * 60.0
                , "steps": len(leg.steps)
            }
        )
    return out


# ────────────────────────────────────────────────────────────────────────────────
# Tile layers
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TileLayer:
    url: str
    attribution: str
    max_zoom: int
    subdomains: Tuple[str, ...] = ("a", "b", "c")


_OSM_ATTRIBUTION = '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'
_THUNDERFOREST_ATTRIBUTION = (
    'Maps © <a href="https://www.thunderforest.com">Thunderforest</a>, '
    'Data © <a href="https://www.openstreetmap.org/copyright">OpenStreetMap contributors</a>'
)


def _thunderforest(kind: str) -> TileLayer:
    return TileLayer(
          url=f"https://{{s}}.tile.thunderforest.com/{kind}/{{z}}/{{x}}/{{y}}.png?apikey={{apikey}}"
        , attribution=_THUNDERFOREST_ATTRIBUTION
        , max_zoom=22
    )


TILE_LAYERS: Dict[str, TileLayer] = {
      "default": TileLayer(
          url="https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
        , attribution=_OSM_ATTRIBUTION
        , max_zoom=19
    )
    , "transport": _thunderforest("transport")
    , "cycle": _thunderforest("cycle")
    , "landscape": _thunderforest("landscape")
}


def tile_layer(style: str = "default") -> TileLayer:
    """
    Raises
    ------
    KeyError
        Unknown style name.
    """
    try:
        return TILE_LAYERS[style]
    except KeyError:
        raise KeyError(f"unknown tile style {style!r}; choose from {sorted(TILE_LAYERS)}") from None
