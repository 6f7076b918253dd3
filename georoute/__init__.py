# georoute/__init__.py
# -*- coding: utf-8 -*-
"""Hybrid geo-routing aggregator with provider fallback."""

from __future__ import annotations

__version__ = "0.1.0"

# ── core types / errors ─────────────────────────────────────────────────────────
from .core.errors import (
      GeoRouteError
    , InvalidRequestError
    , UpstreamUnavailableError
    , RateLimited
    , NoRoute
    , EmptyInputError
    , CancelledError
)
from .core.context import RequestContext
from .core.models import (
      Coordinate
    , Location
    , BoundingBox
    , RouteOptions
    , RouteRequest
    , RouteResult
    , RouteResponse
    , RouteMetadata
    , Provenance
    , CongestionBand
    , TrafficInfo
    , SegmentId
    , SpeedLimit
    , GeocodeResult
    , PlaceSuggestion
)

# ── geodesy / traffic / cache ───────────────────────────────────────────────────
from .geo.geodesy import haversine_km, path_length_km, bounding_box, decimate
from .traffic.estimator import estimate_traffic
from .infra.cache import ResultCache, fingerprint

# ── aggregation / views ─────────────────────────────────────────────────────────
from .app.aggregator import RouteAggregator
from .app.deps import build_dependencies
from .views.derived import route_statistics, generate_markers, leg_summaries, tile_layer

__all__ = [
    # errors
      "GeoRouteError", "InvalidRequestError", "UpstreamUnavailableError",
      "RateLimited", "NoRoute", "EmptyInputError", "CancelledError",
    # models
      "RequestContext", "Coordinate", "Location", "BoundingBox",
      "RouteOptions", "RouteRequest", "RouteResult", "RouteResponse", "RouteMetadata",
      "Provenance", "CongestionBand", "TrafficInfo", "SegmentId", "SpeedLimit",
      "GeocodeResult", "PlaceSuggestion",
    # functions
      "haversine_km", "path_length_km", "bounding_box", "decimate",
      "estimate_traffic", "ResultCache", "fingerprint",
      "RouteAggregator", "build_dependencies",
      "route_statistics", "generate_markers", "leg_summaries", "tile_layer",
]
