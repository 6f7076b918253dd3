# georoute/app/aggregator.py
# -*- coding: utf-8 -*-
"""
Route aggregator
================

Turns a RouteRequest into a RouteResult by orchestrating the provider
adapters, the traffic heuristic and the shared result cache.

Per request:

    validate → cache check → planner
        ├── ok:    decimate geometry → snap → speed limits → traffic → cache
        └── error: local fallback from geodesy alone (never cached)

Public API
----------
- RouteAggregator.compute_route(request, ctx) -> RouteResult
- RouteAggregator.compute_route_detailed(request, ctx) -> RouteResponse
- RouteAggregator.route_fingerprint(request, departure) -> str
- validate_request(request)

Errors
------
Only InvalidRequestError (bad input) and CancelledError (caller context)
ever leave `compute_route`. Provider trouble shows up as
`provenance == Provenance.FALLBACK`, or as missing snap/speed data.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Tuple

from georoute.core.config import AggregatorDefaults, get_aggregator_defaults
from georoute.core.context import RequestContext
from georoute.core.errors import InvalidRequestError, UpstreamUnavailableError
from georoute.core.models import (
      Coordinate
    , Location
    , PlannedRoute
    , Provenance
    , RouteLeg
    , RouteMetadata
    , RouteOptions
    , RouteRequest
    , RouteResponse
    , RouteResult
    , SegmentId
    , SnapToRoadsResult
    , SpeedLimit
)
from georoute.core.types import HasLatLng
from georoute.geo.geodesy import bounding_box, decimate, haversine_km, path_length_km
from georoute.infra.cache import ResultCache, fingerprint
from georoute.infra.logging import get_logger
from georoute.traffic.estimator import estimate_traffic, fallback_traffic

_log = get_logger(__name__)

FALLBACK_ENGINE = "fallback"


# ────────────────────────────────────────────────────────────────────────────────
# Collaborator shapes
# ────────────────────────────────────────────────────────────────────────────────

class Planner(Protocol):
    def plan(
          self
        , locations: Sequence[Location]
        , options: Optional[RouteOptions] = None
        , *
        , ctx: Optional[RequestContext] = None
    ) -> PlannedRoute: ...


class Snapper(Protocol):
    def snap(
          self
        , points: Sequence[HasLatLng]
        , *
        , ctx: Optional[RequestContext] = None
    ) -> SnapToRoadsResult: ...


class SpeedLimits(Protocol):
    def limits(
          self
        , segment_ids: Iterable["SegmentId | str"]
        , *
        , ctx: Optional[RequestContext] = None
    ) -> List[SpeedLimit]: ...


# ────────────────────────────────────────────────────────────────────────────────
# Validation
# ────────────────────────────────────────────────────────────────────────────────

def validate_request(request: RouteRequest) -> None:
    """
    Raises
    ------
    InvalidRequestError
        Not a RouteRequest, fewer than two locations, or a location that is
        not a coordinate.
    """
    if not isinstance(request, RouteRequest):
        raise InvalidRequestError(f"expected RouteRequest, got {type(request).__name__}")
    if len(request.locations) < 2:
        raise InvalidRequestError(
            f"a route needs at least 2 locations (start and end), got {len(request.locations)}"
        )
    for i, loc in enumerate(request.locations):
        if not isinstance(loc, Coordinate):
            raise InvalidRequestError(f"location #{i} is not a coordinate: {loc!r}")


# ────────────────────────────────────────────────────────────────────────────────
# Aggregator
# ────────────────────────────────────────────────────────────────────────────────

class RouteAggregator:
    """
    Orchestrates one route computation per call. Safe to share across
    threads as long as the injected adapters are.

    Parameters
    ----------
    planner, snapper, speed_limits
        Provider adapters (see georoute.providers).
    cache : ResultCache | None
        Shared process-wide cache. A private one is created when omitted.
    defaults : AggregatorDefaults | None
        Snap sample size and fallback constants.
    now : callable
        Wall clock used when a request carries no departure time.
    """

    def __init__(
          self
        , planner: Planner
        , snapper: Snapper
        , speed_limits: SpeedLimits
        , cache: Optional[ResultCache] = None
        , *
        , defaults: Optional[AggregatorDefaults] = None
        , now: Callable[[], datetime] = datetime.now
    ) -> None:
        self.planner = planner
        self.snapper = snapper
        self.speed_limits = speed_limits
        self.cache = cache if cache is not None else ResultCache()
        self.defaults = defaults or get_aggregator_defaults()
        self._now = now

    @property
    def engine(self) -> str:
        return getattr(self.planner, "name", None) or self.defaults.provider_name

    # ────────────────────────────────────────────────────────────────────────
    # Fingerprint
    # ────────────────────────────────────────────────────────────────────────
    def route_fingerprint(self, request: RouteRequest, departure: datetime) -> str:
        """
        Cache key over the ordered locations, the option flags, the engine
        and the departure hour (the only part of the timestamp that changes
        the result).
        """
        opts = request.options
        return fingerprint(
              "route"
            , {
                  "engine": self.engine
                , "locations": [[loc.lat, loc.lng] for loc in request.locations]
                , "avoid": opts.avoid_features()
                , "optimize": opts.optimize_waypoints
                , "departure_hour": departure.hour
            }
        )

    # ────────────────────────────────────────────────────────────────────────
    # Public entry points
    # ────────────────────────────────────────────────────────────────────────
    def compute_route(
          self
        , request: RouteRequest
        , ctx: Optional[RequestContext] = None
    ) -> RouteResult:
        return self.compute_route_detailed(request, ctx).result

    def compute_route_detailed(
          self
        , request: RouteRequest
        , ctx: Optional[RequestContext] = None
    ) -> RouteResponse:
        """
        Compute a route, returning the result plus engine/timing metadata.

        Raises
        ------
        InvalidRequestError
            Fewer than two locations (no fallback is attempted).
        CancelledError
            `ctx` was cancelled or its deadline passed.
        """
        t0 = time.perf_counter()
        validate_request(request)
        ctx = ctx or RequestContext.background()
        ctx.raise_if_cancelled()

        departure = request.options.departure_time or self._now()
        key = self.route_fingerprint(request, departure)

        cached, hit = self.cache.get(key)
        if hit:
            _log.info("ROUTE cache hit key=%s", key[:24])
            return self._response(cached, t0, engine=self.engine, cached=True)

        _log.info(
            "ROUTE compute locations=%s waypoints=%s departure_hour=%s",
            len(request.locations), len(request.waypoints), departure.hour
        )
        try:
            planned = self.planner.plan(request.locations, request.options, ctx=ctx)
        except UpstreamUnavailableError as e:
            ctx.raise_if_cancelled()
            _log.warning("ROUTE planner unavailable (%s) — using local fallback", e)
            result = self._fallback(request)
            return self._response(result, t0, engine=FALLBACK_ENGINE, cached=False)

        result = self._enrich(request, planned, departure, ctx)
        ctx.raise_if_cancelled()
        self.cache.put(key, result)
        return self._response(result, t0, engine=self.engine, cached=False)

    # ────────────────────────────────────────────────────────────────────────
    # Primary path
    # ────────────────────────────────────────────────────────────────────────
    def _enrich(
          self
        , request: RouteRequest
        , planned: PlannedRoute
        , departure: datetime
        , ctx: RequestContext
    ) -> RouteResult:
        sample = decimate(planned.geometry, self.defaults.snap_sample_size)
        snapped = self.snapper.snap(sample, ctx=ctx)
        limits = self.speed_limits.limits(snapped.real_segment_ids(), ctx=ctx)
        traffic = estimate_traffic(departure)

        if snapped.provenance is Provenance.FALLBACK:
            _log.info("ROUTE snapped points are synthetic (%s)", snapped.warning)

        result = RouteResult(
              distance_km=planned.distance_km
            , base_duration_min=planned.duration_min
            , traffic_duration_min=planned.duration_min * traffic.multiplier
            , geometry=tuple(planned.geometry)
            , bounds=bounding_box(planned.geometry)
            , traffic=traffic
            , provenance=Provenance.PROVIDER
            , legs=planned.legs
            , snapped_points=snapped.points
            , speed_limits=tuple(limits)
            , waypoint_count=len(request.waypoints)
        )
        _log.info(
            "ROUTE ok dist=%.2fkm base=%.1fmin traffic=%.1fmin band=%s snapped=%s limits=%s",
            result.distance_km, result.base_duration_min, result.traffic_duration_min,
            traffic.band.value, len(snapped.points), len(limits)
        )
        return result

    # ────────────────────────────────────────────────────────────────────────
    # Fallback path
    # ────────────────────────────────────────────────────────────────────────
    def _fallback(self, request: RouteRequest) -> RouteResult:
        """
        Straight-line approximation over the caller's own locations.
        Pure arithmetic, cannot fail once the request is valid.
        """
        d = self.defaults
        locations = request.locations
        geometry: Tuple[Coordinate, ...] = tuple(Coordinate(loc.lat, loc.lng) for loc in locations)
        n_waypoints = len(request.waypoints)

        distance = path_length_km(geometry)
        base = distance * d.fallback_min_per_km + n_waypoints * d.fallback_waypoint_penalty_min
        traffic = fallback_traffic()

        legs: List[RouteLeg] = []
        for i in range(len(geometry) - 1):
            leg_km = haversine_km(geometry[i], geometry[i + 1])
            leg_min = leg_km * d.fallback_min_per_km
            if i + 1 < len(geometry) - 1:
                # leg ends at a waypoint
                leg_min += d.fallback_waypoint_penalty_min
            legs.append(RouteLeg(distance_km=leg_km, duration_min=leg_min))

        result = RouteResult(
              distance_km=distance
            , base_duration_min=base
            , traffic_duration_min=base * traffic.multiplier
            , geometry=geometry
            , bounds=bounding_box(geometry)
            , traffic=traffic
            , provenance=Provenance.FALLBACK
            , legs=tuple(legs)
            , waypoint_count=n_waypoints
        )
        _log.info(
            "ROUTE fallback dist=%.2fkm base=%.1fmin traffic=%.1fmin",
            result.distance_km, result.base_duration_min, result.traffic_duration_min
        )
        return result

    @staticmethod
    def _response(result: RouteResult, t0: float, *, engine: str, cached: bool) -> RouteResponse:
        return RouteResponse(
              result=result
            , metadata=RouteMetadata(
                  engine=engine
                , processing_ms=(time.perf_counter() - t0) * 1000.0
                , cached=cached
                , traffic_available=result.traffic.has_traffic
            )
        )


__all__ = ["RouteAggregator", "validate_request", "FALLBACK_ENGINE"]
