# georoute/providers/directions.py
# -*- coding: utf-8 -*-
"""
Route planner adapter (OpenRouteService directions, GeoJSON flavour).

- RoutePlanner.plan(locations, options) → PlannedRoute

Unlike the enrichment adapters, the planner *does* raise: an
UpstreamUnavailableError (or its NoRoute subclass) is the signal the
aggregator uses to switch to its local fallback. CancelledError is
propagated untouched.

Notes
-----
• Coordinates go out as [lng, lat]; distances come back in metres and
  durations in seconds and are normalised to km / minutes here.
• Summary distance/duration are taken from the provider as-is. Distance is
  only recomputed from the geometry when the summary omits it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from georoute.core.context import RequestContext
from georoute.core.errors import NoRoute, UpstreamUnavailableError
from georoute.core.models import (
      Coordinate
    , Location
    , PlannedRoute
    , RouteLeg
    , RouteOptions
    , RouteStep
)
from georoute.geo.geodesy import path_length_km
from georoute.infra.logging import get_logger
from .common import ProviderConfig, _short
from .http_client import HttpClient

_log = get_logger(__name__)

PROVIDER = "openrouteservice"


def build_directions_body(locations: Sequence[Location], options: RouteOptions) -> Dict[str, Any]:
    """
    Directions request body: ordered [lng, lat] pairs plus option flags.
    """
    body: Dict[str, Any] = {
          "coordinates": [loc.as_lnglat() for loc in locations]
        , "instructions": True
        , "geometry": True
        , "units": "m"
    }
    if options.optimize_waypoints:
        body["optimize"] = True
    avoid = options.avoid_features()
    if avoid:
        body["options"] = {"avoid_features": avoid}
    return body


class RoutePlanner:
    """
    Multi-stop driving route with geometry and per-leg timing.
    """

    def __init__(self, http: HttpClient) -> None:
        self.http = http
        self.cfg: ProviderConfig = http.cfg

    @property
    def name(self) -> str:
        return PROVIDER

    def plan(
          self
        , locations: Sequence[Location]
        , options: Optional[RouteOptions] = None
        , *
        , ctx: Optional[RequestContext] = None
    ) -> PlannedRoute:
        """
        Raises
        ------
        UpstreamUnavailableError
            Provider unreachable, misconfigured, or returned garbage.
        NoRoute
            Provider answered but found no route.
        CancelledError
            The caller's context was cancelled.
        """
        ctx = ctx or RequestContext.background()
        options = options or RouteOptions()

        if not self.cfg.has_ors_key:
            raise UpstreamUnavailableError("ORS API key not configured", provider=PROVIDER)

        body = build_directions_body(locations, options)
        profile = self.cfg.ors_profile
        _log.info("ROUTE %s coords=%s", profile, _short(body["coordinates"]))

        data = self.http.post_json(
              f"{self.cfg.ors_base_url}/v2/directions/{profile}/geojson"
            , provider=PROVIDER
            , ctx=ctx
            , json=body
            , headers={
                  "Authorization": self.cfg.ors_api_key
                , "Content-Type": "application/json"
                , "Accept": "application/json, application/geo+json"
            }
        )

        try:
            planned = self._parse(data)
        except NoRoute:
            raise
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            _log.error("ROUTE malformed payload %s: %s", type(e).__name__, e)
            raise UpstreamUnavailableError(f"malformed directions payload: {e}", provider=PROVIDER) from e

        _log.info(
            "ROUTE ok %s dist=%.2fkm dur=%.1fmin points=%s legs=%s",
            profile, planned.distance_km, planned.duration_min, len(planned.geometry), len(planned.legs)
        )
        return planned

    # ────────────────────────────────────────────────────────────────────────
    # Parsing
    # ────────────────────────────────────────────────────────────────────────
    @staticmethod
    def _parse(data: Dict[str, Any]) -> PlannedRoute:
        features = data.get("features") or []
        if not features:
            raise NoRoute("directions returned zero routes", provider=PROVIDER)

        feature = features[0]
        geometry = decode_geometry(feature["geometry"]["coordinates"])
        if not geometry:
            raise ValueError("route geometry is empty")

        props = feature.get("properties") or {}
        summary = props.get("summary") or {}

        if "distance" in summary:
            distance_km = float(summary["distance"]) / 1000.0
        else:
            distance_km = path_length_km(geometry)
        duration_min = float(summary["duration"]) / 60.0

        return PlannedRoute(
              distance_km=distance_km
            , duration_min=duration_min
            , geometry=tuple(geometry)
            , legs=_parse_legs(props.get("segments") or [])
        )


def decode_geometry(coordinates: Sequence[Sequence[float]]) -> List[Coordinate]:
    """[[lng, lat(, ele)], ...] → [Coordinate, ...]"""
    return [Coordinate.from_lnglat(c) for c in coordinates if len(c) >= 2]


def _parse_legs(segments: List[Dict[str, Any]]) -> Tuple[RouteLeg, ...]:
    legs: List[RouteLeg] = []
    for seg in segments:
        steps = tuple(
            RouteStep(
                  instruction=str(s.get("instruction") or "")
                , name=str(s.get("name") or "")
                , distance_km=float(s.get("distance") or 0.0) / 1000.0
                , duration_min=float(s.get("duration") or 0.0) / 60.0
            )
            for s in seg.get("steps") or []
        )
        legs.append(
            RouteLeg(
                  distance_km=float(seg.get("distance") or 0.0) / 1000.0
                , duration_min=float(seg.get("duration") or 0.0) / 60.0
                , steps=steps
            )
        )
    return tuple(legs)
