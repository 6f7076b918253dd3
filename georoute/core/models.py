# georoute/core/models.py
# -*- coding: utf-8 -*-

"""
Core domain models (pure dataclasses).

These are small, shared structures used across the project:
    - Coordinate / Location: immutable geographic points
    - RouteOptions / RouteRequest: what the caller asks for
    - SegmentId / SnappedPoint / SpeedLimit: road enrichment data
    - TrafficInfo: congestion band + duration multiplier
    - RouteLeg / RouteStep / PlannedRoute: what the planner returns
    - RouteResult: the normalized, provenance-tagged route
    - GeocodeResult / PlaceSuggestion: place resolver outputs
    - RouteStatistics / Marker: derived views

This module deliberately has:
    - no HTTP imports
    - no cache or logging configuration

It is safe to import from anywhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from georoute.core.errors import InvalidRequestError

MPH_TO_KPH = 1.609344

FALLBACK_PREFIX = "fallback_"


# ────────────────────────────────────────────────────────────────────────────────
# Enumerations
# ────────────────────────────────────────────────────────────────────────────────

class Provenance(str, Enum):
    """Where a result came from."""

    PROVIDER = "provider"
    FALLBACK = "fallback"


class CongestionBand(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    SEVERE = "severe"


class SpeedUnit(str, Enum):
    KPH = "KPH"
    MPH = "MPH"


# ────────────────────────────────────────────────────────────────────────────────
# Geographic points
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Coordinate:
    """
    A geographic coordinate in decimal degrees.

    Attributes
    ----------
    lat : float
        Latitude, within [-90, 90].
    lng : float
        Longitude, within [-180, 180].
    """

    lat: float
    lng: float

    def __post_init__(self) -> None:
        lat = float(self.lat)
        lng = float(self.lng)
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
            raise InvalidRequestError(f"coordinate out of range: lat={lat!r} lng={lng!r}")
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lng", lng)

    @classmethod
    def from_lnglat(cls, pair: Sequence[float]) -> "Coordinate":
        """Build from a GeoJSON-ordered [lng, lat(, elevation)] sequence."""
        return cls(lat=pair[1], lng=pair[0])

    def as_lnglat(self) -> List[float]:
        return [self.lng, self.lat]

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

    def to_dict(self) -> Dict[str, Any]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class Location(Coordinate):
    """
    A coordinate plus optional free-text metadata.

    Produced by callers or by the place resolver and never mutated.
    """

    address: Optional[str] = None
    name: Optional[str] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        if self.address is not None:
            out["address"] = self.address
        if self.name is not None:
            out["name"] = self.name
        return out


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned bounds of a coordinate sequence.

    Unpacks as `(southwest, northeast)`, i.e. (min, max).
    """

    southwest: Coordinate
    northeast: Coordinate

    def __iter__(self) -> Iterator[Coordinate]:
        yield self.southwest
        yield self.northeast

    def to_dict(self) -> Dict[str, Any]:
        return {"southwest": self.southwest.to_dict(), "northeast": self.northeast.to_dict()}


# ────────────────────────────────────────────────────────────────────────────────
# Request
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RouteOptions:
    """
    Optional routing preferences.

    `departure_time` drives the traffic estimate; None means "now".
    """

    avoid_tolls: bool = False
    avoid_highways: bool = False
    avoid_ferries: bool = False
    optimize_waypoints: bool = False
    departure_time: Optional[datetime] = None

    def avoid_features(self) -> List[str]:
        feats: List[str] = []
        if self.avoid_tolls:
            feats.append("tolls")
        if self.avoid_highways:
            feats.append("highways")
        if self.avoid_ferries:
            feats.append("ferries")
        return feats


@dataclass(frozen=True)
class RouteRequest:
    """
    Ordered locations `[start, waypoints..., end]` plus options.

    Length is checked by the aggregator, not here, so that a malformed
    request surfaces as InvalidRequestError from `compute_route`.
    """

    locations: Tuple[Location, ...]
    options: Optional[RouteOptions] = field(default_factory=RouteOptions)

    def __post_init__(self) -> None:
        object.__setattr__(self, "locations", tuple(self.locations))
        if self.options is None:
            object.__setattr__(self, "options", RouteOptions())

    @classmethod
    def from_points(
          cls
        , start: Location
        , end: Location
        , waypoints: Sequence[Location] = ()
        , options: Optional[RouteOptions] = None
    ) -> "RouteRequest":
        return cls(
              locations=(start, *waypoints, end)
            , options=options or RouteOptions()
        )

    @property
    def start(self) -> Location:
        return self.locations[0]

    @property
    def end(self) -> Location:
        return self.locations[-1]

    @property
    def waypoints(self) -> Tuple[Location, ...]:
        return self.locations[1:-1]


# ────────────────────────────────────────────────────────────────────────────────
# Road enrichment
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SegmentId:
    """
    Road segment identifier: either a real provider place id or a synthetic
    placeholder produced by the snapper fallback.

    The `synthetic` flag is the source of truth; the `fallback_<n>` key is
    only the wire/display form.
    """

    key: str
    synthetic: bool = False

    @classmethod
    def real(cls, place_id: str) -> "SegmentId":
        return cls(key=str(place_id), synthetic=False)

    @classmethod
    def fallback(cls, index: int) -> "SegmentId":
        return cls(key=f"{FALLBACK_PREFIX}{int(index)}", synthetic=True)

    @classmethod
    def parse(cls, raw: "SegmentId | str") -> "SegmentId":
        """Accept an existing SegmentId or a plain string from outside callers."""
        if isinstance(raw, SegmentId):
            return raw
        text = str(raw)
        return cls(key=text, synthetic=text.startswith(FALLBACK_PREFIX))

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class SnappedPoint(Coordinate):
    """A coordinate adjusted to the nearest road plus its segment id."""

    segment_id: SegmentId
    original_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["segment_id"] = self.segment_id.key
        out["synthetic"] = self.segment_id.synthetic
        if self.original_index is not None:
            out["original_index"] = self.original_index
        return out


@dataclass(frozen=True)
class SnapToRoadsResult:
    points: Tuple[SnappedPoint, ...]
    provenance: Provenance = Provenance.PROVIDER
    warning: Optional[str] = None

    def real_segment_ids(self) -> List[SegmentId]:
        return [p.segment_id for p in self.points if not p.segment_id.synthetic]


@dataclass(frozen=True)
class SpeedLimit:
    segment_id: SegmentId
    limit: float
    unit: SpeedUnit = SpeedUnit.KPH

    @property
    def kph(self) -> float:
        if self.unit is SpeedUnit.MPH:
            return self.limit * MPH_TO_KPH
        return self.limit

    def to_dict(self) -> Dict[str, Any]:
        return {"segment_id": self.segment_id.key, "limit": self.limit, "unit": self.unit.value}


@dataclass(frozen=True)
class TrafficInfo:
    """
    Congestion band and duration multiplier (>= 1.0).

    `has_traffic` is False when the figure is a fixed fallback factor
    rather than a time-of-day estimate.
    """

    band: CongestionBand
    multiplier: float
    has_traffic: bool = True

    def __post_init__(self) -> None:
        if self.multiplier < 1.0:
            raise ValueError(f"traffic multiplier must be >= 1.0, got {self.multiplier}")

    def to_dict(self) -> Dict[str, Any]:
        return {"band": self.band.value, "multiplier": self.multiplier, "has_traffic": self.has_traffic}


# ────────────────────────────────────────────────────────────────────────────────
# Planner output
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RouteStep:
    instruction: str
    name: str
    distance_km: float
    duration_min: float


@dataclass(frozen=True)
class RouteLeg:
    """One leg between two consecutive request locations."""

    distance_km: float
    duration_min: float
    steps: Tuple[RouteStep, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
              "distance_km": self.distance_km
            , "duration_min": self.duration_min
            , "steps": [
                {
                      "instruction": s.instruction
                    , "name": s.name
                    , "distance_km": s.distance_km
                    , "duration_min": s.duration_min
                }
                for s in self.steps
            ]
        }


@dataclass(frozen=True)
class PlannedRoute:
    """
    Normalized route planner output.

    Attributes
    ----------
    distance_km : float
        Provider summary distance.
    duration_min : float
        Provider summary duration (no traffic).
    geometry : tuple[Coordinate, ...]
        Full decoded geometry, in order.
    legs : tuple[RouteLeg, ...]
        Per-leg timing, when the provider returns it.
    """

    distance_km: float
    duration_min: float
    geometry: Tuple[Coordinate, ...]
    legs: Tuple[RouteLeg, ...] = ()


# ────────────────────────────────────────────────────────────────────────────────
# Final route
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RouteResult:
    """
    Normalized route handed back to the rest of the application.

    Invariant: traffic_duration_min >= base_duration_min.
    `snapped_points` / `speed_limits` are None when the enrichment was not
    attempted (fallback path) and possibly empty when it degraded.
    """

    distance_km: float
    base_duration_min: float
    traffic_duration_min: float
    geometry: Tuple[Coordinate, ...]
    bounds: BoundingBox
    traffic: TrafficInfo
    provenance: Provenance
    legs: Tuple[RouteLeg, ...] = ()
    snapped_points: Optional[Tuple[SnappedPoint, ...]] = None
    speed_limits: Optional[Tuple[SpeedLimit, ...]] = None
    waypoint_count: int = 0

    def __post_init__(self) -> None:
        if self.traffic_duration_min + 1e-9 < self.base_duration_min:
            raise ValueError(
                f"traffic duration {self.traffic_duration_min} below base duration {self.base_duration_min}"
            )

    @property
    def polyline(self) -> str:
        """Geometry as 'lng,lat;lng,lat;...'."""
        return ";".join(f"{c.lng},{c.lat}" for c in self.geometry)

    def to_dict(self) -> Dict[str, Any]:
        return {
              "distance_km": self.distance_km
            , "base_duration_min": self.base_duration_min
            , "traffic_duration_min": self.traffic_duration_min
            , "provenance": self.provenance.value
            , "traffic": self.traffic.to_dict()
            , "bounds": self.bounds.to_dict()
            , "geometry": [c.to_dict() for c in self.geometry]
            , "polyline": self.polyline
            , "legs": [leg.to_dict() for leg in self.legs]
            , "snapped_points": (
                None if self.snapped_points is None else [p.to_dict() for p in self.snapped_points]
            )
            , "speed_limits": (
                None if self.speed_limits is None else [s.to_dict() for s in self.speed_limits]
            )
            , "waypoint_count": self.waypoint_count
        }


@dataclass(frozen=True)
class RouteMetadata:
    engine: str
    processing_ms: float
    cached: bool
    traffic_available: bool


@dataclass(frozen=True)
class RouteResponse:
    result: RouteResult
    metadata: RouteMetadata


# ────────────────────────────────────────────────────────────────────────────────
# Places
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AddressComponents:
    street: Optional[str] = None
    locality: Optional[str] = None
    administrative_area: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None


@dataclass(frozen=True)
class GeocodeResult:
    """
    Reverse geocoding outcome.

    On failure `success` is False, `address` holds the raw "lat, lng"
    string and `confidence` is low; it is never an exception.
    """

    success: bool
    address: str
    location: Coordinate
    formatted_address: Optional[str] = None
    components: Optional[AddressComponents] = None
    confidence: float = 0.0
    provenance: Provenance = Provenance.PROVIDER


@dataclass(frozen=True)
class PlaceSuggestion:
    name: str
    lat: float
    lng: float
    address: Optional[Dict[str, str]] = None
    type: Optional[str] = None
    importance: Optional[float] = None


# ────────────────────────────────────────────────────────────────────────────────
# Derived views
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RouteStatistics:
    total_distance_km: float
    total_duration_min: float
    total_duration_with_traffic_min: float
    average_speed_kph: float
    max_speed_limit_kph: float
    min_speed_limit_kph: float
    speed_limits_defaulted: bool
    snapped_points_count: int
    road_types_km: Dict[str, float]


@dataclass(frozen=True)
class Marker:
    position: Coordinate
    title: str
    color: str
    icon: Optional[str] = None
    draggable: bool = False
