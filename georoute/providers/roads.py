# georoute/providers/roads.py
# -*- coding: utf-8 -*-
"""
Road enrichment adapters (Google Roads API shape):

- RoadSnapper.snap(points)          → SnapToRoadsResult
- SpeedLimitLookup.limits(segments) → list[SpeedLimit]

Contract
--------
• Neither adapter raises for upstream trouble. The snapper degrades to
  echoing each input point with a synthetic `fallback_<i>` segment id
  (provenance=fallback); the speed-limit lookup degrades to an empty list.
• CancelledError from the caller's context is the only exception that
  escapes.
• Only successful provider answers are cached.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from georoute.core.context import RequestContext
from georoute.core.errors import UpstreamUnavailableError
from georoute.core.models import (
      Provenance
    , SegmentId
    , SnappedPoint
    , SnapToRoadsResult
    , SpeedLimit
    , SpeedUnit
)
from georoute.core.types import HasLatLng
from georoute.infra.cache import ResultCache, fingerprint
from georoute.infra.logging import get_logger
from .common import ProviderConfig, _short
from .http_client import HttpClient

_log = get_logger(__name__)

PROVIDER = "google-roads"

# speedLimits accepts at most this many placeId values per request
SPEED_LIMIT_BATCH = 100


def fallback_snap(points: Sequence[HasLatLng], reason: str = "") -> SnapToRoadsResult:
    """Echo every point as its own 'snapped' location with a synthetic id."""
    return SnapToRoadsResult(
          points=tuple(
            SnappedPoint(p.lat, p.lng, segment_id=SegmentId.fallback(i), original_index=i)
            for i, p in enumerate(points)
        )
        , provenance=Provenance.FALLBACK
        , warning=reason or None
    )


# ────────────────────────────────────────────────────────────────────────────────
# Snap to roads
# ────────────────────────────────────────────────────────────────────────────────

class RoadSnapper:
    """
    Maps raw GPS points to the nearest plausible road segment.

    Requires a Roads API key; without one every call falls back.
    """

    def __init__(
          self
        , http: HttpClient
        , *
        , cache: Optional[ResultCache] = None
    ) -> None:
        self.http = http
        self.cfg: ProviderConfig = http.cfg
        self.cache = cache

    def snap(
          self
        , points: Sequence[HasLatLng]
        , *
        , ctx: Optional[RequestContext] = None
    ) -> SnapToRoadsResult:
        ctx = ctx or RequestContext.background()
        if not points:
            return SnapToRoadsResult(points=())

        if not self.cfg.has_roads_key:
            _log.warning("SNAP skipped: no roads API key, using fallback for %s points", len(points))
            return fallback_snap(points, "roads API key not configured")

        interpolate = self.cfg.snap_interpolate
        key = fingerprint("snap", {"points": [[p.lat, p.lng] for p in points], "interpolate": interpolate})
        if self.cache is not None:
            cached, hit = self.cache.get(key)
            if hit:
                return cached

        path = "|".join(f"{p.lat},{p.lng}" for p in points)
        _log.info("SNAP n=%s path=%s", len(points), _short(path, 160))

        try:
            data = self.http.get_json(
                  f"{self.cfg.roads_base_url}/snapToRoads"
                , provider=PROVIDER
                , ctx=ctx
                , params={
                      "path": path
                    , "interpolate": "true" if interpolate else "false"
                    , "key": self.cfg.roads_api_key
                }
            )
            result = self._parse(data)
        except UpstreamUnavailableError as e:
            _log.warning("SNAP failed (%s) — using fallback", e)
            return fallback_snap(points, str(e))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            _log.warning("SNAP malformed payload (%s: %s) — using fallback", type(e).__name__, e)
            return fallback_snap(points, f"malformed snap payload: {e}")

        if self.cache is not None:
            self.cache.put(key, result)
        _log.debug("SNAP produced %s points (%s real ids)", len(result.points), len(result.real_segment_ids()))
        return result

    @staticmethod
    def _parse(data: Any) -> SnapToRoadsResult:
        raw_points = data["snappedPoints"]
        if not isinstance(raw_points, list) or not raw_points:
            raise ValueError("no snappedPoints in response")

        out: List[SnappedPoint] = []
        for i, item in enumerate(raw_points):
            loc = item["location"]
            idx = item.get("originalIndex")
            place_id = item.get("placeId")
            seg = SegmentId.real(place_id) if place_id else SegmentId.fallback(i)
            out.append(
                SnappedPoint(
                      float(loc["latitude"])
                    , float(loc["longitude"])
                    , segment_id=seg
                    , original_index=int(idx) if idx is not None else None
                )
            )
        return SnapToRoadsResult(
              points=tuple(out)
            , provenance=Provenance.PROVIDER
            , warning=data.get("warningMessage")
        )


# ────────────────────────────────────────────────────────────────────────────────
# Speed limits
# ────────────────────────────────────────────────────────────────────────────────

class SpeedLimitLookup:
    """
    Resolves real segment ids to legal speed limits.

    Synthetic ids are dropped before any call; if nothing real is left no
    request is made at all.
    """

    def __init__(
          self
        , http: HttpClient
        , *
        , cache: Optional[ResultCache] = None
    ) -> None:
        self.http = http
        self.cfg: ProviderConfig = http.cfg
        self.cache = cache

    def limits(
          self
        , segment_ids: Iterable["SegmentId | str"]
        , *
        , ctx: Optional[RequestContext] = None
    ) -> List[SpeedLimit]:
        ctx = ctx or RequestContext.background()

        real: List[str] = []
        for raw in segment_ids:
            seg = SegmentId.parse(raw)
            if seg.synthetic or not seg.key or seg.key in real:
                continue
            real.append(seg.key)

        if not real:
            _log.debug("SPEED no real segment ids — skipping call")
            return []

        if not self.cfg.has_roads_key:
            _log.warning("SPEED skipped: no roads API key")
            return []

        key = fingerprint("speed", {"ids": real})
        if self.cache is not None:
            cached, hit = self.cache.get(key)
            if hit:
                return list(cached)

        _log.info("SPEED n=%s ids=%s", len(real), _short(real, 160))
        out: List[SpeedLimit] = []
        try:
            for i in range(0, len(real), SPEED_LIMIT_BATCH):
                chunk = real[i:i + SPEED_LIMIT_BATCH]
                data = self.http.get_json(
                      f"{self.cfg.roads_base_url}/speedLimits"
                    , provider=PROVIDER
                    , ctx=ctx
                    , params={"placeId": "|".join(chunk), "key": self.cfg.roads_api_key}
                )
                out.extend(self._parse(data))
        except UpstreamUnavailableError as e:
            _log.warning("SPEED failed (%s) — returning no limits", e)
            return []
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            _log.warning("SPEED malformed payload (%s: %s) — returning no limits", type(e).__name__, e)
            return []

        if self.cache is not None:
            self.cache.put(key, tuple(out))
        _log.debug("SPEED got %s limits", len(out))
        return out

    @staticmethod
    def _parse(data: Dict[str, Any]) -> List[SpeedLimit]:
        out: List[SpeedLimit] = []
        for item in data.get("speedLimits") or []:
            unit = str(item.get("units") or "KPH").upper()
            out.append(
                SpeedLimit(
                      segment_id=SegmentId.real(item["placeId"])
                    , limit=float(item["speedLimit"])
                    , unit=SpeedUnit(unit)
                )
            )
        return out
