# georoute/providers/places.py
# -*- coding: utf-8 -*-
"""
Place resolver adapter (Nominatim):

- PlaceResolver.reverse_geocode(coordinate) → GeocodeResult
- PlaceResolver.search(query, country_filter, limit) → list[PlaceSuggestion]

Both are total: reverse geocoding failure yields a result carrying the raw
"lat, lng" string with confidence 0.1; search failure yields an empty list.
CancelledError is the only exception that escapes.
"""

from __future__ import annotations

from typing import List, Optional

from georoute.core.config import PlaceDefaults, get_place_defaults
from georoute.core.context import RequestContext
from georoute.core.errors import UpstreamUnavailableError
from georoute.core.models import Coordinate, GeocodeResult, PlaceSuggestion, Provenance
from georoute.core.types import HasLatLng
from georoute.addressing.coords import address_components, format_latlng, normalize_place
from georoute.infra.cache import ResultCache, fingerprint
from georoute.infra.logging import get_logger
from .common import ProviderConfig, _short
from .http_client import HttpClient

_log = get_logger(__name__)

PROVIDER = "nominatim"

PROVIDER_CONFIDENCE = 0.8
FALLBACK_CONFIDENCE = 0.1


class PlaceResolver:
    """
    Forward/reverse geocoding and free-text place search.
    """

    def __init__(
          self
        , http: HttpClient
        , *
        , cache: Optional[ResultCache] = None
        , defaults: Optional[PlaceDefaults] = None
    ) -> None:
        self.http = http
        self.cfg: ProviderConfig = http.cfg
        self.cache = cache
        self.defaults = defaults or get_place_defaults()

    def _headers(self) -> dict:
        return {
              "Accept-Language": self.cfg.accept_language or self.defaults.language
            , "User-Agent": self.cfg.user_agent
        }

    # ────────────────────────────────────────────────────────────────────────
    # Reverse geocoding
    # ────────────────────────────────────────────────────────────────────────
    def reverse_geocode(
          self
        , c: HasLatLng
        , *
        , ctx: Optional[RequestContext] = None
    ) -> GeocodeResult:
        ctx = ctx or RequestContext.background()
        key = fingerprint("reverse", {"lat": c.lat, "lng": c.lng})
        if self.cache is not None:
            cached, hit = self.cache.get(key)
            if hit:
                return cached

        _log.info("REVERSE lat=%.6f lng=%.6f", c.lat, c.lng)
        try:
            data = self.http.get_json(
                  f"{self.cfg.nominatim_base_url}/reverse"
                , provider=PROVIDER
                , ctx=ctx
                , params={
                      "format": "json"
                    , "lat": c.lat
                    , "lon": c.lng
                    , "zoom": self.defaults.reverse_zoom
                    , "addressdetails": 1
                }
                , headers=self._headers()
            )
            display = data["display_name"]
            result = GeocodeResult(
                  success=True
                , address=str(display)
                , location=Coordinate(float(data["lat"]), float(data["lon"]))
                , formatted_address=str(display)
                , components=address_components(data.get("address"))
                , confidence=PROVIDER_CONFIDENCE
                , provenance=Provenance.PROVIDER
            )
        except UpstreamUnavailableError as e:
            _log.warning("REVERSE failed (%s) — returning raw coordinates", e)
            return self._fallback(c)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            _log.warning("REVERSE malformed payload (%s: %s) — returning raw coordinates", type(e).__name__, e)
            return self._fallback(c)

        if self.cache is not None:
            self.cache.put(key, result)
        return result

    @staticmethod
    def _fallback(c: HasLatLng) -> GeocodeResult:
        return GeocodeResult(
              success=False
            , address=format_latlng(c)
            , location=Coordinate(c.lat, c.lng)
            , confidence=FALLBACK_CONFIDENCE
            , provenance=Provenance.FALLBACK
        )

    # ────────────────────────────────────────────────────────────────────────
    # Search
    # ────────────────────────────────────────────────────────────────────────
    def search(
          self
        , query: str
        , country_filter: Optional[str] = None
        , limit: Optional[int] = None
        , *
        , ctx: Optional[RequestContext] = None
    ) -> List[PlaceSuggestion]:
        ctx = ctx or RequestContext.background()
        query = (query or "").strip()
        if not query:
            return []

        country = (country_filter if country_filter is not None else self.defaults.country_filter).lower()
        size = int(limit if limit is not None else self.defaults.search_limit)

        key = fingerprint("search", {"q": query, "country": country, "limit": size})
        if self.cache is not None:
            cached, hit = self.cache.get(key)
            if hit:
                return list(cached)

        params = {
              "q": query
            , "format": "json"
            , "limit": size
            , "addressdetails": 1
        }
        if country:
            params["countrycodes"] = country

        _log.info("SEARCH q=%s country=%s limit=%s", _short(query), country, size)
        try:
            data = self.http.get_json(
                  f"{self.cfg.nominatim_base_url}/search"
                , provider=PROVIDER
                , ctx=ctx
                , params=params
                , headers=self._headers()
            )
            if not isinstance(data, list):
                raise TypeError(f"expected a list of places, got {type(data).__name__}")
        except UpstreamUnavailableError as e:
            _log.warning("SEARCH failed (%s) — no suggestions", e)
            return []
        except TypeError as e:
            _log.warning("SEARCH malformed payload (%s) — no suggestions", e)
            return []

        out = [s for s in (normalize_place(r) for r in data if isinstance(r, dict)) if s is not None]
        if self.cache is not None:
            self.cache.put(key, tuple(out))
        _log.debug("SEARCH got %s suggestions", len(out))
        return out
