# georoute/addressing/resolver.py
# -*- coding: utf-8 -*-
"""
High-level "user location" → Location resolver.

Accepts:
- Location / Coordinate instances (returned as Location)
- dicts with lat/lng (or lat/lon)
- "lat,lng" strings
- free text, looked up through PlaceResolver.search (first hit wins)
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from georoute.addressing.coords import parse_latlon_str
from georoute.core.context import RequestContext
from georoute.core.errors import InvalidRequestError
from georoute.core.models import Coordinate, Location
from georoute.infra.logging import get_logger
from georoute.providers.places import PlaceResolver

_log = get_logger(__name__)


def _from_mapping(d: Mapping[str, Any]) -> Location:
    lng = d.get("lng", d.get("lon"))
    if "lat" not in d or lng is None:
        raise InvalidRequestError(f"location dict needs lat and lng: {dict(d)!r}")
    try:
        return Location(
              float(d["lat"])
            , float(lng)
            , address=d.get("address")
            , name=d.get("name")
        )
    except InvalidRequestError:
        raise
    except (TypeError, ValueError) as e:
        raise InvalidRequestError(f"bad location dict {dict(d)!r}: {e}") from e


def resolve_location(
      value: Any
    , places: Optional[PlaceResolver] = None
    , *
    , country_filter: Optional[str] = None
    , ctx: Optional[RequestContext] = None
) -> Location:
    """
    Resolve any supported input to a Location.

    Raises
    ------
    InvalidRequestError
        Unsupported input, or free text with no resolver / no search hit.
    CancelledError
        Propagated from the place search.
    """
    if isinstance(value, Location):
        return value
    if isinstance(value, Coordinate):
        return Location(value.lat, value.lng)
    if isinstance(value, Mapping):
        return _from_mapping(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(f"cannot resolve location from {value!r}")

    c = parse_latlon_str(value)
    if c is not None:
        _log.debug("resolve_location: %r parsed as coordinates", value)
        return Location(c.lat, c.lng)

    if places is None:
        raise InvalidRequestError(f"{value!r} is not 'lat,lng' and no place resolver is configured")

    hits = places.search(value, country_filter, 1, ctx=ctx)
    if not hits:
        raise InvalidRequestError(f"no place found for {value!r}")

    top = hits[0]
    _log.info("resolve_location: %r → %s (%.6f, %.6f)", value, top.name, top.lat, top.lng)
    return Location(top.lat, top.lng, address=top.name, name=value.strip())
