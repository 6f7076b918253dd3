# georoute/addressing/coords.py
# -*- coding: utf-8 -*-

"""
Coordinate / place-record helpers for the addressing subsystem.

- parse_latlon_str: "lat, lng" text → Coordinate
- format_latlng: Coordinate → "lat, lng" text (6 decimals)
- normalize_place: raw Nominatim record → PlaceSuggestion
- address_components: Nominatim `address` block → AddressComponents
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from georoute.core.errors import InvalidRequestError
from georoute.core.models import AddressComponents, Coordinate, PlaceSuggestion
from georoute.core.types import HasLatLng
from georoute.infra.logging import get_logger

_log = get_logger(__name__)

_LATLON_RE = re.compile(r"^\s*([+-]?\d+(?:\.\d+)?)\s*,\s*([+-]?\d+(?:\.\d+)?)\s*$")


# ------------------------------------------------------------------------------
# Parse / format "lat,lng"
# ------------------------------------------------------------------------------

def parse_latlon_str(text: str) -> Optional[Coordinate]:
    """
    Accepts 'lat,lng'. Returns a Coordinate or None (bad shape or out of range).
    """
    if not isinstance(text, str):
        return None

    m = _LATLON_RE.match(text.strip())
    if not m:
        return None

    try:
        return Coordinate(float(m.group(1)), float(m.group(2)))
    except InvalidRequestError:
        return None


def format_latlng(c: HasLatLng) -> str:
    return f"{c.lat:.6f}, {c.lng:.6f}"


# ------------------------------------------------------------------------------
# Nominatim records
# ------------------------------------------------------------------------------

def address_components(address: Optional[Dict[str, Any]]) -> Optional[AddressComponents]:
    """
    Map Nominatim's `address` block onto AddressComponents.
    Locality prefers city, then town, then village.
    """
    if not isinstance(address, dict) or not address:
        return None
    return AddressComponents(
          street=address.get("road")
        , locality=address.get("city") or address.get("town") or address.get("village")
        , administrative_area=address.get("state")
        , country=address.get("country")
        , postal_code=address.get("postcode")
    )


def normalize_place(raw: Dict[str, Any]) -> Optional[PlaceSuggestion]:
    """
    Normalize one Nominatim search hit. Returns None for records without
    usable coordinates.
    """
    try:
        lat = float(raw["lat"])
        lng = float(raw["lon"])
    except (KeyError, TypeError, ValueError):
        _log.debug("normalize_place: dropping record without coordinates: %r", raw)
        return None

    importance = raw.get("importance")
    address = raw.get("address")
    return PlaceSuggestion(
          name=str(raw.get("display_name") or raw.get("name") or f"{lat:.6f}, {lng:.6f}")
        , lat=lat
        , lng=lng
        , address={str(k): str(v) for k, v in address.items()} if isinstance(address, dict) else None
        , type=raw.get("osm_type")
        , importance=float(importance) if importance is not None else None
    )
