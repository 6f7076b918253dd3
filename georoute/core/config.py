# georoute/core/config.py
# -*- coding: utf-8 -*-

"""
Core configuration models and globals.

This module centralizes *pure* configuration structures that are
independent of any specific infrastructure (HTTP client, cache backend).
Provider endpoints, keys and timeouts live in
`georoute.providers.common.ProviderConfig`.

It is meant to be safe to import from anywhere.

Current contents
----------------
- AggregatorDefaults: knobs of the route aggregation / fallback path
- CacheDefaults: result cache bounds and fingerprint precision
- PlaceDefaults: place search defaults (country filter, limit)
"""

from __future__ import annotations

from dataclasses import dataclass


# ────────────────────────────────────────────────────────────────────────────────
# Route aggregation
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AggregatorDefaults:
    """
    Defaults used by the route aggregator.

    Attributes
    ----------
    snap_sample_size : int
        Maximum number of geometry points sent to the road snapper.
    fallback_min_per_km : float
        Speed assumption of the fallback path (minutes per km).
    fallback_waypoint_penalty_min : float
        Fixed penalty added per intermediate waypoint in fallback mode.
    fallback_traffic_multiplier : float
        Fixed traffic factor applied in fallback mode.
    provider_name : str
        Name of the primary routing engine, part of every route fingerprint.
    """

    snap_sample_size: int = 20
    fallback_min_per_km: float = 2.0
    fallback_waypoint_penalty_min: float = 5.0
    fallback_traffic_multiplier: float = 1.2
    provider_name: str = "openrouteservice"


# ────────────────────────────────────────────────────────────────────────────────
# Result cache
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CacheDefaults:
    """
    Bounds of the process-wide result cache.

    Attributes
    ----------
    ttl_s : float
        Entries older than this are treated as absent.
    max_entries : int
        Hard bound on the number of stored entries.
    evict_batch : int
        Number of oldest entries dropped when the bound is exceeded.
    coord_precision : int
        Decimal places kept for coordinates inside fingerprints.
    """

    ttl_s: float = 5 * 60
    max_entries: int = 100
    evict_batch: int = 20
    coord_precision: int = 5


# ────────────────────────────────────────────────────────────────────────────────
# Place resolver
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PlaceDefaults:
    """
    Defaults for free-text place search and reverse geocoding.
    """

    country_filter: str = "bd"
    search_limit: int = 5
    language: str = "en"
    reverse_zoom: int = 18


# ────────────────────────────────────────────────────────────────────────────────
# Singleton-style instances
# ────────────────────────────────────────────────────────────────────────────────

AGGREGATOR_DEFAULTS = AggregatorDefaults()
CACHE_DEFAULTS = CacheDefaults()
PLACE_DEFAULTS = PlaceDefaults()


def get_aggregator_defaults() -> AggregatorDefaults:
    """
    Return the global aggregator defaults.

    Provided as a function in case this ever needs to become dynamic
    (e.g. loaded from a file or environment variables) without changing
    call sites.
    """
    return AGGREGATOR_DEFAULTS


def get_cache_defaults() -> CacheDefaults:
    """
    Return the global cache defaults.
    """
    return CACHE_DEFAULTS


def get_place_defaults() -> PlaceDefaults:
    return PLACE_DEFAULTS
