# georoute/traffic/estimator.py
# -*- coding: utf-8 -*-
"""
Time-of-day traffic heuristic.

    hour 07–09  → high     × 1.5
    hour 16–18  → severe   × 1.8
    hour 12–14  → moderate × 1.2
    otherwise   → low      × 1.0

Ranges are inclusive on both ends. There is no live traffic source behind
these numbers; they are a fixed heuristic and only ever scale duration,
never distance.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from georoute.core.config import get_aggregator_defaults
from georoute.core.models import CongestionBand, TrafficInfo

# (first hour, last hour, band, multiplier)
TRAFFIC_BANDS: Tuple[Tuple[int, int, CongestionBand, float], ...] = (
      (7, 9, CongestionBand.HIGH, 1.5)
    , (16, 18, CongestionBand.SEVERE, 1.8)
    , (12, 14, CongestionBand.MODERATE, 1.2)
)


def estimate_traffic(departure: Optional[datetime] = None) -> TrafficInfo:
    """
    Map a departure timestamp to a congestion band and multiplier.

    Only the hour of `departure` (in its own timezone) matters; None means
    the local wall clock now.
    """
    hour = (departure or datetime.now()).hour
    for first, last, band, mult in TRAFFIC_BANDS:
        if first <= hour <= last:
            return TrafficInfo(band=band, multiplier=mult)
    return TrafficInfo(band=CongestionBand.LOW, multiplier=1.0)


def fallback_traffic() -> TrafficInfo:
    """Fixed factor used when the route itself is an approximation."""
    return TrafficInfo(
          band=CongestionBand.MODERATE
        , multiplier=get_aggregator_defaults().fallback_traffic_multiplier
        , has_traffic=False
    )
