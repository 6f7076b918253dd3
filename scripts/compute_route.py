#!/usr/bin/env python3
# scripts/compute_route.py
# -*- coding: utf-8 -*-

"""
Compute a single route and print it as JSON.

Examples
--------
    python scripts/compute_route.py --start "23.8103,90.4125" --end "23.7461,90.3742" --pretty
    python scripts/compute_route.py --start "Gulshan, Dhaka" --end "Dhanmondi, Dhaka" \
        --via "23.7806,90.4070" --avoid-tolls --departure 2025-01-06T08:15:00
"""

from __future__ import annotations

# --- path bootstrap (must be the first lines of the file) ---
from pathlib import Path
import sys
ROOT = Path(__file__).resolve().parents[1]  # repo root (one level above /scripts)
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
# ------------------------------------------------------------

import argparse
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from georoute.addressing.resolver import resolve_location
from georoute.app.deps import build_dependencies
from georoute.core.context import RequestContext
from georoute.core.errors import CancelledError, InvalidRequestError
from georoute.core.models import RouteOptions, RouteRequest
from georoute.infra.logging import init_logging
from georoute.views.derived import leg_summaries, route_statistics

log = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Compute a route (planner + road snapping + speed limits + traffic) and print JSON."
    )
    p.add_argument("--start", required=True, help="Start ('lat,lng' or free text).")
    p.add_argument("--end", required=True, help="End ('lat,lng' or free text).")
    p.add_argument(
          "--via"
        , action="append"
        , default=[]
        , help="Intermediate stop ('lat,lng' or free text). Repeatable, kept in order."
    )
    p.add_argument("--avoid-tolls", action="store_true", help="Avoid toll roads.")
    p.add_argument("--avoid-highways", action="store_true", help="Avoid highways.")
    p.add_argument("--avoid-ferries", action="store_true", help="Avoid ferries.")
    p.add_argument("--optimize", action="store_true", help="Ask the planner to optimise waypoint order.")
    p.add_argument(
          "--departure"
        , default=None
        , help="Departure as ISO timestamp (e.g. 2025-01-06T08:15:00). Default: now."
    )
    p.add_argument(
          "--country"
        , default=None
        , help="Country filter for free-text places (ISO-2). Default: bd."
    )
    p.add_argument("--timeout", type=float, default=None, help="Total budget in seconds.")
    p.add_argument("--pretty", action="store_true", help="Pretty-print JSON.")
    p.add_argument(
          "--log-level"
        , default="INFO"
        , choices=["DEBUG", "INFO", "WARNING", "ERROR"]
        , help="Logging level. Default: INFO."
    )
    return p


def _parse_departure(text: Optional[str]) -> Optional[datetime]:
    if not text:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidRequestError(f"--departure must be ISO 8601, got {text!r}") from e


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)

    init_logging(level=args.log_level, force=True, write_output=False)

    deps = build_dependencies()
    ctx = RequestContext(args.timeout)
    try:
        start = resolve_location(args.start, deps.places, country_filter=args.country, ctx=ctx)
        end = resolve_location(args.end, deps.places, country_filter=args.country, ctx=ctx)
        vias: List[Any] = [
            resolve_location(v, deps.places, country_filter=args.country, ctx=ctx)
            for v in args.via
        ]
        options = RouteOptions(
              avoid_tolls=args.avoid_tolls
            , avoid_highways=args.avoid_highways
            , avoid_ferries=args.avoid_ferries
            , optimize_waypoints=args.optimize
            , departure_time=_parse_departure(args.departure)
        )
        response = deps.aggregator.compute_route_detailed(
              RouteRequest.from_points(start, end, vias, options)
            , ctx
        )
    except InvalidRequestError as e:
        log.error("Invalid request: %s", e)
        return 2
    except CancelledError as e:
        log.error("Cancelled: %s", e)
        return 3
    finally:
        deps.close()

    result = response.result
    stats = route_statistics(result)
    payload: Dict[str, Any] = {
          "route": result.to_dict()
        , "legs_text": leg_summaries(result)
        , "statistics": {
              "total_distance_km": stats.total_distance_km
            , "total_duration_min": stats.total_duration_min
            , "total_duration_with_traffic_min": stats.total_duration_with_traffic_min
            , "average_speed_kph": stats.average_speed_kph
            , "max_speed_limit_kph": stats.max_speed_limit_kph
            , "min_speed_limit_kph": stats.min_speed_limit_kph
            , "speed_limits_defaulted": stats.speed_limits_defaulted
            , "snapped_points_count": stats.snapped_points_count
            , "road_types_km": stats.road_types_km
        }
        , "metadata": {
              "engine": response.metadata.engine
            , "processing_ms": round(response.metadata.processing_ms, 1)
            , "cached": response.metadata.cached
            , "traffic_available": response.metadata.traffic_available
        }
    }

    if args.pretty:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(json.dumps(payload, ensure_ascii=False, separators=(",", ":")))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
