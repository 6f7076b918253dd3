# georoute/app/batch.py
# -*- coding: utf-8 -*-
"""
Batch route computation over a CSV of requests.

Input columns
-------------
    start_lat, start_lng, end_lat, end_lng      required
    waypoints                                   optional, "lat,lng|lat,lng"
    departure                                   optional, ISO timestamp

Output columns
--------------
    row, distance_km, base_duration_min, traffic_duration_min, provenance,
    traffic_band, traffic_multiplier, waypoint_count, error

Rows are computed concurrently on a thread pool that shares one
RouteAggregator (and therefore one cache). A bad row never aborts the run:
its `error` column is filled and the numeric columns are left empty.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from georoute.addressing.coords import parse_latlon_str
from georoute.app.aggregator import RouteAggregator
from georoute.core.context import RequestContext
from georoute.core.errors import GeoRouteError, InvalidRequestError
from georoute.core.models import Location, RouteOptions, RouteRequest
from georoute.infra.logging import get_logger

_log = get_logger(__name__)

REQUIRED_COLUMNS = ("start_lat", "start_lng", "end_lat", "end_lng")
OPTIONAL_COLUMNS = ("waypoints", "departure")

RESULT_COLUMNS = [
      "row"
    , "distance_km"
    , "base_duration_min"
    , "traffic_duration_min"
    , "provenance"
    , "traffic_band"
    , "traffic_multiplier"
    , "waypoint_count"
    , "error"
]


# ────────────────────────────────────────────────────────────────────────────────
# Loading
# ────────────────────────────────────────────────────────────────────────────────

def load_requests(csv_path: str | Path) -> pd.DataFrame:
    """
    Read the request CSV and normalise column names (lower-case, stripped).

    Raises
    ------
    FileNotFoundError
        CSV does not exist.
    ValueError
        A required column is missing.
    """
    path = Path(csv_path)
    if not path.is_file():
        raise FileNotFoundError(f"requests CSV not found: {path}")

    df = pd.read_csv(path)
    df.columns = [str(c).lower().strip() for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"requests CSV {path} is missing columns: {missing}")

    for c in OPTIONAL_COLUMNS:
        if c not in df.columns:
            df[c] = None

    _log.info("load_requests: %d rows from '%s'", len(df), path)
    return df


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return bool(pd.isna(value))


def _parse_waypoints(raw: Any) -> List[Location]:
    if _is_blank(raw):
        return []
    out: List[Location] = []
    for chunk in str(raw).split("|"):
        c = parse_latlon_str(chunk)
        if c is None:
            raise InvalidRequestError(f"bad waypoint {chunk!r} (expected 'lat,lng')")
        out.append(Location(c.lat, c.lng))
    return out


def _parse_departure(raw: Any) -> Optional[datetime]:
    if _is_blank(raw):
        return None
    try:
        return pd.Timestamp(raw).to_pydatetime()
    except (TypeError, ValueError) as e:
        raise InvalidRequestError(f"bad departure timestamp {raw!r}: {e}") from e


def row_to_request(row: Mapping[str, Any]) -> RouteRequest:
    """
    Build a RouteRequest from one CSV record.

    Raises
    ------
    InvalidRequestError
        Non-numeric / out-of-range coordinates, bad waypoints or departure.
    """
    try:
        start = Location(float(row["start_lat"]), float(row["start_lng"]))
        end = Location(float(row["end_lat"]), float(row["end_lng"]))
    except InvalidRequestError:
        raise
    except (TypeError, ValueError) as e:
        raise InvalidRequestError(f"bad start/end coordinates: {e}") from e

    return RouteRequest.from_points(
          start
        , end
        , _parse_waypoints(row.get("waypoints"))
        , RouteOptions(departure_time=_parse_departure(row.get("departure")))
    )


# ────────────────────────────────────────────────────────────────────────────────
# Running
# ────────────────────────────────────────────────────────────────────────────────

def _compute_row(
      aggregator: RouteAggregator
    , idx: int
    , row: Mapping[str, Any]
    , timeout_s: Optional[float]
) -> Dict[str, Any]:
    out: Dict[str, Any] = {c: None for c in RESULT_COLUMNS}
    out["row"] = idx
    try:
        request = row_to_request(row)
        result = aggregator.compute_route(request, RequestContext(timeout_s))
    except GeoRouteError as e:
        _log.warning("batch row %s failed: %s: %s", idx, type(e).__name__, e)
        out["error"] = f"{type(e).__name__}: {e}"
        return out

    out.update(
          distance_km=round(result.distance_km, 3)
        , base_duration_min=round(result.base_duration_min, 2)
        , traffic_duration_min=round(result.traffic_duration_min, 2)
        , provenance=result.provenance.value
        , traffic_band=result.traffic.band.value
        , traffic_multiplier=result.traffic.multiplier
        , waypoint_count=result.waypoint_count
    )
    return out


def run_batch(
      requests_df: pd.DataFrame
    , aggregator: RouteAggregator
    , *
    , max_workers: int = 4
    , timeout_s: Optional[float] = None
) -> pd.DataFrame:
    """
    Compute every row of `requests_df`; output rows keep input order.

    Parameters
    ----------
    requests_df : pd.DataFrame
        As returned by `load_requests`.
    aggregator : RouteAggregator
        Shared by every worker thread.
    max_workers : int
        Thread pool size.
    timeout_s : float | None
        Per-row deadline.
    """
    records = requests_df.to_dict("records")
    _log.info("run_batch: %d rows, %d workers", len(records), max_workers)

    with ThreadPoolExecutor(max_workers=max(1, int(max_workers))) as pool:
        futures = [
            pool.submit(_compute_row, aggregator, i, rec, timeout_s)
            for i, rec in enumerate(records)
        ]
        rows = [f.result() for f in futures]

    out = pd.DataFrame(rows, columns=RESULT_COLUMNS)
    n_err = int(out["error"].notna().sum())
    n_fb = int((out["provenance"] == "fallback").sum())
    _log.info("run_batch: done ok=%d fallback=%d errors=%d", len(out) - n_err, n_fb, n_err)
    return out


def write_results(results: pd.DataFrame, out_path: str | Path) -> Path:
    path = Path(out_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    results.to_csv(path, index=False)
    _log.info("write_results: %d rows → '%s'", len(results), path)
    return path


__all__ = ["load_requests", "row_to_request", "run_batch", "write_results", "RESULT_COLUMNS"]
