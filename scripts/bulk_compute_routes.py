#!/usr/bin/env python3
# scripts/bulk_compute_routes.py
# -*- coding: utf-8 -*-

"""
Bulk route computation from a CSV.

Given a CSV with columns

    start_lat,start_lng,end_lat,end_lng[,waypoints][,departure]

this script:

  1. Loads it with pandas.
  2. Computes every row on a thread pool sharing one aggregator (one cache,
     so repeated requests are served from it).
  3. Writes a result CSV with distance, durations, provenance, traffic band
     and a per-row error column.

Provider outages never stop the run: affected rows come back with
provenance=fallback.
"""

from __future__ import annotations

# ───────────────────── path bootstrap (must be first) ─────────────────────
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]  # repo root (one level above /scripts)
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
# ──────────────────────────────────────────────────────────────────────────

import argparse
import logging

from georoute.app.batch import load_requests, run_batch, write_results
from georoute.app.deps import build_dependencies
from georoute.infra.logging import init_logging, log_banner


log = logging.getLogger(__name__)


# ───────────────────────────────── parser / CLI ────────────────────────────
def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Compute many routes from a CSV and write a result CSV.\n"
            "Rows whose planner call fails fall back to straight-line estimates."
        )
    )

    parser.add_argument(
        "--requests-csv"
        , type=Path
        , required=True
        , help="Input CSV (start_lat,start_lng,end_lat,end_lng[,waypoints][,departure])."
    )

    parser.add_argument(
        "--out"
        , type=Path
        , default=Path("data/routes_out.csv")
        , help="Output CSV path. Default: data/routes_out.csv."
    )

    parser.add_argument(
        "--workers"
        , type=int
        , default=4
        , help="Thread pool size. Default: 4."
    )

    parser.add_argument(
        "--timeout"
        , type=float
        , default=None
        , help="Per-row deadline in seconds. Default: none."
    )

    parser.add_argument(
        "--log-level"
        , default="INFO"
        , choices=["DEBUG", "INFO", "WARNING", "ERROR"]
        , help="Logging level."
    )

    return parser


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)

    init_logging(level=args.log_level, force=True, write_output=True)
    log_banner(log, f"bulk_compute_routes: {args.requests_csv}")

    try:
        df = load_requests(args.requests_csv)
    except (FileNotFoundError, ValueError) as e:
        log.error("%s", e)
        return 2

    deps = build_dependencies()
    try:
        results = run_batch(df, deps.aggregator, max_workers=args.workers, timeout_s=args.timeout)
    finally:
        deps.close()

    out = write_results(results, args.out)
    stats = deps.cache.stats()
    log.info(
        "Done. rows=%d errors=%d → %s (cache hits=%d misses=%d)",
        len(results), int(results["error"].notna().sum()), out, stats.hits, stats.misses
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
