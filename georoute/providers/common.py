# georoute/providers/common.py
# -*- coding: utf-8 -*-
"""
Common pieces for the provider adapters:
- ProviderConfig (keys, base URLs, timeouts, user agent, rate limit)
- Simple sliding-window rate limiter (thread-safe)
- Helpers for log previews and response error extraction

This module is "pure infra" — it does not perform HTTP calls; the HTTP
logic lives in georoute/providers/http_client.py. Keep this module side-effect
free (no init_logging here); entry points call init_logging().
"""

from __future__ import annotations

import json
import os
import threading
import time
from typing import Any, Callable, Optional, Tuple

from georoute.core.context import RequestContext
from georoute.core.errors import CancelledError
from georoute.infra.logging import get_logger

_log = get_logger(__name__)


# ────────────────────────────────────────────────────────────────────────────────
# Logging helpers
# ────────────────────────────────────────────────────────────────────────────────

def _short(v: Any, maxlen: int = 420) -> str:
    """
    Safe, concise preview of a Python object. Useful in logs.
    """
    try:
        s = json.dumps(v, ensure_ascii=False, sort_keys=True, default=str)
    except Exception:
        s = str(v)
    return s if len(s) <= maxlen else (s[:maxlen] + " …")


def _extract_error_text(resp) -> str:
    """
    Best-effort extraction of a human-friendly error from a HTTP response.
    """
    try:
        j = resp.json()
        if isinstance(j, dict):
            return _short(j)
        return str(j)
    except Exception:
        try:
            return (resp.text or "")[:500]
        except Exception:
            return "<no-text>"


# ────────────────────────────────────────────────────────────────────────────────
# Rate limiter
# ────────────────────────────────────────────────────────────────────────────────

class _RateLimiter:
    """
    Sliding-window rate limiter shared by all threads of one HttpClient.
    `max_calls <= 0` disables it.

    The lock only guards the timestamp window; callers sleep outside it, so
    one cancelled or short-budget request never holds up the others.
    `sleep` is a test hook; by default the wait happens on the caller's
    RequestContext so `cancel()` wakes it.
    """
    def __init__(
          self
        , max_calls: int = 40
        , per_seconds: float = 60.0
        , *
        , clock: Callable[[], float] = time.monotonic
        , sleep: Optional[Callable[[float], None]] = None
    ) -> None:
        self.max_calls = int(max_calls)
        self.per = float(per_seconds)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self.ts: list[float] = []

    def _reserve(self) -> float:
        """Take a slot and return 0.0, or return how long until one frees up."""
        with self._lock:
            now = self._clock()
            self.ts = [t for t in self.ts if (now - t) < self.per]
            if len(self.ts) < self.max_calls:
                self.ts.append(now)
                return 0.0
            return max(0.0, self.per - (now - self.ts[0]) + 0.05)

    def _pause(self, seconds: float, ctx: Optional[RequestContext]) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        elif ctx is not None:
            ctx.wait(seconds)
        else:
            time.sleep(seconds)

    def wait(self, ctx: Optional[RequestContext] = None) -> None:
        """
        Block until the window has room, then record the call.

        Raises
        ------
        CancelledError
            `ctx` is cancelled while waiting, or its deadline would pass
            before a slot frees up.
        """
        if self.max_calls <= 0:
            return
        while True:
            sleep_s = self._reserve()
            if sleep_s <= 0:
                return

            if ctx is not None:
                ctx.raise_if_cancelled()
                left = ctx.remaining()
                if left is not None and left < sleep_s:
                    raise CancelledError(
                        f"request deadline exceeded: rate limit frees up in {sleep_s:.2f}s, {left:.2f}s left"
                    )

            _log.debug(
                "rate-limit: window=%ss max_calls=%s → waiting %.3fs",
                self.per, self.max_calls, sleep_s
            )
            self._pause(sleep_s, ctx)
            if ctx is not None:
                ctx.raise_if_cancelled()


# ────────────────────────────────────────────────────────────────────────────────
# Config
# ────────────────────────────────────────────────────────────────────────────────

class ProviderConfig:
    """
    Configuration bundle shared by the provider adapters.

    Parameters
    ----------
    ors_api_key : str | None
        OpenRouteService key. If None, read from env ORS_API_KEY.
    roads_api_key : str | None
        Google Roads key. If None, read from env GOOGLE_ROADS_API_KEY
        (falling back to GOOGLE_API_KEY).
    ors_base_url / roads_base_url / nominatim_base_url : str
        Provider base URLs (no trailing slash).
    ors_profile : str
        Directions profile (e.g. 'driving-car').
    connect_timeout_s / read_timeout_s : float
        Per-request timeouts; the read timeout is further clipped by the
        caller's RequestContext deadline.
    user_agent : str
        Sent as User-Agent (Nominatim requires one).
    accept_language : str
        Sent as Accept-Language to Nominatim.
    rate_limit_calls / rate_limit_window_s : int / float
        Sliding-window limit per HttpClient. 0 calls disables it.
    snap_interpolate : bool
        Ask the road snapper to interpolate between points.

    A missing key is not an error: the adapter that needs it reports itself
    unavailable and callers degrade.
    """
    def __init__(
        self,
        ors_api_key: str | None = None,
        roads_api_key: str | None = None,
        ors_base_url: str = "https://api.openrouteservice.org",
        roads_base_url: str = "https://roads.googleapis.com/v1",
        nominatim_base_url: str = "https://nominatim.openstreetmap.org",
        ors_profile: str = "driving-car",
        connect_timeout_s: float = 5.0,
        read_timeout_s: float = 15.0,
        user_agent: str = "georoute/1.0",
        accept_language: str = "en",
        rate_limit_calls: int = 40,
        rate_limit_window_s: float = 60.0,
        snap_interpolate: bool = True,
    ) -> None:
        self.ors_api_key = (ors_api_key if ors_api_key is not None else os.getenv("ORS_API_KEY", "")).strip()
        self.roads_api_key = (
            roads_api_key if roads_api_key is not None
            else (os.getenv("GOOGLE_ROADS_API_KEY") or os.getenv("GOOGLE_API_KEY", ""))
        ).strip()
        self.ors_base_url = ors_base_url.rstrip("/")
        self.roads_base_url = roads_base_url.rstrip("/")
        self.nominatim_base_url = nominatim_base_url.rstrip("/")
        self.ors_profile = str(ors_profile)
        self.connect_timeout_s = float(connect_timeout_s)
        self.read_timeout_s = float(read_timeout_s)
        self.user_agent = str(user_agent)
        self.accept_language = str(accept_language)
        self.rate_limit_calls = int(rate_limit_calls)
        self.rate_limit_window_s = float(rate_limit_window_s)
        self.snap_interpolate = bool(snap_interpolate)

        if not self.ors_api_key:
            _log.warning("ProviderConfig: ORS_API_KEY not set — route planner will always fall back")
        if not self.roads_api_key:
            _log.warning("ProviderConfig: GOOGLE_ROADS_API_KEY not set — snapping/speed limits degrade")

        # Log a concise, non-sensitive summary
        _log.info(
            "ProviderConfig init: ors=%s profile=%s roads=%s nominatim=%s timeouts=(%.1f,%.1f)s "
            "rate=%s/%ss ua=%s",
            self.ors_base_url,
            self.ors_profile,
            self.roads_base_url,
            self.nominatim_base_url,
            self.connect_timeout_s,
            self.read_timeout_s,
            self.rate_limit_calls,
            self.rate_limit_window_s,
            self.user_agent,
        )

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        return cls()

    @property
    def has_ors_key(self) -> bool:
        return bool(self.ors_api_key)

    @property
    def has_roads_key(self) -> bool:
        return bool(self.roads_api_key)

    @property
    def timeouts(self) -> Tuple[float, float]:
        """Return (connect_timeout_s, read_timeout_s) for requests."""
        return (self.connect_timeout_s, self.read_timeout_s)
