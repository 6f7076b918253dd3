# georoute/providers/http_client.py
# -*- coding: utf-8 -*-
"""
Shared HTTP layer for the provider adapters:
- One requests.Session per client (connection pooling, common headers)
- Sliding-window rate limiting
- Caller deadline/cancellation honoured on every call
- Emits standardized, high-signal logs for observability

Notes
-----
• No automatic retries here: the urllib3 Retry is pinned to total=0.
  Retry/backoff is a concern of whoever calls `compute_route`.
• Error mapping happens once, in `_request`:
    - transport errors / timeouts / invalid JSON → UpstreamUnavailableError
    - 429 → RateLimited
    - 404/422 → NoRoute
    - any other non-2xx → UpstreamUnavailableError(status=...)
  A cancelled or expired RequestContext always wins and raises CancelledError.
"""

from __future__ import annotations

import time as _time
from typing import Any as _Any, Dict as _Dict, Optional as _Optional

import requests as _req
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from georoute.core.context import RequestContext
from georoute.core.errors import NoRoute, RateLimited, UpstreamUnavailableError
from georoute.infra.logging import get_logger
from .common import ProviderConfig, _RateLimiter, _extract_error_text

_log = get_logger(__name__)


class HttpClient:
    """
    Thin JSON-over-HTTP client used by every adapter.

    Parameters
    ----------
    cfg : ProviderConfig
        Timeouts, user agent and rate limit.
    session : requests.Session | None
        Injected session (tests pass a fake). When None a pooled session
        with a no-retry adapter is created.
    """

    def __init__(
        self,
        cfg: ProviderConfig | None = None,
        *,
        session: _Optional[_req.Session] = None,
        rate_limiter: _Optional[_RateLimiter] = None,
    ) -> None:
        self.cfg = cfg or ProviderConfig()
        self._limiter = rate_limiter or _RateLimiter(
              max_calls=self.cfg.rate_limit_calls
            , per_seconds=self.cfg.rate_limit_window_s
        )

        if session is None:
            session = _req.Session()
            retries = Retry(
                  total=0
                , connect=0
                , read=0
                , status=0
                , raise_on_status=False
            )
            adapter = HTTPAdapter(max_retries=retries)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
            session.headers.update(
                {
                      "User-Agent": self.cfg.user_agent
                    , "Accept": "application/json"
                }
            )
        self._sess = session

        _log.debug(
            "HttpClient ready ct=%.1fs rt=%.1fs rate=%s/%ss",
              self.cfg.connect_timeout_s
            , self.cfg.read_timeout_s
            , self.cfg.rate_limit_calls
            , self.cfg.rate_limit_window_s
        )

    def close(self) -> None:
        """Explicitly close the underlying HTTP session."""
        close = getattr(self._sess, "close", None)
        if callable(close):
            close()

    # ────────────────────────────────────────────────────────────────────────
    # Core HTTP layer
    # ────────────────────────────────────────────────────────────────────────
    def _request(
        self,
        method: str,
        url: str,
        *,
        provider: str,
        ctx: RequestContext,
        params: _Optional[_Dict[str, _Any]] = None,
        json: _Optional[_Dict[str, _Any]] = None,
        headers: _Optional[_Dict[str, str]] = None,
    ) -> _Any:
        """
        Single entry point for GET/POST:
          1) cancellation gate
          2) rate-limit gate
          3) one request, read timeout clipped to the caller's deadline
          4) cancellation gate again, then error mapping and JSON decode
        """
        method_u = method.upper()
        ctx.raise_if_cancelled()
        self._limiter.wait(ctx)
        ctx.raise_if_cancelled()

        rt = ctx.clip_timeout(self.cfg.read_timeout_s)
        t0 = _time.time()
        try:
            resp = self._sess.request(
                  method_u
                , url
                , params=params
                , json=json
                , headers=headers
                , timeout=(self.cfg.connect_timeout_s, rt)
            )
        except _req.RequestException as e:
            dt_ms = (_time.time() - t0) * 1000.0
            ctx.raise_if_cancelled()
            _log.warning(
                "HTTP %s %s [%s] — %s after %.0f ms (rt=%.1fs)",
                  method_u
                , url
                , provider
                , type(e).__name__
                , dt_ms
                , rt
            )
            raise UpstreamUnavailableError(
                f"{provider}: {type(e).__name__}: {e}", provider=provider
            ) from e

        dt_ms = (_time.time() - t0) * 1000.0
        ctx.raise_if_cancelled()
        status = resp.status_code

        if status == 429:
            _log.warning("HTTP 429 %s [%s] (%.0f ms) — rate limited", url, provider, dt_ms)
            raise RateLimited(f"429 from {provider}", provider=provider, status=status)

        if status in (404, 422):
            msg = _extract_error_text(resp)
            _log.warning("HTTP %s %s [%s] — %s (%.0f ms): %s", method_u, url, provider, status, dt_ms, msg)
            raise NoRoute(f"{provider}: {status} {msg}", provider=provider, status=status)

        if not (200 <= status < 300):
            msg = _extract_error_text(resp)
            _log.error("HTTP %s %s [%s] — %s (%.0f ms) body=%s", method_u, url, provider, status, dt_ms, msg)
            raise UpstreamUnavailableError(f"{provider}: HTTP {status} {msg}", provider=provider, status=status)

        try:
            data = resp.json()
        except ValueError as e:
            txt = (getattr(resp, "text", "") or "")[:200]
            _log.error("HTTP %s %s [%s] — invalid JSON (%.0f ms): %s", method_u, url, provider, dt_ms, txt)
            raise UpstreamUnavailableError(f"{provider}: invalid JSON", provider=provider, status=status) from e

        _log.info("HTTP %s %s [%s] — %s (%.0f ms, rt=%.1fs)", method_u, url, provider, status, dt_ms, rt)
        return data

    # Thin wrappers used by adapters
    def get_json(
        self,
        url: str,
        *,
        provider: str,
        ctx: RequestContext,
        params: _Optional[_Dict[str, _Any]] = None,
        headers: _Optional[_Dict[str, str]] = None,
    ) -> _Any:
        return self._request("GET", url, provider=provider, ctx=ctx, params=params, headers=headers)

    def post_json(
        self,
        url: str,
        *,
        provider: str,
        ctx: RequestContext,
        json: _Optional[_Dict[str, _Any]] = None,
        headers: _Optional[_Dict[str, str]] = None,
    ) -> _Any:
        return self._request("POST", url, provider=provider, ctx=ctx, json=json, headers=headers)


__all__ = ["HttpClient"]
