# georoute/core/errors.py
# -*- coding: utf-8 -*-

"""
Error taxonomy shared by every layer.

    GeoRouteError
    ├── InvalidRequestError      caller bug; surfaced, never retried or masked
    ├── UpstreamUnavailableError a single provider failed; absorbed locally
    │   ├── RateLimited          HTTP 429
    │   └── NoRoute              HTTP 404/422 or an empty route list
    ├── EmptyInputError          geodesy precondition violated (internal bug)
    └── CancelledError           caller context cancelled or deadline passed

Only InvalidRequestError and CancelledError ever leave `compute_route`.
"""

from __future__ import annotations

from typing import Optional


class GeoRouteError(Exception):
    """Base class for every error raised by georoute."""


class InvalidRequestError(GeoRouteError, ValueError):
    """Raised when a route request is malformed (fewer than two locations, bad coordinates)."""


class UpstreamUnavailableError(GeoRouteError):
    """
    Raised by the HTTP layer when a provider cannot be used.

    Attributes
    ----------
    provider : str
        Short provider name (e.g. 'openrouteservice', 'google-roads').
    status : int | None
        HTTP status code when a response was received.
    """

    def __init__(self, message: str, *, provider: str = "", status: Optional[int] = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status = status


class RateLimited(UpstreamUnavailableError):
    """Raised when a provider answered 429."""
    ...


class NoRoute(UpstreamUnavailableError):
    """Raised when the planner reports that no route could be found."""
    ...


class EmptyInputError(GeoRouteError, ValueError):
    """Raised when a geodesy helper receives an empty point sequence."""


class CancelledError(GeoRouteError):
    """Raised when the caller's RequestContext was cancelled or its deadline passed."""
