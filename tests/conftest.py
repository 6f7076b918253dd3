import json
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest
import requests

from georoute.app.aggregator import RouteAggregator
from georoute.core.errors import UpstreamUnavailableError
from georoute.core.models import (
    Coordinate,
    Location,
    PlannedRoute,
    Provenance,
    RouteLeg,
    SegmentId,
    SnappedPoint,
    SnapToRoadsResult,
    SpeedLimit,
    SpeedUnit,
)
from georoute.infra.cache import ResultCache
from georoute.providers.common import ProviderConfig
from georoute.providers.http_client import HttpClient
from georoute.providers.roads import fallback_snap


DHAKA_START = Location(23.8103, 90.4125)
DHAKA_END = Location(23.7461, 90.3742)
DHAKA_VIA = Location(23.7806, 90.4070)


# ────────────────────────────────────────────────────────────────────────────────
# Clocks
# ────────────────────────────────────────────────────────────────────────────────

class FakeClock:
    """Manually advanced seconds clock."""

    def __init__(self, start: float = 1000.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def fixed_now(hour: int) -> Callable[[], datetime]:
    return lambda: datetime(2025, 1, 6, hour, 30)


# ────────────────────────────────────────────────────────────────────────────────
# HTTP fakes
# ────────────────────────────────────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else json.dumps(payload))

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """
    requests.Session stand-in. `handler(method, url, kwargs)` returns a
    FakeResponse or raises; every call is recorded in `calls`.
    """

    def __init__(self, handler: Callable[[str, str, Dict[str, Any]], Any]):
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        return self.handler(method, url, kwargs)

    def close(self) -> None:
        self.closed = True


def respond(payload: Any, status: int = 200) -> Callable[..., FakeResponse]:
    return lambda method, url, kwargs: FakeResponse(status, payload)


def raise_timeout(method: str, url: str, kwargs: Dict[str, Any]) -> FakeResponse:
    raise requests.exceptions.ReadTimeout("read timed out")


@pytest.fixture
def cfg() -> ProviderConfig:
    return ProviderConfig(
        ors_api_key="test-ors-key",
        roads_api_key="test-roads-key",
        rate_limit_calls=0,
    )


@pytest.fixture
def make_http(cfg):
    def _make(handler, config: Optional[ProviderConfig] = None):
        session = FakeSession(handler)
        return HttpClient(config or cfg, session=session), session
    return _make


# ────────────────────────────────────────────────────────────────────────────────
# Adapter fakes
# ────────────────────────────────────────────────────────────────────────────────

class FakePlanner:
    name = "fake-planner"

    def __init__(self, planned: Optional[PlannedRoute] = None, error: Optional[Exception] = None):
        self.planned = planned
        self.error = error
        self.calls: List[Sequence[Location]] = []

    def plan(self, locations, options=None, *, ctx=None):
        self.calls.append(tuple(locations))
        if self.error is not None:
            raise self.error
        return self.planned


class FakeSnapper:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[Sequence[Any]] = []

    def snap(self, points, *, ctx=None):
        self.calls.append(list(points))
        if self.fail:
            return fallback_snap(points, "snapper down")
        return SnapToRoadsResult(
            points=tuple(
                SnappedPoint(p.lat, p.lng, segment_id=SegmentId.real(f"place{i}"), original_index=i)
                for i, p in enumerate(points)
            ),
            provenance=Provenance.PROVIDER,
        )


class FakeSpeedLimits:
    def __init__(self, limit_kph: float = 50.0):
        self.limit_kph = limit_kph
        self.calls: List[List[SegmentId]] = []

    def limits(self, segment_ids, *, ctx=None):
        ids = [SegmentId.parse(s) for s in segment_ids]
        self.calls.append(ids)
        return [SpeedLimit(segment_id=s, limit=self.limit_kph, unit=SpeedUnit.KPH) for s in ids if not s.synthetic]


def straight_geometry(n: int = 50) -> tuple:
    a, b = DHAKA_START, DHAKA_END
    return tuple(
        Coordinate(a.lat + (b.lat - a.lat) * i / (n - 1), a.lng + (b.lng - a.lng) * i / (n - 1))
        for i in range(n)
    )


def dhaka_planned(distance_km: float = 8.4, duration_min: float = 22.0, n_points: int = 50) -> PlannedRoute:
    return PlannedRoute(
        distance_km=distance_km,
        duration_min=duration_min,
        geometry=straight_geometry(n_points),
        legs=(RouteLeg(distance_km=distance_km, duration_min=duration_min),),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_aggregator(clock):
    def _make(planner=None, snapper=None, speed=None, hour: int = 8, cache: Optional[ResultCache] = None):
        return RouteAggregator(
            planner or FakePlanner(dhaka_planned()),
            snapper or FakeSnapper(),
            speed or FakeSpeedLimits(),
            cache if cache is not None else ResultCache(clock=clock),
            now=fixed_now(hour),
        )
    return _make


@pytest.fixture
def failing_planner() -> FakePlanner:
    return FakePlanner(error=UpstreamUnavailableError("planner down", provider="fake"))
