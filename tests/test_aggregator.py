import threading
from datetime import datetime

import pytest

from conftest import (
    DHAKA_END,
    DHAKA_START,
    DHAKA_VIA,
    FakePlanner,
    FakeSnapper,
    FakeSpeedLimits,
    dhaka_planned,
)
from georoute.app.aggregator import FALLBACK_ENGINE, validate_request
from georoute.core.context import RequestContext
from georoute.core.errors import CancelledError, InvalidRequestError, NoRoute, RateLimited
from georoute.core.models import CongestionBand, Location, Provenance, RouteOptions, RouteRequest
from georoute.geo.geodesy import path_length_km
from georoute.infra.cache import ResultCache


def dhaka_request(departure_hour=None, waypoints=()):
    departure = datetime(2025, 1, 6, departure_hour, 10) if departure_hour is not None else None
    return RouteRequest.from_points(DHAKA_START, DHAKA_END, waypoints, RouteOptions(departure_time=departure))


# ────────────────────────────────────────────────────────────────────────────────
# Primary path
# ────────────────────────────────────────────────────────────────────────────────

def test_end_to_end_rush_hour(make_aggregator):
    agg = make_aggregator()
    res = agg.compute_route(dhaka_request(departure_hour=8))

    assert res.provenance is Provenance.PROVIDER
    assert res.distance_km == pytest.approx(8.4)
    assert res.base_duration_min == pytest.approx(22.0)
    assert res.traffic_duration_min == pytest.approx(33.0)
    assert res.traffic.band is CongestionBand.HIGH
    assert res.traffic_duration_min >= res.base_duration_min


@pytest.mark.parametrize("hour", range(24))
def test_provider_result_traffic_never_below_base(make_aggregator, hour):
    res = make_aggregator().compute_route(dhaka_request(departure_hour=hour))
    assert res.provenance is Provenance.PROVIDER
    assert res.traffic_duration_min >= res.base_duration_min


def test_full_geometry_kept_but_snapper_gets_decimated_sample(make_aggregator):
    snapper = FakeSnapper()
    agg = make_aggregator(snapper=snapper)
    res = agg.compute_route(dhaka_request(8))

    assert len(res.geometry) == 50
    sent = snapper.calls[0]
    assert len(sent) == 20
    assert sent[0] == res.geometry[0]
    assert sent[-1] == res.geometry[-1]

    sw, ne = res.bounds
    assert sw.lat == pytest.approx(DHAKA_END.lat)
    assert ne.lat == pytest.approx(DHAKA_START.lat)
    assert sw.lng == pytest.approx(DHAKA_END.lng)
    assert ne.lng == pytest.approx(DHAKA_START.lng)


def test_speed_limits_requested_for_real_ids_only(make_aggregator):
    speed = FakeSpeedLimits(limit_kph=45.0)
    res = make_aggregator(speed=speed).compute_route(dhaka_request(8))

    assert all(not s.synthetic for s in speed.calls[0])
    assert len(speed.calls[0]) == 20
    assert len(res.speed_limits) == 20
    assert len(res.snapped_points) == 20


def test_snap_failure_degrades_in_place(make_aggregator):
    speed = FakeSpeedLimits()
    res = make_aggregator(snapper=FakeSnapper(fail=True), speed=speed).compute_route(dhaka_request(13))

    assert res.provenance is Provenance.PROVIDER
    assert all(p.segment_id.synthetic for p in res.snapped_points)
    assert speed.calls == [[]]
    assert res.speed_limits == ()
    assert res.traffic_duration_min == pytest.approx(22.0 * 1.2)


def test_missing_departure_uses_now(make_aggregator):
    res = make_aggregator(hour=17).compute_route(dhaka_request())
    assert res.traffic.band is CongestionBand.SEVERE
    assert res.traffic_duration_min == pytest.approx(22.0 * 1.8)


def test_detailed_response_metadata(make_aggregator):
    agg = make_aggregator()
    first = agg.compute_route_detailed(dhaka_request(8))
    second = agg.compute_route_detailed(dhaka_request(8))

    assert first.metadata.engine == "fake-planner"
    assert first.metadata.cached is False
    assert first.metadata.traffic_available is True
    assert second.metadata.cached is True
    assert second.result is first.result


# ────────────────────────────────────────────────────────────────────────────────
# Cache
# ────────────────────────────────────────────────────────────────────────────────

def test_identical_requests_hit_cache_once(make_aggregator):
    planner = FakePlanner(dhaka_planned())
    agg = make_aggregator(planner=planner)

    a = agg.compute_route(dhaka_request(8))
    b = agg.compute_route(dhaka_request(8))

    assert len(planner.calls) == 1
    assert a == b
    assert a.to_dict() == b.to_dict()


def test_cache_expires_after_ttl(make_aggregator, clock):
    planner = FakePlanner(dhaka_planned())
    agg = make_aggregator(planner=planner)
    agg.compute_route(dhaka_request(8))
    clock.advance(301)
    agg.compute_route(dhaka_request(8))
    assert len(planner.calls) == 2


def test_different_options_or_hour_miss_cache(make_aggregator):
    planner = FakePlanner(dhaka_planned())
    agg = make_aggregator(planner=planner)
    agg.compute_route(dhaka_request(8))
    agg.compute_route(dhaka_request(17))
    agg.compute_route(
        RouteRequest.from_points(
            DHAKA_START, DHAKA_END, options=RouteOptions(avoid_tolls=True, departure_time=datetime(2025, 1, 6, 8))
        )
    )
    assert len(planner.calls) == 3


def test_coordinate_jitter_still_hits_cache(make_aggregator):
    planner = FakePlanner(dhaka_planned())
    agg = make_aggregator(planner=planner)
    agg.compute_route(dhaka_request(8))
    jittered = RouteRequest.from_points(
        Location(DHAKA_START.lat + 1e-9, DHAKA_START.lng),
        DHAKA_END,
        options=RouteOptions(departure_time=datetime(2025, 1, 6, 8, 45)),
    )
    agg.compute_route(jittered)
    assert len(planner.calls) == 1


def test_concurrent_identical_requests_share_cache(make_aggregator):
    agg = make_aggregator(cache=ResultCache())
    results = []
    lock = threading.Lock()

    def worker():
        r = agg.compute_route(dhaka_request(8))
        with lock:
            results.append(r)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 16
    assert all(r == results[0] for r in results)
    assert len(agg.cache) == 1


# ────────────────────────────────────────────────────────────────────────────────
# Fallback
# ────────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "error",
    [
        NoRoute("no route", provider="fake"),
        RateLimited("slow down", provider="fake", status=429),
    ],
)
def test_planner_errors_trigger_fallback(make_aggregator, error):
    res = make_aggregator(planner=FakePlanner(error=error)).compute_route(dhaka_request(8))
    assert res.provenance is Provenance.FALLBACK


def test_fallback_arithmetic(make_aggregator, failing_planner):
    snapper, speed = FakeSnapper(), FakeSpeedLimits()
    agg = make_aggregator(planner=failing_planner, snapper=snapper, speed=speed)
    req = dhaka_request(8, waypoints=(DHAKA_VIA,))
    resp = agg.compute_route_detailed(req)
    res = resp.result

    expected_km = path_length_km([DHAKA_START, DHAKA_VIA, DHAKA_END])
    assert res.provenance is Provenance.FALLBACK
    assert res.distance_km == pytest.approx(expected_km)
    assert res.base_duration_min == pytest.approx(expected_km * 2.0 + 5.0)
    assert res.traffic_duration_min == pytest.approx(res.base_duration_min * 1.2)
    assert res.traffic.has_traffic is False
    assert [(c.lat, c.lng) for c in res.geometry] == [(l.lat, l.lng) for l in req.locations]
    assert res.snapped_points is None
    assert res.speed_limits is None
    assert res.waypoint_count == 1

    assert len(res.legs) == 2
    assert sum(l.distance_km for l in res.legs) == pytest.approx(res.distance_km)
    assert sum(l.duration_min for l in res.legs) == pytest.approx(res.base_duration_min)

    # enrichment is never attempted on the fallback path
    assert snapper.calls == []
    assert speed.calls == []
    assert resp.metadata.engine == FALLBACK_ENGINE
    assert resp.metadata.traffic_available is False


def test_fallback_ignores_departure_hour(make_aggregator, failing_planner):
    agg = make_aggregator(planner=failing_planner)
    a = agg.compute_route(dhaka_request(8))
    b = agg.compute_route(dhaka_request(22))
    assert a.traffic_duration_min == pytest.approx(b.traffic_duration_min)


def test_fallback_is_not_cached(make_aggregator, failing_planner):
    agg = make_aggregator(planner=failing_planner)
    agg.compute_route(dhaka_request(8))
    agg.compute_route(dhaka_request(8))
    assert len(failing_planner.calls) == 2
    assert len(agg.cache) == 0


def test_provider_recovery_after_fallback(make_aggregator, failing_planner):
    agg = make_aggregator(planner=failing_planner)
    assert agg.compute_route(dhaka_request(8)).provenance is Provenance.FALLBACK

    failing_planner.error = None
    failing_planner.planned = dhaka_planned()
    assert agg.compute_route(dhaka_request(8)).provenance is Provenance.PROVIDER


def test_fallback_same_start_and_end(make_aggregator, failing_planner):
    req = RouteRequest.from_points(DHAKA_START, DHAKA_START)
    res = make_aggregator(planner=failing_planner).compute_route(req)
    assert res.distance_km == 0.0
    assert res.base_duration_min == 0.0
    assert res.traffic_duration_min == 0.0


# ────────────────────────────────────────────────────────────────────────────────
# Validation & cancellation
# ────────────────────────────────────────────────────────────────────────────────

def test_fewer_than_two_locations_is_invalid(make_aggregator):
    planner = FakePlanner(dhaka_planned())
    agg = make_aggregator(planner=planner)
    with pytest.raises(InvalidRequestError):
        agg.compute_route(RouteRequest(locations=(DHAKA_START,)))
    with pytest.raises(InvalidRequestError):
        agg.compute_route(RouteRequest(locations=()))
    assert planner.calls == []


def test_request_without_options_uses_defaults(make_aggregator):
    request = RouteRequest((DHAKA_START, DHAKA_END), None)
    assert request.options == RouteOptions()

    result = make_aggregator().compute_route(request)
    assert result.provenance is Provenance.PROVIDER
    assert result.traffic_duration_min == pytest.approx(33.0)


def test_validate_request_rejects_non_requests():
    with pytest.raises(InvalidRequestError):
        validate_request([DHAKA_START, DHAKA_END])
    with pytest.raises(InvalidRequestError):
        validate_request(RouteRequest(locations=(DHAKA_START, "23.7,90.3")))


def test_cancelled_before_start(make_aggregator):
    planner = FakePlanner(dhaka_planned())
    ctx = RequestContext()
    ctx.cancel()
    with pytest.raises(CancelledError):
        make_aggregator(planner=planner).compute_route(dhaka_request(8), ctx)
    assert planner.calls == []


def test_cancellation_from_planner_is_not_a_fallback(make_aggregator):
    planner = FakePlanner(error=CancelledError("request deadline exceeded"))
    with pytest.raises(CancelledError):
        make_aggregator(planner=planner).compute_route(dhaka_request(8))


def test_cancel_during_enrichment_does_not_cache(make_aggregator):
    ctx = RequestContext()

    class CancellingSnapper(FakeSnapper):
        def snap(self, points, *, ctx=None):
            ctx.cancel()
            return super().snap(points, ctx=ctx)

    agg = make_aggregator(snapper=CancellingSnapper())
    with pytest.raises(CancelledError):
        agg.compute_route(dhaka_request(8), ctx)
    assert len(agg.cache) == 0


def test_cancelled_planner_failure_is_not_masked(make_aggregator, failing_planner):
    ctx = RequestContext()

    class CancelThenFail(FakePlanner):
        def plan(self, locations, options=None, *, ctx=None):
            ctx.cancel()
            return failing_planner.plan(locations, options, ctx=ctx)

    with pytest.raises(CancelledError):
        make_aggregator(planner=CancelThenFail()).compute_route(dhaka_request(8), ctx)
