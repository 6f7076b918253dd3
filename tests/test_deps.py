from conftest import DHAKA_END, DHAKA_START, FakeSession, raise_timeout
from georoute.app.deps import build_dependencies
from georoute.core.models import Provenance, RouteRequest
from georoute.infra.cache import ResultCache


def test_build_dependencies_shares_client_and_cache(cfg):
    session = FakeSession(raise_timeout)
    cache = ResultCache()
    deps = build_dependencies(cfg, session=session, cache=cache)

    assert deps.cache is cache
    assert deps.aggregator.cache is cache
    assert deps.planner.http is deps.http
    assert deps.snapper.http is deps.http
    assert deps.places.http is deps.http
    assert deps.aggregator.engine == "openrouteservice"


def test_unreachable_planner_degrades_to_fallback(cfg):
    session = FakeSession(raise_timeout)
    deps = build_dependencies(cfg, session=session)

    result = deps.aggregator.compute_route(RouteRequest.from_points(DHAKA_START, DHAKA_END))
    assert result.provenance is Provenance.FALLBACK
    assert len(session.calls) == 1
    assert len(deps.cache) == 0


def test_close_releases_session(cfg):
    session = FakeSession(raise_timeout)
    deps = build_dependencies(cfg, session=session)
    deps.close()
    assert session.closed
