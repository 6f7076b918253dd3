# georoute/app/deps.py
# -*- coding: utf-8 -*-
"""
Wiring of the live provider stack: one HttpClient, one shared ResultCache,
the four adapters and an aggregator on top of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

from georoute.app.aggregator import RouteAggregator
from georoute.infra.cache import ResultCache
from georoute.infra.logging import get_logger
from georoute.providers.common import ProviderConfig
from georoute.providers.directions import RoutePlanner
from georoute.providers.http_client import HttpClient
from georoute.providers.places import PlaceResolver
from georoute.providers.roads import RoadSnapper, SpeedLimitLookup

_log = get_logger(__name__)


@dataclass
class Dependencies:
    http: HttpClient
    cache: ResultCache
    planner: RoutePlanner
    snapper: RoadSnapper
    speed_limits: SpeedLimitLookup
    places: PlaceResolver
    aggregator: RouteAggregator

    def close(self) -> None:
        self.http.close()


def build_dependencies(
      cfg: Optional[ProviderConfig] = None
    , *
    , session: Optional[requests.Session] = None
    , cache: Optional[ResultCache] = None
    , cache_adapters: bool = True
) -> Dependencies:
    """
    Build the default stack.

    Parameters
    ----------
    cfg : ProviderConfig | None
        Defaults to keys/URLs from the environment.
    session : requests.Session | None
        Injected HTTP session (tests).
    cache : ResultCache | None
        Shared cache; a new one is created when omitted.
    cache_adapters : bool
        Also cache successful snap / speed / place responses in `cache`.
    """
    cfg = cfg or ProviderConfig.from_env()
    cache = cache if cache is not None else ResultCache()
    http = HttpClient(cfg, session=session)
    adapter_cache = cache if cache_adapters else None

    planner = RoutePlanner(http)
    snapper = RoadSnapper(http, cache=adapter_cache)
    speed = SpeedLimitLookup(http, cache=adapter_cache)
    places = PlaceResolver(http, cache=adapter_cache)

    _log.debug("build_dependencies: engine=%s cache_adapters=%s", planner.name, cache_adapters)
    return Dependencies(
          http=http
        , cache=cache
        , planner=planner
        , snapper=snapper
        , speed_limits=speed
        , places=places
        , aggregator=RouteAggregator(planner, snapper, speed, cache)
    )
