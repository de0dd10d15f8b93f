from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Query

from app.core.contracts import DiscoverRequest, DiscoverResponse, TravelMode
from app.core.errors import (
    MalformedPolyline,
    NoRouteFound,
    RouteUnavailable,
    bad_request,
    not_found,
    service_unavailable,
)
from app.core.settings import settings
from app.core.themes import parse_theme_list
from app.services.corridor import Corridor
from app.services.places import Places
from app.services.routing import Routing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_http_client() -> httpx.AsyncClient:
    raise RuntimeError("HTTP client must be provided by app dependency override")


def _require_api_key() -> str:
    if not settings.google_maps_api_key:
        service_unavailable("missing_api_key", "GOOGLE_MAPS_API_KEY is not configured")
    return settings.google_maps_api_key


def get_routing_service(client: httpx.AsyncClient = Depends(get_http_client)) -> Routing:
    return Routing(client=client, api_key=_require_api_key())


def get_places_service(client: httpx.AsyncClient = Depends(get_http_client)) -> Places:
    return Places(client=client, api_key=_require_api_key())


def get_corridor_service(
    routing: Routing = Depends(get_routing_service),
    places: Places = Depends(get_places_service),
) -> Corridor:
    return Corridor(routing=routing, places=places)


@router.get("/discover-stops", response_model=DiscoverResponse)
async def discover_stops(
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    days: int = settings.discover_days_default,
    themes: Optional[str] = None,
    mode: TravelMode = "driving",
    departure_time: Optional[str] = None,
    per_theme: int = Query(default=settings.discover_per_theme_default, alias="perTheme"),
    per_sample_per_theme: int = Query(default=settings.discover_per_sample_default, alias="perSamplePerTheme"),
    search_radius_m: int = Query(default=settings.discover_radius_m_default, alias="searchRadiusMeters"),
    corridor: Corridor = Depends(get_corridor_service),
) -> DiscoverResponse:
    if not origin or not destination:
        bad_request("bad_discover_request", "origin and destination are required")

    req = DiscoverRequest(
        origin=origin,
        destination=destination,
        days=days,
        themes=parse_theme_list(themes or settings.discover_themes_default),
        mode=mode,
        departure_time=departure_time,
        per_theme=per_theme,
        per_sample_per_theme=per_sample_per_theme,
        search_radius_m=search_radius_m,
    )

    try:
        return await corridor.discover(req)
    except NoRouteFound as e:
        not_found("no_route", e.message, status=e.status)
    except RouteUnavailable as e:
        logger.warning("discover_stops: base route failed status=%s: %s", e.status, e.message)
        service_unavailable("directions_error", e.message, status=e.status)
    except MalformedPolyline as e:
        logger.error("discover_stops: undecodable base polyline: %s", e)
        service_unavailable("bad_route_geometry", "Directions returned an unreadable route polyline")
