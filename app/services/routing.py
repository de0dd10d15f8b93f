from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from app.core.contracts import BaseRoute, TravelMode
from app.core.errors import NoRouteFound, RouteUnavailable
from app.core.settings import settings

Point = Union[str, Tuple[float, float]]


# ──────────────────────────────────────────────────────────────
# Param / response helpers
# ──────────────────────────────────────────────────────────────

def _point_param(p: Point) -> str:
    """Directions accepts addresses or "lat,lng" strings."""
    if isinstance(p, str):
        return p
    return f"{p[0]},{p[1]}"


def waypoints_param(place_ids: Sequence[str], *, optimize: bool) -> str:
    parts = [f"place_id:{pid}" for pid in place_ids]
    if optimize:
        parts.insert(0, "optimize:true")
    return "|".join(parts)


def sum_legs(legs: List[Dict[str, Any]], field: str) -> int:
    """Sum legs[*][field].value ("distance" or "duration"); missing values count as 0."""
    total = 0
    for leg in legs:
        total += int((leg.get(field) or {}).get("value") or 0)
    return total


# ──────────────────────────────────────────────────────────────
# Routing service (Google Directions)
# ──────────────────────────────────────────────────────────────

class Routing:
    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        api_key: str,
        directions_url: Optional[str] = None,
    ):
        self.client = client
        self.api_key = api_key
        self.directions_url = directions_url or settings.directions_url

    async def directions(
        self,
        origin: Point,
        destination: Point,
        *,
        mode: TravelMode = "driving",
        waypoints: Optional[str] = None,
        departure_time: Optional[Union[str, int]] = None,
    ) -> Dict[str, Any]:
        """
        One Directions call; returns the first route dict.

        ZERO_RESULTS (or an OK answer with no routes) raises NoRouteFound.
        Any other non-OK status, HTTP error or transport failure raises
        RouteUnavailable carrying the provider status when there is one.
        """
        params: Dict[str, str] = {
            "origin": _point_param(origin),
            "destination": _point_param(destination),
            "mode": mode,
            "key": self.api_key,
        }
        if departure_time:
            params["departure_time"] = str(departure_time)
        if waypoints:
            params["waypoints"] = waypoints

        try:
            r = await self.client.get(self.directions_url, params=params)
        except httpx.HTTPError as e:
            raise RouteUnavailable(f"Directions request failed: {e}") from e

        if r.status_code != 200:
            raise RouteUnavailable(
                f"Directions returned HTTP {r.status_code}",
                status=f"HTTP_{r.status_code}",
            )

        try:
            data = r.json()
        except ValueError as e:
            raise RouteUnavailable("Directions returned invalid JSON") from e
        if not isinstance(data, dict):
            raise RouteUnavailable("Directions returned an unexpected payload")

        status = str(data.get("status") or "")
        if status == "ZERO_RESULTS":
            raise NoRouteFound("Directions found no route", status=status)
        if status != "OK":
            message = data.get("error_message") or f"Directions error: {status or 'unknown'}"
            raise RouteUnavailable(message, status=status or None)

        routes = data.get("routes") or []
        if not routes:
            raise NoRouteFound("Directions returned no routes", status=status)
        return routes[0]

    async def fetch_base_route(
        self,
        origin: str,
        destination: str,
        *,
        mode: TravelMode = "driving",
        departure_time: Optional[Union[str, int]] = None,
    ) -> BaseRoute:
        route = await self.directions(origin, destination, mode=mode, departure_time=departure_time)

        polyline = (route.get("overview_polyline") or {}).get("points")
        if not polyline:
            raise NoRouteFound("Directions returned no route polyline")

        legs = route.get("legs") or []
        leg = legs[0] if legs else {}
        return BaseRoute(
            polyline=polyline,
            distance_text=(leg.get("distance") or {}).get("text"),
            duration_text=(leg.get("duration") or {}).get("text"),
        )

    async def route_seconds(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        *,
        mode: TravelMode = "driving",
        via: Optional[Tuple[float, float]] = None,
    ) -> int:
        """Total leg duration (s) for start → [via →] end."""
        route = await self.directions(
            start,
            end,
            mode=mode,
            waypoints=_point_param(via) if via else None,
        )
        return sum_legs(route.get("legs") or [], "duration")
