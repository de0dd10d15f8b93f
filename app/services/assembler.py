from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from app.core.contracts import FinalRoute, FinalRouteLeg, RouteTotals, TravelMode
from app.core.errors import NoRouteFound, RouteUnavailable
from app.services.routing import Routing, sum_legs, waypoints_param

logger = logging.getLogger(__name__)


class RouteAssembler:
    """
    Turns a set of chosen place_ids into one multi-stop route.

    Ordering is delegated to Directions (optimize:true); waypoint_order is
    passed through so the client can reorder its own selection.
    """

    def __init__(self, *, routing: Routing):
        self.routing = routing

    async def build(
        self,
        *,
        origin: str,
        destination: str,
        place_ids: Sequence[str],
        mode: TravelMode = "driving",
        optimize: bool = True,
        departure_time: Optional[Union[str, int]] = None,
    ) -> FinalRoute:
        waypoints = waypoints_param(place_ids, optimize=optimize) if place_ids else None

        logger.info(
            "final_route: stops=%d optimize=%s mode=%s", len(place_ids), optimize, mode
        )

        try:
            route = await self.routing.directions(
                origin,
                destination,
                mode=mode,
                waypoints=waypoints,
                departure_time=departure_time,
            )
        except NoRouteFound as e:
            # Callers only distinguish ok / not ok for the final route.
            raise RouteUnavailable(e.message, status=e.status or "ZERO_RESULTS") from e

        legs = route.get("legs") or []
        return FinalRoute(
            polyline=(route.get("overview_polyline") or {}).get("points"),
            legs=[
                FinalRouteLeg(
                    start_address=leg.get("start_address"),
                    end_address=leg.get("end_address"),
                    distance_text=(leg.get("distance") or {}).get("text"),
                    duration_text=(leg.get("duration") or {}).get("text"),
                )
                for leg in legs
            ],
            totals=RouteTotals(
                distance_meters=sum_legs(legs, "distance"),
                duration_seconds=sum_legs(legs, "duration"),
            ),
            waypoint_order=[int(i) for i in (route.get("waypoint_order") or [])],
        )
