from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.discover import get_routing_service
from app.core.contracts import FinalRoute, FinalRouteRequest
from app.core.errors import RouteUnavailable, bad_request
from app.services.assembler import RouteAssembler
from app.services.routing import Routing

router = APIRouter(prefix="/api")


def get_assembler_service(routing: Routing = Depends(get_routing_service)) -> RouteAssembler:
    return RouteAssembler(routing=routing)


@router.post("/final-route", response_model=FinalRoute)
async def final_route(
    req: FinalRouteRequest,
    assembler: RouteAssembler = Depends(get_assembler_service),
) -> FinalRoute:
    if not req.origin or not req.destination:
        bad_request("bad_final_route_request", "origin and destination are required")
    place_ids = [p.strip() for p in req.selected_place_ids if p and p.strip()]
    if not place_ids:
        bad_request("empty_selection", "selectedPlaceIds must contain at least one place")

    try:
        return await assembler.build(
            origin=req.origin,
            destination=req.destination,
            place_ids=place_ids,
            mode=req.mode,
            optimize=req.optimize,
            departure_time=req.departure_time,
        )
    except RouteUnavailable as e:
        bad_request("directions_error", e.message, status=e.status)
