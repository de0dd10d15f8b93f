from __future__ import annotations

from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


# ──────────────────────────────────────────────────────────────
# Shared
# ──────────────────────────────────────────────────────────────

TravelMode = Literal["driving", "walking", "bicycling", "transit"]


class NavCoord(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lng)

    def as_param(self) -> str:
        return f"{self.lat},{self.lng}"


class RouteTotals(BaseModel):
    distance_meters: int = 0
    duration_seconds: int = 0


# ──────────────────────────────────────────────────────────────
# Places
# ──────────────────────────────────────────────────────────────

class Candidate(BaseModel):
    place_id: str
    name: str = ""
    rating: Optional[float] = None
    user_ratings_total: int = 0
    location: Optional[NavCoord] = None
    address: Optional[str] = None
    photo_url: Optional[str] = None
    types: List[str] = Field(default_factory=list)

    # Filled in by discovery
    theme: Optional[str] = None
    detour_minutes: Optional[int] = None


# ──────────────────────────────────────────────────────────────
# Directions
# ──────────────────────────────────────────────────────────────

class BaseRoute(BaseModel):
    polyline: Optional[str] = None
    distance_text: Optional[str] = None
    duration_text: Optional[str] = None


class FinalRouteLeg(BaseModel):
    start_address: Optional[str] = None
    end_address: Optional[str] = None
    distance_text: Optional[str] = None
    duration_text: Optional[str] = None


class FinalRoute(BaseModel):
    polyline: Optional[str] = None
    legs: List[FinalRouteLeg] = Field(default_factory=list)
    totals: RouteTotals = Field(default_factory=RouteTotals)
    waypoint_order: List[int] = Field(default_factory=list)


# ──────────────────────────────────────────────────────────────
# Discovery
# ──────────────────────────────────────────────────────────────

class DiscoverRequest(BaseModel):
    origin: str
    destination: str
    days: int = 2
    themes: List[str] = Field(default_factory=list)
    mode: TravelMode = "driving"
    departure_time: Optional[Union[str, int]] = None  # "now" or unix seconds
    per_theme: int = 12
    per_sample_per_theme: int = 2
    search_radius_m: int = 3000


class DiscoverParameters(BaseModel):
    days: int
    themes: List[str]
    sample_every_meters: int
    sample_count: int
    search_radius_meters: int
    per_theme: int
    per_sample_per_theme: int


class DiscoverResponse(BaseModel):
    base: BaseRoute
    parameters: DiscoverParameters
    candidates: Dict[str, List[Candidate]] = Field(default_factory=dict)


# ──────────────────────────────────────────────────────────────
# Final route
# ──────────────────────────────────────────────────────────────

class FinalRouteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    origin: Optional[str] = None
    destination: Optional[str] = None
    selected_place_ids: List[str] = Field(default_factory=list, alias="selectedPlaceIds")
    mode: TravelMode = "driving"
    departure_time: Optional[Union[str, int]] = None
    optimize: bool = True
