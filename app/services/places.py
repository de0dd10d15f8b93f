from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import httpx

from app.core.contracts import Candidate, NavCoord
from app.core.errors import PlacesQueryFailed
from app.core.settings import settings

logger = logging.getLogger(__name__)

# Anything else from Places is a failed query.
_OK_STATUSES = frozenset({"OK", "ZERO_RESULTS"})

# Places (legacy) nearby/text search hard limit.
MAX_RADIUS_M = 50_000


def clamp_radius(radius_m: float) -> int:
    return max(1, min(MAX_RADIUS_M, int(round(radius_m))))


# ──────────────────────────────────────────────────────────────
# Result normalisation
# ──────────────────────────────────────────────────────────────

def _location(raw: Dict[str, Any]) -> Optional[NavCoord]:
    loc = (raw.get("geometry") or {}).get("location") or {}
    lat, lng = loc.get("lat"), loc.get("lng")
    if lat is None or lng is None:
        return None
    try:
        return NavCoord(lat=float(lat), lng=float(lng))
    except (TypeError, ValueError):
        return None


def _as_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _as_int(v: Any) -> int:
    f = _as_float(v)
    if f is None:
        return 0
    return int(f)


def _first_photo_ref(raw: Dict[str, Any]) -> Optional[str]:
    photos = raw.get("photos") or []
    if not photos or not isinstance(photos[0], dict):
        return None
    return photos[0].get("photo_reference") or None


class Places:
    """Thin async wrapper around Places nearby + text search."""

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        api_key: str,
        nearby_url: Optional[str] = None,
        text_url: Optional[str] = None,
        photo_url: Optional[str] = None,
        photo_max_width: Optional[int] = None,
    ):
        self.client = client
        self.api_key = api_key
        self.nearby_url = nearby_url or settings.places_nearby_url
        self.text_url = text_url or settings.places_text_url
        self.photo_base_url = photo_url or settings.places_photo_url
        self.photo_max_width = int(photo_max_width or settings.photo_max_width_px)

    def photo_url(self, photo_ref: Optional[str], max_width: Optional[int] = None) -> Optional[str]:
        if not photo_ref:
            return None
        params = {
            "maxwidth": str(int(max_width or self.photo_max_width)),
            "photoreference": photo_ref,
            "key": self.api_key,
        }
        return str(httpx.URL(self.photo_base_url, params=params))

    def _to_candidate(self, raw: Dict[str, Any], *, address_keys: Sequence[str]) -> Optional[Candidate]:
        place_id = raw.get("place_id")
        if not place_id:
            return None

        address = None
        for k in address_keys:
            if raw.get(k):
                address = str(raw[k])
                break

        rating = _as_float(raw.get("rating"))
        if rating is None and raw.get("rating") is not None:
            logger.warning("places: ignoring non-numeric rating %r for place_id=%s", raw.get("rating"), place_id)
        return Candidate(
            place_id=str(place_id),
            name=str(raw.get("name") or ""),
            rating=rating,
            user_ratings_total=_as_int(raw.get("user_ratings_total")),
            location=_location(raw),
            address=address,
            photo_url=self.photo_url(_first_photo_ref(raw)),
            types=[str(t) for t in (raw.get("types") or [])],
        )

    def _candidates(self, raw: List[Dict[str, Any]], *, address_keys: Sequence[str]) -> List[Candidate]:
        """Normalise a result page; a malformed row is dropped, not fatal."""
        out: List[Candidate] = []
        for x in raw:
            try:
                c = self._to_candidate(x, address_keys=address_keys)
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning("places: dropping malformed result place_id=%r: %s", x.get("place_id"), e)
                continue
            if c is not None:
                out.append(c)
        return out

    async def _search(self, url: str, params: Dict[str, str], *, label: str) -> List[Dict[str, Any]]:
        params = {**params, "key": self.api_key}
        try:
            r = await self.client.get(url, params=params)
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPStatusError as e:
            raise PlacesQueryFailed(
                f"Places {label} returned HTTP {e.response.status_code}",
                status=f"HTTP_{e.response.status_code}",
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise PlacesQueryFailed(f"Places {label} request failed: {e}") from e
        if not isinstance(data, dict):
            raise PlacesQueryFailed(f"Places {label} returned an unexpected payload")

        status = str(data.get("status") or "")
        if status and status not in _OK_STATUSES:
            message = data.get("error_message") or ""
            raise PlacesQueryFailed(f"Places {label} error: {status} {message}".strip(), status=status)

        results = data.get("results") or []
        logger.debug("places_%s status=%s results=%d", label, status or "?", len(results))
        return [x for x in results if isinstance(x, dict)]

    async def search_nearby(self, point: NavCoord, category: str, radius_m: float) -> List[Candidate]:
        """Area search for one place type around `point`."""
        raw = await self._search(
            self.nearby_url,
            {
                "location": point.as_param(),
                "radius": str(clamp_radius(radius_m)),
                "type": category,
            },
            label="nearby",
        )
        return self._candidates(raw, address_keys=("vicinity", "formatted_address"))

    async def search_by_keyword(self, point: NavCoord, phrase: str, radius_m: float) -> List[Candidate]:
        """Free-text search biased to `point`."""
        raw = await self._search(
            self.text_url,
            {
                "query": phrase,
                "location": point.as_param(),
                "radius": str(clamp_radius(radius_m)),
            },
            label="text",
        )
        return self._candidates(raw, address_keys=("formatted_address",))
