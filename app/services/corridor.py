from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.contracts import (
    Candidate,
    DiscoverParameters,
    DiscoverRequest,
    DiscoverResponse,
    NavCoord,
    TravelMode,
)
from app.core.errors import PlacesQueryFailed, ProviderError
from app.core.geo import LatLng, cumulative_distances, nearest_index, sample_path
from app.core.polyline import decode_polyline
from app.core.settings import settings
from app.core.themes import AreaStrategy, KeywordStrategy, Strategy, resolve_theme
from app.services.places import Places, clamp_radius
from app.services.routing import Routing

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────
# Tunables
# ──────────────────────────────────────────────────────────────

SAMPLES_PER_DAY = 15
MAX_TARGET_SAMPLES = 50
MIN_SAMPLE_SPACING_M = 15_000
MAX_SAMPLE_SPACING_M = 40_000

# Text search is precise but narrow; widen it.
KEYWORD_RADIUS_FACTOR = 1.5

# Vertices in the local window priced for each detour.
DETOUR_WINDOW = 12
DETOUR_PENALTY_PER_MIN = 0.5
UNRATED_PRIOR = 3.0

PER_THEME_BOUNDS = (3, 40)
PER_SAMPLE_BOUNDS = (1, 5)
RADIUS_BOUNDS_M = (500, 10_000)


def clamp(v: float, lo: float, hi: float):
    return max(lo, min(hi, v))


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def sample_spacing_m(total_m: float, days: int) -> int:
    """
    Aim for ~15 samples per travel day (capped at 50 overall), but never
    closer than 15 km or further apart than 40 km.
    """
    target = min(SAMPLES_PER_DAY * max(1, int(days)), MAX_TARGET_SAMPLES)
    return int(clamp(round_half_up(total_m / target), MIN_SAMPLE_SPACING_M, MAX_SAMPLE_SPACING_M))


# ──────────────────────────────────────────────────────────────
# Ranking
# ──────────────────────────────────────────────────────────────

def rank_by_quality(cands: Iterable[Candidate]) -> List[Candidate]:
    """Rating desc (unrated as 0), then review count desc. Stable."""
    return sorted(cands, key=lambda c: (-(c.rating or 0.0), -c.user_ratings_total))


def composite_score(c: Candidate) -> float:
    quality = (c.rating or UNRATED_PRIOR) * math.log1p(c.user_ratings_total or 0)
    return quality - DETOUR_PENALTY_PER_MIN * (c.detour_minutes or 0)


def rank_by_detour(cands: Iterable[Candidate]) -> List[Candidate]:
    """Composite score desc; ties keep the incoming (quality) order."""
    return sorted(cands, key=lambda c: -composite_score(c))


def detour_window(n_vertices: int, idx: int, k: int = DETOUR_WINDOW) -> Optional[Tuple[int, int]]:
    """(start, end) vertex indices centred on idx, clamped to the path."""
    start = max(0, idx - k // 2)
    end = min(n_vertices - 1, idx + k // 2)
    if end <= start:
        return None
    return start, end


@dataclass(frozen=True)
class _SearchJob:
    point: NavCoord
    theme: str
    strategy: Strategy


# ──────────────────────────────────────────────────────────────
# Discovery engine
# ──────────────────────────────────────────────────────────────

class Corridor:
    """
    Finds stops along an A→B route and prices the detour for each.

      1. baseline Directions route → decoded path
      2. sample the path (spacing scales with trip days)
      3. per (sample, theme): run the theme's Places strategy
      4. merge by place_id per theme (first seen wins), trim by quality
      5. price detours with paired Directions calls, re-rank

    Everything is request-scoped; fan-out is capped by semaphores.
    Failed Places queries count as empty and failed detour pairs leave
    detour_minutes unset. Only a failed baseline route aborts the request.
    """

    def __init__(
        self,
        *,
        routing: Routing,
        places: Places,
        fanout_limit: Optional[int] = None,
        detour_fanout_limit: Optional[int] = None,
    ):
        self.routing = routing
        self.places = places
        self.fanout_limit = max(1, int(fanout_limit or settings.discovery_fanout_limit))
        self.detour_fanout_limit = max(1, int(detour_fanout_limit or settings.detour_fanout_limit))

    async def discover(self, req: DiscoverRequest) -> DiscoverResponse:
        days = max(1, int(req.days))
        per_theme = int(clamp(req.per_theme, *PER_THEME_BOUNDS))
        per_sample = int(clamp(req.per_sample_per_theme, *PER_SAMPLE_BOUNDS))
        radius_m = int(clamp(req.search_radius_m, *RADIUS_BOUNDS_M))

        base = await self.routing.fetch_base_route(
            req.origin,
            req.destination,
            mode=req.mode,
            departure_time=req.departure_time,
        )

        path = decode_polyline(base.polyline or "")
        total_m = cumulative_distances(path)[-1] if path else 0.0
        every_m = sample_spacing_m(total_m, days)
        samples = sample_path(path, every_m)

        resolved: List[Tuple[str, Strategy]] = []
        for theme in req.themes:
            strategy = resolve_theme(theme)
            if strategy is None:
                logger.info("discover: unknown theme %r contributes no candidates", theme)
                continue
            resolved.append((theme, strategy))

        logger.info(
            "discover: path_pts=%d total_km=%.1f every_m=%d samples=%d themes=%s",
            len(path), total_m / 1000.0, every_m, len(samples), [t for t, _ in resolved],
        )

        jobs = [
            _SearchJob(point=NavCoord(lat=lat, lng=lng), theme=theme, strategy=strategy)
            for (lat, lng) in samples
            for theme, strategy in resolved
        ]
        per_job = await self._run_searches(jobs, per_sample_cap=per_sample, radius_m=radius_m)

        # Merge after fan-out completes; job order fixes "first seen".
        merged: Dict[str, Dict[str, Candidate]] = {theme: {} for theme in req.themes}
        for job, results in zip(jobs, per_job):
            bucket = merged[job.theme]
            for c in results:
                if c.location is None or c.place_id in bucket:
                    continue
                bucket[c.place_id] = c.model_copy(update={"theme": job.theme})

        shortlists: Dict[str, List[Candidate]] = {
            theme: rank_by_quality(bucket.values())[:per_theme]
            for theme, bucket in merged.items()
        }

        await self._price_detours(path, shortlists, mode=req.mode)

        for theme in shortlists:
            shortlists[theme] = rank_by_detour(shortlists[theme])

        return DiscoverResponse(
            base=base,
            parameters=DiscoverParameters(
                days=days,
                themes=list(req.themes),
                sample_every_meters=every_m,
                sample_count=len(samples),
                search_radius_meters=radius_m,
                per_theme=per_theme,
                per_sample_per_theme=per_sample,
            ),
            candidates=shortlists,
        )

    # ──────────────────────────────────────────────────────────
    # Fan-out search
    # ──────────────────────────────────────────────────────────

    async def _run_searches(
        self,
        jobs: Sequence[_SearchJob],
        *,
        per_sample_cap: int,
        radius_m: int,
    ) -> List[List[Candidate]]:
        sem = asyncio.Semaphore(self.fanout_limit)

        async def run(job: _SearchJob) -> List[Candidate]:
            async with sem:
                return await self._search_strategy(
                    job.point, job.strategy, per_sample_cap=per_sample_cap, radius_m=radius_m
                )

        tasks = [asyncio.ensure_future(run(j)) for j in jobs]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # Siblings must not outlive the request-scoped client.
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _search_strategy(
        self,
        point: NavCoord,
        strategy: Strategy,
        *,
        per_sample_cap: int,
        radius_m: int,
    ) -> List[Candidate]:
        """
        Query the strategy's categories/phrases in order, stopping once
        enough results are in hand, then keep the best `per_sample_cap`.
        """
        results: List[Candidate] = []

        if isinstance(strategy, AreaStrategy):
            for category in strategy.categories:
                results.extend(await self._query(self.places.search_nearby, point, category, radius_m))
                if len(results) >= per_sample_cap:
                    break
        elif isinstance(strategy, KeywordStrategy):
            keyword_radius = clamp_radius(radius_m * KEYWORD_RADIUS_FACTOR)
            for phrase in strategy.phrases:
                results.extend(await self._query(self.places.search_by_keyword, point, phrase, keyword_radius))
                if len(results) >= per_sample_cap:
                    break

        return rank_by_quality(results)[:per_sample_cap]

    async def _query(self, fn, point: NavCoord, term: str, radius_m: int) -> List[Candidate]:
        try:
            return await fn(point, term, radius_m)
        except PlacesQueryFailed as e:
            logger.warning(
                "discover: places query failed term=%r at %s status=%s: %s",
                term, point.as_param(), e.status, e.message,
            )
            return []

    # ──────────────────────────────────────────────────────────
    # Detour pricing
    # ──────────────────────────────────────────────────────────

    async def _price_detours(
        self,
        path: Sequence[LatLng],
        shortlists: Dict[str, List[Candidate]],
        *,
        mode: TravelMode,
    ) -> None:
        # A place shortlisted under two themes is priced once.
        unique: Dict[str, Candidate] = {}
        for cands in shortlists.values():
            for c in cands:
                unique.setdefault(c.place_id, c)
        if not unique:
            return

        sem = asyncio.Semaphore(self.detour_fanout_limit)

        async def run(c: Candidate) -> Optional[int]:
            async with sem:
                return await self.detour_minutes(path, c, mode=mode)

        ids = list(unique)
        minutes = await asyncio.gather(*(run(unique[pid]) for pid in ids))
        by_id = dict(zip(ids, minutes))

        for cands in shortlists.values():
            for c in cands:
                c.detour_minutes = by_id.get(c.place_id)

    async def detour_minutes(
        self,
        path: Sequence[LatLng],
        cand: Candidate,
        *,
        mode: TravelMode = "driving",
    ) -> Optional[int]:
        """
        Extra minutes for window_start → place → window_end over
        window_start → window_end. None when either call fails.
        """
        if cand.location is None or not path:
            return None

        window = detour_window(len(path), nearest_index(path, cand.location.as_tuple()))
        if window is None:
            return None
        start, end = path[window[0]], path[window[1]]

        base_s, via_s = await asyncio.gather(
            self.routing.route_seconds(start, end, mode=mode),
            self.routing.route_seconds(start, end, mode=mode, via=cand.location.as_tuple()),
            return_exceptions=True,
        )
        for res in (base_s, via_s):
            if isinstance(res, ProviderError):
                logger.warning(
                    "discover: detour pricing failed place_id=%s status=%s: %s",
                    cand.place_id, res.status, res.message,
                )
                return None
            if isinstance(res, BaseException):
                raise res

        return max(0, round_half_up((via_s - base_s) / 60.0))
