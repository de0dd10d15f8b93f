from __future__ import annotations

import math
from typing import List, Sequence, Tuple

LatLng = Tuple[float, float]

EARTH_RADIUS_M = 6_371_000.0


def distance_m(a: LatLng, b: LatLng) -> float:
    """Great-circle (haversine) distance in metres between two (lat, lng) points."""
    lat1, lon1 = math.radians(a[0]), math.radians(a[1])
    lat2, lon2 = math.radians(b[0]), math.radians(b[1])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    x = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2.0 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(x)))


def cumulative_distances(path: Sequence[LatLng]) -> List[float]:
    """
    Prefix sums of segment lengths: out[i] is the distance along the path
    from vertex 0 to vertex i, so out[-1] is the total length.
    """
    if not path:
        return []
    out = [0.0]
    for i in range(1, len(path)):
        out.append(out[-1] + distance_m(path[i - 1], path[i]))
    return out


def sample_path(path: Sequence[LatLng], every_m: float) -> List[LatLng]:
    """
    Walk the path once and emit the vertex at which the accumulated length
    first reaches `every_m`, then start accumulating again from zero.

    Emitted points are always existing vertices (no interpolation). A path
    shorter than one interval yields its middle vertex.
    """
    if not path:
        return []

    out: List[LatLng] = []
    acc = 0.0
    for i in range(1, len(path)):
        acc += distance_m(path[i - 1], path[i])
        if acc >= every_m:
            out.append(path[i])
            acc = 0.0

    return out or [path[len(path) // 2]]


def nearest_index(path: Sequence[LatLng], point: LatLng) -> int:
    """Index of the closest vertex; ties go to the lowest index."""
    best = 0
    best_d = math.inf
    for i, p in enumerate(path):
        d = distance_m(point, p)
        if d < best_d:
            best_d = d
            best = i
    return best
