from __future__ import annotations

from typing import List, Tuple

from app.core.errors import MalformedPolyline

# Google Directions overview polylines use 1e5 precision.
DEFAULT_PRECISION = 5


def _encode_value(v: int) -> str:
    v = ~(v << 1) if v < 0 else (v << 1)
    chunks = []
    while v >= 0x20:
        chunks.append(chr((0x20 | (v & 0x1F)) + 63))
        v >>= 5
    chunks.append(chr(v + 63))
    return "".join(chunks)


def encode_polyline(coords: List[Tuple[float, float]], precision: int = DEFAULT_PRECISION) -> str:
    """
    Encode [(lat, lng), ...] into a Google encoded polyline.
    """
    factor = 10 ** precision
    last_lat = 0
    last_lng = 0
    out = []
    for lat, lng in coords:
        ilat = int(round(lat * factor))
        ilng = int(round(lng * factor))
        out.append(_encode_value(ilat - last_lat))
        out.append(_encode_value(ilng - last_lng))
        last_lat = ilat
        last_lng = ilng
    return "".join(out)


def _decode_value(s: str, idx: int) -> tuple[int, int]:
    result = 0
    shift = 0
    n = len(s)
    while True:
        if idx >= n:
            raise MalformedPolyline(f"polyline truncated at offset {idx}")
        b = ord(s[idx]) - 63
        if b < 0 or b > 0x3F:
            raise MalformedPolyline(f"invalid polyline character {s[idx]!r} at offset {idx}")
        idx += 1
        result |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            break
    d = ~(result >> 1) if (result & 1) else (result >> 1)
    return d, idx


def decode_polyline(poly: str, precision: int = DEFAULT_PRECISION) -> List[Tuple[float, float]]:
    """
    Decode a Google encoded polyline into [(lat, lng), ...]

    Raises MalformedPolyline when the string stops inside a value or between
    the lat and lng deltas of a vertex.
    """
    factor = 10 ** precision
    idx = 0
    lat = 0
    lng = 0
    coords: List[Tuple[float, float]] = []
    n = len(poly)
    while idx < n:
        dlat, idx = _decode_value(poly, idx)
        dlng, idx = _decode_value(poly, idx)
        lat += dlat
        lng += dlng
        coords.append((lat / factor, lng / factor))
    return coords
