from __future__ import annotations

from typing import Optional

from fastapi import HTTPException


def bad_request(code: str, message: str, **extra):
    raise HTTPException(status_code=400, detail={"code": code, "message": message, **extra})


def not_found(code: str, message: str, **extra):
    raise HTTPException(status_code=404, detail={"code": code, "message": message, **extra})


def service_unavailable(code: str, message: str, **extra):
    raise HTTPException(status_code=503, detail={"code": code, "message": message, **extra})


# ──────────────────────────────────────────────────────────────
# Provider / geometry failures
# ──────────────────────────────────────────────────────────────

class MalformedPolyline(ValueError):
    """Encoded polyline ended in the middle of a value or contained bad chars."""


class ProviderError(Exception):
    def __init__(self, message: str, *, status: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class RouteUnavailable(ProviderError):
    """Directions returned a non-success status (other than zero results)."""


class NoRouteFound(ProviderError):
    """Directions explicitly reported that no route exists."""


class PlacesQueryFailed(ProviderError):
    """Places search returned a status outside the OK / ZERO_RESULTS allow-list."""
