from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import httpx
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

# Load <project root>/.env (main.py is <project root>/app/main.py)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

from app.core.settings import settings
from app.api import api_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Stopfinder Backend", version="1.0.0")

# ── Compression (must be added before CORS) ──
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

if not settings.google_maps_api_key:
    logger.warning("[app] GOOGLE_MAPS_API_KEY is not set; provider endpoints will answer 503")


# ──────────────────────────────────────────────────────────────
# Dependency providers
# ──────────────────────────────────────────────────────────────

async def provide_http_client():
    # Request-scoped; connection retries live here, never in the engine.
    transport = httpx.AsyncHTTPTransport(retries=settings.google_transport_retries)
    async with httpx.AsyncClient(timeout=settings.google_timeout_s, transport=transport) as client:
        yield client


# ──────────────────────────────────────────────────────────────
# Dependency overrides
# ──────────────────────────────────────────────────────────────

from app.api import discover as discover_api

app.dependency_overrides[discover_api.get_http_client] = provide_http_client

# Routes
app.include_router(api_router)


# ──────────────────────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────────────────────

@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[app] Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": {"code": "internal_error", "message": "Unexpected server error"}},
    )


def run_server(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the API with uvicorn (`stopfinder-server`)."""
    uvicorn.run(app, host=host or settings.server_host, port=port or settings.server_port)
