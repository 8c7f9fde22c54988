"""
FastAPI application for weather-ayah.

Lifespan manages the httpx client, generator, caches, services and the
background refresh scheduler.
Routes: /api/weather, /api/ayah, /health.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from weather_ayah.ayah import AyahService
from weather_ayah.cache import RefreshCache
from weather_ayah.config import AppConfig, load_config
from weather_ayah.errors import (
    ConfigurationError,
    GenerationError,
    error_response,
    register_error_handlers,
)
from weather_ayah.generator import GeneratorClient
from weather_ayah.models import AyahSnapshot, ErrorResponse, WeatherSnapshot
from weather_ayah.scheduler import RefreshJob, RefreshScheduler
from weather_ayah.weather import WeatherService

logger = logging.getLogger(__name__)

# Global references set during lifespan
_config: Optional[AppConfig] = None
_weather_service: Optional[WeatherService] = None
_ayah_service: Optional[AyahService] = None
_scheduler: Optional[RefreshScheduler] = None


def build_scheduler(
    config: AppConfig, weather: WeatherService, ayah: AyahService
) -> RefreshScheduler:
    """Keep the default-location weather and the ayah warm, each on its own TTL."""
    return RefreshScheduler(
        [
            RefreshJob("weather", weather.get, config.weather_ttl_seconds),
            RefreshJob("ayah", ayah.get, config.ayah_ttl_seconds),
        ]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: load config, create HTTP client, generator, services, scheduler."""
    global _config, _weather_service, _ayah_service, _scheduler

    # Configure logging
    log_level = os.environ.get("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    _config = load_config()
    logger.info(
        "Loaded config: model=%s, default_location=%s, weather_ttl=%dm, ayah_ttl=%dm",
        _config.openai_model,
        _config.default_location,
        _config.weather_ttl_minutes,
        _config.ayah_ttl_minutes,
    )

    async with httpx.AsyncClient() as http_client:
        generator = GeneratorClient(
            http_client=http_client,
            base_url=_config.openai_base_url,
            api_key=_config.openai_api_key,
            model=_config.openai_model,
            timeout=_config.generator_timeout,
        )
        _weather_service = WeatherService(
            config=_config, generator=generator, cache=RefreshCache()
        )
        _ayah_service = AyahService(
            config=_config, generator=generator, cache=RefreshCache()
        )

        if not generator.configured:
            logger.warning("OPENAI_API_KEY not set; snapshots are unavailable")
        elif _config.scheduler_enabled:
            _scheduler = build_scheduler(_config, _weather_service, _ayah_service)
            _scheduler.start()

        logger.info("Weather-ayah ready")
        try:
            yield
        finally:
            if _scheduler is not None:
                await _scheduler.stop()

    _scheduler = None
    _weather_service = None
    _ayah_service = None
    _config = None


app = FastAPI(
    title="Weather & Ayah API",
    version="1.0.0",
    description="""
Generated weather conditions and a verse of the Quran for a small dashboard.

## Caching

Snapshots are cached server-side. Each response carries `updatedAt` and
`nextUpdate` (epoch milliseconds); clients should poll again no earlier than
`nextUpdate`. Concurrent requests for an expired snapshot share a single
generation call.
    """.strip(),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "snapshots", "description": "Weather and ayah snapshots"},
        {"name": "health", "description": "Service health check"},
    ],
)

# Origins are fixed at import time; CORS_ORIGINS overrides the default.
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("CORS_ORIGINS", "*").split(","),
    allow_methods=["GET"],
    allow_headers=["*"],
)

register_error_handlers(app)

ERROR_RESPONSES = {
    500: {"model": ErrorResponse, "description": "Generator credentials missing"},
    502: {"model": ErrorResponse, "description": "Generator call failed"},
    503: {"model": ErrorResponse, "description": "Service not ready"},
}


def _require_generator() -> None:
    if _config is not None and not _config.generator_configured:
        raise ConfigurationError()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", tags=["health"], summary="Health check")
async def health():
    """Always returns HTTP 200. Makes no generator calls."""
    return {"status": "healthy"}


@app.get(
    "/api/weather",
    response_model=WeatherSnapshot,
    tags=["snapshots"],
    summary="Current weather",
    responses=ERROR_RESPONSES,
)
async def get_weather(
    q: Optional[str] = Query(
        default=None, description="Free-text location; the default location if omitted"
    ),
):
    """Return current conditions for `q`, regenerated at most once per TTL."""
    if _weather_service is None:
        return error_response("Service not ready", 503)
    _require_generator()

    try:
        return await _weather_service.get(q)
    except GenerationError as exc:
        logger.error("Weather generation failed for %r: %s", q, exc)
        return error_response(
            "Unable to fetch weather insight right now.", exc.status_code
        )


@app.get(
    "/api/ayah",
    response_model=AyahSnapshot,
    tags=["snapshots"],
    summary="Current ayah",
    responses=ERROR_RESPONSES,
)
async def get_ayah():
    """Return the current verse, regenerated at most once per TTL."""
    if _ayah_service is None:
        return error_response("Service not ready", 503)
    _require_generator()

    try:
        return await _ayah_service.get()
    except GenerationError as exc:
        logger.error("Ayah generation failed: %s", exc)
        return error_response("Unable to fetch ayah right now.", exc.status_code)
