"""Snapshot error taxonomy and centralized FastAPI error handlers."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "OpenAI API key missing. Check OPENAI_API_KEY."


class SnapshotError(Exception):
    """Base exception with HTTP status code."""

    status_code = 500


class ConfigurationError(SnapshotError):
    """The generator cannot be called at all (no credentials)."""

    def __init__(self, message: str = MISSING_KEY_MESSAGE):
        super().__init__(message)


class GenerationError(SnapshotError):
    """The generator call failed or its reply could not be used."""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class SnapshotValidationError(GenerationError):
    """The generator replied but required fields were missing."""


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(_request: Request, exc: ConfigurationError):
        return error_response(str(exc), exc.status_code)

    @app.exception_handler(SnapshotError)
    async def handle_snapshot_error(_request: Request, exc: SnapshotError):
        logger.error("Snapshot error: %s", exc)
        return error_response("Unable to fetch snapshot right now.", exc.status_code)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return error_response("Internal server error", 500)
