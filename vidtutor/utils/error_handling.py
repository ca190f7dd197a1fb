"""
Centralized error handling for the gateway.

Errors raised before the first response byte is written become a JSON body
``{"error": "..."}`` with the matching HTTP status. Errors that happen once a
stream is running are absorbed by the stream itself.
"""

import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vidtutor.utils.logger import logging

UPSTREAM_ERROR_LIMIT = 200


class GatewayError(Exception):
    """Base class for errors surfaced to the client."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NoCaptionsError(GatewayError):
    """Neither subtitles nor a description could be found for the video."""

    status_code = 400

    def __init__(self, message: str = "该视频没有字幕，无法生成教程。请选择有字幕的视频。"):
        super().__init__(message)


class EngineUnconfiguredError(GatewayError):
    """A required engine credential is missing."""

    status_code = 500

    def __init__(self, message: str = "AI 服务未配置。"):
        super().__init__(message)


class UpstreamRejected(GatewayError):
    """The upstream engine answered with a non-success status."""

    status_code = 502


class EngineFailure(Exception):
    """An engine produced no usable result. Triggers the next engine."""


class TransientFetchFailure(Exception):
    """Network or parse error on a source that has a fallback."""


class StreamReadFailure(Exception):
    """Error while reading an already established upstream stream."""


def truncate_upstream_error(text: str, limit: int = UPSTREAM_ERROR_LIMIT) -> str:
    """
    Bound upstream error text before it is shown to the client.

    Args:
        text: Raw upstream response body
        limit: Maximum number of characters kept

    Returns:
        Truncated, stripped text
    """
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def error_response(exc: GatewayError) -> JSONResponse:
    """Build the JSON error body for a gateway error."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def register_exception_handlers(app: FastAPI):
    """Attach the gateway's exception handlers to the application."""

    @app.exception_handler(GatewayError)
    async def gateway_exception_handler(request: Request, exc: GatewayError):
        logging.warning(f"{request.url.path} -> {exc.status_code}: {exc.message}")
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logging.warning(f"Invalid request body on {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "请求格式错误"})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled exceptions."""
        logging.error(f"Unhandled error on {request.url.path}: {str(exc)}")
        logging.error(traceback.format_exc())
        return JSONResponse(
            status_code=500,
            content={"error": f"服务器错误: {str(exc)}"},
        )
