"""Request/response access logging for the API boundary."""

from __future__ import annotations

import json
import logging
import time

from fastapi import Request

from canopy.logging_setup import API_LOGGER_NAME

access_logger = logging.getLogger(API_LOGGER_NAME)

MAX_LOGGED_ITEMS = 10


def truncate_body(body: object, limit: int = MAX_LOGGED_ITEMS) -> object:
    """Shorten list payloads for log records; other payloads pass through."""
    if isinstance(body, list) and len(body) > limit:
        head = json.dumps(body[:limit], default=str)
        return f"[Array({len(body)}) truncated to {limit}]{{{head}}}"
    return body


def log_response_body(request: Request, status: int, body: object) -> None:
    access_logger.debug(
        "API response details: %s %s status=%s body=%s",
        request.method, request.url.path, status, truncate_body(body),
    )


async def access_log_middleware(request: Request, call_next):
    start = time.monotonic()
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    access_logger.info("API request: %s %s", request.method, target)
    response = await call_next(request)
    elapsed_ms = int((time.monotonic() - start) * 1000)
    access_logger.info(
        "API response: %s %s status=%s elapsed=%dms",
        request.method, target, response.status_code, elapsed_ms,
    )
    return response
