"""Request/response logging middleware (development mode only).

Logs one line per request with a short correlation id, and echoes that id in
the ``X-Request-ID`` response header.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger("api.requests")

# Noisy endpoints
EXCLUDED_PATHS = {
    "/",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
    "/api/v1/physique/health",
}

# Static files and raw photo uploads
EXCLUDED_PREFIXES = (
    "/storage/",
    "/api/v1/physique/uploads/",
)

SENSITIVE_QUERY_PARAMS = ("token", "password", "key", "signature", "x-amz-signature")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in EXCLUDED_PATHS or path.startswith(EXCLUDED_PREFIXES):
            return await call_next(request)

        request_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        log_parts = [f"[{request_id}]", f"{request.method} {path}"]
        query_params = dict(request.query_params)
        if query_params:
            sanitized_params = {
                k: ("***" if k.lower() in SENSITIVE_QUERY_PARAMS else v)
                for k, v in query_params.items()
            }
            log_parts.append(f"params={sanitized_params}")
        log_parts.append(f"client={request.client.host if request.client else 'unknown'}")
        request_desc = " ".join(log_parts)

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error("%s - ERROR (%.3fs): %s", request_desc, duration, e)
            raise

        duration = time.perf_counter() - start_time
        status_class = response.status_code // 100
        if status_class == 5:
            log_func = logger.error
        elif status_class == 4:
            log_func = logger.warning
        else:
            log_func = logger.info

        log_func("%s - %d (%.3fs)", request_desc, response.status_code, duration)
        response.headers["X-Request-ID"] = request_id
        return response


def configure_request_logging(log_level: str = "INFO") -> None:
    """Give the request logger its own handler and level."""
    request_logger = logging.getLogger("api.requests")
    request_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    # Prevent duplicate emission via root logger handlers.
    request_logger.propagate = False

    if not request_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        request_logger.addHandler(handler)
