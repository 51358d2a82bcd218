import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


logger = logging.getLogger("rentx.request")

# Probes are scraped every few seconds; keep them out of the access log
QUIET_PATHS = ("/health", "/metrics")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ``X-Request-ID`` and writes one JSON access line."""

    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = req_id
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = req_id
        if request.url.path not in QUIET_PATHS:
            logger.info(json.dumps({
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                "client": request.client.host if request.client else None,
            }))
        return response
