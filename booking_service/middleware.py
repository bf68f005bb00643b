import json
import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("booking_service.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One JSON access line per request, tagged with X-Request-Id."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id

        entry = {"request_id": request_id, "method": request.method, "path": request.url.path}
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            entry.update(status=500, duration_ms=_elapsed_ms(start))
            logger.exception(json.dumps(entry))
            raise

        response.headers["X-Request-Id"] = request_id
        entry.update(
            status=response.status_code,
            duration_ms=_elapsed_ms(start),
            user_sub=getattr(request.state, "user_sub", None),
            user_roles=getattr(request.state, "user_roles", None),
        )
        logger.info(json.dumps(entry))
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
