"""
Request tracing middleware
"""
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from classchat.core.logging_config import generate_trace_id, set_trace_id

logger = logging.getLogger(__name__)

TRACE_HEADER = 'X-Trace-ID'


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Tags every HTTP request with a trace ID

    The ID comes from the caller's X-Trace-ID header when present, is visible
    to every log line emitted while serving the request, and is echoed back on
    the response.
    """

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get(TRACE_HEADER) or generate_trace_id()
        set_trace_id(trace_id)

        route = f"{request.method} {request.url.path}"
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"❌ {route} failed", extra={'duration_ms': _elapsed_ms(start)})
            raise

        logger.info(
            f"{route} -> {response.status_code}",
            extra={'duration_ms': _elapsed_ms(start), 'status_code': response.status_code},
        )

        response.headers[TRACE_HEADER] = trace_id
        return response
