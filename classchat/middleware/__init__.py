"""
HTTP middleware
"""
from .tracing import TracingMiddleware
from .rate_limiter import limiter

__all__ = ["TracingMiddleware", "limiter"]
