"""
Rate limiting using SlowAPI
Slows down access-code guessing on the join endpoint
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from classchat.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.RATE_LIMIT_ENABLED,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
)
