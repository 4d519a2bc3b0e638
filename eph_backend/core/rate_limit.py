"""
Shared slowapi limiter. Routes decorate with @limiter.limit(...); main.py
attaches it to app.state.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from eph_backend.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
