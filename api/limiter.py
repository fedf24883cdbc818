"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and
api/routes/v1/auth.py (to apply per-route limits with @limiter.limit()).

A single shared instance means all routes share the same in-memory counter
store; separate instances per module would each count on their own.

RATE_LIMIT_ENABLED=false turns every limit off (the test suite does this).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://", enabled=_settings.rate_limit_enabled)

# Applied to login and forgot-password.
LOGIN_RATE_LIMIT = _settings.login_rate_limit
