"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and
api/routes/v1/users.py (to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.

Limits are keyed by client IP:
  auth_limit()   -- AUTH_RATE_LIMIT (10 per 15 minutes) on register/login [A07].
  global_limit() -- GLOBAL_RATE_LIMIT (100 per 15 minutes), one counter shared
                    by the other /users routes via shared_limit(scope=GLOBAL_SCOPE).

SlowAPIMiddleware only resolves routes registered directly on the app, so
default_limits does not reach routes added through include_router. Router
endpoints carry an explicit decorator instead.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

GLOBAL_SCOPE = "global"


def auth_limit() -> str:
    """Resolved per request so tests and reloads see current settings."""
    return get_settings().auth_rate_limit


def global_limit() -> str:
    return get_settings().global_rate_limit


limiter = Limiter(key_func=get_remote_address, default_limits=[global_limit], storage_uri="memory://")
