"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and the route modules
(@limiter.limit() / @default_limit).

Every route gets default_rate_limit (100 requests per 15 minutes per IP).
POST /auth/register and /auth/login carry login_rate_limit on top of it.

SlowAPIMiddleware only resolves endpoints registered directly on the app;
routes on included APIRouters are invisible to it. Router endpoints therefore
carry their limits as decorators, placed below @router.<method> and directly
above the def so FastAPI registers the wrapped function.

One shared instance means one in-memory counter store. RATE_LIMIT_ENABLED=false
turns every limit off, which the test suite relies on.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    default_limits=[_settings.default_rate_limit],
    enabled=_settings.rate_limit_enabled,
)

default_limit = limiter.limit(_settings.default_rate_limit)
login_limit = limiter.limit(_settings.login_rate_limit, override_defaults=False)
