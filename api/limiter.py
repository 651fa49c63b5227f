"""
api/limiter.py -- The slowapi Limiter shared by the app and the auth routes.

api/main.py mounts it as middleware; api/routes/auth.py applies the login
limit with @limiter.limit(). Counters live in RATE_LIMIT_STORAGE_URI
("memory://" keeps them per process; a redis:// URI shares them between
workers). Clients are keyed by remote address.

RATE_LIMIT_ENABLED=false turns every limit into a no-op.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_settings.rate_limit_storage_uri,
    enabled=_settings.rate_limit_enabled,
)
