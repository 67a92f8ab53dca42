from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import get_settings

settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=(settings.redis_url or "").strip() or "memory://",
    enabled=settings.rate_limit_enabled,
)
