import os

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request


def get_real_ip(request: Request) -> str:
    """Client IP used as the rate-limit key.

    X-Forwarded-For is only honoured when TRUSTED_PROXY_COUNT > 0, and then
    the entry appended by the outermost trusted proxy is used.
    """
    trusted_proxy_count = int(os.getenv("TRUSTED_PROXY_COUNT", "0"))
    if trusted_proxy_count > 0:
        forwarded = request.headers.get("X-Forwarded-For", "")
        if forwarded:
            ips = [ip.strip() for ip in forwarded.split(",")]
            return ips[max(0, len(ips) - trusted_proxy_count)]
    return get_remote_address(request)


def _storage_uri() -> str | None:
    # Shared counters across workers need Redis; a local Redis is treated as
    # a dev box and the in-memory store is used instead.
    from app.config import settings

    if settings.REDIS_URL and "localhost" not in settings.REDIS_URL:
        return settings.REDIS_URL
    return None


_is_dev = os.getenv("APP_ENV", "development") == "development"

limiter = Limiter(
    key_func=get_real_ip,
    storage_uri=_storage_uri(),
    default_limits=["200/minute" if _is_dev else "60/minute"],
)

# Search and listing endpoints are the scraping target
LIST_RATE_LIMIT = "100/minute" if _is_dev else "30/minute"
WRITE_RATE_LIMIT = "30/minute" if _is_dev else "10/minute"
