"""Redis configuration for the ARQ notification worker."""
from arq.connections import RedisSettings
from portal.config import settings
from urllib.parse import urlparse


def parse_redis_url(url: str, timeout: float) -> RedisSettings:
    """Parse Redis URL into RedisSettings, bounding connection attempts."""
    parsed = urlparse(url)
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        password=parsed.password,
        database=int(parsed.path[1:]) if parsed.path and len(parsed.path) > 1 else 0,
        ssl=parsed.scheme == "rediss",
        conn_timeout=max(1, int(timeout)),
        conn_retries=1,
    )


redis_settings = parse_redis_url(settings.redis_url, settings.store_timeout_seconds)
