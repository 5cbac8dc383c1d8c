"""Optional Redis connection backing the quote price cache."""
import logging
from typing import Optional
from redis.asyncio import Redis
from autoquote.core.config import settings
from autoquote.core.metrics import redis_connected

logger = logging.getLogger(__name__)

_price_cache: Optional[Redis] = None


async def init_price_cache() -> Optional[Redis]:
    """Connect the price cache; on failure quotes are computed uncached."""
    global _price_cache
    client = None
    try:
        client = Redis.from_url(settings.REDIS_URL, decode_responses=False)
        await client.ping()
    except Exception as e:
        logger.warning(f"Price cache unavailable, quotes will not be cached: {e}")
        if client is not None:
            await client.aclose()
        _price_cache = None
        redis_connected.set(0)
        return None

    logger.info("Price cache connected")
    _price_cache = client
    redis_connected.set(1)
    return client


async def close_price_cache():
    global _price_cache
    if _price_cache is not None:
        await _price_cache.aclose()
        _price_cache = None
    redis_connected.set(0)


def get_price_cache() -> Optional[Redis]:
    return _price_cache
