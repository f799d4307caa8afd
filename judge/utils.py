import logging
import redis
from . import config

__all__ = (
    'logger',
    'get_redis_client',
)

_redis_pool = None


def logger():
    return logging.getLogger('judge')


def get_redis_client() -> redis.Redis:
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool(
            host=config.REDIS_HOST,
            port=config.REDIS_PORT,
            db=config.REDIS_DB,
        )
    return redis.Redis(connection_pool=_redis_pool)
