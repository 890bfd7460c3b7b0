"""Redis client creation for the graph store."""

from typing import Optional

import redis.asyncio as redis
import structlog

from pkgmeta.configuration.redis_config import RedisSettings
from pkgmeta.configuration.common_config import get_app_settings

logger = structlog.get_logger(__name__)


def create_redis_client(cfg: Optional[RedisSettings] = None) -> redis.Redis:
    """Create a fresh asyncio Redis client from settings.

    Responses are decoded so set members and hash values come back as str.
    """
    if cfg is None:
        cfg = get_app_settings().redis
    client = redis.from_url(
        cfg.REDIS_URL,
        password=cfg.REDIS_PASSWORD,
        db=cfg.REDIS_DB,
        max_connections=cfg.REDIS_MAX_CONNECTIONS,
        socket_connect_timeout=cfg.REDIS_SOCKET_CONNECT_TIMEOUT,
        socket_timeout=cfg.REDIS_SOCKET_TIMEOUT,
        retry_on_timeout=cfg.REDIS_RETRY_ON_TIMEOUT,
        decode_responses=True,
    )
    logger.info("Redis client created", redis_url=cfg.REDIS_URL, redis_db=cfg.REDIS_DB)
    return client
