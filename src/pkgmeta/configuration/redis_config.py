"""
Redis configuration settings for the graph store.
"""

from pydantic import Field
from .base_config import BaseConfig

class RedisSettings(BaseConfig):
    """
    Defines the Redis connection settings used by the graph store.
    """
    REDIS_URL: str = Field(default="redis://localhost:6379", description="Redis connection URL")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_MAX_CONNECTIONS: int = Field(default=10, description="Maximum number of Redis connections")
    REDIS_RETRY_ON_TIMEOUT: bool = Field(default=True, description="Whether to retry on timeout")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=5.0, description="Socket connection timeout in seconds")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, description="Socket timeout in seconds")

