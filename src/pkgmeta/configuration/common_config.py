"""
Composed configuration settings for the metadata updater.
"""
from functools import lru_cache
from pydantic import Field
from dotenv import load_dotenv
from .base_config import BaseConfig
from .redis_config import RedisSettings
from .build_trigger_config import BuildTriggerSettings
from .execution_config import ExecutionSettings

# Explicitly load .env file at the module level.
load_dotenv()

class AppSettings(BaseConfig):
    """
    Holds the composed settings for the entire application.
    """

    redis: RedisSettings = Field(default_factory=RedisSettings)
    build_trigger: BuildTriggerSettings = Field(default_factory=BuildTriggerSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)

@lru_cache()
def get_app_settings() -> AppSettings:
    """
    Creates a cached instance of AppSettings.
    This ensures that all settings are loaded only once and reused.
    """
    return AppSettings()
