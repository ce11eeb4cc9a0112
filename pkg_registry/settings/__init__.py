from functools import lru_cache

from .app import AppSettings
from .db import DBSettings, get_db_settings
from .log import LogSettings, get_log_settings
from .utils import prepare_settings

__all__ = (
    "AppSettings",
    "DBSettings",
    "LogSettings",
    "get_app_settings",
    "get_db_settings",
    "get_log_settings",
)


@lru_cache
def get_app_settings() -> AppSettings:
    """Prepares application settings from environment variables"""
    return prepare_settings(AppSettings)
