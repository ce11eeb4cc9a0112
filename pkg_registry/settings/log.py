from functools import lru_cache
from typing import Annotated, Any, TypedDict

from pydantic import StringConstraints
from pydantic_settings import BaseSettings, SettingsConfigDict

from pkg_registry.settings.utils import prepare_settings

__all__ = (
    "LOG_LEVELS_PATTERN",
    "LogSettings",
    "get_log_settings",
)

LOG_LEVELS_PATTERN = "DEBUG|INFO|WARNING|ERROR|CRITICAL"
LogLevelString = Annotated[
    str, StringConstraints(to_upper=True, pattern=rf"^(?i:{LOG_LEVELS_PATTERN})$")
]
APP_LOGGER = "pkg_registry"
# SQL statements (INFO) and result rows (DEBUG) of SQLAlchemy
DB_LOGGER = "sqlalchemy.engine"


class LoggerConfig(TypedDict):
    handlers: list[str]
    level: str
    propagate: bool


class LogDictConfig(TypedDict):
    version: int
    disable_existing_loggers: bool
    formatters: dict[str, dict[str, str]]
    handlers: dict[str, dict[str, str]]
    loggers: dict[str, LoggerConfig]


class LogSettings(BaseSettings):
    """Logging settings (LOG_LEVEL, LOG_DB_LEVEL, LOG_FORMAT, LOG_DATEFMT)"""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: LogLevelString = "INFO"
    db_level: LogLevelString = "WARNING"
    format: str = "[%(asctime)s] %(levelname)s [%(name)s:%(lineno)s] %(message)s"
    datefmt: str = "%d.%m.%Y %H:%M:%S"

    @property
    def dict_config(self) -> LogDictConfig:
        """Config for logging.config.dictConfig: both loggers write to stderr"""
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": self.format, "datefmt": self.datefmt}},
            "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "standard"}},
            "loggers": {
                APP_LOGGER: self._logger_config(self.level),
                DB_LOGGER: self._logger_config(self.db_level),
            },
        }

    @property
    def dict_config_any(self) -> dict[str, Any]:
        """Untyped copy of dict_config (logging.config expects plain dict)"""
        return dict(self.dict_config)

    @staticmethod
    def _logger_config(level: str) -> LoggerConfig:
        return {"handlers": ["console"], "level": level, "propagate": False}


@lru_cache
def get_log_settings() -> LogSettings:
    """Prepares logging settings from environment variables"""
    return prepare_settings(LogSettings)
