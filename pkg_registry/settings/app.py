from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pkg_registry.settings.db import DBSettings
from pkg_registry.settings.log import LogSettings

__all__ = ("AppSettings",)


class AppSettings(BaseSettings):
    """Application settings which are loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    db: DBSettings = Field(default_factory=DBSettings)
    log: LogSettings = Field(default_factory=LogSettings)
