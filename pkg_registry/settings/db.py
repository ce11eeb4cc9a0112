from functools import lru_cache, cached_property

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from pkg_registry.settings.utils import prepare_settings

__all__ = ("DBSettings", "get_db_settings")


class DBSettings(BaseSettings):
    """Implements settings which are loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", env_prefix="DB_")

    driver: str = "postgresql+asyncpg"
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    name: str = "pkg_registry"
    dsn_override: str | None = Field(default=None, description="Full DSN (skips other parts)")
    pool_min_size: int | None = Field(default_factory=lambda: None, description="Pool Min Size")
    pool_max_size: int | None = Field(default_factory=lambda: None, description="Pool Max Size")
    echo: bool = False

    @cached_property
    def database_dsn(self) -> str:
        if self.dsn_override:
            return self.dsn_override

        password = self.password.get_secret_value()
        return f"{self.driver}://{self.user}:{password}@{self.host}:{self.port}/{self.name}"

    @cached_property
    def info(self) -> str:
        """Get connection info string for logging"""
        if self.dsn_override:
            return self.dsn_override.split("@")[-1]

        return f"{self.host}:{self.port} (database={self.name})"


@lru_cache
def get_db_settings() -> DBSettings:
    """Prepares database settings from environment variables"""
    return prepare_settings(DBSettings)
