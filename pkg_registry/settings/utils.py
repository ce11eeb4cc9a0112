import logging
from typing import TypeVar

from pydantic_core import ValidationError
from pydantic_settings import BaseSettings

from pkg_registry.exceptions import AppSettingsError

__all__ = ("prepare_settings",)
logger = logging.getLogger(__name__)
SettingsT = TypeVar("SettingsT", bound=BaseSettings)


def format_validation_error(exc: ValidationError) -> str:
    """
    One line per invalid field: '[db|port] Input should be a valid integer, ...'
    """
    lines = [f"[{'|'.join(map(str, error['loc']))}] {error['msg']}" for error in exc.errors()]
    return "\n\t".join(["Unable to validate settings:", *lines])


def prepare_settings(settings_class: type[SettingsT]) -> SettingsT:
    """Loads settings from environment, any failure is reported as AppSettingsError"""
    try:
        return settings_class()

    except ValidationError as exc:
        logger.debug(
            "Invalid %s: %s",
            settings_class.__name__,
            exc.errors(include_url=False, include_input=False),
        )
        raise AppSettingsError(format_validation_error(exc)) from exc

    except Exception as exc:
        logger.error("Unable to prepare %s: %r", settings_class.__name__, exc)
        raise AppSettingsError(f"Unable to prepare settings: {exc}") from exc
