import logging
from http import HTTPStatus
from typing import Any, Sequence

from pkg_registry.models import FieldError, DependencyErrorDetail


class BaseApplicationError(Exception):
    """Base application error"""

    log_level: int = logging.ERROR
    log_message: str = "Application error"
    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def payload(self) -> dict[str, Any]:
        """Structured representation of the error (ready for rendering)"""
        return {"error": self.log_message, "detail": self.message}


class AppSettingsError(BaseApplicationError):
    """Settings error"""


class DatabaseError(BaseApplicationError):
    """Database error"""


class InstanceLookupError(BaseApplicationError):
    """Instance lookup error"""

    log_level: int = logging.WARNING
    log_message: str = "Instance not found"
    status_code: int = HTTPStatus.NOT_FOUND


class ReleaseNotFoundError(InstanceLookupError):
    """Requested release doesn't exist for the package"""

    log_message: str = "Release not found"

    def __init__(self, package_name: str, version: str) -> None:
        super().__init__(f"Release {package_name!r} {version!r} not found")
        self.package_name = package_name
        self.version = version


class ReleaseValidationError(BaseApplicationError):
    """Field-level problems of the release (version, uniqueness)"""

    log_level: int = logging.WARNING
    log_message: str = "Release validation error"
    status_code: int = HTTPStatus.UNPROCESSABLE_ENTITY

    def __init__(self, errors: Sequence[FieldError]) -> None:
        self.errors = list(errors)
        details = "; ".join(f"{error.field}: {error.message}" for error in self.errors)
        super().__init__(details)

    def payload(self) -> dict[str, Any]:
        return {
            "error": self.log_message,
            "errors": [error.model_dump() for error in self.errors],
        }


class EditWindowExpiredError(BaseApplicationError):
    """Release can't be changed anymore (edit window has been closed)"""

    log_level: int = logging.WARNING
    log_message: str = "Release edit window expired"
    status_code: int = HTTPStatus.FORBIDDEN
    field: str = "created_at"

    @property
    def errors(self) -> list[FieldError]:
        return [FieldError(field=self.field, message=self.message)]

    def payload(self) -> dict[str, Any]:
        return {
            "error": self.log_message,
            "errors": [error.model_dump() for error in self.errors],
        }


class RequirementError(BaseApplicationError):
    """Problem with a single dependency requirement of the release"""

    log_level: int = logging.WARNING
    log_message: str = "Requirement error"
    status_code: int = HTTPStatus.UNPROCESSABLE_ENTITY

    def __init__(self, dependency_name: str, message: str) -> None:
        super().__init__(message)
        self.dependency_name = dependency_name

    @property
    def detail(self) -> DependencyErrorDetail:
        return DependencyErrorDetail(dependency_name=self.dependency_name, message=self.message)


class InvalidRequirementError(RequirementError):
    """Requirement string can't be parsed"""

    def __init__(self, dependency_name: str, requirement: Any) -> None:
        super().__init__(dependency_name, f"invalid requirement: {requirement!r}")
        self.requirement = requirement


class UnknownPackageError(RequirementError):
    """Requirement refers to a package which doesn't exist"""

    def __init__(self, dependency_name: str) -> None:
        super().__init__(dependency_name, "unknown package")


class RequirementsError(BaseApplicationError):
    """Aggregated requirement problems (the whole batch is rolled back)"""

    log_level: int = logging.WARNING
    log_message: str = "Release requirements error"
    status_code: int = HTTPStatus.UNPROCESSABLE_ENTITY

    def __init__(self, errors: Sequence[RequirementError]) -> None:
        self.errors = list(errors)
        details = "; ".join(f"{error.dependency_name}: {error.message}" for error in self.errors)
        super().__init__(details)

    @property
    def deps(self) -> list[DependencyErrorDetail]:
        return [error.detail for error in self.errors]

    def payload(self) -> dict[str, Any]:
        return {
            "error": self.log_message,
            "deps": [detail.model_dump() for detail in self.deps],
        }
