from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from pkg_registry.versions import is_prerelease

__all__ = (
    "FieldError",
    "DependencyErrorDetail",
    "ReleaseDetails",
)


class FieldError(BaseModel):
    """Field-level validation problem"""

    field: str
    message: str


class DependencyErrorDetail(BaseModel):
    """Problem with one of the release's requirements"""

    dependency_name: str
    message: str


class ReleaseDetails(BaseModel):
    """Release together with its package name and resolved requirements"""

    model_config = ConfigDict(frozen=True)

    id: int
    package_id: int
    package_name: str
    version: str
    created_at: datetime
    updated_at: datetime
    requirements: dict[str, str | None] = Field(default_factory=dict)

    @property
    def is_prerelease(self) -> bool:
        return is_prerelease(self.version)

    def __str__(self) -> str:
        return f"Release '{self.package_name}' {self.version}"
