import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pkg_registry.constants import MAX_VERSION_LENGTH, UQ_RELEASE_VERSION
from pkg_registry.db.models import Release
from pkg_registry.db.repositories import ReleaseRepository
from pkg_registry.models import FieldError
from pkg_registry.versions import is_prerelease, is_valid_version

__all__ = ("ReleaseValidator", "is_version_conflict")
logger = logging.getLogger(__name__)
MESSAGE_VERSION_TAKEN = "has already been taken"
# SQLite reports unique violations by columns instead of the constraint's name
VERSION_CONFLICT_MARKERS = (UQ_RELEASE_VERSION, "releases.package_id, releases.version")


def is_version_conflict(exc: IntegrityError) -> bool:
    """Detects violation of the (package, version) uniqueness among other integrity errors"""
    message = str(exc.orig)
    return any(marker in message for marker in VERSION_CONFLICT_MARKERS)


class ReleaseValidator:
    """Field-level checks of the release (nothing is changed in DB)"""

    def __init__(self, session: AsyncSession) -> None:
        self.release_repository = ReleaseRepository(session=session)

    def validate(self, release: Release) -> list[FieldError]:
        """Version must be present, be a string and be a valid non pre-release version"""
        version = release.version
        if version is None or version == "":
            return [FieldError(field="version", message="can't be blank")]

        if not isinstance(version, str):
            return [FieldError(field="version", message="must be a string")]

        if len(version) > MAX_VERSION_LENGTH:
            return [
                FieldError(
                    field="version",
                    message=f"should be at most {MAX_VERSION_LENGTH} character(s)",
                )
            ]

        if not is_valid_version(version):
            return [FieldError(field="version", message=f"invalid version: {version!r}")]

        if is_prerelease(version):
            return [FieldError(field="version", message="pre-release versions are not allowed")]

        return []

    async def validate_create(self, release: Release) -> list[FieldError]:
        """Same as validate() plus uniqueness of version within the package"""
        errors = self.validate(release)
        if errors:
            return errors

        if await self.release_repository.exists_version(release.package_id, release.version):
            logger.debug(
                "[RELEASE] Version %s already exists for package_id=%i",
                release.version,
                release.package_id,
            )
            errors.append(FieldError(field="version", message=MESSAGE_VERSION_TAKEN))

        return errors
