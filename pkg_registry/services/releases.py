"""
Release lifecycle: creation, update (delete + recreate), deletion and listing.

All changes are made inside a unit of work on the injected session, so a release
and its requirements are stored (or rolled back) together.
"""

import datetime
import logging
from functools import cmp_to_key
from typing import Any, Callable, Mapping, TypeAlias

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pkg_registry.constants import (
    MESSAGE_DELETE_EXPIRED,
    MESSAGE_UPDATE_EXPIRED,
    RELEASE_EDIT_WINDOW_SECONDS,
)
from pkg_registry.db.models import Package, Release
from pkg_registry.db.repositories import (
    PackageRepository,
    ReleaseRepository,
    RequirementRepository,
)
from pkg_registry.db.services import SASessionUOW
from pkg_registry.exceptions import (
    EditWindowExpiredError,
    ReleaseNotFoundError,
    ReleaseValidationError,
)
from pkg_registry.models import FieldError, ReleaseDetails
from pkg_registry.services.requirements import RequirementResolver
from pkg_registry.services.validation import (
    MESSAGE_VERSION_TAKEN,
    ReleaseValidator,
    is_version_conflict,
)
from pkg_registry.utils import to_naive_utc, utcnow
from pkg_registry.versions import compare_versions

__all__ = ("ReleaseService",)
logger = logging.getLogger(__name__)
RequirementsT: TypeAlias = Mapping[str, str | None]


class ReleaseService:
    """Creates, updates, deletes and finds package's releases"""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self.session = session
        self.clock = clock
        self.validator = ReleaseValidator(session=session)
        self.resolver = RequirementResolver(session=session)
        self.package_repository = PackageRepository(session=session)
        self.release_repository = ReleaseRepository(session=session)
        self.requirement_repository = RequirementRepository(session=session)

    async def create(
        self,
        package: Package,
        version: str,
        requirements: RequirementsT,
        created_at: datetime.datetime | None = None,
    ) -> ReleaseDetails:
        """
        Creates a new release of the package with its requirements.

        :param package: owner of the release
        :param version: release's version (unique within the package)
        :param requirements: mapping {dependency name: requirement or None}
        :param created_at: keeps original creation time (used by update)
        :raise ReleaseValidationError: invalid or already taken version
        :raise RequirementsError: some requirements are invalid (nothing is stored)
        """
        package_id, package_name, now = package.id, package.name, self._now()
        value: dict[str, Any] = {
            "package_id": package_id,
            "version": version,
            "created_at": to_naive_utc(created_at) if created_at else now,
            "updated_at": now,
        }
        if errors := await self.validator.validate_create(Release(**value)):
            logger.info("[RELEASE] Unable to create %s %r: %r", package_name, version, errors)
            raise ReleaseValidationError(errors)

        uow = SASessionUOW(session=self.session)
        try:
            async with uow:
                release = await self.release_repository.create(value)
                # release's ID is required for requirements (+ unique constraint check)
                await self.session.flush()
                stored = await self.resolver.create_requirements(release, requirements)
                details = self._details(release, package, requirements=stored)
                uow.mark_for_commit()

        except IntegrityError as exc:
            await self._restore(package, uow)
            if not is_version_conflict(exc):
                raise

            logger.warning(
                "[RELEASE] Release %s %r was rejected by DB: %r", package_name, version, exc
            )
            raise ReleaseValidationError(
                [FieldError(field="version", message=MESSAGE_VERSION_TAKEN)]
            ) from exc

        except Exception:
            await self._restore(package, uow)
            raise

        logger.info("[RELEASE] Created release %s %s", package_name, version)
        return details

    async def update(self, release: ReleaseDetails, requirements: RequirementsT) -> ReleaseDetails:
        """
        Replaces release's requirements: the release is deleted and created again
        (keeping its original created_at) within the same transaction.

        :raise EditWindowExpiredError: release was created more than an hour ago
        :raise ReleaseValidationError: stored version is not valid anymore
        :raise RequirementsError: some requirements are invalid (nothing is changed)
        """
        if not self.is_editable(release):
            raise EditWindowExpiredError(MESSAGE_UPDATE_EXPIRED)

        candidate = Release(package_id=release.package_id, version=release.version)
        if errors := self.validator.validate(candidate):
            raise ReleaseValidationError(errors)

        package = await self.package_repository.get(release.package_id)
        uow = SASessionUOW(session=self.session)
        try:
            async with uow:
                await self._remove(release)
                updated = await self.create(
                    package, release.version, requirements, created_at=release.created_at
                )
                uow.mark_for_commit()

        except Exception:
            await self._restore(package, uow)
            raise

        logger.info("[RELEASE] Updated release %s %s", release.package_name, release.version)
        return updated

    async def delete(self, release: ReleaseDetails) -> None:
        """
        Removes the release with all its requirements.

        :raise EditWindowExpiredError: release was created more than an hour ago
        """
        if not self.is_editable(release):
            raise EditWindowExpiredError(MESSAGE_DELETE_EXPIRED)

        async with SASessionUOW(session=self.session) as uow:
            await self._remove(release)
            uow.mark_for_commit()

        logger.info("[RELEASE] Deleted release %s %s", release.package_name, release.version)

    # TODO: exempt pre-releases from the edit window once product owners confirm it
    def is_editable(self, release: ReleaseDetails) -> bool:
        """Release can be changed only within the first hour after its creation"""
        elapsed = self._now() - to_naive_utc(release.created_at)
        return elapsed.total_seconds() <= RELEASE_EDIT_WINDOW_SECONDS

    async def get(self, package: Package, version: str) -> ReleaseDetails:
        """
        Finds package's release by version (with resolved requirements)

        :raise ReleaseNotFoundError: there is no such version for the package
        """
        release = await self.release_repository.first_by_version(package.id, version)
        if release is None:
            raise ReleaseNotFoundError(package.name, version)

        requirements = await self.requirement_repository.named_for_release(release.id)
        return self._details(release, package, requirements=requirements)

    async def all(self, package: Package) -> list[ReleaseDetails]:
        """All package's releases: the newest version goes first"""
        releases = await self.release_repository.all_for_package(package.id)
        releases.sort(
            key=cmp_to_key(lambda left, right: compare_versions(left.version, right.version)),
            reverse=True,
        )
        return [self._details(release, package) for release in releases]

    async def count(self) -> int:
        """Total count of releases (for all packages)"""
        return await self.release_repository.count()

    async def _remove(self, release: ReleaseDetails) -> None:
        await self.requirement_repository.delete_by_release(release.id)
        await self.release_repository.delete_by_ids([release.id])

    def _now(self) -> datetime.datetime:
        return to_naive_utc(self.clock())

    async def _restore(self, package: Package, uow: SASessionUOW) -> None:
        """Reloads caller's package expired by the rollback of the outermost block"""
        if uow.is_outermost and inspect(package).persistent:
            await self.session.refresh(package)

    @staticmethod
    def _details(
        release: Release,
        package: Package,
        requirements: dict[str, str | None] | None = None,
    ) -> ReleaseDetails:
        return ReleaseDetails(
            id=release.id,
            package_id=package.id,
            package_name=package.name,
            version=release.version,
            created_at=release.created_at,
            updated_at=release.updated_at,
            requirements=requirements or {},
        )
