import logging
from typing import Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from pkg_registry.constants import MAX_REQUIREMENT_LENGTH
from pkg_registry.db.models import Release
from pkg_registry.db.repositories import PackageRepository, RequirementRepository
from pkg_registry.exceptions import (
    InvalidRequirementError,
    RequirementError,
    RequirementsError,
    UnknownPackageError,
)
from pkg_registry.versions import is_valid_requirement

__all__ = ("RequirementResolver",)
logger = logging.getLogger(__name__)


class RequirementResolver:
    """Validates and stores the whole set of release's requirements"""

    def __init__(self, session: AsyncSession) -> None:
        self.package_repository = PackageRepository(session=session)
        self.requirement_repository = RequirementRepository(session=session)

    async def create_requirements(
        self,
        release: Release,
        requirements: Mapping[str, str | None],
    ) -> dict[str, str | None]:
        """
        Stores requirement rows for the release (one row per requirement).

        Dependencies are resolved to packages with one query. Problems are collected for
        every requirement and raised together as RequirementsError, the surrounding
        transaction must be rolled back in such case (rows are added one by one).

        :param release: already flushed release (has ID)
        :param requirements: mapping {dependency name: requirement or None (any version)}
        :return: normalized mapping of stored requirements
        """
        requirements = {str(name): requirement for name, requirement in requirements.items()}
        package_ids = await self.package_repository.ids_by_names(set(requirements))

        errors: list[RequirementError] = []
        stored: dict[str, str | None] = {}
        for name, requirement in requirements.items():
            if (
                not is_valid_requirement(requirement)
                or len(requirement or "") > MAX_REQUIREMENT_LENGTH
            ):
                errors.append(InvalidRequirementError(name, requirement))
                continue

            if (dependency_id := package_ids.get(name)) is None:
                errors.append(UnknownPackageError(name))
                continue

            await self.requirement_repository.create(
                {
                    "release_id": release.id,
                    "dependency_id": dependency_id,
                    "requirement": requirement,
                }
            )
            stored[name] = requirement

        if errors:
            logger.info(
                "[RELEASE] Requirements of release %r are rejected: %r",
                release,
                [(error.dependency_name, error.message) for error in errors],
            )
            raise RequirementsError(errors)

        return stored
