"""Repositories: DB operations on packages, releases and requirements."""

import logging
from typing import Any, Collection, Generic, Mapping, Sequence, TypeAlias, TypeVar

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.roles import ColumnsClauseRole

from pkg_registry.db.models import BaseModel, Package, Release, Requirement
from pkg_registry.exceptions import InstanceLookupError

__all__ = (
    "BaseRepository",
    "PackageRepository",
    "ReleaseRepository",
    "RequirementRepository",
)
ModelT = TypeVar("ModelT", bound=BaseModel)
logger = logging.getLogger(__name__)
FilterT: TypeAlias = int | str | list[int] | None


class BaseRepository(Generic[ModelT]):
    """Common operations on the repository's model"""

    model: type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        self.session: AsyncSession = session

    async def get(self, instance_id: int) -> ModelT:
        """Same as first(), but the instance must exist"""
        if (instance := await self.first(instance_id)) is None:
            raise InstanceLookupError(f"{self.model.__name__} #{instance_id} not found")

        return instance

    async def first(self, instance_id: int) -> ModelT | None:
        return await self.session.scalar(self._select({"id": instance_id}))

    async def all(self, **filters: FilterT) -> list[ModelT]:
        """Selects instances by equality filters (and `ids` for ID IN (...))"""
        result = await self.session.scalars(self._select(filters))
        return list(result.all())

    async def create(self, value: dict[str, Any]) -> ModelT:
        """Adds new instance to the session (it is inserted on the next flush)"""
        logger.debug("[DB] Adding %s: %r", self.model.__name__, value)
        instance = self.model(**value)
        self.session.add(instance)
        return instance

    async def delete_by_ids(self, instance_ids: Sequence[int]) -> None:
        logger.debug("[DB] Deleting %s: ids=%r", self.model.__name__, instance_ids)
        await self.session.execute(delete(self.model).where(self.model.id.in_(instance_ids)))

    async def count(self, **filters: FilterT) -> int:
        statement = self._select(filters, func.count(self.model.id))
        return await self.session.scalar(statement) or 0

    def _select(self, filters: Mapping[str, FilterT], *columns: ColumnsClauseRole) -> Select[Any]:
        """SELECT of the model (or just given columns) filtered by provided values"""
        filters = dict(filters)
        ids = filters.pop("ids", None)
        statement = select(*columns) if columns else select(self.model)
        # explicit columns: filter_by() can't pick an entity from aggregate-only selects
        statement = statement.where(
            *(getattr(self.model, key) == value for key, value in filters.items())
        )
        if isinstance(ids, list):
            statement = statement.where(self.model.id.in_(ids))

        return statement


class PackageRepository(BaseRepository[Package]):
    """Package's repository."""

    model = Package

    async def get_by_name(self, name: str) -> Package | None:
        logger.debug("[DB] Getting package by name: %s", name)
        packages = await self.all(name=name)
        return packages[0] if packages else None

    async def ids_by_names(self, names: Collection[str]) -> dict[str, int]:
        """Resolves names of packages to their IDs (unknown names are absent in result)"""
        if not names:
            return {}

        logger.debug("[DB] Resolving %i package names: %r", len(names), sorted(names))
        statement = select(self.model.name, self.model.id).where(self.model.name.in_(names))
        result = await self.session.execute(statement)
        return {name: package_id for name, package_id in result.all()}


class ReleaseRepository(BaseRepository[Release]):
    """Release's repository."""

    model = Release

    async def first_by_version(self, package_id: int, version: str) -> Release | None:
        logger.debug("[DB] Getting release: package_id=%i | version=%s", package_id, version)
        statement = self._select({"package_id": package_id, "version": version}).limit(1)
        return await self.session.scalar(statement)

    async def exists_version(self, package_id: int, version: str) -> bool:
        found = await self.count(package_id=package_id, version=version)
        return found > 0

    async def all_for_package(self, package_id: int) -> list[Release]:
        """Package's releases in storage order (callers sort them by version)"""
        logger.debug("[DB] Getting releases for package_id=%i", package_id)
        return await self.all(package_id=package_id)


class RequirementRepository(BaseRepository[Requirement]):
    """Requirement's repository."""

    model = Requirement

    async def delete_by_release(self, release_id: int) -> None:
        logger.debug("[DB] Deleting requirements for release_id=%i", release_id)
        await self.session.execute(delete(self.model).where(self.model.release_id == release_id))

    async def named_for_release(self, release_id: int) -> dict[str, str | None]:
        """Release's requirements as mapping {dependency name: requirement}"""
        statement = (
            select(Package.name, self.model.requirement)
            .join(Package, self.model.dependency_id == Package.id)
            .where(self.model.release_id == release_id)
            .order_by(self.model.id)
        )
        result = await self.session.execute(statement)
        return {name: requirement for name, requirement in result.all()}
