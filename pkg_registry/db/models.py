from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column

from pkg_registry.constants import (
    MAX_REQUIREMENT_LENGTH,
    MAX_VERSION_LENGTH,
    UQ_RELEASE_VERSION,
)
from pkg_registry.utils import utcnow


class BaseModel(AsyncAttrs, DeclarativeBase):
    id: Mapped[int]


class Package(BaseModel):
    """Registered package (releases and requirements refer to it)"""

    __tablename__ = "packages"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(sa.String(128), unique=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    def __str__(self) -> str:
        return f"Package '{self.name}'"

    def __repr__(self) -> str:
        return f"Package(id={self.id!r}, name={self.name!r})"


class Release(BaseModel):
    """One version of the package (owns a set of requirements)"""

    __tablename__ = "releases"
    __table_args__ = (
        sa.UniqueConstraint("package_id", "version", name=UQ_RELEASE_VERSION),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    package_id: Mapped[int] = mapped_column(sa.ForeignKey("packages.id"), index=True)
    version: Mapped[str] = mapped_column(sa.String(MAX_VERSION_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    # relations
    package: Mapped[Package] = relationship(Package, lazy="raise")

    def __str__(self) -> str:
        return f"Release '{self.version}'"

    def __repr__(self) -> str:
        return (
            f"Release("
            f"id={self.id!r}, "
            f"package_id={self.package_id!r}, "
            f"version={self.version!r}, "
            f"created_at={self.created_at}"
            f")"
        )


class Requirement(BaseModel):
    """Dependency of the release: another package and an optional version requirement"""

    __tablename__ = "requirements"

    id: Mapped[int] = mapped_column(primary_key=True)
    release_id: Mapped[int] = mapped_column(
        sa.ForeignKey("releases.id", ondelete="CASCADE"), index=True
    )
    dependency_id: Mapped[int] = mapped_column(sa.ForeignKey("packages.id"))
    requirement: Mapped[str | None] = mapped_column(
        sa.String(MAX_REQUIREMENT_LENGTH), nullable=True
    )

    # relations
    dependency: Mapped[Package] = relationship(Package, lazy="raise")

    def __repr__(self) -> str:
        return (
            f"Requirement("
            f"release_id={self.release_id!r}, "
            f"dependency_id={self.dependency_id!r}, "
            f"requirement={self.requirement!r}"
            f")"
        )
