"""Database module for the application."""

from pkg_registry.db.models import BaseModel, Package, Release, Requirement
from pkg_registry.db.repositories import (
    PackageRepository,
    ReleaseRepository,
    RequirementRepository,
)
from pkg_registry.db.services import SASessionUOW
from pkg_registry.db.session import get_session_factory, initialize_database, close_database

__all__ = (
    # Models
    "BaseModel",
    "Package",
    "Release",
    "Requirement",
    # Repositories
    "PackageRepository",
    "ReleaseRepository",
    "RequirementRepository",
    # Services
    "SASessionUOW",
    # Session management
    "get_session_factory",
    "initialize_database",
    "close_database",
)
