from pkg_registry.services.releases import ReleaseService
from pkg_registry.services.requirements import RequirementResolver
from pkg_registry.services.validation import ReleaseValidator

__all__ = (
    "ReleaseService",
    "RequirementResolver",
    "ReleaseValidator",
)
