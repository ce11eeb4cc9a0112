"""
Version helpers for releases and their requirements.

Release versions are semantic-version strings (``MAJOR.MINOR.PATCH`` with
optional ``-PRE`` and ``+BUILD`` parts) which must also be accepted by
``packaging``, so ordering is delegated to ``packaging.version.Version``.

Requirements use the registry's grammar: clauses ``<operator> <version>``
(operators ``==``, ``!=``, ``>``, ``>=``, ``<``, ``<=``, ``~>``; a bare version
means ``==``) joined with ``and`` / ``or``, e.g. ``"~> 1.0"`` or
``">= 1.0.0 and < 2.0.0"``. Only ``~>`` accepts a short ``MAJOR.MINOR`` version.
"""

import logging
import re
from typing import Any, NamedTuple

from packaging.version import InvalidVersion, Version

__all__ = (
    "RequirementClause",
    "parse_version",
    "is_valid_version",
    "is_prerelease",
    "compare_versions",
    "parse_requirement",
    "is_valid_requirement",
)
logger = logging.getLogger(__name__)
SEMVER_PATTERN = re.compile(
    r"^(?P<core>(?:0|[1-9]\d*)\.(?:0|[1-9]\d*)\.(?:0|[1-9]\d*))"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)
SHORT_VERSION_PATTERN = re.compile(r"^(?:0|[1-9]\d*)\.(?:0|[1-9]\d*)$")
CLAUSE_PATTERN = re.compile(r"^(?P<operator>~>|>=|<=|==|!=|>|<)?\s*(?P<version>\S+)$")
CONJUNCTIONS = ("and", "or")


class RequirementClause(NamedTuple):
    operator: str
    version: Version


def parse_version(value: Any) -> Version | None:
    """Parses release's version string (returns None for invalid ones)

    >>> parse_version("1.2.3")
    <Version('1.2.3')>

    >>> parse_version("1.2") is None
    True

    """
    if not isinstance(value, str) or not SEMVER_PATTERN.match(value):
        return None

    try:
        return Version(value)
    except InvalidVersion:
        logger.debug("Version %r has semver shape but can't be parsed", value)
        return None


def is_valid_version(value: Any) -> bool:
    return parse_version(value) is not None


def is_prerelease(value: str) -> bool:
    """Detects pre-release versions like '1.0.0-rc1' or '1.0.0-dev'"""
    match = SEMVER_PATTERN.match(value)
    if match is None:
        return False

    if match.group("pre"):
        return True

    parsed = parse_version(value)
    return parsed is not None and parsed.is_prerelease


def compare_versions(left: str, right: str) -> int:
    """
    Compares two valid versions: -1 (left is lower), 0 (equal), 1 (left is greater)

    >>> compare_versions("2.0.0", "1.5.0")
    1

    """
    left_version, right_version = Version(left), Version(right)
    if left_version > right_version:
        return 1

    if left_version < right_version:
        return -1

    return 0


def _parse_clause(clause: str) -> RequirementClause | None:
    match = CLAUSE_PATTERN.match(clause)
    if match is None:
        return None

    operator, version = match.group("operator") or "==", match.group("version")
    if operator == "~>" and SHORT_VERSION_PATTERN.match(version):
        return RequirementClause(operator, Version(version))

    if (parsed := parse_version(version)) is None:
        return None

    return RequirementClause(operator, parsed)


def parse_requirement(value: Any) -> list[list[RequirementClause]] | None:
    """
    Parses requirement string to alternatives ('or') of clauses ('and').
    Returns None for invalid or blank requirements.

    >>> parse_requirement("~> 1.0 or >= 2.0.0 and < 3.0.0")  # doctest: +NORMALIZE_WHITESPACE
    [[RequirementClause(operator='~>', version=<Version('1.0')>)],
     [RequirementClause(operator='>=', version=<Version('2.0.0')>),
      RequirementClause(operator='<', version=<Version('3.0.0')>)]]

    """
    if not isinstance(value, str) or not value.strip():
        return None

    # ['~> 1.0', 'or', '>= 2.0.0', 'and', '< 3.0.0']
    parts = re.split(r"\s+(and|or)\s+", value.strip())
    alternatives: list[list[RequirementClause]] = [[]]
    for index, part in enumerate(parts):
        if index % 2:
            if part == "or":
                alternatives.append([])

            continue

        if part in CONJUNCTIONS or (clause := _parse_clause(part)) is None:
            return None

        alternatives[-1].append(clause)

    return alternatives


def is_valid_requirement(value: Any) -> bool:
    """
    Requirement is valid when it's absent (any version) or follows the requirement grammar

    >>> is_valid_requirement(None)
    True

    >>> is_valid_requirement("~> 1.0")
    True

    >>> is_valid_requirement("not-a-semver-req")
    False

    """
    return value is None or parse_requirement(value) is not None
