"""
CLI for some management operations on releases
"""

import asyncio
import logging.config
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, TypeVar

import click

from pkg_registry.db import (
    initialize_database,
    close_database,
    SASessionUOW,
    Package,
    PackageRepository,
)
from pkg_registry.exceptions import AppSettingsError, BaseApplicationError
from pkg_registry.models import ReleaseDetails
from pkg_registry.services import ReleaseService
from pkg_registry.settings import get_app_settings

logger = logging.getLogger(__name__)
T = TypeVar("T")


class CommandError(click.ClickException):
    """Failed release operation (printed to stderr with its payload)"""

    def __init__(self, exc: BaseApplicationError) -> None:
        super().__init__(exc.message)
        self.payload = exc.payload()

    def format_message(self) -> str:
        return f"{self.message} {self.payload!r}"


@asynccontextmanager
async def db_connection() -> AsyncGenerator[SASessionUOW, Any]:
    """Care about initialize and finish DB connection"""
    await initialize_database()
    try:
        async with SASessionUOW() as uow:
            yield uow
    finally:
        await close_database()


async def find_package(uow: SASessionUOW, name: str) -> Package:
    package = await PackageRepository(session=uow.session).get_by_name(name)
    if package is None:
        raise click.BadParameter(f"Package {name!r} not found", param_hint="PACKAGE")

    return package


def parse_requirements(values: tuple[str, ...]) -> dict[str, str | None]:
    """
    Converts CLI requirements to the mapping: 'name:req' -> {name: req}, 'name' -> {name: None}

    >>> parse_requirements(("bar:>= 1.0.0", "baz"))
    {'bar': '>= 1.0.0', 'baz': None}

    """
    requirements: dict[str, str | None] = {}
    for value in values:
        name, sep, requirement = value.partition(":")
        if not name.strip():
            raise click.BadParameter(f"Missing dependency name in {value!r}", param_hint="-r")

        requirements[name.strip()] = requirement.strip() if sep else None

    return requirements


def run_operation(operation: Callable[[ReleaseService, SASessionUOW], Awaitable[T]]) -> T:
    """Runs operation with release's service (within a DB session)"""

    async def runner() -> T:
        async with db_connection() as uow:
            return await operation(ReleaseService(session=uow.session), uow)

    try:
        return asyncio.run(runner())
    except BaseApplicationError as exc:
        logger.log(exc.log_level, "%s: %s", exc.log_message, exc.message)
        raise CommandError(exc) from exc


def echo_release(release: ReleaseDetails, with_requirements: bool = True) -> None:
    click.echo(
        f"{release.package_name} {release.version} "
        f"(created: {release.created_at.isoformat()}, updated: {release.updated_at.isoformat()})"
    )
    if not with_requirements:
        return

    for name, requirement in release.requirements.items():
        click.echo(f"  - {name} {requirement or '(any version)'}")


@click.group("pkg-registry", help="Manage releases of registered packages.")
@click.help_option("--help", help="Show this help message")
def cli() -> None:
    try:
        settings = get_app_settings()
    except AppSettingsError as exc:
        message = f"Unable to get settings from environment: {exc.message}"
        raise click.ClickException(message) from exc

    logging.config.dictConfig(settings.log.dict_config_any)
    logging.captureWarnings(capture=True)


@cli.command("show-release", help="Show release with its requirements.")
@click.argument("package_name", metavar="PACKAGE")
@click.argument("version")
def show_release(package_name: str, version: str) -> None:
    async def operation(service: ReleaseService, uow: SASessionUOW) -> ReleaseDetails:
        return await service.get(await find_package(uow, package_name), version)

    echo_release(run_operation(operation))


@cli.command("list-releases", help="List package's releases (the newest version first).")
@click.argument("package_name", metavar="PACKAGE")
def list_releases(package_name: str) -> None:
    async def operation(service: ReleaseService, uow: SASessionUOW) -> list[ReleaseDetails]:
        return await service.all(await find_package(uow, package_name))

    releases = run_operation(operation)
    if not releases:
        click.echo(f"There are no releases for {package_name}.")

    for release in releases:
        echo_release(release, with_requirements=False)


@cli.command("create-release", help="Create a new release of the package.")
@click.argument("package_name", metavar="PACKAGE")
@click.argument("version")
@click.option(
    "-r",
    "--requires",
    "requires",
    multiple=True,
    help="Requirement as 'name:requirement', e.g. 'bar:~> 1.0' (just 'name' for any version).",
)
def create_release(package_name: str, version: str, requires: tuple[str, ...]) -> None:
    requirements = parse_requirements(requires)

    async def operation(service: ReleaseService, uow: SASessionUOW) -> ReleaseDetails:
        package = await find_package(uow, package_name)
        release = await service.create(package, version, requirements)
        uow.mark_for_commit()
        return release

    release = run_operation(operation)
    click.echo("Release created:")
    echo_release(release)


@cli.command("update-release", help="Replace requirements of the release.")
@click.argument("package_name", metavar="PACKAGE")
@click.argument("version")
@click.option(
    "-r",
    "--requires",
    "requires",
    multiple=True,
    help="Requirement as 'name:requirement', e.g. 'bar:~> 1.0' (just 'name' for any version).",
)
def update_release(package_name: str, version: str, requires: tuple[str, ...]) -> None:
    requirements = parse_requirements(requires)

    async def operation(service: ReleaseService, uow: SASessionUOW) -> ReleaseDetails:
        release = await service.get(await find_package(uow, package_name), version)
        release = await service.update(release, requirements)
        uow.mark_for_commit()
        return release

    release = run_operation(operation)
    click.echo("Release updated:")
    echo_release(release)


@cli.command("delete-release", help="Delete the release with its requirements.")
@click.argument("package_name", metavar="PACKAGE")
@click.argument("version")
def delete_release(package_name: str, version: str) -> None:
    async def operation(service: ReleaseService, uow: SASessionUOW) -> None:
        release = await service.get(await find_package(uow, package_name), version)
        await service.delete(release)
        uow.mark_for_commit()

    run_operation(operation)
    click.echo(f"Release {package_name} {version} deleted.")


@cli.command("count-releases", help="Show total count of releases.")
def count_releases() -> None:
    async def operation(service: ReleaseService, uow: SASessionUOW) -> int:
        return await service.count()

    click.echo(f"Total releases: {run_operation(operation)}")


if __name__ == "__main__":
    cli()
