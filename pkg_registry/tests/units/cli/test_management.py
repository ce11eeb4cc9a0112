import datetime
from typing import Any, Callable, Generator
from unittest.mock import AsyncMock, MagicMock, patch

import click
import pytest
from click.testing import CliRunner, Result

from pkg_registry.cli.management import cli, parse_requirements
from pkg_registry.db import Package
from pkg_registry.exceptions import (
    EditWindowExpiredError,
    ReleaseNotFoundError,
    RequirementsError,
    UnknownPackageError,
)
from pkg_registry.models import ReleaseDetails

NOW = datetime.datetime(2026, 1, 15, 12, 0, 0)


def make_release(version: str = "1.0.0", **requirements: str | None) -> ReleaseDetails:
    return ReleaseDetails(
        id=1,
        package_id=1,
        package_name="foo",
        version=version,
        created_at=NOW,
        updated_at=NOW,
        requirements=requirements,
    )


@pytest.fixture(autouse=True)
def mock_db_operations() -> Generator[tuple[MagicMock, MagicMock], Any, None]:
    with (
        patch("pkg_registry.cli.management.initialize_database") as mock_init,
        patch("pkg_registry.cli.management.close_database") as mock_close,
    ):
        yield mock_init, mock_close


@pytest.fixture(autouse=True)
def mock_logging_config() -> Generator[MagicMock, Any, None]:
    with patch("pkg_registry.cli.management.logging.config.dictConfig") as mock_dict_config:
        yield mock_dict_config


@pytest.fixture
def mock_uow() -> Generator[MagicMock, Any, None]:
    with patch("pkg_registry.cli.management.SASessionUOW") as mock_uow_class:
        mock_uow = MagicMock()
        mock_uow_class.return_value.__aenter__.return_value = mock_uow
        mock_uow_class.return_value.__aexit__.return_value = None
        yield mock_uow


@pytest.fixture
def mock_package() -> MagicMock:
    package = MagicMock(spec=Package)
    package.id = 1
    package.name = "foo"
    return package


@pytest.fixture
def mock_get_package_by_name(mock_package: MagicMock) -> Generator[AsyncMock, Any, None]:
    with patch("pkg_registry.cli.management.PackageRepository") as mock_repo_class:
        mock_repo_class.return_value.get_by_name = AsyncMock(return_value=mock_package)
        yield mock_repo_class.return_value.get_by_name


@pytest.fixture
def mock_service() -> Generator[MagicMock, Any, None]:
    with patch("pkg_registry.cli.management.ReleaseService") as mock_service_class:
        mock_service = MagicMock()
        for method in ("get", "all", "create", "update", "delete", "count"):
            setattr(mock_service, method, AsyncMock())

        mock_service_class.return_value = mock_service
        yield mock_service


class CliRunnerTypeHinted(CliRunner):

    def invoke(self, cli: Callable[..., Any], *args: Any, **kwargs: Any) -> Result:
        result = super().invoke(cli, *args, **kwargs)  # type: ignore
        return result


@pytest.fixture
def cli_runner() -> CliRunnerTypeHinted:
    return CliRunnerTypeHinted()


class TestParseRequirements:

    def test_parse(self) -> None:
        assert parse_requirements(("bar:>= 1.0.0", "baz", "qux:==1.0.0,<2")) == {
            "bar": ">= 1.0.0",
            "baz": None,
            "qux": "==1.0.0,<2",
        }

    def test_parse__empty(self) -> None:
        assert parse_requirements(()) == {}

    def test_parse__empty_requirement_is_kept(self) -> None:
        assert parse_requirements(("bar:",)) == {"bar": ""}

    @pytest.mark.parametrize("value", [":>= 1.0.0", "  :==1.0.0"])
    def test_parse__missing_name(self, value: str) -> None:
        with pytest.raises(click.BadParameter):
            parse_requirements((value,))


@pytest.mark.usefixtures("mock_uow", "mock_get_package_by_name")
class TestReleaseCommands:

    def test_show_release(
        self, cli_runner: CliRunnerTypeHinted, mock_service: MagicMock, mock_package: MagicMock
    ) -> None:
        mock_service.get.return_value = make_release(bar=">= 1.0.0", baz=None)

        result = cli_runner.invoke(cli, ["show-release", "foo", "1.0.0"])

        assert result.exit_code == 0, result.output
        assert "foo 1.0.0 (created: 2026-01-15T12:00:00" in result.output
        assert "  - bar >= 1.0.0" in result.output
        assert "  - baz (any version)" in result.output
        mock_service.get.assert_awaited_once_with(mock_package, "1.0.0")

    def test_show_release__not_found(
        self, cli_runner: CliRunnerTypeHinted, mock_service: MagicMock
    ) -> None:
        mock_service.get.side_effect = ReleaseNotFoundError("foo", "9.9.9")

        result = cli_runner.invoke(cli, ["show-release", "foo", "9.9.9"])

        assert result.exit_code == 1
        assert "Release 'foo' '9.9.9' not found" in result.output

    def test_show_release__unknown_package(
        self,
        cli_runner: CliRunnerTypeHinted,
        mock_service: MagicMock,
        mock_get_package_by_name: AsyncMock,
    ) -> None:
        mock_get_package_by_name.return_value = None

        result = cli_runner.invoke(cli, ["show-release", "missing", "1.0.0"])

        assert result.exit_code == 2
        assert "Package 'missing' not found" in result.output
        mock_service.get.assert_not_awaited()

    def test_list_releases(
        self, cli_runner: CliRunnerTypeHinted, mock_service: MagicMock
    ) -> None:
        mock_service.all.return_value = [make_release("2.0.0"), make_release("1.5.0")]

        result = cli_runner.invoke(cli, ["list-releases", "foo"])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0].startswith("foo 2.0.0 ")
        assert lines[1].startswith("foo 1.5.0 ")

    def test_list_releases__empty(
        self, cli_runner: CliRunnerTypeHinted, mock_service: MagicMock
    ) -> None:
        mock_service.all.return_value = []

        result = cli_runner.invoke(cli, ["list-releases", "foo"])

        assert result.exit_code == 0, result.output
        assert "There are no releases for foo." in result.output

    def test_create_release(
        self,
        cli_runner: CliRunnerTypeHinted,
        mock_service: MagicMock,
        mock_uow: MagicMock,
        mock_package: MagicMock,
    ) -> None:
        mock_service.create.return_value = make_release(bar=">= 1.0.0")

        result = cli_runner.invoke(
            cli, ["create-release", "foo", "1.0.0", "-r", "bar:>= 1.0.0"]
        )

        assert result.exit_code == 0, result.output
        assert "Release created:" in result.output
        assert "  - bar >= 1.0.0" in result.output
        mock_service.create.assert_awaited_once_with(mock_package, "1.0.0", {"bar": ">= 1.0.0"})
        mock_uow.mark_for_commit.assert_called_once()

    def test_create_release__requirements_error(
        self,
        cli_runner: CliRunnerTypeHinted,
        mock_service: MagicMock,
        mock_uow: MagicMock,
    ) -> None:
        mock_service.create.side_effect = RequirementsError([UnknownPackageError("missing")])

        result = cli_runner.invoke(cli, ["create-release", "foo", "1.0.0", "-r", "missing"])

        assert result.exit_code == 1
        assert "missing: unknown package" in result.output
        assert "'dependency_name': 'missing'" in result.output
        mock_uow.mark_for_commit.assert_not_called()

    def test_update_release(
        self,
        cli_runner: CliRunnerTypeHinted,
        mock_service: MagicMock,
        mock_uow: MagicMock,
    ) -> None:
        release = make_release(bar=">= 1.0.0")
        mock_service.get.return_value = release
        mock_service.update.return_value = make_release(baz="~> 2.1")

        result = cli_runner.invoke(
            cli, ["update-release", "foo", "1.0.0", "--requires", "baz:~> 2.1"]
        )

        assert result.exit_code == 0, result.output
        assert "Release updated:" in result.output
        assert "  - baz ~> 2.1" in result.output
        mock_service.update.assert_awaited_once_with(release, {"baz": "~> 2.1"})
        mock_uow.mark_for_commit.assert_called_once()

    def test_update_release__window_expired(
        self, cli_runner: CliRunnerTypeHinted, mock_service: MagicMock
    ) -> None:
        mock_service.get.return_value = make_release()
        mock_service.update.side_effect = EditWindowExpiredError(
            "can only modify a release up to one hour after creation"
        )

        result = cli_runner.invoke(cli, ["update-release", "foo", "1.0.0"])

        assert result.exit_code == 1
        assert "can only modify a release up to one hour after creation" in result.output

    def test_delete_release(
        self,
        cli_runner: CliRunnerTypeHinted,
        mock_service: MagicMock,
        mock_uow: MagicMock,
    ) -> None:
        release = make_release()
        mock_service.get.return_value = release

        result = cli_runner.invoke(cli, ["delete-release", "foo", "1.0.0"])

        assert result.exit_code == 0, result.output
        assert "Release foo 1.0.0 deleted." in result.output
        mock_service.delete.assert_awaited_once_with(release)
        mock_uow.mark_for_commit.assert_called_once()

    def test_count_releases(
        self, cli_runner: CliRunnerTypeHinted, mock_service: MagicMock
    ) -> None:
        mock_service.count.return_value = 3

        result = cli_runner.invoke(cli, ["count-releases"])

        assert result.exit_code == 0, result.output
        assert "Total releases: 3" in result.output


class TestCliGroup:

    def test_logging_is_configured(
        self,
        cli_runner: CliRunnerTypeHinted,
        mock_uow: MagicMock,
        mock_service: MagicMock,
        mock_logging_config: MagicMock,
    ) -> None:
        mock_service.count.return_value = 0

        result = cli_runner.invoke(cli, ["count-releases"])

        assert result.exit_code == 0, result.output
        (config,), _ = mock_logging_config.call_args
        assert config["loggers"]["pkg_registry"]["level"] == "DEBUG"

    def test_invalid_settings(self, cli_runner: CliRunnerTypeHinted) -> None:
        with patch.dict("os.environ", {"LOG_LEVEL": "VERBOSE"}):
            result = cli_runner.invoke(cli, ["count-releases"])

        assert result.exit_code == 1
        assert "Unable to get settings from environment" in result.output


class TestDBConnection:

    def test_database_is_closed_after_error(
        self,
        cli_runner: CliRunnerTypeHinted,
        mock_uow: MagicMock,
        mock_service: MagicMock,
        mock_db_operations: tuple[MagicMock, MagicMock],
    ) -> None:
        mock_service.count.side_effect = RuntimeError("connection lost")

        result = cli_runner.invoke(cli, ["count-releases"])

        assert result.exit_code == 1
        assert isinstance(result.exception, RuntimeError)
        mock_init, mock_close = mock_db_operations
        mock_init.assert_awaited_once()
        mock_close.assert_awaited_once()
