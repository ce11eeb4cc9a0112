from http import HTTPStatus

from pkg_registry.exceptions import (
    EditWindowExpiredError,
    InvalidRequirementError,
    ReleaseNotFoundError,
    ReleaseValidationError,
    RequirementsError,
    UnknownPackageError,
)
from pkg_registry.models import DependencyErrorDetail, FieldError


class TestExceptions:
    def test_release_validation_error(self) -> None:
        exc = ReleaseValidationError([FieldError(field="version", message="can't be blank")])

        assert exc.message == "version: can't be blank"
        assert exc.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
        assert exc.payload() == {
            "error": "Release validation error",
            "errors": [{"field": "version", "message": "can't be blank"}],
        }

    def test_edit_window_expired(self) -> None:
        exc = EditWindowExpiredError("can only delete a release up to one hour after creation")

        assert exc.errors == [
            FieldError(
                field="created_at",
                message="can only delete a release up to one hour after creation",
            )
        ]
        assert exc.payload()["errors"][0]["field"] == "created_at"

    def test_requirement_errors(self) -> None:
        invalid = InvalidRequirementError("bar", "not-a-semver-req")
        unknown = UnknownPackageError("baz")

        assert invalid.message == "invalid requirement: 'not-a-semver-req'"
        assert invalid.requirement == "not-a-semver-req"
        assert unknown.message == "unknown package"
        assert unknown.detail == DependencyErrorDetail(
            dependency_name="baz", message="unknown package"
        )

    def test_requirements_error_payload(self) -> None:
        exc = RequirementsError([InvalidRequirementError("bar", None), UnknownPackageError("baz")])

        assert exc.payload() == {
            "error": "Release requirements error",
            "deps": [
                {"dependency_name": "bar", "message": "invalid requirement: None"},
                {"dependency_name": "baz", "message": "unknown package"},
            ],
        }

    def test_release_not_found(self) -> None:
        exc = ReleaseNotFoundError("foo", "1.0.0")

        assert exc.status_code == HTTPStatus.NOT_FOUND
        assert exc.payload() == {
            "error": "Release not found",
            "detail": "Release 'foo' '1.0.0' not found",
        }
