"""Unit tests for error classification utilities."""

import pytest

from src.core.errors import (
    AssignmentNotFoundError,
    ChannelError,
    ConfigurationError,
    ConflictError,
    EntityNotFoundError,
    ErrorCode,
    InvalidTokenError,
    MissingReasonError,
    classify_error_with_response,
)


@pytest.mark.unit
class TestClassifyErrorWithResponse:
    """Tests for classify_error_with_response function."""

    @pytest.mark.parametrize(
        ("error", "status", "code"),
        [
            (InvalidTokenError(), 400, ErrorCode.ERR_INVALID_TOKEN),
            (InvalidTokenError.missing(), 400, ErrorCode.ERR_TOKEN_MISSING),
            (AssignmentNotFoundError(), 404, ErrorCode.ERR_ASSIGNMENT_NOT_FOUND),
            (MissingReasonError(), 400, ErrorCode.ERR_REASON_MISSING),
            (EntityNotFoundError("task", "9"), 404, ErrorCode.ERR_ENTITY_NOT_FOUND),
            (ChannelError("sms", "HTTP 500"), 502, ErrorCode.ERR_CHANNEL_FAILURE),
            (ConfigurationError("Unsupported channel: fax"), 500, ErrorCode.ERR_CONFIGURATION),
        ],
    )
    def test_known_errors_keep_their_status_and_code(self, error, status, code) -> None:
        status_code, body = classify_error_with_response(error)

        assert status_code == status
        assert body.error == code
        assert body.message == error.message

    def test_unknown_error_is_generic(self) -> None:
        status_code, body = classify_error_with_response(RuntimeError("sqlite3 internals"))

        assert status_code == 500
        assert body.error == ErrorCode.ERR_UNKNOWN
        assert "sqlite3" not in body.message


class TestConflictError:
    def test_already_accepted(self) -> None:
        error = ConflictError("accepted")

        assert error.code == ErrorCode.ERR_ALREADY_ACCEPTED
        assert error.message == "Cette tâche a déjà été acceptée. Vous ne pouvez plus la refuser."

    def test_already_rejected(self) -> None:
        error = ConflictError("rejected")

        assert error.code == ErrorCode.ERR_ALREADY_REJECTED
        assert "refusée" in error.message


def test_missing_token_does_not_change_class_code() -> None:
    InvalidTokenError.missing()

    assert InvalidTokenError().code == ErrorCode.ERR_INVALID_TOKEN


def test_channel_error_keeps_detail() -> None:
    error = ChannelError("email", "HTTP 401: Unauthorized")

    assert error.detail == "HTTP 401: Unauthorized"
    assert str(error) == "email delivery failed: HTTP 401: Unauthorized"
