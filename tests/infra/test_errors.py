"""Tests for the storage error taxonomy."""

import pytest

from clouddeck.infra.storage.errors import (
    AbortedTransferError,
    AuthorizationError,
    ErrorKind,
    NotConnectedError,
    NotFoundError,
    StorageError,
    TransientError,
    error_for,
    is_retryable,
)


@pytest.mark.parametrize(
    ("kind", "cls", "retryable"),
    [
        (ErrorKind.NOT_FOUND, NotFoundError, False),
        (ErrorKind.NO_SUCH_BUCKET, NotFoundError, False),
        (ErrorKind.FORBIDDEN, AuthorizationError, False),
        (ErrorKind.INVALID_CREDENTIALS, AuthorizationError, False),
        (ErrorKind.NETWORK, TransientError, True),
        (ErrorKind.REQUEST_TIMEOUT, TransientError, True),
        (ErrorKind.SERVER_ERROR, TransientError, True),
        (ErrorKind.INVALID_REQUEST, TransientError, True),
        (ErrorKind.UNKNOWN, StorageError, False),
    ],
)
def test_error_for(kind, cls, retryable):
    error = error_for(kind, "boom", http_status=500)

    assert type(error) is cls
    assert error.http_status == 500
    assert error.retryable is retryable
    assert is_retryable(error) is retryable


def test_plain_exceptions_are_not_retryable():
    assert not is_retryable(ValueError("boom"))


def test_not_connected_is_terminal():
    error = NotConnectedError("Please connect first.")

    assert not error.retryable
    assert error.user_message == "Please connect first."


def test_attempts_in_str_and_dict():
    error = TransientError("Failed to upload part 3", kind=ErrorKind.SERVER_ERROR)
    assert str(error) == "Failed to upload part 3"

    error.attempts = 4

    assert str(error) == "Failed to upload part 3 (after 4 attempt(s))"
    assert error.to_dict() == {
        "kind": "ServerError",
        "http_status": None,
        "message": "Failed to upload part 3",
        "attempts": 4,
    }


def test_aborted_transfer_keeps_part_kind():
    error = AbortedTransferError(
        "aborted", kind=ErrorKind.SERVER_ERROR, http_status=503, part_number=7
    )

    assert error.retryable
    assert error.part_number == 7
    assert error.user_message.startswith("Upload failed and was cleaned up.")
    assert "Storage service error" in error.user_message


def test_aborted_transfer_without_cleanup():
    error = AbortedTransferError(
        "aborted", kind=ErrorKind.NETWORK, part_number=2, cleaned_up=False
    )

    assert not error.user_message.startswith("Upload failed and was cleaned up.")
    assert "could not be removed" in error.user_message
    assert error.to_dict()["cleaned_up"] is False
    assert error.to_dict()["part_number"] == 2
