import pytest

from client.errors import (
    CancelledError,
    NetworkError,
    ServerError,
    TransferTimeoutError,
    ValidationError,
    describe_failure,
    is_retryable,
)


@pytest.mark.parametrize(
    "failure, expected",
    [
        (NetworkError("reset"), True),
        (TransferTimeoutError("slow"), True),
        (ServerError(502), True),
        (ServerError(500, {"error": "Failed to upload file to storage"}), True),
        (ServerError(500, {"error": "Failed to create paper record in database", "fileUrl": "u"}), False),
        (ServerError(400), False),
        (ServerError(413), False),
        (CancelledError(), False),
        (ValidationError("Please fill all required fields"), False),
    ],
)
def test_is_retryable(failure, expected):
    assert is_retryable(failure) is expected


@pytest.mark.parametrize(
    "body, status, fragment",
    [
        ({"error": "Storage error", "details": "new row violates row-level security policy"}, 500, "permission"),
        ({"error": "Storage error", "details": "bucket not found"}, 500, "storage bucket"),
        ({"error": "Failed to upload file to storage"}, 500, "couldn't be saved"),
        ({"error": "Failed to create paper record in database"}, 500, "Database error"),
        ({"error": "File too large"}, 413, "too large for the server"),
        ({}, 504, "took too long to respond"),
    ],
)
def test_describe_server_failures(body, status, fragment):
    assert fragment in describe_failure(ServerError(status, body))


def test_describe_transport_failures():
    assert describe_failure(CancelledError()) == "File upload was cancelled"
    assert "timed out" in describe_failure(TransferTimeoutError("x"))
    assert "internet connection" in describe_failure(NetworkError("x"))
    assert describe_failure(ValidationError("Please select a subcategory")) == "Please select a subcategory"


def test_server_error_defaults():
    error = ServerError(500)

    assert error.error == "Failed to upload paper"
    assert error.file_url is None
    assert str(error) == "500: Failed to upload paper"
