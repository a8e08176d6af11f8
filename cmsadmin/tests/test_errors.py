"""Tests for the error taxonomy."""

from __future__ import annotations

import httpx
import pydantic
import pytest

from cmsadmin.errors import (
    ConflictError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    UnauthorizedError,
    UnknownError,
    ValidationError,
    error_from_code,
    to_app_error,
    user_message,
)


def status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://example.com/api/query")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"status {status}", request=request, response=response)


def test_app_errors_pass_through():
    error = ConflictError("Slug taken")

    assert to_app_error(error) is error


@pytest.mark.parametrize(
    "status,expected",
    [(401, UnauthorizedError), (403, ForbiddenError), (404, NotFoundError), (500, UnknownError)],
)
def test_http_status_mapping(status, expected):
    assert isinstance(to_app_error(status_error(status)), expected)


def test_transport_failures_are_network_errors():
    request = httpx.Request("GET", "https://example.com")

    assert isinstance(to_app_error(httpx.ConnectError("refused", request=request)), NetworkError)
    assert isinstance(to_app_error(TimeoutError()), NetworkError)


def test_pydantic_errors_become_validation_errors():
    class Model(pydantic.BaseModel):
        title: str

    with pytest.raises(pydantic.ValidationError) as exc_info:
        Model()

    error = to_app_error(exc_info.value)
    assert isinstance(error, ValidationError)
    assert error.message == "Title is required"


def test_anything_else_is_unknown():
    error = to_app_error(RuntimeError("boom"))

    assert isinstance(error, UnknownError)
    assert error.message == "boom"
    assert to_app_error(RuntimeError()).message == "An unexpected error occurred"


def test_error_from_code():
    assert isinstance(error_from_code("CONFLICT", "taken"), ConflictError)
    assert isinstance(error_from_code("SOMETHING_NEW", "?"), UnknownError)
    assert isinstance(error_from_code(None, "?"), UnknownError)
    assert error_from_code("NOT_FOUND", "gone").message == "gone"


def test_user_messages():
    assert user_message(UnauthorizedError("x")) == "You are not authorized to perform this action."
    assert user_message(ForbiddenError("x")) == "Access forbidden."
    assert user_message(NotFoundError("x")) == "The requested resource was not found."
    assert user_message(NetworkError("x")) == "Network error. Please check your connection and try again."
    assert user_message(ValidationError("Title is required")) == "Title is required"
    assert user_message(ConflictError("")) == "Validation error occurred."
    assert user_message(UnknownError("")) == "An unexpected error occurred."
