"""
Test assertions for results, operations and contracts.

Usage in tests:
    from railflow.assertions import ContractAssertions, OperationAssertions, ResultAssertions

    def test_create_user():
        user = ResultAssertions.assert_success(CreateUser.call(ctx, params))
        assert user.name == "Paul Smith"

    def test_rejects_strangers():
        OperationAssertions.assert_fails_on(operation, params, kind="forbidden")

    def test_form():
        ContractAssertions.assert_requires_fields(UserForm, "name", "email")
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel

from railflow.error import normalize_kind
from railflow.result import Result

T = TypeVar("T")

_UNSET: Any = object()


class ResultAssertions:
    """Expressive test assertions for Result values."""

    @staticmethod
    def assert_success(result: Result[T], message: str = "") -> T:
        """
        Assert the Result is a Success and return the value.

            value = ResultAssertions.assert_success(result)
        """
        context = f" — {message}" if message else ""
        assert result.is_success(), f"Expected Success but got Failure({result.error()!r}){context}"
        return result.value()

    @staticmethod
    def assert_failure(result: Result[T], kind: Any = None, message: str = "") -> Any:
        """
        Assert the Result is a Failure, optionally checking the error kind.

            error = ResultAssertions.assert_failure(result, "validation")
        """
        context = f" — {message}" if message else ""
        assert result.is_failure(), f"Expected Failure but got Success({result.value()!r}){context}"
        error = result.error()
        if kind is not None:
            expected = normalize_kind(kind)
            actual = getattr(error, "kind", error)
            assert actual == expected, (
                f"Expected error kind {expected!r} but got {actual!r}: {error!r}{context}"
            )
        return error

    @staticmethod
    def assert_failure_message_contains(result: Result[T], substring: str) -> None:
        """Assert that the failure message contains the given substring."""
        error = ResultAssertions.assert_failure(result)
        assert substring.lower() in error.message.lower(), (
            f"Expected failure message to contain {substring!r} "
            f"but message was: {error.message!r}"
        )

    @staticmethod
    def assert_failure_message_equals(result: Result[T], expected_message: str) -> None:
        """Assert that the failure message exactly equals the expected message."""
        error = ResultAssertions.assert_failure(result)
        assert error.message == expected_message, (
            f"Expected failure message {expected_message!r} "
            f"but got {error.message!r}"
        )

    @staticmethod
    def assert_success_value(result: Result[T], expected_value: Any) -> None:
        """Assert the Result is a Success with the specific value."""
        value = ResultAssertions.assert_success(result)
        assert value == expected_value, (
            f"Expected success value {expected_value!r} but got {value!r}"
        )


class OperationAssertions:
    """Call an operation with an input and assert on the outcome."""

    @staticmethod
    def assert_fails_on(
        operation: Any,
        input: Any,
        kind: Any = None,
        message: Any = _UNSET,
        details: Any = _UNSET,
    ) -> Any:
        """
        Assert operation.call(input) fails, optionally checking the Error parts.

        All mismatches are reported together.
        """
        result = operation.call(input)
        assert result.is_failure(), "Expected operation to fail but it didn't"
        error = result.error()

        problems = []
        if kind is not None and error.kind != normalize_kind(kind):
            problems.append(f"have kind {normalize_kind(kind)!r} but instead was {error.kind!r}")
        if message is not _UNSET and error.message != message:
            problems.append(f"have message {message!r} but instead got {error.message!r}")
        if details is not _UNSET and error.details != details:
            problems.append(f"have details {details!r} but instead got {error.details!r}")
        assert not problems, "Expected failed operation to " + "; and ".join(problems)
        return error

    @staticmethod
    def assert_succeeds_on(operation: Any, input: Any, value: Any = _UNSET) -> Any:
        """Assert operation.call(input) succeeds, optionally with the given value."""
        result = operation.call(input)
        assert result.is_success(), f"Expected operation to succeed but it failed with {result.error()!r}"
        if value is not _UNSET:
            assert result.value() == value, (
                f"Expected operation to return {value!r} but got {result.value()!r}"
            )
        return result.value()


class ContractAssertions:
    """Assertions on pydantic contracts used with the Validation capability."""

    @staticmethod
    def assert_requires_fields(model: type[BaseModel], *fields: str) -> None:
        """Assert each field is declared on the model and required."""
        missing = [f for f in fields if f not in model.model_fields]
        assert not missing, f"Expected {model.__name__} to define {', '.join(missing)}"
        optional = [f for f in fields if not model.model_fields[f].is_required()]
        assert not optional, f"Expected {model.__name__} to require {', '.join(optional)}"

    @staticmethod
    def assert_accepts_optional_fields(model: type[BaseModel], *fields: str) -> None:
        """Assert each field is declared on the model and not required."""
        missing = [f for f in fields if f not in model.model_fields]
        assert not missing, f"Expected {model.__name__} to define {', '.join(missing)}"
        required = [f for f in fields if model.model_fields[f].is_required()]
        assert not required, f"Expected {model.__name__} to accept {', '.join(required)} as optional"
