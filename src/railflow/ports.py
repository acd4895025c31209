"""
Ports: Protocol interfaces for the collaborators an operation talks to.

The flow engine never validates, persists or opens transactions itself: it
calls into these narrow contracts, and adapters satisfy them structurally.

  Validator          validate(raw_input, **options) → Result
  Repository         find(key, field) → value | None
  TransactionRunner  execute(computation) → Result, plus commit/rollback hooks
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, TypeVar, runtime_checkable

from railflow.result import Result

T = TypeVar("T")


@runtime_checkable
class Validator(Protocol):
    """
    Port: check raw input against a contract.

    Returns Success(params) with the validated values, or a "validation"
    Failure whose details map each field to its list of complaints.
    """

    def validate(self, raw_input: Any, **options: Any) -> Result[Any]: ...


@runtime_checkable
class Repository(Protocol):
    """Port: look a record up by the value of one of its fields; None when absent."""

    def find(self, key: Any, field: str = "id") -> Any: ...


@runtime_checkable
class TransactionRunner(Protocol):
    """
    Port: run a Result-returning computation inside a transaction.

    The transaction must roll back iff the computation returns a Failure
    (or raises). Hooks registered while it is open run once the outermost
    transaction commits or rolls back.
    """

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]: ...

    def after_commit(self, callback: Callable[[], Any]) -> None: ...

    def after_rollback(self, callback: Callable[[], Any]) -> None: ...
