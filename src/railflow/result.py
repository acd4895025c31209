"""
Result monad: the track every step of a flow runs on.

A Result[T] is either Success(value: T) or Failure(error). Steps return plain
values, a State or a Result; the DSL lifts plain values with Result.result()
and short-circuits everything after the first Failure.

    ┌───────────┐     then      ┌───────────┐     then      ┌──────────┐
    │ validate  │──Success──────│ authorize │──Success──────│  create  │──→ Result[T]
    │           │               │           │               │          │
    └─────┬─────┘               └─────┬─────┘               └─────┬────┘
          │ Failure                   │ Failure                   │ Failure
          └───────────────────────────┴───────────────────────────┴──→ Result[T]

then() vs tee():
  - then(fn) feeds the success value to fn and continues with fn's (lifted) result
  - tee(fn) runs fn for its side effects and keeps the original Success,
    unless fn failed, in which case that Failure continues down the track
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")


class Result(Generic[T]):
    """
    Railway-Oriented Programming Result monad.

    Two possible states:
      - Success(value: T): the happy path
      - Failure(error): the error track, usually carrying an Error

    Usage:
        >>> Result.success(21).then(lambda x: x * 2)
        Success(42)

        >>> Result.success("VALUE").tee(lambda _: Result.success("OTHER"))
        Success('VALUE')
    """

    # ──────────────────────── Introspection ────────────────────────

    def is_success(self) -> bool:
        """Check if this Result is a Success."""
        return isinstance(self, Success)

    def is_failure(self) -> bool:
        """Check if this Result is a Failure."""
        return isinstance(self, Failure)

    def value(self) -> T:
        """
        Extract the success value. Raises ValueError if called on a Failure.

        Prefer .either() or match/case for safe access.
        """
        match self:
            case Success(v):
                return v
            case Failure(err):
                raise ValueError(f"Cannot get value from a Failure: {err!r}")
        raise TypeError("unreachable")  # pragma: no cover

    def error(self) -> Any:
        """
        Extract the failure payload. Raises ValueError if called on a Success.

        Prefer .either() or match/case for safe access.
        """
        match self:
            case Failure(err):
                return err
            case Success(v):
                raise ValueError(f"Cannot get error from a Success: {v!r}")
        raise TypeError("unreachable")  # pragma: no cover

    # ──────────────────────── Core Transformations ────────────────────────

    def then(self, fn: Callable[[T], Any]) -> Result[Any]:
        """
        Chain the next step. Short-circuits on failure.

        The return value of fn is lifted with Result.result(), so fn may
        return either a plain value or a Result.

            Result.success(5).then(lambda x: x + 1)               # → Success(6)
            Result.success(5).then(lambda x: Result.failure(e))   # → Failure(e)
            Result.failure(e).then(fn)                            # → Failure(e), fn not called
        """
        match self:
            case Success(v):
                return Result.result(fn(v))
            case _:
                return self

    flat_map = then

    def tee(self, fn: Callable[[T], Any]) -> Result[T]:
        """
        Run fn for its side effects, keeping this Success unless fn fails.

            Result.success("VALUE").tee(lambda _: "OTHER")            # → Success("VALUE")
            Result.success("VALUE").tee(lambda _: Result.failure(e))  # → Failure(e)
        """
        if self.is_failure():
            return self
        follow = self.then(fn)
        return follow if follow.is_failure() else self

    def either(
        self,
        on_success: Callable[[T], R],
        on_failure: Callable[[Any], R],
    ) -> R:
        """
        Apply one of two functions depending on the state.

            result.either(
                on_success=lambda user: f"Hello {user.name}",
                on_failure=lambda err: f"Error: {err.message}",
            )
        """
        match self:
            case Success(v):
                return on_success(v)
            case Failure(err):
                return on_failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        """
        Transform the success value. Short-circuits on failure.

        Unlike then(), the mapped value is always wrapped, even a Result.
        """
        match self:
            case Success(v):
                return Success(mapper(v))
            case _:
                return self

    def map_failure(self, mapper: Callable[[Any], Any]) -> Result[T]:
        """Transform the failure payload. Passes through success unchanged."""
        match self:
            case Failure(err):
                return Failure(mapper(err))
            case _:
                return self

    # ──────────────────────── Side Effects ────────────────────────

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        """Execute a side effect on the success value without altering the Result."""
        match self:
            case Success(v):
                action(v)
        return self

    def peek_failure(self, action: Callable[[Any], Any]) -> Result[T]:
        """Execute a side effect on failure without altering the Result."""
        match self:
            case Failure(err):
                action(err)
        return self

    # ──────────────────────── Recovery ────────────────────────

    def recover(self, recovery_fn: Callable[[Any], T]) -> Result[T]:
        """Recover from failure by producing a success value."""
        match self:
            case Failure(err):
                return Success(recovery_fn(err))
            case _:
                return self

    def get_or_else(self, default: T) -> T:
        """Extract value or return a default on failure."""
        match self:
            case Success(v):
                return v
            case _:
                return default

    # ──────────────────────── Static Factories ────────────────────────

    @staticmethod
    def success(value: T) -> Result[T]:
        """Create a successful Result wrapping the given value."""
        return Success(value)

    @staticmethod
    def failure(error: Any) -> Result[Any]:
        """Create a failed Result carrying the given error."""
        return Failure(error)

    @staticmethod
    def result(obj: Any) -> Result[Any]:
        """
        Normalize any step output into a Result.

        Returns obj unchanged when it is already a Result, else Success(obj).
        """
        return obj if isinstance(obj, Result) else Success(obj)

    @staticmethod
    def from_optional(value: Optional[T], error: Any) -> Result[T]:
        """Success(value) unless value is None, in which case Failure(error)."""
        if value is not None:
            return Success(value)
        return Failure(error)

    @staticmethod
    def all_of(results: List[Result[T]]) -> Result[List[T]]:
        """
        Collect a list of Results into a Result of list.
        Returns the first failure encountered, or Success with all values.
        """
        values: list[T] = []
        for r in results:
            match r:
                case Success(v):
                    values.append(v)
                case Failure(_):
                    return r
        return Success(values)

    # ──────────────────────── Dunder methods ────────────────────────

    def __bool__(self) -> bool:
        """Allow truthiness check: `if result: ...` succeeds only on Success."""
        return self.is_success()


@dataclass(frozen=True, slots=True, repr=False)
class Success(Result[T]):
    """The success track, wrapping a value of type T (None included)."""

    _value: T

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Success):
            return self._value == other._value
        if isinstance(other, Result):
            return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Success", self._value))


# Enable structural pattern matching: case Success(value)
Success.__match_args__ = ("_value",)


@dataclass(frozen=True, slots=True, repr=False)
class Failure(Result[T]):
    """The failure track, wrapping the error that stopped the flow."""

    _error: Any

    def __post_init__(self) -> None:
        if self._error is None:
            raise TypeError("Failure error must not be None")

    def __repr__(self) -> str:
        return f"Failure({self._error!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Failure):
            return self._error == other._error
        if isinstance(other, Result):
            return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Failure", self._error))


# Enable structural pattern matching: case Failure(error)
Failure.__match_args__ = ("_error",)
