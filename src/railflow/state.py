"""
State: the mapping threaded through every step of a flow.

A State is created once per call from the operation's context plus the call
argument under the "input" key, grows as steps set new keys, and is read at
the end through result(), which returns the entry at the operation's result
key.

    state = State({"repo": repo}, {"input": params}, result_key="user")
    state.update(user=user)
    state.result()   # → user

Step functions that only need a few entries can let the state project them:

    state.use(lambda *, params, profile: build(params, profile))
    state.use(lambda params, profile: build(params, profile))
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Optional

from railflow.exceptions import ArgumentError

if TYPE_CHECKING:
    from railflow.operation import Operation

DEFAULT_RESULT_KEY = "value"

_REST_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class State(Mapping[str, Any]):
    """
    Ordered key → value container owned by a single in-flight call.

    Keys are only ever added or overwritten; nothing removes them.
    """

    __slots__ = ("_values", "_result_key")

    def __init__(
        self,
        context: Optional[Mapping[str, Any]] = None,
        values: Optional[Mapping[str, Any]] = None,
        *,
        result_key: str = DEFAULT_RESULT_KEY,
    ) -> None:
        self._values: dict[str, Any] = {**(context or {}), **(values or {})}
        self._result_key = result_key

    @classmethod
    def for_operation(cls, operation: Operation, values: Optional[Mapping[str, Any]] = None) -> State:
        """Seed a state from an operation's context and result key."""
        return cls(operation.context, values, result_key=operation.result_key)

    @property
    def result_key(self) -> str:
        return self._result_key

    # ──────────────────────── Mapping protocol ────────────────────────

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"State({self._values!r}, result_key={self._result_key!r})"

    # ──────────────────────── Reads & writes ────────────────────────

    def set(self, key: str, value: Any) -> State:
        """Store a single entry and return the state for chaining."""
        self._values[key] = value
        return self

    def values_at(self, *keys: str) -> list[Any]:
        """Values for the given keys, in order; missing keys give None."""
        return [self._values.get(key) for key in keys]

    def update(self, patch: Optional[Mapping[str, Any]] = None, **values: Any) -> State:
        """Merge entries into the state in place and return it."""
        if patch:
            self._values.update(patch)
        self._values.update(values)
        return self

    def result(self) -> Any:
        """The entry at the result key, or None when it was never set."""
        return self._values.get(self._result_key)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def copy(self) -> State:
        """Independent snapshot: later updates to either state don't leak."""
        return State(self._values, result_key=self._result_key)

    # ──────────────────────── Projection ────────────────────────

    def use(
        self,
        fn: Optional[Callable[..., Any]] = None,
        *,
        names: Optional[Iterable[str]] = None,
    ) -> Any:
        """
        Call fn with the entries its parameters ask for.

        - keyword-only parameters receive the entries with the same names
        - positional parameters receive values_at() of their names
        - no parameters: fn is called with no arguments

        With names=..., introspection is skipped and the named values are
        passed positionally. Mixing positional and keyword-only parameters,
        or declaring *args / **kwargs, raises ArgumentError.
        """
        if fn is None:
            raise ArgumentError("a block must be provided")
        if names is not None:
            return fn(*self.values_at(*names))

        params = list(inspect.signature(fn).parameters.values())
        if any(p.kind in _REST_KINDS for p in params):
            raise ArgumentError("rest arguments are not supported")

        keys = [p.name for p in params if p.kind is inspect.Parameter.KEYWORD_ONLY]
        positional = [p.name for p in params if p.kind in _POSITIONAL_KINDS]

        if keys and positional:
            raise ArgumentError("cannot mix positional and keyword arguments")
        if keys:
            return fn(**{key: self._values[key] for key in keys if key in self._values})
        return fn(*self.values_at(*positional))

    unwrap = use
