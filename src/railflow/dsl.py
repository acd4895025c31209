"""
DSL: the step interpreter behind every operation.

A DSL instance owns a single accumulator, a Result[State], seeded with
Success(state). Each primitive consumes the accumulator and produces the next
one; once it holds a Failure every later step is skipped.

    step(fn)          run fn(state) for its side effects, keep the state
    set(fn, to=key)   store fn(state) under key (default: the result key)
    map(fn)           replace the whole state with fn(state)
    around(s, steps)  hand a Runner for the nested steps to strategy s
    if_true(c, steps) run the nested steps only when c(state) holds
    if_false(c, ...)  run the nested steps only when c(state) does not hold

Step targets are method names (looked up on the operation when the step
runs) or callables. Nested blocks are functions taking the DSL:

    @process
    def call(self, flow):
        flow.step("validate")
        flow.set("fetch_profile", to="profile")

        @flow.if_true("is_admin")
        def _(flow):
            flow.set(lambda state: "ADMIN", to="role")
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from railflow.exceptions import StepDeclarationError
from railflow.result import Result, Success
from railflow.state import State

if TYPE_CHECKING:
    from railflow.operation import Operation

logger = logging.getLogger("railflow.dsl")

StepTarget = Union[str, Callable[..., Any]]
StepsBlock = Callable[["DSL"], Any]

_KEYWORD_KINDS = (inspect.Parameter.KEYWORD_ONLY, inspect.Parameter.VAR_KEYWORD)


class Runner:
    """
    Replayable handle on a nested block of steps.

    runner()        runs the block on the DSL that created it
    runner(dsl)     runs the block on another DSL
    runner(state)   runs the block on a fresh DSL over that state

    A runner may be invoked any number of times, later than the step that
    created it, or never. A bare runner() works on the live accumulator of
    the creating DSL, so a strategy that defers the call past its own step
    must pass the state to replay against, usually state.copy() taken when
    the strategy runs. Otherwise the block starts from whatever the flow has
    reached by then and overwrites its accumulator.
    """

    __slots__ = ("_dsl", "_steps")

    def __init__(self, dsl: DSL, steps: StepsBlock) -> None:
        self._dsl = dsl
        self._steps = steps

    def __call__(self, target: Union[DSL, State, Mapping[str, Any], None] = None) -> Result[Any]:
        dsl = self._dsl if target is None else self._dsl.spawn(target)
        return dsl.run(self._steps)


class DSL:
    """Drives a Result[State] accumulator through a declared block of steps."""

    def __init__(self, state: Any, operation: Operation) -> None:
        self._result: Result[Any] = Result.result(state)
        self._operation = operation
        self._undecorated: list[str] = []

    @property
    def result(self) -> Result[Any]:
        return self._result

    @property
    def operation(self) -> Operation:
        return self._operation

    def run(self, steps: StepsBlock) -> Result[Any]:
        """Evaluate a block of steps against this DSL and return the accumulator."""
        steps(self)
        if self._undecorated:
            name = self._undecorated.pop()
            self._undecorated.clear()
            raise StepDeclarationError(f"{name}() must provide a step or a block")
        return self._result

    def spawn(self, target: Union[DSL, State, Mapping[str, Any]]) -> DSL:
        """A DSL for the same operation over another state."""
        if isinstance(target, DSL):
            return target
        if isinstance(target, State):
            return type(self)(target, self._operation)
        if isinstance(target, Mapping):
            return type(self)(State.for_operation(self._operation, target), self._operation)
        raise TypeError(f"Cannot run steps against {target!r}")

    # ──────────────────────── Primitives ────────────────────────

    def step(self, target: StepTarget, *args: Any, **kwargs: Any) -> None:
        """Execute a step and preserve the former state."""
        fn = self._resolve(target)
        self._result = self._result.tee(lambda state: fn(state, *args, **kwargs))
        self._trace("step", target)

    def set(self, target: StepTarget, *args: Any, to: Optional[str] = None, **kwargs: Any) -> None:
        """Execute a step and store its value under `to` (default: the result key)."""
        fn = self._resolve(target)
        key = to or self._operation.result_key

        def assign(state: State) -> Result[Any]:
            return Result.result(fn(state, *args, **kwargs)).then(
                lambda value: state.update({key: value})
            )

        self._result = self._result.then(assign)
        self._trace("set", target)

    def map(self, target: StepTarget, *args: Any, **kwargs: Any) -> None:
        """Execute a step and replace the current state with its value."""
        fn = self._resolve(target)
        self._result = self._result.then(lambda state: fn(state, *args, **kwargs))
        self._trace("map", target)

    def around(self, strategy: StepTarget, steps: Optional[StepsBlock] = None) -> Any:
        """
        Let `strategy(runner, state)` decide whether and when the nested steps run.

        Skipped altogether, strategy included, when the accumulator is a
        Failure. A Result returned by the strategy becomes the accumulator;
        any other return value leaves whatever the runner produced.
        """
        if steps is None:
            return self._decorating(self.around, strategy)

        execute = self._resolve(strategy)
        match self._result:
            case Success(state):
                outcome = execute(Runner(self, steps), state)
                if isinstance(outcome, Result):
                    self._result = outcome
            case _:
                logger.debug("around %s skipped on failure", _label(strategy))
        return None

    sequence = around

    def if_true(self, cond: StepTarget, steps: Optional[StepsBlock] = None) -> Any:
        """Run the nested steps only when cond(state) is truthy."""
        if steps is None:
            return self._decorating(self.if_true, cond)

        check = self._resolve(cond)
        self.around(lambda runner, state: runner() if check(state) else None, steps)
        return None

    guard = if_true

    def if_false(self, cond: StepTarget, steps: Optional[StepsBlock] = None) -> Any:
        """Run the nested steps only when cond(state) is falsy."""
        if steps is None:
            return self._decorating(self.if_false, cond)

        check = self._resolve(cond)
        return self.if_true(lambda state: not check(state), steps)

    # ──────────────────────── Resolution ────────────────────────

    def _resolve(self, target: Optional[StepTarget]) -> Callable[..., Any]:
        if target is None:
            raise StepDeclarationError("next step not provided")
        if isinstance(target, str):
            return self._named(target)
        if callable(target):
            return target
        raise StepDeclarationError(
            f"{target!r} is not a valid step: expected a method name or a callable"
        )

    def _named(self, name: str) -> Callable[..., Any]:
        operation = self._operation

        # Looked up on every call so steps see the instance as it is when they run
        def call(*args: Any, **kwargs: Any) -> Any:
            method = getattr(operation, name, None)
            if not callable(method):
                raise StepDeclarationError(
                    f"{type(operation).__name__} has no step named {name!r}"
                )
            if (
                operation.auto_deconstruct_state
                and args
                and isinstance(args[0], State)
                and _takes_keywords_only(method)
            ):
                return method(*args[1:], **{**args[0], **kwargs})
            return method(*args, **kwargs)

        return call

    def _decorating(self, method: Callable[..., Any], *args: Any) -> Callable[[StepsBlock], StepsBlock]:
        # Unapplied decorators are rejected when the enclosing block finishes
        name = method.__name__
        self._undecorated.append(name)

        def decorator(steps: StepsBlock) -> StepsBlock:
            if name in self._undecorated:
                self._undecorated.remove(name)
            method(*args, steps=steps)
            return steps

        return decorator

    def _trace(self, kind: str, target: StepTarget) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            outcome = "success" if self._result.is_success() else "failure"
            logger.debug("%s %s → %s", kind, _label(target), outcome)


def _label(target: Any) -> str:
    if isinstance(target, str):
        return target
    return getattr(target, "__qualname__", repr(target))


def _takes_keywords_only(fn: Callable[..., Any]) -> bool:
    params = inspect.signature(fn).parameters.values()
    return bool(params) and all(p.kind in _KEYWORD_KINDS for p in params)
