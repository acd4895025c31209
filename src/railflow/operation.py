"""
Operation: one business use case expressed as a flow of steps.

    class CreateUser(Validation, Authorization, Operation):
        context_fields = ("current_user", "repository")
        contract = UserForm

        @process
        def call(self, flow):
            flow.step("validate")
            flow.step("authorize", using="current_user")
            flow.set("fetch_profile", to="profile")
            flow.set("create_user")

    CreateUser(current_user=admin, repository=repo).call(params)   # → Result
    CreateUser.call({"current_user": admin, "repository": repo}, params)

Calling an operation:
  1. builds State(context + {"input": input})
  2. runs the declared steps on a DSL, short-circuiting on the first Failure
  3. unwraps the final state at the operation's result key
"""

from __future__ import annotations

import functools
import logging
import types
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional

from railflow.dsl import DSL
from railflow.error import Error, ErrorKind
from railflow.exceptions import ContextError
from railflow.result import Result
from railflow.state import DEFAULT_RESULT_KEY, State

if TYPE_CHECKING:
    from railflow.responder import Responder

logger = logging.getLogger("railflow.operation")

_REQUIRED = object()


class OperationCall:
    """
    Descriptor behind `call`, usable from the class and from instances.

        operation.call(input)               # instance: run the flow
        OperationClass.call(context, input) # class: build an instance, then call it
    """

    def __init__(self, fn: Callable[..., Result[Any]]) -> None:
        self._fn = fn
        functools.update_wrapper(self, fn)

    def __get__(self, instance: Optional[Operation], owner: Optional[type] = None) -> Callable[..., Any]:
        if instance is not None:
            return types.MethodType(self._fn, instance)

        operation_class = owner

        def call(
            context: Optional[Mapping[str, Any]] = None,
            /,
            *args: Any,
            responder: Optional[Responder] = None,
            **kwargs: Any,
        ) -> Any:
            result = operation_class(context).call(*args, **kwargs)
            return result if responder is None else responder.respond(result)

        return call


def process(steps: Callable[[Any, DSL], Any]) -> OperationCall:
    """
    Declare a method `(self, flow)` as the steps of the operation's `call`.

    Closures written inside the method capture `self`, so inline steps can
    reach the operation's helpers and injected dependencies.
    """

    def call(self: Operation, input: Any) -> Result[Any]:
        return self.run_steps(steps, input)

    call.__name__ = steps.__name__
    call.__qualname__ = steps.__qualname__
    call.__doc__ = steps.__doc__
    return OperationCall(call)


def _collect_context(cls: type) -> dict[str, Any]:
    declared: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        for name in vars(klass).get("context_fields", ()):
            declared[name] = _REQUIRED
        declared.update(vars(klass).get("context_defaults", {}))
    return declared


class Operation:
    """
    Base class for operations.

    Class-level configuration, read-only once the class is defined:
      - result_key              state key returned by call() (inherited)
      - context_fields          required constructor dependencies
      - context_defaults        optional dependencies with their defaults
      - auto_deconstruct_state  call keyword-only step methods with **state
      - dsl_class               interpreter used to run the steps
    """

    result_key: ClassVar[str] = DEFAULT_RESULT_KEY
    context_fields: ClassVar[tuple[str, ...]] = ()
    context_defaults: ClassVar[Mapping[str, Any]] = {}
    auto_deconstruct_state: ClassVar[bool] = False
    dsl_class: ClassVar[type[DSL]] = DSL

    _declared_context: ClassVar[dict[str, Any]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        own_call = vars(cls).get("call")
        if isinstance(own_call, types.FunctionType):
            cls.call = OperationCall(own_call)  # type: ignore[method-assign]
        cls._declared_context = _collect_context(cls)

    def __init__(self, context: Optional[Mapping[str, Any]] = None, /, **kwargs: Any) -> None:
        given = {**(context or {}), **kwargs}
        resolved: dict[str, Any] = {}
        for name, default in self._declared_context.items():
            value = given.get(name)
            if value is None:
                value = default
            if value is _REQUIRED:
                raise ContextError(f"{name!r} was not found in scope")
            resolved[name] = value
            setattr(self, name, value)
        self.context: Mapping[str, Any] = types.MappingProxyType(resolved)

    @OperationCall
    def call(self, input: Any) -> Result[Any]:
        raise NotImplementedError("must implement at subclass")

    # ──────────────────────── Flow execution ────────────────────────

    def dsl_for(self, values: Mapping[str, Any]) -> DSL:
        """A fresh DSL over `values` (a State is used as is)."""
        state = values if isinstance(values, State) else State.for_operation(self, values)
        return self.dsl_class(state, self)

    def run_steps(self, steps: Callable[[Any, DSL], Any], input: Any) -> Result[Any]:
        name = type(self).__name__
        logger.debug("[%s] Starting call", name)

        result = (
            self.dsl_for({"input": input})
            .run(lambda flow: steps(self, flow))
            .then(lambda state: state.result())
        )

        if result.is_success():
            logger.debug("[%s] Completed — SUCCESS", name)
        else:
            error = result.error()
            logger.debug("[%s] Completed — FAILURE (%s)", name, getattr(error, "kind", error))
        return result

    # ──────────────────────── Result helpers ────────────────────────

    success = staticmethod(Result.success)
    failure = staticmethod(Result.failure)
    result = staticmethod(Result.result)
    wrap = staticmethod(Result.result)

    def fail_with(self, kind: Any, message: Optional[str] = None, details: Any = None) -> Result[Any]:
        """Failure carrying a new Error."""
        return Result.failure(Error(kind, message, details))

    def wrap_if_present(
        self,
        value: Any,
        kind: Any = ErrorKind.NOT_FOUND,
        message: Optional[str] = None,
        details: Any = None,
    ) -> Result[Any]:
        """Success(value), or a `kind` failure when value is None."""
        if value is None:
            return self.fail_with(kind, message, details)
        return Result.success(value)
