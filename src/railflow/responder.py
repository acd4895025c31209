"""
Responder: dispatch a Result to handlers keyed by error kind.

    responder = (
        Responder()
        .on_success(lambda user: render(user, status=201))
        .on_failure("validation", lambda error: render(error.details, status=422))
        .on_failure("forbidden", lambda error: render(error.message, status=403))
        .otherwise(lambda error: render(error.message, status=400))
    )

    CreateUser.call(context, params, responder=responder)
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from railflow.error import Error, normalize_kind
from railflow.exceptions import ResponderError
from railflow.result import Failure, Result, Success

Handler = Callable[[Any], Any]


class Responder:
    """Maps a Result onto one of several handlers."""

    def __init__(self) -> None:
        self._on_success: Optional[Handler] = None
        self._on_failure: dict[str, Handler] = {}
        self._otherwise: Optional[Handler] = None

    def on_success(self, handler: Handler) -> Responder:
        self._on_success = handler
        return self

    def on_failure(self, kind: Any, handler: Handler) -> Responder:
        self._on_failure[normalize_kind(kind)] = handler
        return self

    def otherwise(self, handler: Handler) -> Responder:
        """Handler for failures without a kind-specific handler."""
        self._otherwise = handler
        return self

    def respond(self, result: Result[Any]) -> Any:
        match result:
            case Success(value):
                if self._on_success is None:
                    raise ResponderError("no success handler registered")
                return self._on_success(value)
            case Failure(Error(kind)) if kind in self._on_failure:
                return self._on_failure[kind](result.error())
            case Failure(error):
                if self._otherwise is None:
                    raise ResponderError(f"no failure handler registered for {error!r}")
                return self._otherwise(error)
        raise TypeError("unreachable")  # pragma: no cover
