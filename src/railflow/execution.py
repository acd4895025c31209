"""
Transaction runner: the HOW around a block of steps.

Steps describe WHAT happens and return Result[T]; a TransactionContext decides
how a block of them is committed:

  - Success   → commit, then run the after-commit hooks
  - Failure   → roll back, then run the after-rollback hooks
  - exception → roll back, run the after-rollback hooks, re-raise

A commit that raises is handled like an exception raised by the block.

Nested execute() calls join the outer transaction. When the session offers
begin_nested() (SQLAlchemy's Session does), a nested level runs inside a
savepoint, so a failed inner block only undoes its own work:

    ┌ execute ───────────────────────────────────────┐
    │  step A                                        │
    │  ┌ execute (savepoint) ─────────┐              │
    │  │  step B    after_commit(h1)  │ ← Failure:   │
    │  └──────────────────────────────┘   h1 dropped │
    │  after_commit(h2)                              │
    └────────────────────────────────────────────────┘ → commit → h2

Hooks registered at any depth only run once the outermost transaction ends.
An after_commit hook registered with no transaction open runs immediately.

    tx = TransactionContext(session)
    result = tx.execute(lambda: Result.success(order).then(persist))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

from railflow.result import Result

T = TypeVar("T")
logger = logging.getLogger("railflow.execution")

Hook = Callable[[], Any]


@dataclass
class _Frame:
    savepoint: Any = None
    on_commit: list[Hook] = field(default_factory=list)
    on_rollback: list[Hook] = field(default_factory=list)


class TransactionContext:
    """
    Transaction runner with after-commit / after-rollback hooks.

    `session` is duck-typed: anything with commit() and rollback(), and
    optionally begin_nested() returning an object with commit() and
    rollback(). Without a session the context still tracks nesting and hooks,
    which is what unit tests and in-memory adapters need.

    One context belongs to one unit of work; it is not meant to be shared
    between threads.
    """

    def __init__(self, session: Optional[Any] = None, name: str = "transaction") -> None:
        self._session = session
        self._name = name
        self._frames: list[_Frame] = []

    @property
    def in_transaction(self) -> bool:
        return bool(self._frames)

    @property
    def depth(self) -> int:
        return len(self._frames)

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        """Run computation in a (possibly nested) transaction."""
        frame = self._open()
        try:
            result = computation()
        except BaseException as e:
            logger.error("[%s] Rolling back after %s: %s", self._name, type(e).__name__, e)
            self._close(frame, commit=False)
            raise
        self._close(frame, commit=result.is_success())
        return result

    def after_commit(self, callback: Hook) -> None:
        if not self._frames:
            callback()
            return
        self._frames[-1].on_commit.append(callback)

    def after_rollback(self, callback: Hook) -> None:
        if not self._frames:
            logger.debug("[%s] after_rollback outside a transaction ignored", self._name)
            return
        self._frames[-1].on_rollback.append(callback)

    # ──────────────────────── Internals ────────────────────────

    def _open(self) -> _Frame:
        savepoint = None
        if self._frames and self._session is not None and hasattr(self._session, "begin_nested"):
            savepoint = self._session.begin_nested()
        frame = _Frame(savepoint=savepoint)
        self._frames.append(frame)
        logger.debug("[%s] Begin (depth=%d)", self._name, len(self._frames))
        return frame

    def _close(self, frame: _Frame, commit: bool) -> None:
        # The frame leaves the stack first so a failing commit or hook can't strand it
        self._frames.pop()
        nested = bool(self._frames)

        if commit:
            try:
                self._commit(frame, nested)
            except BaseException as e:
                logger.error("[%s] Commit failed, rolling back: %s", self._name, e)
                self._rollback(frame, nested)
                raise
            if nested:
                parent = self._frames[-1]
                parent.on_commit.extend(frame.on_commit)
                parent.on_rollback.extend(frame.on_rollback)
            else:
                _run_hooks(frame.on_commit)
        else:
            self._rollback(frame, nested)

    def _commit(self, frame: _Frame, nested: bool) -> None:
        if nested:
            if frame.savepoint is not None:
                frame.savepoint.commit()
            return
        if self._session is not None:
            self._session.commit()
        logger.info("[%s] Committed", self._name)

    def _rollback(self, frame: _Frame, nested: bool) -> None:
        try:
            if nested:
                if frame.savepoint is not None:
                    frame.savepoint.rollback()
                logger.info("[%s] Rolled back nested level", self._name)
            else:
                if self._session is not None:
                    self._session.rollback()
                logger.info("[%s] Rolled back", self._name)
        finally:
            _run_hooks(frame.on_rollback)


def _run_hooks(hooks: list[Hook]) -> None:
    for hook in hooks:
        hook()


def with_transaction(runner: Any) -> Callable:
    """
    Decorator running a Result-returning function through a transaction runner.

        @with_transaction(tx)
        def handle(cmd: CreateOrder) -> Result[Order]:
            return validate(cmd).then(persist)
    """

    def decorator(fn: Callable[..., Result[T]]) -> Callable[..., Result[T]]:
        def wrapper(*args: Any, **kwargs: Any) -> Result[T]:
            return runner.execute(lambda: fn(*args, **kwargs))
        wrapper.__name__ = fn.__name__
        wrapper.__doc__ = fn.__doc__
        return wrapper
    return decorator
