"""
Transactional capability: transaction blocks and commit/rollback callbacks.

    class CreateOrder(Transactional, Operation):
        context_fields = ("repository", "mailer")

        @process
        def call(self, flow):
            @flow.transaction()
            def _(flow):
                flow.set("persist_order")
                flow.after_commit("send_confirmation")
                flow.after_rollback("release_stock")
            flow.set("as_response")

transaction    runs the block through the transactor; rolls back iff it fails
after_commit   replays the block once the outermost transaction commits
after_rollback replays the block if the transaction rolls back

Callbacks replay against a copy of the state taken where they are declared,
so later steps of the outer flow don't leak into them, and whatever they
return never changes the operation's result.

Each method takes either a step (name or callable) or a block of steps, not
both; called with neither it returns a decorator, which must be applied
before the enclosing block ends.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Optional

from railflow.dsl import DSL, Runner, StepsBlock, StepTarget
from railflow.exceptions import ContextError, StepDeclarationError
from railflow.ports import TransactionRunner
from railflow.state import State


def _block_for(step: Optional[StepTarget], steps: Optional[StepsBlock]) -> Optional[StepsBlock]:
    if step is not None and steps is not None:
        raise StepDeclarationError("must provide a step or a block but not both")
    if step is not None:
        return lambda flow: flow.step(step)
    return steps


class TransactionalDSL(DSL):
    def transaction(self, step: Optional[StepTarget] = None, steps: Optional[StepsBlock] = None) -> Any:
        block = _block_for(step, steps)
        if block is None:
            return self._decorating(self.transaction)

        self.around(lambda runner, _state: self._transactor().execute(runner), block)
        return None

    def after_commit(self, step: Optional[StepTarget] = None, steps: Optional[StepsBlock] = None) -> Any:
        block = _block_for(step, steps)
        if block is None:
            return self._decorating(self.after_commit)

        self.around(self._deferred(lambda tx: tx.after_commit), block)
        return None

    def after_rollback(self, step: Optional[StepTarget] = None, steps: Optional[StepsBlock] = None) -> Any:
        block = _block_for(step, steps)
        if block is None:
            return self._decorating(self.after_rollback)

        self.around(self._deferred(lambda tx: tx.after_rollback), block)
        return None

    def _deferred(
        self,
        register: Callable[[TransactionRunner], Callable[[Callable[[], Any]], None]],
    ) -> Callable[[Runner, State], None]:
        def strategy(runner: Runner, state: State) -> None:
            snapshot = state.copy()
            register(self._transactor())(lambda: runner(snapshot))

        return strategy

    def _transactor(self) -> TransactionRunner:
        transactor = getattr(self.operation, "transactor", None)
        if transactor is None:
            raise ContextError("'transactor' was not found in scope")
        return transactor


class Transactional:
    context_fields: ClassVar[tuple[str, ...]] = ("transactor",)
    dsl_class: ClassVar[type[DSL]] = TransactionalDSL
