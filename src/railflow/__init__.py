"""
railflow: railway-oriented business operations for Python.

An operation is a flow of steps threading a State; the first step that fails
short-circuits the rest and the failure comes back as the call's Result.

    from railflow import Error, Failure, Operation, Success, process

    class RegisterUser(Operation):
        context_fields = ("repository",)

        @process
        def call(self, flow):
            flow.step("check_email")
            flow.set("create_user")

        def check_email(self, state):
            if self.repository.find(state["input"]["email"], "email"):
                return self.fail_with("email_taken")

        def create_user(self, state):
            return self.repository.add(state["input"])

    match RegisterUser.call({"repository": repo}, {"email": "x@y.com"}):
        case Success(user): ...
        case Failure(Error("email_taken")): ...
"""

from railflow.capabilities import (
    Authorization,
    Finder,
    Transactional,
    TransactionalDSL,
    Validation,
)
from railflow.dsl import DSL, Runner
from railflow.error import Error, ErrorKind, humanize
from railflow.exceptions import (
    ArgumentError,
    ContextError,
    RailflowError,
    ResponderError,
    StepDeclarationError,
)
from railflow.execution import TransactionContext, with_transaction
from railflow.operation import Operation, process
from railflow.responder import Responder
from railflow.result import Failure, Result, Success
from railflow.state import State

__all__ = [
    "ArgumentError",
    "Authorization",
    "ContextError",
    "DSL",
    "Error",
    "ErrorKind",
    "Failure",
    "Finder",
    "Operation",
    "RailflowError",
    "Responder",
    "ResponderError",
    "Result",
    "Runner",
    "State",
    "StepDeclarationError",
    "Success",
    "TransactionContext",
    "Transactional",
    "TransactionalDSL",
    "Validation",
    "humanize",
    "process",
    "with_transaction",
]

__version__ = "1.0.0"
