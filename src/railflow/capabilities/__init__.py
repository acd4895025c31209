"""
Optional capabilities an operation can mix in.

    class UpdateUser(Transactional, Finder, Authorization, Validation, Operation):
        ...

Each mixin adds step methods (validate, authorize, fetch_model) or DSL
primitives (transaction, after_commit, after_rollback) and declares the
context entries it needs.
"""

from railflow.capabilities.authorization import Authorization
from railflow.capabilities.finder import Finder
from railflow.capabilities.transactions import Transactional, TransactionalDSL
from railflow.capabilities.validation import Validation

__all__ = [
    "Authorization",
    "Finder",
    "Transactional",
    "TransactionalDSL",
    "Validation",
]
