"""
Authorization capability: gate the flow on a predicate.

    class PublishPost(Authorization, Operation):
        context_fields = ("current_user",)

        def is_authorized(self, user, post) -> bool:
            return user.role == "editor" or post.author_id == user.id

        @process
        def call(self, flow):
            flow.step("fetch_post")
            flow.step("authorize", using=["current_user", "value"])
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

from railflow.error import ErrorKind
from railflow.result import Result
from railflow.state import State


class Authorization:
    def is_authorized(self, *subjects: Any) -> bool:
        """Override per operation; everything is allowed by default."""
        return True

    def authorize(self, state: State, using: Optional[Union[str, Sequence[str]]] = None) -> Result[State]:
        """
        Check the entries named by `using` (default: the result key).

        Fails with a "forbidden" Error; keeps the state on success.
        """
        if isinstance(using, (list, tuple)):
            outcome = self.authorize_with(*state.values_at(*using))
        else:
            outcome = self.authorize_with(state.get(using or self.result_key))
        return outcome.then(lambda _: state)

    def authorize_with(self, *subjects: Any) -> Result[Any]:
        subject = subjects[0] if len(subjects) == 1 else subjects
        if self.is_authorized(*subjects):
            return Result.success(subject)
        return self.fail_with(ErrorKind.FORBIDDEN)
