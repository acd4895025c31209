"""
Finder capability: load a record from a repository into the state.

    class UpdateUser(Finder, Operation):
        model_name = "user"          # result key "user", message "User not found"
        search_field = "email"

        @process
        def call(self, flow):
            flow.step("fetch_model")  # state["user"] = repository.find(input["email"], "email")
            flow.set("apply_changes", to="user")

Declaring model_name also adds an optional context entry of that name, so a
caller that already holds the record can pass it in and skip the lookup.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar, Optional

from railflow.error import humanize
from railflow.result import Result
from railflow.state import State


class Finder:
    context_fields: ClassVar[tuple[str, ...]] = ("repository",)

    model_name: ClassVar[Optional[str]] = None
    search_field: ClassVar[str] = "id"
    not_found_message: ClassVar[Optional[str]] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        own = vars(cls)
        if own.get("model_name"):
            if "result_key" not in own:
                cls.result_key = cls.model_name
            if "not_found_message" not in own:
                cls.not_found_message = f"{humanize(cls.model_name)} not found"
            cls.context_defaults = {**own.get("context_defaults", {}), cls.model_name: None}
        super().__init_subclass__(**kwargs)

    def fetch_model(
        self,
        state: State,
        from_: Any = None,
        search_by: Optional[str] = None,
        using: Optional[str] = None,
        to: Optional[str] = None,
        overwrite: bool = False,
        error_message: Optional[str] = None,
    ) -> Any:
        """
        Look up input[using] by `search_by` in `from_` and store it under `to`.

        Defaults: the operation's repository, search field and result key;
        `using` defaults to `search_by`. Does nothing when `to` is already
        set, unless overwrite=True.
        """
        repository = self.repository if from_ is None else from_
        search_by = search_by or self.search_field
        using = using or search_by
        to = to or self.result_key
        if error_message is None:
            error_message = self.not_found_message if from_ is None else _not_found_message_for(from_)

        if state.get(to) is not None and not overwrite:
            return state

        return (
            self.wrap_if_present(_lookup(state["input"], using), message=error_message)
            .then(lambda key: self.find_model_with(key, repository, search_by, error_message))
            .then(lambda model: state.update({to: model}))
        )

    def find_model_with(
        self,
        key: Any,
        repository: Any = None,
        field: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> Result[Any]:
        repository = self.repository if repository is None else repository
        found = repository.find(key, field or self.search_field)
        return self.wrap_if_present(found, message=error_message)


def _lookup(input: Any, key: str) -> Any:
    if isinstance(input, Mapping):
        return input.get(key)
    return getattr(input, key, None)


def _not_found_message_for(repository: Any) -> Optional[str]:
    name = getattr(repository, "model_name", None)
    return f"{humanize(name)} not found" if name else None
