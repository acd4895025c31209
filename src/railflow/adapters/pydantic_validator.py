"""
Pydantic adapter for the Validator port.

A pydantic model is the contract: the raw input is validated with
model_validate(), options travel as the validation context so validators can
consult injected values, and errors are flattened into the field → messages
mapping carried by a "validation" Error.

    class UserForm(BaseModel):
        name: str
        email: EmailStr

    PydanticValidator(UserForm).validate({"email": "x@y.com"})
    # → Failure(Error(kind="validation", details={"name": ["Field required"]}))
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from railflow.error import Error, ErrorKind
from railflow.result import Result


def errors_to_details(error: ValidationError) -> dict[str, list[str]]:
    """Group pydantic error messages by dotted field path."""
    details: dict[str, list[str]] = {}
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "input"
        details.setdefault(field, []).append(item["msg"])
    return details


class PydanticValidator:
    """Validator backed by a pydantic model class."""

    def __init__(self, model: type[BaseModel]) -> None:
        self._model = model

    @property
    def model(self) -> type[BaseModel]:
        return self._model

    def validate(self, raw_input: Any, **options: Any) -> Result[dict[str, Any]]:
        try:
            params = self._model.model_validate(raw_input, context=options or None)
        except ValidationError as e:
            return Result.failure(Error(ErrorKind.VALIDATION, details=errors_to_details(e)))
        return Result.success(params.model_dump())
