"""
Error: structured information carried along the failure track.

An Error has three parts:
  - kind     a symbolic identifier, normalized to a plain string
  - message  human readable text
  - details  structured payload, e.g. {"name": ["Field required"]}

The message is resolved when the Error is built:

    explicit message  >  Error.default_messages[kind]  >  humanize(kind)

    >>> Error("forbidden").message
    'Forbidden'
    >>> Error("im_a_failure!").message
    'Im a failure!'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, StrEnum, unique
from typing import Any, ClassVar, Iterator


@unique
class ErrorKind(StrEnum):
    """Conventional error kinds produced by the built-in capabilities."""

    VALIDATION = "validation"
    """Input failed contract checks; details map field → messages."""

    NOT_FOUND = "not_found"
    """A lookup yielded nothing."""

    FORBIDDEN = "forbidden"
    """The authorization predicate rejected the subject."""

    UNAUTHORIZED = "unauthorized"
    """No valid identity was provided."""


def humanize(name: str) -> str:
    """
    Turn a symbolic name into a sentence-like label.

        >>> humanize("not_found")
        'Not found'
        >>> humanize("user_id")
        'User'
    """
    text = re.sub(r"_id$", "", name.lstrip("_"))
    text = text.replace("_", " ").strip()
    return text[:1].upper() + text[1:]


def normalize_kind(kind: Any) -> str:
    """Canonical string form of an error kind (enum members use their value)."""
    if isinstance(kind, Enum):
        kind = kind.value
    if kind is None or (isinstance(kind, str) and not kind.strip()):
        raise ValueError("Error kind must not be empty")
    return str(kind).strip()


@dataclass(frozen=True, slots=True, init=False)
class Error:
    """
    Immutable error value travelling inside a Failure.

    Decomposes for pattern matching and unpacking:

        match result:
            case Failure(Error("validation", _, details)):
                ...

        kind, message, details = error
    """

    kind: str
    message: str
    details: Any = field(default_factory=dict)

    default_messages: ClassVar[dict[str, str]] = {
        ErrorKind.VALIDATION.value: "Validation failed",
        ErrorKind.NOT_FOUND.value: "Not found",
        ErrorKind.FORBIDDEN.value: "Forbidden",
        ErrorKind.UNAUTHORIZED.value: "Unauthorized",
    }

    def __init__(self, kind: Any, message: str | None = None, details: Any = None) -> None:
        kind = normalize_kind(kind)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "message", message or self._default_message_for(kind))
        object.__setattr__(self, "details", {} if details is None else details)

    @classmethod
    def _default_message_for(cls, kind: str) -> str:
        return cls.default_messages.get(kind) or humanize(kind)

    def __iter__(self) -> Iterator[Any]:
        return iter((self.kind, self.message, self.details))

    def __hash__(self) -> int:
        # details is usually a dict, so hash on the identifying parts only
        return hash((type(self), self.kind, self.message))
