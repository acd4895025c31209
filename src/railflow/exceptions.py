"""
Programmer errors.

Business failures never raise: they travel as Failure(Error). The exceptions
below signal a misuse of the library (a malformed step declaration, a missing
dependency, an unsupported callback shape) and are raised immediately.
"""

from __future__ import annotations


class RailflowError(Exception):
    """Base class for every exception raised by railflow."""


class ArgumentError(RailflowError, ValueError):
    """A callback or argument has an unsupported shape."""


class StepDeclarationError(RailflowError):
    """A step was declared with a missing, unknown or non-callable target."""


class ContextError(RailflowError):
    """A required context entry was not supplied to an operation."""


class ResponderError(RailflowError):
    """A responder has no handler for the result it was given."""
