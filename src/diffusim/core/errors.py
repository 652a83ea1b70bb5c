"""Exception hierarchy for simulation failures."""
from __future__ import annotations


class DiffusimError(Exception):
    """Base class for all simulation errors."""


class ConfigurationError(DiffusimError):
    """Invalid model setup detected before the run starts."""


class UnknownSubstanceError(ConfigurationError, KeyError):
    def __init__(self, substance_id: int, context: str | None = None):
        self.substance_id = substance_id
        self.context = context
        where = f" (required by {context})" if context else ""
        super().__init__(f"substance {substance_id!r} is not registered{where}")

    def __str__(self) -> str:
        return self.args[0]


class NumericalInstabilityError(DiffusimError):
    """Fatal numerical failure of a substance field.

    Raised when the explicit stencil would be unstable for the configured
    parameters, or when a diffusion step produced non-finite values.
    """

    def __init__(self, field: str, message: str, *, step: int | None = None, value: float | None = None):
        self.field = field
        self.step = step
        self.value = value
        at_step = f" at step {step}" if step is not None else ""
        super().__init__(f"field '{field}'{at_step}: {message}")


class DivisionRejected(DiffusimError):
    """A single division would violate agent invariants; the parent is left untouched."""

    def __init__(self, uid: int, reason: str, *, step: int | None = None):
        self.uid = uid
        self.reason = reason
        self.step = step
        super().__init__(f"division of agent {uid} rejected at step {step}: {reason}")
