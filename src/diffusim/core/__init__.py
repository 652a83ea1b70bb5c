"""Shared primitives: RNG, geometry helpers and errors."""
from .errors import ConfigurationError, DiffusimError, DivisionRejected, NumericalInstabilityError, UnknownSubstanceError
from .rng import make_rng

__all__ = [
    "ConfigurationError",
    "DiffusimError",
    "DivisionRejected",
    "NumericalInstabilityError",
    "UnknownSubstanceError",
    "make_rng",
]
