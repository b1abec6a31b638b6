"""
Exception types raised by the multicopter simulation core.

Configuration problems are rejected before anything is stored, and
per-step problems are rejected before the vehicle state is touched, so
an instance never holds invalid configuration or a half-updated state.
"""


class MulticopterError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(MulticopterError, ValueError):
    """Invalid vehicle or motor configuration (mass, inertia, motor index, ...)."""


class InvalidArgumentError(MulticopterError, ValueError):
    """Invalid per-call argument (time step, command vector, state input)."""


class NumericalDegeneracyError(MulticopterError, ArithmeticError):
    """A matrix that must be invertible turned out to be singular."""
