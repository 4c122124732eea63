"""
Error taxonomy for the capacity forecasting engine.

All errors are local and recoverable: a failed forecast call returns a
structured failure to its caller and never leaves a partial record behind.
"""


class ForecastError(Exception):
    """Base class for every error raised by the forecasting engine."""


class InvalidParameter(ForecastError, ValueError):
    """A request parameter is out of range or of an unknown kind."""


class ComputationDegenerate(ForecastError, ArithmeticError):
    """A derived quantity is undefined (zero divisor, non-positive capacity)."""


class ForecastStoreError(ForecastError):
    """The forecast record store could not persist or read a record."""
