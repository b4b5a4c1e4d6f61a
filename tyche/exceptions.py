# tyche/exceptions.py
"""
Error taxonomy for the tyche runtime.

Only two kinds of failure raise:

    ConfigurationError : bad input detected at construction / entry
                         (invalid distribution parameters, empty data,
                         more mixture components than observations, ...).
    GraphContractError : the calling code broke an AD contract
                         (gradient arity mismatch, foreign graph, ...).

Numerical degeneracies (NaN / +-inf) are propagated as values and
non-convergence is reported in the diagnostics object, never raised.
"""

from typing import Any, Dict, Optional


class TycheError(Exception):
    """Base class for all errors raised by tyche."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = dict(context or {})

    def __str__(self):
        msg = super().__str__()
        if self.context:
            details = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{msg} ({details})"
        return msg


class ConfigurationError(TycheError, ValueError):
    """Invalid parameters or data handed to a factory / engine entry point."""


class GraphContractError(TycheError, RuntimeError):
    """A programming-contract violation inside the AD graph."""
