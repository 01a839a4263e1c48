"""Exceptions raised while setting up or solving the ZMP problem."""


class ZmpOptimizerError(Exception):
    """Base class of all ZMP optimizer errors."""


class ConfigurationError(ZmpOptimizerError, ValueError):
    """The walking plan or optimizer settings are unusable.

    Raised for an empty spline sequence, solving before setup, or invalid
    configuration values. Not retried; the caller must fix the input.
    """


class InfeasibleSolutionError(ZmpOptimizerError, RuntimeError):
    """The QP solver returned an unbounded cost or a trivial solution."""


class SolverInitError(ZmpOptimizerError, RuntimeError):
    """The nonlinear solver could not be initialized."""
