"""Exceptions raised by the routing core."""


class SimError(RuntimeError):
    """Internal consistency violation; the current step cannot continue."""


class PathWeightError(ArithmeticError):
    """The path-weight formula produced a non-finite value."""
