class PureFluidError(Exception):
    """Base class for all errors raised by purefluid."""


class DomainError(PureFluidError, ValueError):
    """Raised when inputs or iterates fall outside the valid range of the fluid."""


class ConvergenceError(PureFluidError, RuntimeError):
    """Raised when an iterative search exhausts its iteration bound.

    Parameters
    ----------
    message : str
        Description of the failed search.
    best_iterate : float, optional
        Best estimate of the root when the search stopped.
    residual : float, optional
        Residual of the property equation at ``best_iterate``.
    iterations : int, optional
        Number of iterations performed.
    """

    def __init__(self, message, best_iterate=None, residual=None, iterations=None):
        super().__init__(message)
        self.best_iterate = best_iterate
        self.residual = residual
        self.iterations = iterations


class AmbiguousRootError(PureFluidError):
    """Raised when several states reproduce the targets and none can be preferred."""

    def __init__(self, message, candidates=()):
        super().__init__(message)
        self.candidates = tuple(candidates)
