import logging
import numpy as np

from scipy.optimize import brentq

from .exceptions import DomainError, ConvergenceError

logger = logging.getLogger(__name__)

# Smallest relative tolerance accepted by scipy.optimize.brentq
MIN_RTOL = 4 * np.finfo(float).eps


def find_root_bracketed(
    func,
    lower,
    upper,
    tolerance=1e-14,
    max_iterations=200,
    f_lower=None,
    f_upper=None,
    label="root",
    print_convergence=False,
):
    r"""
    Find the root of a scalar function within a bracket.

    The search uses Brent's method (bisection safeguarded by secant and
    inverse quadratic interpolation steps), which keeps a sign change inside
    the bracket at every iteration and therefore never leaves the physically
    valid interval given by the caller.

    Parameters
    ----------
    func : callable
        Scalar residual function ``f(x)``.
    lower, upper : float
        Bounds of the search interval.
    tolerance : float, optional
        Relative tolerance on the root. Values below the machine limit are clipped.
    max_iterations : int, optional
        Maximum number of iterations. Exceeding it raises ConvergenceError.
    f_lower, f_upper : float, optional
        Residual values at the bounds, if already known.
    label : str, optional
        Name of the unknown used in log and error messages.
    print_convergence : bool, optional
        If True, log the outcome of the search at INFO level instead of DEBUG.

    Returns
    -------
    float
        Root of the function.

    Raises
    ------
    DomainError
        If the residual does not change sign over the bracket.
    ConvergenceError
        If the iteration bound is reached before meeting the tolerance.
    """
    f_lower = func(lower) if f_lower is None else f_lower
    f_upper = func(upper) if f_upper is None else f_upper

    if f_lower == 0.0:
        return lower
    if f_upper == 0.0:
        return upper

    if np.sign(f_lower) == np.sign(f_upper):
        msg = (
            f"The residual does not change sign for {label} in [{lower:.12e}, {upper:.12e}] "
            f"(residuals {f_lower:.6e} and {f_upper:.6e}). "
            f"The target value is outside the achievable range."
        )
        raise DomainError(msg)

    rtol = max(tolerance, MIN_RTOL)
    xtol = 1e-3 * rtol * min(abs(lower), abs(upper)) or rtol
    root, info = brentq(
        func,
        lower,
        upper,
        xtol=xtol,
        rtol=rtol,
        maxiter=max_iterations,
        full_output=True,
        disp=False,
    )

    if not info.converged:
        residual = func(root)
        msg = (
            f"Search for {label} did not converge after {info.iterations} iterations "
            f"({info.flag}). Best iterate: {root:.12e}, residual: {residual:.6e}"
        )
        raise ConvergenceError(msg, best_iterate=root, residual=residual, iterations=info.iterations)

    level = logging.INFO if print_convergence else logging.DEBUG
    logger.log(level, f"Converged {label}={root:.12e} in {info.iterations} iterations")
    return root
