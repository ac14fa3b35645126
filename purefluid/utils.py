import math


def is_float(element: any) -> bool:
    """
    Check if the given element can be converted to a float.

    Parameters
    ----------
    element : any
        The element to be checked.

    Returns
    -------
    bool
        True if the element can be converted to a float, False otherwise.
    """

    if element is None:
        return False
    try:
        float(element)
        return True
    except (TypeError, ValueError):
        return False


def is_finite_float(element: any) -> bool:
    """Check if the element converts to a float that is neither NaN nor infinite."""
    return is_float(element) and math.isfinite(float(element))


def relative_difference(value, target, scale):
    """
    Difference between a value and its target, normalized by the target magnitude.

    The normalization falls back to `scale` when the target is close to zero,
    which happens for energies and entropies near the reference state of the fluid.

    Parameters
    ----------
    value : float
        Computed value.
    target : float
        Target value.
    scale : float
        Characteristic magnitude of the property.

    Returns
    -------
    float
        Signed normalized difference ``(value - target) / max(|target|, scale)``.
    """
    return (value - target) / max(abs(target), abs(scale))
