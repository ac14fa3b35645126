import logging
import equinox as eqx

from .eos import CoolPropEOS, VanDerWaalsEOS
from .exceptions import DomainError

logger = logging.getLogger(__name__)


# Integer selectors of the classic pure-fluid library
SUBSTANCE_IDS = {
    0: "Water",
    1: "Nitrogen",
    2: "Methane",
    3: "Hydrogen",
    4: "Oxygen",
    5: "R134a",
    7: "CO2",
    8: "n-Heptane",
}

# Alternative names accepted by the selector (compared in lower case)
SUBSTANCE_ALIASES = {
    "water": "Water",
    "h2o": "Water",
    "nitrogen": "Nitrogen",
    "n2": "Nitrogen",
    "methane": "Methane",
    "ch4": "Methane",
    "hydrogen": "Hydrogen",
    "h2": "Hydrogen",
    "oxygen": "Oxygen",
    "o2": "Oxygen",
    "r134a": "R134a",
    "hfc134a": "R134a",
    "hfc-134a": "R134a",
    "co2": "CO2",
    "carbondioxide": "CO2",
    "carbon-dioxide": "CO2",
    "n-heptane": "n-Heptane",
    "heptane": "n-Heptane",
}

# Critical temperature (K), critical pressure (Pa), molar mass (kg/mol) and
# ideal-gas cv/R used by the van der Waals model
VAN_DER_WAALS_DATA = {
    "Water": (647.096, 22.064e6, 0.018015268, 3.0),
    "Nitrogen": (126.192, 3.3958e6, 0.02801348, 2.5),
    "Methane": (190.564, 4.5992e6, 0.01604246, 3.3),
    "Hydrogen": (33.145, 1.2964e6, 0.00201588, 2.5),
    "Oxygen": (154.581, 5.043e6, 0.0319988, 2.5),
    "R134a": (374.21, 4.05928e6, 0.102032, 9.4),
    "CO2": (304.1282, 7.3773e6, 0.0440098, 3.4),
    "n-Heptane": (540.13, 2.736e6, 0.100202, 19.0),
}

VAN_DER_WAALS_BACKEND = "VDW"


class SubstanceIdentity(eqx.Module):
    """Immutable identity of the pure fluid modelled by a phase object."""

    selector: object = eqx.field(static=True)
    backend: str = eqx.field(static=True)
    fluid_name: str = eqx.field(static=True)
    molar_mass: float


def resolve_fluid_name(selector, backend="HEOS"):
    """
    Fluid name for an integer selector or a (possibly aliased) name.

    Names that are neither integer selectors nor known aliases are passed to
    CoolProp unchanged, which gives access to every fluid of its library.
    The van der Waals backend only knows the fluids of ``VAN_DER_WAALS_DATA``.
    """
    if isinstance(selector, bool):
        raise DomainError(f"Invalid substance selector: {selector!r}")
    if isinstance(selector, int):
        if selector not in SUBSTANCE_IDS:
            valid = ", ".join(f"{k} ({v})" for k, v in SUBSTANCE_IDS.items())
            raise DomainError(f"Unknown substance id {selector}. Valid options are: {valid}")
        return SUBSTANCE_IDS[selector]

    if not isinstance(selector, str) or not selector.strip():
        raise DomainError(f"The substance must be an integer id or a fluid name. Received: {selector!r}")

    name = SUBSTANCE_ALIASES.get(selector.strip().lower(), selector.strip())
    if backend.upper() == VAN_DER_WAALS_BACKEND and name not in VAN_DER_WAALS_DATA:
        valid = ", ".join(VAN_DER_WAALS_DATA)
        raise DomainError(f"No van der Waals data for '{selector}'. Valid options are: {valid}")
    return name


def build_equation_of_state(fluid_name, backend="HEOS"):
    """Create the equation of state oracle of a fluid for the given backend"""
    if backend.upper() == VAN_DER_WAALS_BACKEND:
        T_crit, p_crit, molar_mass, cv_R = VAN_DER_WAALS_DATA[fluid_name]
        return VanDerWaalsEOS(fluid_name, T_crit, p_crit, molar_mass, cv_R=cv_R)
    return CoolPropEOS(fluid_name, backend=backend)


def build_substance(selector, backend="HEOS"):
    """
    Create the identity and the equation of state oracle of a substance.

    Parameters
    ----------
    selector : int or str
        Integer id (see ``SUBSTANCE_IDS``) or fluid name.
    backend : str, optional
        "VDW" for the van der Waals model, otherwise a CoolProp backend name.

    Returns
    -------
    tuple
        ``(SubstanceIdentity, EquationOfState)``. Every call creates a new
        oracle, so phase objects never share mutable evaluation state.
    """
    fluid_name = resolve_fluid_name(selector, backend)
    eos = build_equation_of_state(fluid_name, backend)
    identity = SubstanceIdentity(
        selector=selector,
        backend=backend,
        fluid_name=fluid_name,
        molar_mass=float(eos.molar_mass),
    )
    logger.debug(f"Created {eos!r} for substance selector {selector!r}")
    return identity, eos
