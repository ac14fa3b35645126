from abc import ABC, abstractmethod
from typing import NamedTuple

from ..exceptions import DomainError
from ..helpers_props import GAS_CONSTANT


class CriticalPoint(NamedTuple):
    T: float
    p: float
    rho: float


class ValidRange(NamedTuple):
    T_min: float
    T_max: float
    rho_min: float
    rho_max: float


# Names of the properties returned by EquationOfState.properties()
EOS_PROPERTIES = (
    "temperature",
    "density",
    "pressure",
    "internal_energy",
    "enthalpy",
    "entropy",
    "isochoric_heat_capacity",
    "isobaric_heat_capacity",
    "speed_of_sound",
    "isothermal_compressibility",
    "isobaric_expansion_coefficient",
    "dp_dT",
    "dp_drho",
)


class EquationOfState(ABC):
    r"""
    Temperature-density oracle of a pure fluid.

    Subclasses evaluate mass-specific properties as explicit functions of
    temperature (K) and density (kg/m3), and expose the saturation curve and
    the critical point of the fluid. The single-phase methods return the
    values of the equation of state itself, also inside the two-phase dome,
    so callers must check :meth:`is_two_phase` and apply mixing rules where
    needed.

    All methods raise :class:`~purefluid.exceptions.DomainError` when the
    inputs fall outside the valid range of the model.
    """

    fluid_name = None

    # ------------------------------------------------------------------ #
    # Fluid constants
    # ------------------------------------------------------------------ #
    @property
    @abstractmethod
    def molar_mass(self):
        """Molar mass of the fluid (kg/mol)"""

    @property
    def gas_constant(self):
        """Specific gas constant (J/kg/K)"""
        return GAS_CONSTANT / self.molar_mass

    @abstractmethod
    def critical_point(self) -> CriticalPoint:
        """Critical temperature (K), pressure (Pa) and density (kg/m3)"""

    @abstractmethod
    def valid_range(self) -> ValidRange:
        """Temperature and density bounds of the model"""

    @property
    def triple_point_temperature(self):
        """Lowest temperature of the saturation curve (K)"""
        return self.valid_range().T_min

    # ------------------------------------------------------------------ #
    # Single-phase evaluations
    # ------------------------------------------------------------------ #
    @abstractmethod
    def pressure(self, T, rho):
        """Pressure (Pa)"""

    @abstractmethod
    def internal_energy(self, T, rho):
        """Mass-specific internal energy (J/kg)"""

    @abstractmethod
    def entropy(self, T, rho):
        """Mass-specific entropy (J/kg/K)"""

    def enthalpy(self, T, rho):
        """Mass-specific enthalpy (J/kg)"""
        return self.internal_energy(T, rho) + self.pressure(T, rho) / rho

    @abstractmethod
    def properties(self, T, rho) -> dict:
        """Dictionary with all the properties listed in ``EOS_PROPERTIES``"""

    @abstractmethod
    def ideal_gas_properties(self, T, p) -> dict:
        """Enthalpy, entropy and isobaric heat capacity of the ideal gas at (T, p)"""

    def evaluate(self, name, T, rho):
        """Evaluate a single property by canonical name"""
        if name == "pressure":
            return self.pressure(T, rho)
        elif name == "internal_energy":
            return self.internal_energy(T, rho)
        elif name == "enthalpy":
            return self.enthalpy(T, rho)
        elif name == "entropy":
            return self.entropy(T, rho)
        raise ValueError(f"Property '{name}' cannot be evaluated from the equation of state")

    def isothermal_derivative(self, name, T, rho):
        r"""
        Derivative of a property with respect to density along the isotherm T.

        The derivatives follow from the pressure derivatives of the equation
        of state and the Maxwell relation :math:`(\partial s / \partial v)_T = (\partial p / \partial T)_v`:

        .. math::

            \left(\frac{\partial s}{\partial \rho}\right)_T = -\frac{1}{\rho^2} \left(\frac{\partial p}{\partial T}\right)_\rho \qquad
            \left(\frac{\partial u}{\partial \rho}\right)_T = \frac{1}{\rho^2} \left[p - T \left(\frac{\partial p}{\partial T}\right)_\rho\right] \qquad
            \left(\frac{\partial h}{\partial \rho}\right)_T = \frac{1}{\rho^2} \left[\rho \left(\frac{\partial p}{\partial \rho}\right)_T - T \left(\frac{\partial p}{\partial T}\right)_\rho\right]
        """
        props = self.properties(T, rho)
        dp_dT, dp_drho = props["dp_dT"], props["dp_drho"]
        if name == "pressure":
            return dp_drho
        elif name == "internal_energy":
            return (props["pressure"] - T * dp_dT) / rho**2
        elif name == "enthalpy":
            return (rho * dp_drho - T * dp_dT) / rho**2
        elif name == "entropy":
            return -dp_dT / rho**2
        raise ValueError(f"Property '{name}' has no isothermal derivative")

    # ------------------------------------------------------------------ #
    # Saturation curve
    # ------------------------------------------------------------------ #
    @abstractmethod
    def _saturation_state(self, T):
        """Return (p_sat, rho_liq, rho_vap) for a temperature strictly below critical"""

    def saturation_pressure(self, T):
        """Saturation pressure (Pa) at temperature T"""
        return self._saturation(T)[0]

    def saturation_densities(self, T):
        """Densities (kg/m3) of the saturated liquid and vapor at temperature T"""
        _, rho_liq, rho_vap = self._saturation(T)
        return rho_liq, rho_vap

    def _saturation(self, T):
        T = float(T)
        crit = self.critical_point()
        T_triple = self.triple_point_temperature
        if T < T_triple or T > crit.T:
            msg = (
                f"Saturation temperature T={T} K is outside the range "
                f"[{T_triple}, {crit.T}] K of the {self.fluid_name} saturation curve."
            )
            raise DomainError(msg)
        if T == crit.T:
            return crit.p, crit.rho, crit.rho
        return self._saturation_state(T)

    def is_two_phase(self, T, rho):
        """True if (T, rho) lies strictly inside the saturation dome"""
        if T >= self.critical_point().T or T < self.triple_point_temperature:
            return False
        rho_liq, rho_vap = self.saturation_densities(T)
        return rho_vap < rho < rho_liq

    # ------------------------------------------------------------------ #
    # Input validation
    # ------------------------------------------------------------------ #
    def check_domain(self, T, rho):
        """Raise DomainError if (T, rho) is outside the valid range"""
        bounds = self.valid_range()
        if not (bounds.T_min <= T <= bounds.T_max):
            msg = (
                f"Temperature T={T} K is outside the valid range "
                f"[{bounds.T_min}, {bounds.T_max}] K for {self.fluid_name}."
            )
            raise DomainError(msg)
        if not (0.0 < rho <= bounds.rho_max):
            msg = (
                f"Density rho={rho} kg/m3 is outside the valid range "
                f"(0, {bounds.rho_max}] kg/m3 for {self.fluid_name}."
            )
            raise DomainError(msg)
