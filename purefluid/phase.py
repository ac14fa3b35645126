import math
import numpy as np

from abc import ABC, abstractmethod

from .exceptions import DomainError
from .helpers_props import (
    GAS_CONSTANT,
    REFERENCE_PRESSURE,
    DEFAULT_TOLERANCE,
    PropertyPair,
    PropertyPairSpec,
    FluidState,
)
from .resolver import StateResolver, ResolverOptions
from .saturation import SaturationNavigator
from .substances import build_substance
from . import utils


# Temperature of the state assigned at construction
DEFAULT_TEMPERATURE = 298.15

# Relative temperature step of the two-phase cv finite difference
CV_TEMPERATURE_STEP = 1e-6

# Equation of state outputs copied to the snapshot of a single-phase state
SNAPSHOT_PROPERTIES = (
    "pressure",
    "enthalpy",
    "entropy",
    "internal_energy",
    "isobaric_heat_capacity",
    "isochoric_heat_capacity",
    "isothermal_compressibility",
    "isobaric_expansion_coefficient",
    "speed_of_sound",
)


class ThermodynamicPhase(ABC):
    """
    Capabilities shared by the phase objects.

    A phase holds one thermodynamic state that is changed with the setters
    and read with the accessors. Concrete phases implement the mass-specific
    accessors; the derived quantities below follow from them.
    """

    @abstractmethod
    def set_state(self, pair, value_1, value_2, tol=DEFAULT_TOLERANCE):
        """Set the state from a pair of properties"""

    @property
    @abstractmethod
    def temperature(self):
        """Temperature (K)"""

    @property
    @abstractmethod
    def density(self):
        """Mass density (kg/m3)"""

    @property
    @abstractmethod
    def pressure(self):
        """Pressure (Pa)"""

    @property
    @abstractmethod
    def enthalpy_mass(self):
        """Specific enthalpy (J/kg)"""

    @property
    @abstractmethod
    def int_energy_mass(self):
        """Specific internal energy (J/kg)"""

    @property
    @abstractmethod
    def entropy_mass(self):
        """Specific entropy (J/kg/K)"""

    @property
    @abstractmethod
    def cp_mass(self):
        """Specific isobaric heat capacity (J/kg/K)"""

    @property
    @abstractmethod
    def cv_mass(self):
        """Specific isochoric heat capacity (J/kg/K)"""

    @property
    def specific_volume(self):
        """Specific volume (m3/kg)"""
        return 1.0 / self.density

    @property
    def gibbs_mass(self):
        """Specific Gibbs energy (J/kg)"""
        return self.enthalpy_mass - self.temperature * self.entropy_mass


class PureFluidPhase(ThermodynamicPhase):
    r"""
    Single-component fluid that can be a gas, a liquid, a liquid-vapor
    mixture or a supercritical fluid.

    The state is set with any of the property pairs HP, UV, SV, SP, ST, TV,
    PV, UP, VH, TH and SH (mass-specific SI values), at saturation with
    :meth:`set_state_Tsat` and :meth:`set_state_Psat`, or from temperature
    and pressure. Every successful setter replaces the cached state; a setter
    that raises leaves the previous state unchanged.

    Inside the saturation dome the mixture properties are mass-weighted
    averages of the saturated liquid and vapor values,

    .. math::

        y = x \, y_v + (1 - x) \, y_l

    the pressure is the saturation pressure, and the isobaric heat capacity,
    isothermal compressibility and thermal expansion coefficient are
    infinite.

    Parameters
    ----------
    substance : int or str, optional
        Integer id or name of the fluid. Defaults to "Water".
    backend : str, optional
        "VDW" for the van der Waals model or a CoolProp backend name.
        Defaults to "HEOS".
    identifier : str, optional
        Free label copied to the :class:`FluidState` snapshots.
    options : ResolverOptions, optional
        Numerical settings of the state searches.
    """

    def __init__(self, substance="Water", backend="HEOS", identifier=None, options=None):
        self.identity, self.eos = build_substance(substance, backend)
        self.identifier = identifier
        self.options = ResolverOptions() if options is None else options
        self.saturation = SaturationNavigator(self.eos, max_iterations=self.options.max_iterations)
        self.resolver = StateResolver(self.eos, self.saturation, self.options)

        # Initialize the state cache so that the accessors are always valid
        self._state = None
        bounds = self.eos.valid_range()
        T = min(max(DEFAULT_TEMPERATURE, bounds.T_min), bounds.T_max)
        self.set_state_TP(T, REFERENCE_PRESSURE)

    def __repr__(self):
        return (
            f"{type(self).__name__}(fluid_name={self.fluid_name!r}, backend={self.identity.backend!r}, "
            f"T={self.temperature}, rho={self.density})"
        )

    @property
    def fluid_name(self):
        return self.identity.fluid_name

    @property
    def eos_type(self):
        """Name of the phase model"""
        return "PureFluid"

    @property
    def molar_mass(self):
        """Molar mass (kg/mol)"""
        return self.identity.molar_mass

    @property
    def state(self):
        """Cached ThermodynamicState or TwoPhaseState"""
        return self._state

    # ------------------------------------------------------------------ #
    # State setters
    # ------------------------------------------------------------------ #
    def set_state(self, pair, value_1, value_2, tol=DEFAULT_TOLERANCE):
        """
        Set the state from two mass-specific properties.

        Parameters
        ----------
        pair : PropertyPair or str
            Property pair, for instance ``PropertyPair.HP`` or ``"HP"``.
        value_1, value_2 : float
            Values of the two properties in the order given by the pair.
        tol : float, optional
            Relative tolerance of the state search.
        """
        spec = PropertyPairSpec(PropertyPair.from_name(pair), value_1, value_2, tol)
        self._state = self.resolver.resolve(spec, previous=self._state)

    def set_state_HP(self, h, p, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.HP, h, p, tol)

    def set_state_UV(self, u, v, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.UV, u, v, tol)

    def set_state_SV(self, s, v, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.SV, s, v, tol)

    def set_state_SP(self, s, p, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.SP, s, p, tol)

    def set_state_ST(self, s, T, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.ST, s, T, tol)

    def set_state_TV(self, T, v, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.TV, T, v, tol)

    def set_state_PV(self, p, v, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.PV, p, v, tol)

    def set_state_UP(self, u, p, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.UP, u, p, tol)

    def set_state_VH(self, v, h, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.VH, v, h, tol)

    def set_state_TH(self, T, h, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.TH, T, h, tol)

    def set_state_SH(self, s, h, tol=DEFAULT_TOLERANCE):
        self.set_state(PropertyPair.SH, s, h, tol)

    def set_state_Tsat(self, T, x):
        """Set a saturated state from temperature (K) and vapor fraction"""
        self._check_finite(T=T, x=x)
        self._state = self.saturation.state_from_temperature(T, x)

    def set_state_Psat(self, p, x):
        """Set a saturated state from pressure (Pa) and vapor fraction"""
        self._check_finite(p=p, x=x)
        self._state = self.saturation.state_from_pressure(p, x)

    def set_state_TP(self, T, p, tol=DEFAULT_TOLERANCE):
        """
        Set the state from temperature (K) and pressure (Pa).

        On the saturation line the quality is undetermined: a two-phase
        current state at the same temperature is kept, otherwise the
        saturated phase closest to the current state is chosen.
        """
        self._check_finite(T=T, p=p)
        self._state = self.resolver.resolve_TP(T, p, tol, previous=self._state)

    def set_state_TPX(self, T, p, x, tol=DEFAULT_TOLERANCE):
        """
        Set the state from temperature (K), pressure (Pa) and vapor fraction.

        The vapor fraction only matters on the saturation line, where T and p
        do not fix the state. Elsewhere the state follows from T and p alone.
        """
        self._check_finite(T=T, p=p, x=x)
        if not 0.0 <= x <= 1.0:
            raise DomainError(f"The vapor fraction must be in [0, 1]. Received: {x}")
        if self.triple_point_temperature <= T < self.critical_temperature:
            p_sat = self.eos.saturation_pressure(T)
            if abs(p - p_sat) <= tol * p_sat:
                self._state = self.saturation.state_from_temperature(T, x)
                return
        self.set_state_TP(T, p, tol)

    def set_pressure(self, p, tol=DEFAULT_TOLERANCE):
        """Change the pressure (Pa) at constant temperature"""
        self.set_state_TP(self.temperature, p, tol)

    @staticmethod
    def _check_finite(**values):
        for name, value in values.items():
            if not utils.is_finite_float(value):
                raise DomainError(f"{name} must be a finite scalar number. Received: {value!r}")

    # ------------------------------------------------------------------ #
    # Mass-specific properties
    # ------------------------------------------------------------------ #
    def _value(self, name):
        return self.resolver.property_value(self._state, name)

    def _single_phase_properties(self):
        return self.eos.properties(self._state.temperature, self._state.density)

    @property
    def temperature(self):
        return self._state.temperature

    @property
    def density(self):
        return self._state.density

    @property
    def pressure(self):
        return self._value("pressure")

    @property
    def enthalpy_mass(self):
        return self._value("enthalpy")

    @property
    def int_energy_mass(self):
        return self._value("internal_energy")

    @property
    def entropy_mass(self):
        return self._value("entropy")

    @property
    def cp_mass(self):
        if self._state.is_two_phase:
            return math.inf
        return self._single_phase_properties()["isobaric_heat_capacity"]

    @property
    def cv_mass(self):
        if not self._state.is_two_phase:
            return self._single_phase_properties()["isochoric_heat_capacity"]

        # Finite difference of the mixture internal energy along the isochore
        T, rho = self._state.temperature, self._state.density
        dT = CV_TEMPERATURE_STEP * T
        T_plus = T + dT if T + dT < self.critical_temperature else T
        T_minus = T - dT if T - dT >= self.triple_point_temperature else T
        u_plus = self.resolver.property_value(self.resolver.state_at(T_plus, rho), "internal_energy")
        u_minus = self.resolver.property_value(self.resolver.state_at(T_minus, rho), "internal_energy")
        return (u_plus - u_minus) / (T_plus - T_minus)

    @property
    def isothermal_compressibility(self):
        """Isothermal compressibility (1/Pa)"""
        if self._state.is_two_phase:
            return math.inf
        return self._single_phase_properties()["isothermal_compressibility"]

    @property
    def thermal_expansion_coeff(self):
        """Isobaric thermal expansion coefficient (1/K)"""
        if self._state.is_two_phase:
            return math.inf
        return self._single_phase_properties()["isobaric_expansion_coefficient"]

    def vapor_fraction(self):
        """Vapor mass fraction (0 for liquid and dense supercritical states, 1 for vapor)"""
        return self.saturation.vapor_fraction(self._state)

    # ------------------------------------------------------------------ #
    # Molar properties
    # ------------------------------------------------------------------ #
    @property
    def enthalpy_mole(self):
        """Molar enthalpy (J/mol)"""
        return self.enthalpy_mass * self.molar_mass

    @property
    def int_energy_mole(self):
        """Molar internal energy (J/mol)"""
        return self.int_energy_mass * self.molar_mass

    @property
    def entropy_mole(self):
        """Molar entropy (J/mol/K)"""
        return self.entropy_mass * self.molar_mass

    @property
    def gibbs_mole(self):
        """Molar Gibbs energy (J/mol)"""
        return self.gibbs_mass * self.molar_mass

    @property
    def cp_mole(self):
        return self.cp_mass * self.molar_mass

    @property
    def cv_mole(self):
        return self.cv_mass * self.molar_mass

    @property
    def molar_volume(self):
        """Molar volume (m3/mol)"""
        return self.molar_mass / self.density

    @property
    def molar_density(self):
        """Molar density (mol/m3)"""
        return self.density / self.molar_mass

    # ------------------------------------------------------------------ #
    # Chemical potential and partial molar properties
    # ------------------------------------------------------------------ #
    def chem_potentials(self):
        """Chemical potential of the single species (J/mol)"""
        return np.array([self.gibbs_mole])

    def partial_molar_enthalpies(self):
        return np.array([self.enthalpy_mole])

    def partial_molar_entropies(self):
        return np.array([self.entropy_mole])

    def partial_molar_int_energies(self):
        return np.array([self.int_energy_mole])

    def partial_molar_cp(self):
        return np.array([self.cp_mole])

    def partial_molar_volumes(self):
        return np.array([self.molar_volume])

    def activities(self):
        return np.ones(1)

    def activity_concentrations(self):
        return np.ones(1)

    def standard_concentration(self):
        return 1.0

    # ------------------------------------------------------------------ #
    # Standard state (the pure fluid at the current temperature and pressure)
    # ------------------------------------------------------------------ #
    def standard_chem_potentials(self):
        return np.array([self.gibbs_mole])

    def enthalpy_RT(self):
        return np.array([self.enthalpy_mole / (GAS_CONSTANT * self.temperature)])

    def entropy_R(self):
        return np.array([self.entropy_mole / GAS_CONSTANT])

    def gibbs_RT(self):
        return np.array([self.gibbs_mole / (GAS_CONSTANT * self.temperature)])

    # ------------------------------------------------------------------ #
    # Reference state (ideal gas at the reference pressure)
    # ------------------------------------------------------------------ #
    def _reference_properties(self):
        return self.eos.ideal_gas_properties(self.temperature, REFERENCE_PRESSURE)

    def enthalpy_RT_ref(self):
        h = self._reference_properties()["enthalpy"]
        return np.array([h * self.molar_mass / (GAS_CONSTANT * self.temperature)])

    def entropy_R_ref(self):
        s = self._reference_properties()["entropy"]
        return np.array([s * self.molar_mass / GAS_CONSTANT])

    def gibbs_RT_ref(self):
        props = self._reference_properties()
        g = props["enthalpy"] - self.temperature * props["entropy"]
        return np.array([g * self.molar_mass / (GAS_CONSTANT * self.temperature)])

    def gibbs_ref(self):
        """Molar Gibbs energy of the reference state (J/mol)"""
        return self.gibbs_RT_ref() * GAS_CONSTANT * self.temperature

    # ------------------------------------------------------------------ #
    # Critical point and valid range
    # ------------------------------------------------------------------ #
    @property
    def critical_temperature(self):
        return self.eos.critical_point().T

    @property
    def critical_pressure(self):
        return self.eos.critical_point().p

    @property
    def critical_density(self):
        return self.eos.critical_point().rho

    @property
    def min_temperature(self):
        return self.eos.valid_range().T_min

    @property
    def max_temperature(self):
        return self.eos.valid_range().T_max

    @property
    def triple_point_temperature(self):
        return self.eos.triple_point_temperature

    def valid_range(self):
        return self.eos.valid_range()

    def saturation_pressure(self, T):
        """Saturation pressure (Pa) at temperature T (K)"""
        return self.saturation.saturation_pressure(T)

    def saturation_temperature(self, p):
        """Saturation temperature (K) at pressure p (Pa)"""
        return self.saturation.saturation_temperature(p)

    # ------------------------------------------------------------------ #
    # Snapshot
    # ------------------------------------------------------------------ #
    def get_state(self):
        """Return a FluidState with all the properties of the current state"""
        T, rho = self.temperature, self.density
        two_phase = self._state.is_two_phase

        if two_phase:
            props = {name: self._value(name) for name in ("pressure", "enthalpy", "entropy", "internal_energy")}
            props.update(
                isobaric_heat_capacity=math.inf,
                isochoric_heat_capacity=self.cv_mass,
                isothermal_compressibility=math.inf,
                isobaric_expansion_coefficient=math.inf,
                density_liquid=self._state.density_liquid,
                density_vapor=self._state.density_vapor,
            )
        else:
            # Evaluate the equation of state once for all single-phase properties
            eos_props = self._single_phase_properties()
            props = {name: eos_props[name] for name in SNAPSHOT_PROPERTIES}

        p, cp, cv = props["pressure"], props["isobaric_heat_capacity"], props["isochoric_heat_capacity"]
        props.update(
            temperature=T,
            density=rho,
            volume=1.0 / rho,
            gibbs_energy=props["enthalpy"] - T * props["entropy"],
            compressibility_factor=p / (rho * self.eos.gas_constant * T),
            heat_capacity_ratio=cp / cv,
            is_two_phase=two_phase,
            quality_mass=self.vapor_fraction(),
        )
        if self.triple_point_temperature <= T <= self.critical_temperature:
            props["pressure_saturation"] = self.eos.saturation_pressure(T)

        return FluidState(fluid_name=self.fluid_name, identifier=self.identifier, **props)
