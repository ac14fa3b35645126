import CoolProp.CoolProp as CP

from .base import EquationOfState, CriticalPoint, ValidRange
from ..exceptions import DomainError
from ..helpers_props import GAS_CONSTANT


# Lower density bound as a fraction of the critical density
RHO_MIN_FACTOR = 1e-9

# Relative offset above the melting temperature for the highest-density flash
MELTING_LINE_MARGIN = 1e-6


class CoolPropEOS(EquationOfState):
    r"""
    Equation of state oracle backed by a CoolProp abstract state.

    Single-phase properties are evaluated with density-temperature calls.
    For the HEOS backend the gas phase is imposed on the abstract state so
    that CoolProp skips its phase determination and returns the values of
    the Helmholtz energy equation of state directly, also at metastable
    points inside the saturation dome.

    Saturation states are computed on a separate abstract state with the
    ``QT_INPUTS`` flash, so saturation queries never change the state used
    for the single-phase evaluations.

    Parameters
    ----------
    fluid_name : str
        Name of the fluid as understood by CoolProp.
    backend : str, optional
        CoolProp backend. Defaults to "HEOS".
    """

    def __init__(self, fluid_name, backend="HEOS"):
        self.fluid_name = fluid_name
        self.backend = backend
        try:
            self.abstract_state = CP.AbstractState(backend, fluid_name)
            self._saturation_AS = CP.AbstractState(backend, fluid_name)
        except ValueError as exc:
            raise DomainError(f"CoolProp cannot create fluid '{fluid_name}' with backend '{backend}': {exc}") from exc

        # Evaluate the equation of state without phase determination
        if backend == "HEOS":
            self.abstract_state.specify_phase(CP.iphase_gas)

        # Fluid constants
        AS = self.abstract_state
        try:
            self._molar_mass = AS.molar_mass()
            self._critical_point = CriticalPoint(
                T=AS.T_critical(),
                p=AS.p_critical(),
                rho=AS.rhomass_critical(),
            )
            self._T_triple = max(AS.Ttriple(), AS.Tmin())
            self._valid_range = ValidRange(
                T_min=AS.Tmin(),
                T_max=AS.Tmax(),
                rho_min=RHO_MIN_FACTOR * self._critical_point.rho,
                rho_max=self._maximum_density(),
            )
        except ValueError as exc:
            msg = f"CoolProp cannot evaluate the constants of '{fluid_name}' with backend '{backend}': {exc}"
            raise DomainError(msg) from exc

        self._last_rhoT = None
        self._last_saturation = (None, None)

    def __repr__(self):
        return f"{type(self).__name__}(fluid_name={self.fluid_name!r}, backend={self.backend!r})"

    # ------------------------------------------------------------------ #
    # Fluid constants
    # ------------------------------------------------------------------ #
    @property
    def molar_mass(self):
        return self._molar_mass

    def critical_point(self):
        return self._critical_point

    def valid_range(self):
        return self._valid_range

    @property
    def triple_point_temperature(self):
        return self._T_triple

    def _maximum_density(self):
        """
        Upper density bound of the model.

        The bound is the liquid density at the highest pressure of the model
        and the lowest temperature where the fluid is not solid, that is, on
        the melting line when the fluid has one. Melting curves do not always
        reach the highest pressure, in which case the saturated liquid density
        at the triple point is used instead.
        """
        AS = self._saturation_AS
        p_max, T_min = AS.pmax(), AS.Tmin()
        try:
            if AS.has_melting_line():
                T_melt = AS.melting_line(CP.iT, CP.iP, p_max)
                T_min = max(T_min, T_melt * (1.0 + MELTING_LINE_MARGIN))
            AS.update(CP.PT_INPUTS, p_max, T_min)
        except ValueError:
            AS.update(CP.QT_INPUTS, 0.0, self._T_triple)
        return AS.rhomass()

    # ------------------------------------------------------------------ #
    # Single-phase evaluations
    # ------------------------------------------------------------------ #
    def _update(self, T, rho):
        """Update the abstract state unless it already holds (T, rho)"""
        T, rho = float(T), float(rho)
        if self._last_rhoT == (rho, T):
            return self.abstract_state
        self.check_domain(T, rho)
        try:
            self.abstract_state.update(CP.DmassT_INPUTS, rho, T)
        except ValueError as exc:
            self._last_rhoT = None
            raise DomainError(f"CoolProp evaluation failed at T={T} K, rho={rho} kg/m3: {exc}") from exc
        self._last_rhoT = (rho, T)
        return self.abstract_state

    def pressure(self, T, rho):
        return self._update(T, rho).p()

    def internal_energy(self, T, rho):
        return self._update(T, rho).umass()

    def enthalpy(self, T, rho):
        return self._update(T, rho).hmass()

    def entropy(self, T, rho):
        return self._update(T, rho).smass()

    def properties(self, T, rho):
        """Extract single-phase properties from the CoolProp abstract state.
        Returns dict with canonical property names.
        """
        AS = self._update(T, rho)
        try:
            cv = AS.cvmass()
            cp = AS.cpmass()
            a = AS.speed_sound()
            kappa_T = AS.isothermal_compressibility()
            alpha_p = AS.isobaric_expansion_coefficient()
            dp_dT = AS.first_partial_deriv(CP.iP, CP.iT, CP.iDmass)
            dp_drho = AS.first_partial_deriv(CP.iP, CP.iDmass, CP.iT)
        except ValueError as exc:
            raise DomainError(f"CoolProp derivative evaluation failed at T={T} K, rho={rho} kg/m3: {exc}") from exc

        return {
            "temperature": AS.T(),
            "density": AS.rhomass(),
            "pressure": AS.p(),
            "internal_energy": AS.umass(),
            "enthalpy": AS.hmass(),
            "entropy": AS.smass(),
            "isochoric_heat_capacity": cv,
            "isobaric_heat_capacity": cp,
            "speed_of_sound": a,
            "isothermal_compressibility": kappa_T,
            "isobaric_expansion_coefficient": alpha_p,
            "dp_dT": dp_dT,
            "dp_drho": dp_drho,
        }

    def ideal_gas_properties(self, T, p):
        r"""
        Ideal-gas properties at temperature T and pressure p.

        The values are computed from the ideal part of the dimensionless
        Helmholtz energy, :math:`\alpha^0(\delta, \tau)`, evaluated at the
        ideal-gas density :math:`\rho = p / (R T)`:

        .. math::

            \frac{h^0}{R T} = 1 + \tau \alpha^0_{\tau} \qquad
            \frac{s^0}{R} = \tau \alpha^0_{\tau} - \alpha^0 \qquad
            \frac{c_p^0}{R} = 1 - \tau^2 \alpha^0_{\tau\tau}

        Because the reference offsets of CoolProp live in the ideal part,
        these values share the enthalpy and entropy datum of the real fluid.
        """
        R = GAS_CONSTANT / self._molar_mass
        rho_ideal = p / (R * T)
        AS = self._update(T, rho_ideal)
        try:
            tau = AS.T_reducing() / T
            alpha0 = AS.alpha0()
            dalpha0_dTau = AS.dalpha0_dTau()
            d2alpha0_dTau2 = AS.d2alpha0_dTau2()
        except ValueError as exc:
            raise DomainError(f"Ideal-gas evaluation is not available for backend '{self.backend}': {exc}") from exc

        return {
            "enthalpy": R * T * (1.0 + tau * dalpha0_dTau),
            "entropy": R * (tau * dalpha0_dTau - alpha0),
            "isobaric_heat_capacity": R * (1.0 - tau**2 * d2alpha0_dTau2),
        }

    # ------------------------------------------------------------------ #
    # Saturation curve
    # ------------------------------------------------------------------ #
    def _saturation_state(self, T):
        T_last, values = self._last_saturation
        if T_last == T:
            return values

        AS = self._saturation_AS
        try:
            AS.update(CP.QT_INPUTS, 0.0, T)
            p_sat = AS.p()
            rho_liq = AS.rhomass()
            AS.update(CP.QT_INPUTS, 1.0, T)
            rho_vap = AS.rhomass()
        except ValueError as exc:
            raise DomainError(f"CoolProp saturation calculation failed at T={T} K: {exc}") from exc

        values = (p_sat, rho_liq, rho_vap)
        self._last_saturation = (T, values)
        return values
