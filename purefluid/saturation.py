from . import solvers
from .exceptions import DomainError
from .helpers_props import TwoPhaseState, ThermodynamicState


def quality_from_density(rho, rho_liq, rho_vap):
    r"""
    Vapor mass fraction of a liquid-vapor mixture with overall density rho.

    .. math::

        x = \frac{1/\rho - 1/\rho_l}{1/\rho_v - 1/\rho_l}
    """
    return (1.0 / rho - 1.0 / rho_liq) / (1.0 / rho_vap - 1.0 / rho_liq)


def density_from_quality(quality, rho_liq, rho_vap):
    """Overall density of a mixture with vapor mass fraction `quality`"""
    return 1.0 / (quality / rho_vap + (1.0 - quality) / rho_liq)


def mixture_value(quality, value_liq, value_vap):
    """Mass-weighted average of a specific property of the saturated phases"""
    return quality * value_vap + (1.0 - quality) * value_liq


class SaturationNavigator:
    """
    Saturation-curve queries and construction of two-phase states.

    Parameters
    ----------
    eos : EquationOfState
        Oracle of the fluid.
    tolerance : float, optional
        Relative tolerance of the saturation temperature search.
    max_iterations : int, optional
        Iteration bound of the saturation temperature search.
    """

    def __init__(self, eos, tolerance=1e-14, max_iterations=200):
        self.eos = eos
        self.tolerance = tolerance
        self.max_iterations = max_iterations

    @property
    def triple_point_pressure(self):
        return self.eos.saturation_pressure(self.eos.triple_point_temperature)

    def saturation_pressure(self, T):
        """Saturation pressure (Pa) at temperature T (K)"""
        return self.eos.saturation_pressure(float(T))

    def saturation_temperature(self, p):
        """
        Saturation temperature (K) at pressure p (Pa).

        The saturation pressure increases monotonically with temperature, so
        the temperature is found with a bracketed search between the triple
        point and the critical point.
        """
        p = float(p)
        crit = self.eos.critical_point()
        T_triple = self.eos.triple_point_temperature
        p_triple = self.eos.saturation_pressure(T_triple)
        if not (p_triple <= p <= crit.p):
            msg = (
                f"Saturation pressure p={p} Pa is outside the range "
                f"[{p_triple}, {crit.p}] Pa of the {self.eos.fluid_name} saturation curve."
            )
            raise DomainError(msg)

        return solvers.find_root_bracketed(
            lambda T: self.eos.saturation_pressure(T) - p,
            T_triple,
            crit.T,
            tolerance=self.tolerance,
            max_iterations=self.max_iterations,
            f_lower=p_triple - p,
            f_upper=crit.p - p,
            label="saturation temperature",
        )

    def saturated_values(self, T, name):
        """Values of a property for the saturated liquid and vapor at T"""
        rho_liq, rho_vap = self.eos.saturation_densities(T)
        if name == "pressure":
            p_sat = self.eos.saturation_pressure(T)
            return p_sat, p_sat
        return self.eos.evaluate(name, T, rho_liq), self.eos.evaluate(name, T, rho_vap)

    def vapor_fraction(self, state):
        """
        Vapor mass fraction of a state.

        Two-phase states return their quality. Single-phase states return 0
        for liquids and 1 for vapors. Above the critical temperature the
        critical density separates the liquid-like and vapor-like states.
        """
        if isinstance(state, TwoPhaseState):
            return state.quality

        T, rho = state.temperature, state.density
        crit = self.eos.critical_point()
        if T >= crit.T or T < self.eos.triple_point_temperature:
            return 0.0 if rho >= crit.rho else 1.0
        rho_liq, rho_vap = self.eos.saturation_densities(T)
        return 1.0 if rho <= rho_vap else 0.0

    def state_from_temperature(self, T, quality):
        """Build the two-phase state with temperature T and vapor fraction `quality`"""
        quality = self._check_quality(quality)
        T = float(T)
        rho_liq, rho_vap = self.eos.saturation_densities(T)
        rho = density_from_quality(quality, rho_liq, rho_vap)
        return TwoPhaseState(
            temperature=T,
            density=rho,
            density_liquid=rho_liq,
            density_vapor=rho_vap,
            quality=quality,
        )

    def state_from_pressure(self, p, quality):
        """Build the two-phase state with pressure p and vapor fraction `quality`"""
        quality = self._check_quality(quality)
        return self.state_from_temperature(self.saturation_temperature(p), quality)

    def state_from_density(self, T, rho):
        """Single-phase or two-phase state at (T, rho) depending on the location of the point"""
        T, rho = float(T), float(rho)
        self.eos.check_domain(T, rho)
        if not self.eos.is_two_phase(T, rho):
            return ThermodynamicState(temperature=T, density=rho)
        rho_liq, rho_vap = self.eos.saturation_densities(T)
        return TwoPhaseState(
            temperature=T,
            density=rho,
            density_liquid=rho_liq,
            density_vapor=rho_vap,
            quality=quality_from_density(rho, rho_liq, rho_vap),
        )

    @staticmethod
    def _check_quality(quality):
        quality = float(quality)
        if not 0.0 <= quality <= 1.0:
            raise DomainError(f"The vapor fraction must be in [0, 1]. Received: {quality}")
        return quality
