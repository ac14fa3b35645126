r"""
Resolution of the thermodynamic state from an arbitrary property pair.

The equation of state can only be evaluated at given temperature and
density, so every other property pair is mapped to (T, rho) by one or two
nested scalar searches:

.. list-table:: Search strategy for each property pair
    :widths: 20 80
    :header-rows: 1

    * - Pairs
      - Strategy
    * - TV
      - Direct evaluation at :math:`\rho = 1/v`
    * - ST, TH
      - Density search along the isotherm
    * - PV, UV, SV, VH
      - Temperature search along the isochore
    * - HP, SP, UP
      - Saturation check, then temperature search along the isobar with an
        inner density search for pressure
    * - SH
      - Temperature search along the isentrope with an inner density search
        for entropy

Inside the saturation dome the properties of the mixture follow the lever
rule :math:`y = x y_v + (1 - x) y_l`, which is linear in quality, so the
dome segment of an isotherm is solved in closed form.
"""

import math
import logging
import numpy as np
import equinox as eqx

from . import solvers
from .exceptions import DomainError, ConvergenceError, AmbiguousRootError
from .helpers_props import (
    PropertyPairSpec,
    ThermodynamicState,
    TwoPhaseState,
)
from .saturation import mixture_value
from .utils import relative_difference

logger = logging.getLogger(__name__)

# Tightest relative tolerance used by the scalar searches
MIN_SEARCH_TOLERANCE = solvers.MIN_RTOL

# Number of densities sampled on each single-phase branch of an isotherm
ISOTHERM_GRID_POINTS = 16


class ResolverOptions(eqx.Module):
    """Numerical settings of the state searches.

    Parameters
    ----------
    max_iterations : int
        Iteration bound of every scalar search.
    search_tolerance_factor : float
        Ratio between the relative tolerance of the scalar searches and the
        tolerance requested by the caller. The searches run tighter than the
        requested tolerance so that nested residuals stay smooth and steep
        properties (liquid pressure) still meet the final check.
    print_convergence : bool
        If True, log the outcome of every search at INFO level.
    """

    max_iterations: int = 200
    search_tolerance_factor: float = 1e-6
    print_convergence: bool = False


class StateResolver:
    """
    Map a property pair to the unique consistent state of a pure fluid.

    Parameters
    ----------
    eos : EquationOfState
        Oracle of the fluid.
    saturation : SaturationNavigator
        Saturation queries built on the same oracle.
    options : ResolverOptions, optional
        Numerical settings.
    """

    def __init__(self, eos, saturation, options=None):
        self.eos = eos
        self.saturation = saturation
        self.options = ResolverOptions() if options is None else options

        crit = eos.critical_point()
        self._scales = {
            "temperature": crit.T,
            "pressure": crit.p,
            "volume": 1.0 / crit.rho,
            "density": crit.rho,
            "internal_energy": eos.gas_constant * crit.T,
            "enthalpy": eos.gas_constant * crit.T,
            "entropy": eos.gas_constant,
        }

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def resolve(self, spec: PropertyPairSpec, previous=None):
        """
        Find the state that reproduces both targets of `spec`.

        Parameters
        ----------
        spec : PropertyPairSpec
            Property pair, target values and relative tolerance.
        previous : ThermodynamicState or TwoPhaseState, optional
            Current state of the caller. Used to choose between several
            valid roots (continuity preference).

        Returns
        -------
        ThermodynamicState or TwoPhaseState
            The resolved state.
        """
        targets = spec.targets
        self._check_targets(targets)
        handler = getattr(self, f"_resolve_{spec.pair.name}")
        state = handler(targets, spec.tolerance, previous)
        self._check_convergence(state, targets, spec.tolerance)
        logger.debug(f"Resolved {spec.pair.name} {targets} -> {state}")
        return state

    def resolve_TP(self, T, p, tol, previous=None):
        """
        State at temperature T and pressure p.

        On the saturation line the pair does not fix the quality; the
        saturated state closest to `previous` is returned, keeping
        `previous` itself when it is a mixture at the same temperature.
        """
        T, p = float(T), float(p)
        self._check_targets({"temperature": T, "pressure": p})
        if self._is_subcritical(T):
            p_sat = self.eos.saturation_pressure(T)
            if abs(p - p_sat) <= tol * p_sat:
                if isinstance(previous, TwoPhaseState) and previous.temperature == T:
                    return previous
                candidates = [
                    self.saturation.state_from_temperature(T, 0.0),
                    self.saturation.state_from_temperature(T, 1.0),
                ]
                return self._select_root(candidates, previous, tol, "TP")
        rho = self._density_from_pressure(T, p, tol)
        return ThermodynamicState(temperature=T, density=rho)

    def property_value(self, state, name):
        """Value of a mass-specific property of a resolved state"""
        T, rho = state.temperature, state.density
        if name == "temperature":
            return T
        if name == "density":
            return rho
        if name == "volume":
            return 1.0 / rho
        if isinstance(state, TwoPhaseState):
            if name == "pressure":
                return self.eos.saturation_pressure(T)
            value_liq = self.eos.evaluate(name, T, state.density_liquid)
            value_vap = self.eos.evaluate(name, T, state.density_vapor)
            return mixture_value(state.quality, value_liq, value_vap)
        return self.eos.evaluate(name, T, rho)

    def state_at(self, T, rho):
        """Single-phase or two-phase state at (T, rho)"""
        return self.saturation.state_from_density(T, rho)

    # ------------------------------------------------------------------ #
    # Pair handlers
    # ------------------------------------------------------------------ #
    def _resolve_TV(self, targets, tol, previous):
        return self.state_at(targets["temperature"], 1.0 / targets["volume"])

    def _resolve_ST(self, targets, tol, previous):
        return self._solve_isotherm(targets["temperature"], "entropy", targets["entropy"], tol, previous)

    def _resolve_TH(self, targets, tol, previous):
        return self._solve_isotherm(targets["temperature"], "enthalpy", targets["enthalpy"], tol, previous)

    def _resolve_PV(self, targets, tol, previous):
        return self._solve_isochore(1.0 / targets["volume"], "pressure", targets["pressure"], tol)

    def _resolve_UV(self, targets, tol, previous):
        return self._solve_isochore(1.0 / targets["volume"], "internal_energy", targets["internal_energy"], tol)

    def _resolve_SV(self, targets, tol, previous):
        return self._solve_isochore(1.0 / targets["volume"], "entropy", targets["entropy"], tol)

    def _resolve_VH(self, targets, tol, previous):
        return self._solve_isochore(1.0 / targets["volume"], "enthalpy", targets["enthalpy"], tol)

    def _resolve_HP(self, targets, tol, previous):
        return self._solve_isobar(targets["pressure"], "enthalpy", targets["enthalpy"], tol)

    def _resolve_SP(self, targets, tol, previous):
        return self._solve_isobar(targets["pressure"], "entropy", targets["entropy"], tol)

    def _resolve_UP(self, targets, tol, previous):
        return self._solve_isobar(targets["pressure"], "internal_energy", targets["internal_energy"], tol)

    def _resolve_SH(self, targets, tol, previous):
        return self._solve_isentrope(targets["entropy"], targets["enthalpy"], tol)

    # ------------------------------------------------------------------ #
    # Isotherm: find density at fixed temperature
    # ------------------------------------------------------------------ #
    def _solve_isotherm(self, T, name, target, tol, previous=None):
        """State on the isotherm T where property `name` equals `target`"""
        bounds = self.eos.valid_range()
        candidates = []
        if self._is_subcritical(T):
            rho_liq, rho_vap = self.eos.saturation_densities(T)
            value_liq, value_vap = self.saturation.saturated_values(T, name)

            # Mixture properties are linear in quality inside the dome
            if value_vap != value_liq:
                quality = (target - value_liq) / (value_vap - value_liq)
                if 0.0 <= quality <= 1.0:
                    candidates.append(self.saturation.state_from_temperature(T, quality))

            # Single-phase branches, excluding the saturation boundaries already covered by the dome
            vapor_grid = np.geomspace(bounds.rho_min, rho_vap, ISOTHERM_GRID_POINTS).tolist()
            liquid_grid = np.linspace(rho_liq, bounds.rho_max, ISOTHERM_GRID_POINTS).tolist()
            vapor_grid[-1], liquid_grid[0] = rho_vap, rho_liq
            known = {rho_vap: value_vap - target, rho_liq: value_liq - target}
            roots = self._branch_roots(T, name, target, vapor_grid, tol, known)
            roots += self._branch_roots(T, name, target, liquid_grid, tol, known)
            candidates += [
                ThermodynamicState(temperature=T, density=rho) for rho in roots if rho not in (rho_vap, rho_liq)
            ]
        else:
            grid = np.geomspace(bounds.rho_min, bounds.rho_max, 2 * ISOTHERM_GRID_POINTS).tolist()
            roots = self._branch_roots(T, name, target, grid, tol)
            candidates += [ThermodynamicState(temperature=T, density=rho) for rho in roots]

        if not candidates:
            msg = (
                f"No state of {self.eos.fluid_name} at T={T} K has {name}={target}. "
                f"The target value is outside the achievable range."
            )
            raise DomainError(msg)

        return self._select_root(candidates, previous, tol, f"T-{name}")

    def _branch_roots(self, T, name, target, grid, tol, known=None):
        """
        Density roots on a single-phase branch sampled at the densities of `grid`.

        Enthalpy is not monotone along isotherms, so the branch is first split
        at the extrema of the property, located where its isothermal
        derivative changes sign between two grid points. Every segment is then
        monotone and holds at most one root. `known` maps densities to
        residuals that are already available.
        """
        known = {} if known is None else known
        func = lambda rho: self.eos.evaluate(name, T, rho) - target
        slope = lambda rho: self.eos.isothermal_derivative(name, T, rho)
        search_tol = self._search_tolerance(tol)

        slopes = [slope(rho) for rho in grid]
        points = [grid[0]]
        for i in range(1, len(grid)):
            if slopes[i - 1] * slopes[i] < 0.0:
                rho_extremum = solvers.find_root_bracketed(
                    slope,
                    grid[i - 1],
                    grid[i],
                    tolerance=search_tol,
                    max_iterations=self.options.max_iterations,
                    f_lower=slopes[i - 1],
                    f_upper=slopes[i],
                    label=f"{name} extremum at T={T} K",
                )
                if grid[i - 1] < rho_extremum < grid[i]:
                    points.append(rho_extremum)
            points.append(grid[i])

        residuals = [known[rho] if rho in known else func(rho) for rho in points]
        roots = []
        for i, (rho, f) in enumerate(zip(points, residuals)):
            if f == 0.0:
                roots.append(rho)
                continue
            if i == 0 or residuals[i - 1] == 0.0:
                continue
            if math.copysign(1.0, f) != math.copysign(1.0, residuals[i - 1]):
                root = solvers.find_root_bracketed(
                    func,
                    points[i - 1],
                    rho,
                    tolerance=search_tol,
                    max_iterations=self.options.max_iterations,
                    f_lower=residuals[i - 1],
                    f_upper=f,
                    label=f"density at T={T} K",
                    print_convergence=self.options.print_convergence,
                )
                roots.append(root)
        return roots

    def _density_from_pressure(self, T, p, tol, branch=None):
        """
        Single-phase density with pressure p at temperature T.

        Below the critical temperature the liquid branch is searched when p is
        above the saturation pressure and the vapor branch otherwise. Pressure
        increases with density on both branches, so the saturated end of the
        bracket must lie below p on the liquid side and above p on the vapor
        side. When it lies on the wrong side by less than the tolerance, which
        happens at the ends of isobar searches, the saturated density is
        returned.
        """
        bounds = self.eos.valid_range()
        if not self._is_subcritical(T):
            return solvers.find_root_bracketed(
                lambda rho: self.eos.pressure(T, rho) - p,
                bounds.rho_min,
                bounds.rho_max,
                tolerance=MIN_SEARCH_TOLERANCE,
                max_iterations=self.options.max_iterations,
                label=f"density at T={T} K, p={p} Pa",
                print_convergence=self.options.print_convergence,
            )

        if branch is None:
            branch = "liquid" if p > self.eos.saturation_pressure(T) else "vapor"
        rho_liq, rho_vap = self.eos.saturation_densities(T)
        rho_sat = rho_liq if branch == "liquid" else rho_vap
        f_sat = self.eos.pressure(T, rho_sat) - p
        wrong_side = f_sat >= 0.0 if branch == "liquid" else f_sat <= 0.0
        if wrong_side:
            if abs(f_sat) <= tol * p:
                return rho_sat
            msg = (
                f"Pressure p={p} Pa is {'below' if branch == 'liquid' else 'above'} the saturation "
                f"pressure {p + f_sat} Pa at T={T} K and has no {branch} state."
            )
            raise DomainError(msg)

        if branch == "liquid":
            rho_lower, rho_upper = rho_liq, bounds.rho_max
            f_lower, f_upper = f_sat, None
        else:
            rho_lower, rho_upper = bounds.rho_min, rho_vap
            f_lower, f_upper = None, f_sat

        return solvers.find_root_bracketed(
            lambda rho: self.eos.pressure(T, rho) - p,
            rho_lower,
            rho_upper,
            tolerance=MIN_SEARCH_TOLERANCE,
            max_iterations=self.options.max_iterations,
            f_lower=f_lower,
            f_upper=f_upper,
            label=f"density at T={T} K, p={p} Pa",
            print_convergence=self.options.print_convergence,
        )

    # ------------------------------------------------------------------ #
    # Isochore: find temperature at fixed density
    # ------------------------------------------------------------------ #
    def _solve_isochore(self, rho, name, target, tol):
        """State on the isochore rho where property `name` equals `target`"""
        bounds = self.eos.valid_range()
        if rho > bounds.rho_max:
            raise DomainError(f"Density rho={rho} kg/m3 is above the maximum density {bounds.rho_max} kg/m3")

        func = lambda T: self.property_value(self.state_at(T, rho), name) - target
        T = solvers.find_root_bracketed(
            func,
            bounds.T_min,
            bounds.T_max,
            tolerance=self._search_tolerance(tol),
            max_iterations=self.options.max_iterations,
            label=f"temperature at rho={rho} kg/m3",
            print_convergence=self.options.print_convergence,
        )
        return self.state_at(T, rho)

    # ------------------------------------------------------------------ #
    # Isobar: find temperature at fixed pressure
    # ------------------------------------------------------------------ #
    def _solve_isobar(self, p, name, target, tol):
        """State on the isobar p where property `name` equals `target`"""
        bounds = self.eos.valid_range()
        crit = self.eos.critical_point()
        T_lower, T_upper = bounds.T_min, bounds.T_max
        branch = None

        def func(T):
            rho = self._density_from_pressure(T, p, tol, branch=branch)
            return self.eos.evaluate(name, T, rho) - target

        f_lower = f_upper = None
        if p < crit.p and p >= self.saturation.triple_point_pressure:
            T_sat = self.saturation.saturation_temperature(p)
            value_liq, value_vap = self.saturation.saturated_values(T_sat, name)
            low, high = min(value_liq, value_vap), max(value_liq, value_vap)

            if low <= target <= high:
                quality = (target - value_liq) / (value_vap - value_liq)
                logger.debug(f"Isobar p={p} Pa: two-phase state at T_sat={T_sat} K, quality={quality}")
                return self.saturation.state_from_temperature(T_sat, quality)

            if target < low:
                T_upper, branch, quality, value_sat = T_sat, "liquid", 0.0, value_liq
            else:
                T_lower, branch, quality, value_sat = T_sat, "vapor", 1.0, value_vap
            logger.debug(f"Isobar p={p} Pa: searching the {branch} branch, T_sat={T_sat} K")

            # The branch state at T_sat can differ slightly from the saturated values used above
            f_sat = func(T_sat)
            if f_sat == 0.0 or math.copysign(1.0, f_sat) != math.copysign(1.0, value_sat - target):
                return self.saturation.state_from_temperature(T_sat, quality)
            if branch == "liquid":
                f_upper = f_sat
            else:
                f_lower = f_sat

        T = solvers.find_root_bracketed(
            func,
            T_lower,
            T_upper,
            tolerance=self._search_tolerance(tol),
            max_iterations=self.options.max_iterations,
            f_lower=f_lower,
            f_upper=f_upper,
            label=f"temperature at p={p} Pa",
            print_convergence=self.options.print_convergence,
        )

        # A root on the saturation boundary is stored as a saturated mixture
        if branch is not None and T == T_sat:
            return self.saturation.state_from_temperature(T_sat, quality)

        rho = self._density_from_pressure(T, p, tol, branch=branch)
        return ThermodynamicState(temperature=T, density=rho)

    # ------------------------------------------------------------------ #
    # Isentrope: find temperature at fixed entropy
    # ------------------------------------------------------------------ #
    def _solve_isentrope(self, s, h, tol):
        """
        State with entropy s and enthalpy h.

        Entropy decreases monotonically with density along every isotherm,
        so each trial temperature has a unique state with entropy s. The
        temperature interval is first narrowed to the range where that state
        exists, bounded by the isochores of the minimum and maximum density.
        """
        bounds = self.eos.valid_range()
        search_tol = self._search_tolerance(tol)

        s_min_at_T_min = self.eos.entropy(bounds.T_min, bounds.rho_max)
        s_min_at_T_max = self.eos.entropy(bounds.T_max, bounds.rho_max)
        s_max_at_T_min = self.eos.entropy(bounds.T_min, bounds.rho_min)
        s_max_at_T_max = self.eos.entropy(bounds.T_max, bounds.rho_min)
        if s < s_min_at_T_min or s > s_max_at_T_max:
            msg = (
                f"Entropy s={s} J/kg/K is outside the range [{s_min_at_T_min}, {s_max_at_T_max}] J/kg/K "
                f"achievable by {self.eos.fluid_name}."
            )
            raise DomainError(msg)

        T_lower, T_upper = bounds.T_min, bounds.T_max
        if s > s_max_at_T_min:
            T_lower = solvers.find_root_bracketed(
                lambda T: self.eos.entropy(T, bounds.rho_min) - s,
                bounds.T_min,
                bounds.T_max,
                tolerance=search_tol,
                max_iterations=self.options.max_iterations,
                f_lower=s_max_at_T_min - s,
                f_upper=s_max_at_T_max - s,
                label="lowest temperature of the isentrope",
            )
        if s < s_min_at_T_max:
            T_upper = solvers.find_root_bracketed(
                lambda T: self.eos.entropy(T, bounds.rho_max) - s,
                bounds.T_min,
                bounds.T_max,
                tolerance=search_tol,
                max_iterations=self.options.max_iterations,
                f_lower=s_min_at_T_min - s,
                f_upper=s_min_at_T_max - s,
                label="highest temperature of the isentrope",
            )

        # Move the bounds inside the feasible interval if the searches stopped just outside it
        T_lower = self._step_inside(lambda T: self.eos.entropy(T, bounds.rho_min) >= s, T_lower, T_upper)
        T_upper = self._step_inside(lambda T: self.eos.entropy(T, bounds.rho_max) <= s, T_upper, T_lower)

        def isentrope_state(T):
            return self._solve_isotherm(T, "entropy", s, search_tol)

        T = solvers.find_root_bracketed(
            lambda T: self.property_value(isentrope_state(T), "enthalpy") - h,
            T_lower,
            T_upper,
            tolerance=search_tol,
            max_iterations=self.options.max_iterations,
            label=f"temperature at s={s} J/kg/K",
            print_convergence=self.options.print_convergence,
        )
        return isentrope_state(T)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _is_subcritical(self, T):
        return self.eos.triple_point_temperature <= T < self.eos.critical_point().T

    def _step_inside(self, is_feasible, T, T_towards):
        """Advance T by one representable float at a time until `is_feasible(T)` holds"""
        for _ in range(self.options.max_iterations):
            if is_feasible(T) or T == T_towards:
                return T
            T = float(np.nextafter(T, T_towards))
        return T

    def _search_tolerance(self, tol):
        return max(tol * self.options.search_tolerance_factor, MIN_SEARCH_TOLERANCE)

    def _select_root(self, candidates, previous, tol, label):
        """
        Pick one state among the candidate roots.

        Candidates closer than the tolerance are the same root reached from
        two sides of a saturation boundary; the two-phase representation is
        kept. Remaining roots are ranked by their distance to the previous
        state in reduced (T/Tc, rho/rhoc) coordinates.
        """
        crit = self.eos.critical_point()

        def distance(a, b):
            return math.hypot((a.temperature - b.temperature) / crit.T, (a.density - b.density) / crit.rho)

        unique = []
        for state in sorted(candidates, key=lambda c: not c.is_two_phase):
            if all(distance(state, other) > tol for other in unique):
                unique.append(state)

        if len(unique) == 1:
            return unique[0]

        if previous is None:
            msg = f"Found {len(unique)} states for the {label} search and no previous state to choose from."
            raise AmbiguousRootError(msg, candidates=unique)

        ranked = sorted(unique, key=lambda c: distance(c, previous))
        d_best, d_next = distance(ranked[0], previous), distance(ranked[1], previous)
        if d_next - d_best <= tol * max(d_next, 1.0):
            msg = (
                f"Found {len(unique)} states for the {label} search that are equally close "
                f"to the previous state."
            )
            raise AmbiguousRootError(msg, candidates=unique)

        logger.warning(
            f"Found {len(unique)} states for the {label} search. "
            f"Keeping the one closest to the previous state: {ranked[0]}"
        )
        return ranked[0]

    def _check_targets(self, targets):
        """Reject target values that no state of the fluid can have"""
        bounds = self.eos.valid_range()
        if "volume" in targets and targets["volume"] <= 0.0:
            raise DomainError(f"The specific volume must be positive. Received: {targets['volume']}")
        if "pressure" in targets and targets["pressure"] <= 0.0:
            raise DomainError(f"The pressure must be positive. Received: {targets['pressure']}")
        if "temperature" in targets:
            T = targets["temperature"]
            if not (bounds.T_min <= T <= bounds.T_max):
                msg = (
                    f"Temperature T={T} K is outside the valid range "
                    f"[{bounds.T_min}, {bounds.T_max}] K for {self.eos.fluid_name}."
                )
                raise DomainError(msg)

    def _check_convergence(self, state, targets, tol):
        """Verify that the state reproduces both targets within the relative tolerance"""
        for name, target in targets.items():
            value = self.property_value(state, name)
            residual = relative_difference(value, target, self._scales[name])
            if abs(residual) > tol:
                msg = (
                    f"The resolved state does not reproduce {name}={target} "
                    f"(value {value}, relative residual {residual:.3e} > {tol:.1e})."
                )
                raise ConvergenceError(msg, best_iterate=state, residual=residual)
