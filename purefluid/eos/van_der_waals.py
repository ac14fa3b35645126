import math
import numpy as np
import jax
import jax.numpy as jnp
import equinox as eqx

from scipy.optimize import brentq

from .base import EquationOfState, CriticalPoint, ValidRange
from ..exceptions import ConvergenceError
from ..helpers_props import GAS_CONSTANT


# Bounds of the model in reduced temperature and density
T_REDUCED_MIN = 0.45
T_REDUCED_MAX = 10.0
RHO_REDUCED_MIN = 1e-9
RHO_REDUCED_MAX = 2.985

# Width of the reduced temperature band below the critical point where the
# saturation curve is given by its asymptotic expansion
T_REDUCED_CRITICAL_BAND = 1e-6


# ----------------------------------------------------------------------------- #
# Constant generation
# ----------------------------------------------------------------------------- #
class VanDerWaalsConstants(eqx.Module):
    R: jnp.ndarray
    A: jnp.ndarray
    B: jnp.ndarray
    cv: jnp.ndarray
    T_ref: jnp.ndarray
    rho_ref: jnp.ndarray
    u_ref: jnp.ndarray
    s_ref: jnp.ndarray

    def __repr__(self) -> str:
        """Return a readable string representation of the constants,
        listing all field names and their scalar values."""
        lines = []
        for name, val in self.__dict__.items():
            try:
                val = jnp.array(val).item()  # scalar to Python number
            except Exception:
                pass
            lines.append(f"  {name}={val}")
        return "VanDerWaalsConstants(\n" + ",\n".join(lines) + "\n)"


def get_constants(T_crit, p_crit, molar_mass, cv_R=2.5, T_ref=298.15, p_ref=101_325.0):
    """
    Compute the van der Waals constants of a fluid from its critical point.

    Parameters
    ----------
    T_crit : float
        Critical temperature [K].
    p_crit : float
        Critical pressure [Pa].
    molar_mass : float
        Molar mass [kg/mol].
    cv_R : float, optional
        Ideal-gas isochoric heat capacity divided by the gas constant [-]. Default is 2.5.
    T_ref : float, optional
        Temperature of the ideal-gas state with zero internal energy and entropy [K].
    p_ref : float, optional
        Pressure of the ideal-gas state with zero internal energy and entropy [Pa].

    Returns
    -------
    VanDerWaalsConstants
        An Equinox module containing the constants:
        - R : specific gas constant [J/(kg·K)]
        - A : attraction parameter [Pa·m^6/kg^2]
        - B : covolume [m^3/kg]
        - cv : ideal-gas isochoric heat capacity [J/(kg·K)]
        - T_ref, rho_ref : ideal-gas reference state [K], [kg/m^3]
        - u_ref, s_ref : internal energy and entropy at the reference state
    """
    R = GAS_CONSTANT / molar_mass
    return VanDerWaalsConstants(
        R=jnp.asarray(R),
        A=jnp.asarray(27.0 * R**2 * T_crit**2 / (64.0 * p_crit)),
        B=jnp.asarray(R * T_crit / (8.0 * p_crit)),
        cv=jnp.asarray(cv_R * R),
        T_ref=jnp.asarray(T_ref),
        rho_ref=jnp.asarray(p_ref / (R * T_ref)),
        u_ref=jnp.asarray(0.0),
        s_ref=jnp.asarray(0.0),
    )


# ----------------------------------------------------------------------------- #
# Helmholtz energy and its derivatives
# ----------------------------------------------------------------------------- #
def helmholtz_energy(T, rho, constants):
    r"""
    Mass-specific Helmholtz energy of the van der Waals fluid.

    .. math::

        a(T, \rho) = u_0 + c_v (T - T_0) - T \left(s_0 + c_v \ln\frac{T}{T_0}\right)
                     + R T \ln\frac{\rho}{\rho_0 (1 - B \rho)} - A \rho

    Differentiation recovers the familiar pressure equation
    :math:`p = \rho R T / (1 - B \rho) - A \rho^2`.
    """
    c = constants
    ideal_T = c.u_ref + c.cv * (T - c.T_ref) - T * (c.s_ref + c.cv * jnp.log(T / c.T_ref))
    return ideal_T + c.R * T * jnp.log(rho / (c.rho_ref * (1.0 - c.B * rho))) - c.A * rho


@eqx.filter_jit
def compute_properties_rhoT(T, rho, constants):
    """Evaluate all properties at (T, rho) from derivatives of the Helmholtz energy."""
    a = helmholtz_energy(T, rho, constants)
    da_dT, da_drho = jax.grad(helmholtz_energy, argnums=(0, 1))(T, rho, constants)
    hessian = jax.hessian(helmholtz_energy, argnums=(0, 1))(T, rho, constants)
    d2a_dT2 = hessian[0][0]
    d2a_dTdrho = hessian[0][1]
    d2a_drho2 = hessian[1][1]

    p = rho**2 * da_drho
    s = -da_dT
    u = a + T * s
    h = u + p / rho
    cv = -T * d2a_dT2
    dp_drho = 2.0 * rho * da_drho + rho**2 * d2a_drho2
    dp_dT = rho**2 * d2a_dTdrho
    cp = cv + T * dp_dT**2 / (rho**2 * dp_drho)
    a_square = dp_drho + T * dp_dT**2 / (rho**2 * cv)

    return {
        "temperature": T,
        "density": rho,
        "pressure": p,
        "internal_energy": u,
        "enthalpy": h,
        "entropy": s,
        "isochoric_heat_capacity": cv,
        "isobaric_heat_capacity": cp,
        "speed_of_sound": jnp.sqrt(jnp.where(a_square > 0, a_square, jnp.nan)),
        "isothermal_compressibility": 1.0 / (rho * dp_drho),
        "isobaric_expansion_coefficient": dp_dT / (rho * dp_drho),
        "dp_dT": dp_dT,
        "dp_drho": dp_drho,
    }


# ----------------------------------------------------------------------------- #
# Saturation curve in reduced variables (Maxwell equal-area rule)
# ----------------------------------------------------------------------------- #
def reduced_pressure(v_r, T_r):
    return 8.0 * T_r / (3.0 * v_r - 1.0) - 3.0 / v_r**2


def spinodal_volumes(T_r):
    """Reduced volumes where dp/dv = 0, from 4 T_r v^3 - (3v - 1)^2 = 0"""
    roots = np.roots([4.0 * T_r, -9.0, 6.0, -1.0])
    roots = np.sort(roots.real[roots.real > 1.0 / 3.0])
    return roots[0], roots[-1]


def volume_roots(p_r, T_r):
    """Smallest and largest reduced volume roots of the cubic at (p_r, T_r)"""
    roots = np.roots([3.0 * p_r, -(p_r + 8.0 * T_r), 9.0, -3.0]).real
    return roots.min(), roots.max()


def maxwell_residual(p_r, T_r):
    r"""
    Difference between the area under the isotherm and the rectangle below the
    trial saturation pressure, both between the liquid and vapor volumes.

    .. math::

        \int_{v_l}^{v_v} p_r \, dv - p_r (v_v - v_l)
        = \frac{8 T_r}{3} \ln\frac{3 v_v - 1}{3 v_l - 1}
          + 3\left(\frac{1}{v_v} - \frac{1}{v_l}\right) - p_r (v_v - v_l)
    """
    v_l, v_v = volume_roots(p_r, T_r)
    area = (8.0 * T_r / 3.0) * np.log((3.0 * v_v - 1.0) / (3.0 * v_l - 1.0)) + 3.0 * (1.0 / v_v - 1.0 / v_l)
    return area - p_r * (v_v - v_l)


def saturation_reduced(T_r, xtol=1e-15, rtol=4 * np.finfo(float).eps, maxiter=200):
    """
    Saturation state of the van der Waals fluid at reduced temperature T_r < 1.

    Returns
    -------
    tuple
        Reduced saturation pressure, liquid volume and vapor volume.
    """
    # The three volume roots merge at the critical point; use the leading-order expansion there
    if 1.0 - T_r < T_REDUCED_CRITICAL_BAND:
        dv = 2.0 * math.sqrt(max(1.0 - T_r, 0.0))
        return 1.0 - 4.0 * (1.0 - T_r), 1.0 - dv, 1.0 + dv

    v_spinodal_liq, v_spinodal_vap = spinodal_volumes(T_r)
    p_high = reduced_pressure(v_spinodal_vap, T_r)
    p_low = reduced_pressure(v_spinodal_liq, T_r)
    margin = 1e-10 * (p_high - max(p_low, 0.0))
    p_low = max(p_low, 0.0) + margin
    p_high = p_high - margin

    p_r, info = brentq(
        maxwell_residual, p_low, p_high, args=(T_r,),
        xtol=xtol * p_high, rtol=rtol, maxiter=maxiter, full_output=True, disp=False,
    )
    if not info.converged:
        raise ConvergenceError(
            f"Maxwell construction did not converge at T_r={T_r}: {info.flag}",
            best_iterate=p_r,
            residual=maxwell_residual(p_r, T_r),
            iterations=info.iterations,
        )
    v_l, v_v = volume_roots(p_r, T_r)
    return p_r, v_l, v_v


# ----------------------------------------------------------------------------- #
# State evaluators (public API)
# ----------------------------------------------------------------------------- #
class VanDerWaalsEOS(EquationOfState):
    """
    Van der Waals fluid with constant ideal-gas heat capacity.

    The pressure, energy and entropy used by the state searches are evaluated
    with closed-form expressions. The full property set, including heat
    capacities and compressibilities, comes from JAX derivatives of the
    Helmholtz energy.
    """

    def __init__(self, fluid_name, T_crit, p_crit, molar_mass, cv_R=2.5):
        self.fluid_name = fluid_name
        self.constants = get_constants(T_crit, p_crit, molar_mass, cv_R=cv_R)
        self._molar_mass = molar_mass

        # Plain floats for the closed-form evaluations
        c = self.constants
        self._R, self._A, self._B = float(c.R), float(c.A), float(c.B)
        self._cv, self._T_ref, self._rho_ref = float(c.cv), float(c.T_ref), float(c.rho_ref)
        self._u_ref, self._s_ref = float(c.u_ref), float(c.s_ref)

        rho_crit = 1.0 / (3.0 * self._B)
        self._critical_point = CriticalPoint(T=float(T_crit), p=float(p_crit), rho=rho_crit)
        self._valid_range = ValidRange(
            T_min=T_REDUCED_MIN * T_crit,
            T_max=T_REDUCED_MAX * T_crit,
            rho_min=RHO_REDUCED_MIN * rho_crit,
            rho_max=RHO_REDUCED_MAX * rho_crit,
        )
        self._last_saturation = (None, None)

    def __repr__(self):
        crit = self._critical_point
        return f"{type(self).__name__}(fluid_name={self.fluid_name!r}, T_crit={crit.T}, p_crit={crit.p})"

    @property
    def molar_mass(self):
        return self._molar_mass

    def critical_point(self):
        return self._critical_point

    def valid_range(self):
        return self._valid_range

    # ------------------------------------------------------------------ #
    # Single-phase evaluations
    # ------------------------------------------------------------------ #
    def pressure(self, T, rho):
        self.check_domain(T, rho)
        return rho * self._R * T / (1.0 - self._B * rho) - self._A * rho**2

    def internal_energy(self, T, rho):
        self.check_domain(T, rho)
        return self._u_ref + self._cv * (T - self._T_ref) - self._A * rho

    def entropy(self, T, rho):
        self.check_domain(T, rho)
        return (
            self._s_ref
            + self._cv * math.log(T / self._T_ref)
            - self._R * math.log(rho / (self._rho_ref * (1.0 - self._B * rho)))
        )

    def properties(self, T, rho):
        self.check_domain(T, rho)
        props = compute_properties_rhoT(
            jnp.asarray(T, dtype=jnp.float64),
            jnp.asarray(rho, dtype=jnp.float64),
            self.constants,
        )
        return {name: float(value) for name, value in props.items()}

    def ideal_gas_properties(self, T, p):
        R, cv = self._R, self._cv
        rho_ideal = p / (R * T)
        return {
            "enthalpy": self._u_ref + cv * (T - self._T_ref) + R * T,
            "entropy": self._s_ref + cv * math.log(T / self._T_ref) - R * math.log(rho_ideal / self._rho_ref),
            "isobaric_heat_capacity": cv + R,
        }

    # ------------------------------------------------------------------ #
    # Saturation curve
    # ------------------------------------------------------------------ #
    def _saturation_state(self, T):
        T_last, values = self._last_saturation
        if T_last == T:
            return values

        crit = self._critical_point
        p_r, v_l, v_v = saturation_reduced(T / crit.T)
        values = (p_r * crit.p, crit.rho / v_l, crit.rho / v_v)
        self._last_saturation = (T, values)
        return values
