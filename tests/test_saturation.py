import pytest
import numpy as np
import purefluid as pf

from utilities import VDW_FLUIDS, get_available_backends

# Fluids checked with every backend
FLUID_NAMES = ["Water", "CO2", "Nitrogen", "R134a"]

# Number of temperatures checked along the saturation curve
NUM_TEMPERATURES = 11


def get_fluid(fluid_name, backend):
    return pf.PureFluidPhase(fluid_name, backend)


def get_temperatures(fluid):
    T_triple = fluid.triple_point_temperature
    T_crit = fluid.critical_temperature
    T_low = max(0.5 * T_crit, T_triple + 1e-3 * (T_crit - T_triple))
    return np.linspace(T_low, 0.99 * T_crit, NUM_TEMPERATURES)


@pytest.mark.parametrize("fluid_name", FLUID_NAMES)
@pytest.mark.parametrize("backend", get_available_backends())
def test_saturation_pressure_is_monotone(fluid_name, backend):
    fluid = get_fluid(fluid_name, backend)
    p_sat = [fluid.saturation_pressure(T) for T in get_temperatures(fluid)]
    assert np.all(np.diff(p_sat) > 0.0)
    assert p_sat[-1] < fluid.critical_pressure


@pytest.mark.parametrize("fluid_name", FLUID_NAMES)
@pytest.mark.parametrize("backend", get_available_backends())
def test_saturation_temperature_inverts_pressure(fluid_name, backend):
    fluid = get_fluid(fluid_name, backend)
    for T in get_temperatures(fluid):
        T_sat = fluid.saturation_temperature(fluid.saturation_pressure(T))
        assert np.isclose(T_sat, T, rtol=1e-9)


@pytest.mark.parametrize("fluid_name", VDW_FLUIDS)
@pytest.mark.parametrize("quality", [0.0, 0.25, 0.5, 0.75, 1.0])
def test_two_phase_state_consistency(fluid_name, quality):
    fluid = get_fluid(fluid_name, "VDW")
    T = 0.85 * fluid.critical_temperature
    fluid.set_state_Tsat(T, quality)
    rho_liq, rho_vap = fluid.eos.saturation_densities(T)

    assert fluid.state.is_two_phase
    assert fluid.temperature == T
    assert fluid.vapor_fraction() == quality
    assert rho_vap <= fluid.density <= rho_liq
    if 0.0 < quality < 1.0:
        assert rho_vap < fluid.density < rho_liq
    assert np.isclose(fluid.pressure, fluid.saturation_pressure(T), rtol=1e-14)

    # Lever rule on the specific volume
    v_mix = quality / rho_vap + (1.0 - quality) / rho_liq
    assert np.isclose(fluid.specific_volume, v_mix, rtol=1e-12)


@pytest.mark.parametrize("backend", get_available_backends())
@pytest.mark.parametrize("quality", [0.0, 1.0])
def test_saturated_boundaries_match_single_phase_states(backend, quality):
    fluid = get_fluid("Water", backend)
    T = 0.7 * fluid.critical_temperature
    fluid.set_state_Tsat(T, quality)
    rho_liq, rho_vap = fluid.eos.saturation_densities(T)
    rho = rho_vap if quality == 1.0 else rho_liq

    assert np.isclose(fluid.density, rho, rtol=1e-12)
    assert np.isclose(fluid.pressure, fluid.eos.pressure(T, rho), rtol=1e-6)
    assert np.isclose(fluid.enthalpy_mass, fluid.eos.enthalpy(T, rho), rtol=1e-12)
    assert np.isclose(fluid.entropy_mass, fluid.eos.entropy(T, rho), rtol=1e-12)


@pytest.mark.parametrize("backend", get_available_backends())
def test_saturated_states_from_pressure(backend):
    fluid = get_fluid("CO2", backend)
    p = 0.5 * fluid.critical_pressure
    fluid.set_state_Psat(p, 0.3)
    assert fluid.state.is_two_phase
    assert np.isclose(fluid.pressure, p, rtol=1e-10)
    assert np.isclose(fluid.vapor_fraction(), 0.3)


def test_saturation_outside_the_curve_raises_domain_error():
    fluid = get_fluid("Water", "VDW")
    with pytest.raises(pf.DomainError):
        fluid.saturation_pressure(1.01 * fluid.critical_temperature)
    with pytest.raises(pf.DomainError):
        fluid.saturation_temperature(1.01 * fluid.critical_pressure)
    with pytest.raises(pf.DomainError):
        fluid.set_state_Tsat(1.01 * fluid.critical_temperature, 0.5)
    with pytest.raises(pf.DomainError):
        fluid.set_state_Tsat(0.8 * fluid.critical_temperature, 1.5)


def test_saturation_at_the_critical_point():
    eos = pf.VanDerWaalsEOS("Water", 647.096, 22.064e6, 0.018015268)
    crit = eos.critical_point()
    assert eos.saturation_pressure(crit.T) == crit.p
    assert eos.saturation_densities(crit.T) == (crit.rho, crit.rho)


def test_vapor_fraction_of_single_phase_states():
    fluid = get_fluid("Nitrogen", "VDW")
    T_crit, p_crit = fluid.critical_temperature, fluid.critical_pressure
    T_sat = fluid.saturation_temperature(0.5 * p_crit)

    fluid.set_state_TP(0.95 * T_sat, 0.5 * p_crit)
    assert fluid.vapor_fraction() == 0.0
    fluid.set_state_TP(1.05 * T_sat, 0.5 * p_crit)
    assert fluid.vapor_fraction() == 1.0

    # Supercritical states are split by the critical density
    fluid.set_state_TV(1.2 * T_crit, 0.5 / fluid.critical_density)
    assert fluid.vapor_fraction() == 0.0
    fluid.set_state_TV(1.2 * T_crit, 2.0 / fluid.critical_density)
    assert fluid.vapor_fraction() == 1.0


if __name__ == "__main__":

    # Running pytest from this script
    pytest.main([__file__, "-v"])
