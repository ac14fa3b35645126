import pytest
import numpy as np
import purefluid as pf

from utilities import VDW_FLUIDS, STATE_LABELS, get_reference_state

BACKEND = "VDW"


@pytest.fixture
def water():
    return pf.PureFluidPhase("Water", BACKEND)


def test_default_state(water):
    assert water.temperature == 298.15
    assert np.isclose(water.pressure, pf.REFERENCE_PRESSURE, rtol=1e-10)
    assert not water.state.is_two_phase


@pytest.mark.parametrize("fluid_name", VDW_FLUIDS)
def test_critical_and_range_queries(fluid_name):
    fluid = pf.PureFluidPhase(fluid_name, BACKEND)
    T_crit, p_crit, molar_mass, _ = pf.substances.VAN_DER_WAALS_DATA[fluid_name]
    bounds = fluid.valid_range()

    assert fluid.critical_temperature == T_crit
    assert fluid.critical_pressure == p_crit
    assert fluid.molar_mass == molar_mass
    assert np.isclose(fluid.eos.pressure(T_crit, fluid.critical_density), p_crit, rtol=1e-12)
    assert fluid.min_temperature == bounds.T_min < fluid.critical_temperature < bounds.T_max == fluid.max_temperature
    assert fluid.triple_point_temperature == fluid.min_temperature


@pytest.mark.parametrize("state_label", STATE_LABELS)
def test_molar_properties(state_label):
    fluid = get_reference_state("CO2", BACKEND, state_label)
    M = fluid.molar_mass

    assert np.isclose(fluid.enthalpy_mole, fluid.enthalpy_mass * M)
    assert np.isclose(fluid.int_energy_mole, fluid.int_energy_mass * M)
    assert np.isclose(fluid.entropy_mole, fluid.entropy_mass * M)
    assert np.isclose(fluid.gibbs_mole, (fluid.enthalpy_mass - fluid.temperature * fluid.entropy_mass) * M)
    assert np.isclose(fluid.molar_volume * fluid.molar_density, 1.0)
    assert np.isclose(fluid.molar_volume, fluid.specific_volume * M)
    assert fluid.cv_mole == pytest.approx(fluid.cv_mass * M)
    if not fluid.state.is_two_phase:
        assert fluid.cp_mole == pytest.approx(fluid.cp_mass * M)


@pytest.mark.parametrize("state_label", STATE_LABELS)
def test_single_species_chemical_potential(state_label):
    fluid = get_reference_state("Methane", BACKEND, state_label)

    for values in (
        fluid.chem_potentials(),
        fluid.standard_chem_potentials(),
        fluid.partial_molar_enthalpies(),
        fluid.activities(),
        fluid.activity_concentrations(),
    ):
        assert isinstance(values, np.ndarray)
        assert values.shape == (1,)

    assert fluid.chem_potentials()[0] == pytest.approx(fluid.gibbs_mole)
    assert fluid.standard_chem_potentials()[0] == pytest.approx(fluid.gibbs_mole)
    assert fluid.partial_molar_enthalpies()[0] == pytest.approx(fluid.enthalpy_mole)
    assert fluid.partial_molar_entropies()[0] == pytest.approx(fluid.entropy_mole)
    assert fluid.partial_molar_int_energies()[0] == pytest.approx(fluid.int_energy_mole)
    assert fluid.partial_molar_volumes()[0] == pytest.approx(fluid.molar_volume)
    assert np.all(fluid.activities() == 1.0)
    assert np.all(fluid.activity_concentrations() == 1.0)
    assert fluid.standard_concentration() == 1.0


def test_standard_state_values(water):
    RT = pf.GAS_CONSTANT * water.temperature
    assert water.enthalpy_RT()[0] == pytest.approx(water.enthalpy_mole / RT)
    assert water.entropy_R()[0] == pytest.approx(water.entropy_mole / pf.GAS_CONSTANT)
    assert water.gibbs_RT()[0] == pytest.approx(water.enthalpy_RT()[0] - water.entropy_R()[0])


def test_reference_state_values(water):
    # The ideal-gas datum of the model is zero energy and entropy at 298.15 K and one atmosphere
    assert water.temperature == 298.15
    assert water.enthalpy_RT_ref()[0] == pytest.approx(1.0, rel=1e-12)
    assert water.entropy_R_ref()[0] == pytest.approx(0.0, abs=1e-12)
    assert water.gibbs_RT_ref()[0] == pytest.approx(1.0, rel=1e-12)
    assert water.gibbs_ref()[0] == pytest.approx(pf.GAS_CONSTANT * 298.15, rel=1e-12)

    water.set_state_TP(400.0, 1e4)
    h_RT, s_R = water.enthalpy_RT_ref()[0], water.entropy_R_ref()[0]
    assert water.gibbs_RT_ref()[0] == pytest.approx(h_RT - s_R)


def test_two_phase_derivative_properties(water):
    water.set_state_Tsat(0.8 * water.critical_temperature, 0.4)
    assert water.cp_mass == np.inf
    assert water.isothermal_compressibility == np.inf
    assert water.thermal_expansion_coeff == np.inf
    assert np.isfinite(water.cv_mass) and water.cv_mass > 0.0

    # The mixture cv exceeds the single-phase value of the model
    assert water.cv_mass > float(water.eos.constants.cv)


def test_single_phase_derivative_properties(water):
    water.set_state_TP(700.0, 0.5 * water.critical_pressure)
    props = water.eos.properties(water.temperature, water.density)
    assert water.cp_mass == props["isobaric_heat_capacity"]
    assert water.cv_mass == props["isochoric_heat_capacity"]
    assert water.isothermal_compressibility == props["isothermal_compressibility"]
    assert water.thermal_expansion_coeff == props["isobaric_expansion_coefficient"]
    assert water.cp_mass > water.cv_mass > 0.0


def test_set_pressure_keeps_temperature(water):
    T = 0.7 * water.critical_temperature
    p_sat = water.saturation_pressure(T)
    water.set_state_TP(T, 2.0 * p_sat)
    assert water.vapor_fraction() == 0.0

    water.set_pressure(0.5 * p_sat)
    assert water.temperature == T
    assert np.isclose(water.pressure, 0.5 * p_sat, rtol=1e-10)
    assert water.vapor_fraction() == 1.0

    water.set_pressure(3.0 * p_sat)
    assert water.temperature == T
    assert np.isclose(water.pressure, 3.0 * p_sat, rtol=1e-10)
    assert water.vapor_fraction() == 0.0


def test_set_pressure_at_saturation_keeps_the_mixture(water):
    T = 0.75 * water.critical_temperature
    water.set_state_Tsat(T, 0.3)
    state = water.state
    water.set_pressure(water.pressure)
    assert water.state is state


def test_get_state_snapshot(water):
    water.set_state_Tsat(0.9 * water.critical_temperature, 0.25)
    state = water.get_state()

    assert isinstance(state, pf.FluidState)
    assert state.fluid_name == "Water"
    assert state.is_two_phase
    assert state["Q"] == state.quality_mass == 0.25
    assert state["h"] == state.h == water.enthalpy_mass
    assert state.p == state["pressure"] == water.pressure
    assert state.rho_liq > state.rho > state.rho_vap
    assert state.pressure_saturation == water.pressure
    assert np.isnan(state.speed_of_sound)

    water.set_state_TP(1.2 * water.critical_temperature, 2.0 * water.critical_pressure)
    state = water.get_state()
    assert not state.is_two_phase
    assert np.isnan(state.pressure_saturation)
    assert np.isnan(state.density_liquid)
    assert state.speed_of_sound > 0.0
    assert state.Z == pytest.approx(state.p / (state.rho * water.eos.gas_constant * state.T))
    assert state.gamma == pytest.approx(state.cp / state.cv)
    with pytest.raises(KeyError):
        state["unknown_property"]


def test_identifier_is_copied_to_snapshots():
    fluid = pf.PureFluidPhase("Nitrogen", BACKEND, identifier="inlet")
    assert fluid.get_state().identifier == "inlet"


@pytest.mark.parametrize("state_label", ["subcooled_liquid", "superheated_vapor", "supercritical_gas"])
def test_single_phase_snapshot_matches_accessors(state_label):
    fluid = get_reference_state("Nitrogen", BACKEND, state_label)
    state = fluid.get_state()

    assert state.p == pytest.approx(fluid.pressure, rel=1e-10)
    assert state.h == pytest.approx(fluid.enthalpy_mass, rel=1e-10)
    assert state.s == pytest.approx(fluid.entropy_mass, rel=1e-10, abs=1e-9 * fluid.eos.gas_constant)
    assert state.cp == fluid.cp_mass
    assert state.cv == fluid.cv_mass
    assert state.isothermal_compressibility == fluid.isothermal_compressibility
    assert state.isobaric_expansion_coefficient == fluid.thermal_expansion_coeff
    assert state.gibbs_energy == pytest.approx(fluid.gibbs_mass, rel=1e-10)


def test_temperature_pressure_quality_on_saturation_line(water):
    T = 0.7 * water.critical_temperature
    p_sat = water.saturation_pressure(T)

    water.set_state_TPX(T, p_sat, 0.3)
    assert water.state.is_two_phase
    assert water.vapor_fraction() == 0.3
    assert water.temperature == T

    # Away from the saturation line the vapor fraction is ignored
    water.set_state_TPX(T, 2.0 * p_sat, 0.3)
    assert not water.state.is_two_phase
    assert water.vapor_fraction() == 0.0
    assert np.isclose(water.pressure, 2.0 * p_sat, rtol=1e-8)

    water.set_state_TPX(T, 0.5 * p_sat, 0.3)
    assert water.vapor_fraction() == 1.0

    state_before = water.state
    with pytest.raises(pf.DomainError):
        water.set_state_TPX(T, p_sat, 1.5)
    assert water.state is state_before


def test_eos_type(water):
    assert water.eos_type == "PureFluid"


if __name__ == "__main__":

    # Running pytest from this script
    pytest.main([__file__, "-v"])
