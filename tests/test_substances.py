import pytest
import numpy as np
import purefluid as pf

from purefluid.substances import SUBSTANCE_IDS, build_substance, resolve_fluid_name


@pytest.mark.parametrize("selector, fluid_name", list(SUBSTANCE_IDS.items()))
def test_integer_selectors(selector, fluid_name):
    assert resolve_fluid_name(selector) == fluid_name


@pytest.mark.parametrize(
    "alias, fluid_name",
    [
        ("water", "Water"),
        ("NITROGEN", "Nitrogen"),
        ("HFC134a", "R134a"),
        ("carbondioxide", "CO2"),
        ("Heptane", "n-Heptane"),
        ("Propane", "Propane"),
    ],
)
def test_name_aliases(alias, fluid_name):
    assert resolve_fluid_name(alias) == fluid_name


@pytest.mark.parametrize("selector", [6, 42, -1, True, None, "", 3.5])
def test_invalid_selectors_raise_domain_error(selector):
    with pytest.raises(pf.DomainError):
        resolve_fluid_name(selector)


def test_van_der_waals_backend_requires_tabulated_fluid():
    with pytest.raises(pf.DomainError):
        build_substance("Propane", "VDW")


@pytest.mark.parametrize("backend", ["VDW", "HEOS"])
def test_identity_is_consistent_with_equation_of_state(backend):
    identity, eos = build_substance(7, backend)
    assert identity.fluid_name == "CO2"
    assert identity.selector == 7
    assert identity.backend == backend
    assert np.isclose(identity.molar_mass, 0.0440098, rtol=1e-4)
    assert identity.molar_mass == eos.molar_mass
    assert isinstance(eos, pf.EquationOfState)


def test_phase_objects_do_not_share_equation_of_state():
    fluid_1 = pf.PureFluidPhase("Water", "VDW")
    fluid_2 = pf.PureFluidPhase(0, "VDW")
    assert fluid_1.eos is not fluid_2.eos
    assert fluid_1.identity.fluid_name == fluid_2.identity.fluid_name

    fluid_1.set_state_TP(500.0, 1e5)
    assert fluid_2.temperature == 298.15


@pytest.mark.parametrize("pair", list(pf.PropertyPair))
def test_property_pair_names(pair):
    assert pf.PropertyPair.from_name(pair.name.lower()) is pair
    assert pf.INPUT_PAIRS[f"{pair.name}_INPUTS"] is pair
    assert len(pair.properties) == 2


def test_property_pair_spec_validation():
    spec = pf.PropertyPairSpec(pf.HP_INPUTS, 1e5, 2e5)
    assert spec.tolerance == pf.DEFAULT_TOLERANCE
    assert spec.targets == {"enthalpy": 1e5, "pressure": 2e5}

    with pytest.raises(pf.DomainError):
        pf.PropertyPairSpec(pf.HP_INPUTS, np.nan, 2e5)
    with pytest.raises(ValueError):
        pf.PropertyPairSpec(pf.HP_INPUTS, 1e5, 2e5, tolerance=0.0)
    with pytest.raises(ValueError):
        pf.PropertyPairSpec("HP", 1e5, 2e5)


if __name__ == "__main__":

    # Running pytest from this script
    pytest.main([__file__, "-v"])
