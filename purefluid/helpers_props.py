import enum
import math
import equinox as eqx

from . import utils
from .exceptions import DomainError

# Universal molar gas constant
GAS_CONSTANT = 8.3144598

# Pressure of the ideal-gas reference state
REFERENCE_PRESSURE = 101325.0

# Default relative tolerance of the state setters
DEFAULT_TOLERANCE = 1e-8


# -------------------------------------------------------------------- #
# Property pairs accepted by the state setters
# -------------------------------------------------------------------- #

class PropertyPair(enum.Enum):
    """Pairs of intensive properties that can be held fixed to set the state.

    The value of each member is the tuple of canonical names of the two
    properties, in the order in which the setters receive them. Volume is the
    mass-specific volume (m3/kg).
    """

    HP = ("enthalpy", "pressure")
    UV = ("internal_energy", "volume")
    SV = ("entropy", "volume")
    SP = ("entropy", "pressure")
    ST = ("entropy", "temperature")
    TV = ("temperature", "volume")
    PV = ("pressure", "volume")
    UP = ("internal_energy", "pressure")
    VH = ("volume", "enthalpy")
    TH = ("temperature", "enthalpy")
    SH = ("entropy", "enthalpy")

    @property
    def properties(self):
        return self.value

    @classmethod
    def from_name(cls, name):
        """Return the pair from its two-letter name (case insensitive) or the member itself"""
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).upper()]
        except KeyError:
            valid = ", ".join(cls.__members__)
            raise ValueError(f"Unknown property pair '{name}'. Valid options are: {valid}")


# Statically add pair names to the module (IDE autocomplete)
HP_INPUTS = PropertyPair.HP
UV_INPUTS = PropertyPair.UV
SV_INPUTS = PropertyPair.SV
SP_INPUTS = PropertyPair.SP
ST_INPUTS = PropertyPair.ST
TV_INPUTS = PropertyPair.TV
PV_INPUTS = PropertyPair.PV
UP_INPUTS = PropertyPair.UP
VH_INPUTS = PropertyPair.VH
TH_INPUTS = PropertyPair.TH
SH_INPUTS = PropertyPair.SH

INPUT_PAIRS = {f"{pair.name}_INPUTS": pair for pair in PropertyPair}


# -------------------------------------------------------------------- #
# Define aliases for canonical property names
# -------------------------------------------------------------------- #

PROPERTY_ALIASES = {
    # --- basic thermodynamic properties
    "pressure": ["p", "P"],
    "temperature": ["T"],
    "density": ["rho", "d", "rhomass", "dmass"],
    "volume": ["v", "V", "specific_volume"],
    "enthalpy": ["h", "hmass", "H"],
    "entropy": ["s", "smass", "S"],
    "internal_energy": ["u", "umass", "e", "U"],
    "gibbs_energy": ["g", "gmass"],
    # --- heat capacities & ratios
    "isobaric_heat_capacity": ["cp", "cpmass"],
    "isochoric_heat_capacity": ["cv", "cvmass"],
    "heat_capacity_ratio": ["gamma"],
    # --- compressibility & expansion
    "compressibility_factor": ["Z"],
    "isothermal_compressibility": ["kappa_T"],
    "isobaric_expansion_coefficient": ["alpha_p"],
    "speed_of_sound": ["a", "speed_sound"],
    # --- two-phase
    "is_two_phase": [],
    "quality_mass": ["vapor_quality", "Q", "q", "x"],
    "density_liquid": ["rho_liq"],
    "density_vapor": ["rho_vap"],
    "pressure_saturation": ["p_sat"],
}


# flat lookup alias -> canonical
ALIAS_TO_CANONICAL = {}
for canonical, aliases in PROPERTY_ALIASES.items():
    for alias in aliases:
        if alias in ALIAS_TO_CANONICAL:
            raise ValueError(f"Alias {alias} defined for multiple properties")
        ALIAS_TO_CANONICAL[alias] = canonical
    # also allow canonical name itself
    ALIAS_TO_CANONICAL[canonical] = canonical

PROPERTIES_CANONICAL = PROPERTY_ALIASES.keys()


# -------------------------------------------------------------------- #
# Resolved states held by the phase object
# -------------------------------------------------------------------- #

class ThermodynamicState(eqx.Module):
    """Single-phase state fixed by temperature (K) and mass density (kg/m3)."""

    temperature: float
    density: float

    @property
    def is_two_phase(self):
        return False

    @property
    def specific_volume(self):
        return 1.0 / self.density


class TwoPhaseState(eqx.Module):
    """Liquid-vapor mixture in equilibrium at a subcritical temperature.

    `density` is the overall mixture density and `quality` the vapor mass
    fraction. Quality 0 is saturated liquid and quality 1 is saturated vapor.
    """

    temperature: float
    density: float
    density_liquid: float
    density_vapor: float
    quality: float

    @property
    def is_two_phase(self):
        return True

    @property
    def specific_volume(self):
        return 1.0 / self.density


class PropertyPairSpec(eqx.Module):
    """Property pair held fixed together with its two target values."""

    pair: PropertyPair = eqx.field(static=True)
    value_1: float
    value_2: float
    tolerance: float = DEFAULT_TOLERANCE

    def __check_init__(self):
        if not isinstance(self.pair, PropertyPair):
            raise ValueError(f"pair must be a PropertyPair member. Received: {self.pair!r}")
        if not utils.is_finite_float(self.value_1) or not utils.is_finite_float(self.value_2):
            msg = (
                f"Both target values must be finite scalar numbers. "
                f"Received: value_1={self.value_1}, value_2={self.value_2}"
            )
            raise DomainError(msg)
        if not utils.is_finite_float(self.tolerance) or self.tolerance <= 0.0:
            raise ValueError(f"The tolerance must be a positive number. Received: {self.tolerance}")

    @property
    def targets(self):
        """Dictionary mapping the canonical property names to their target values"""
        name_1, name_2 = self.pair.properties
        return {name_1: float(self.value_1), name_2: float(self.value_2)}


# -------------------------------------------------------------------- #
# Snapshot of all properties of a resolved state
# -------------------------------------------------------------------- #

class FluidState(eqx.Module):
    """
    Snapshot of the thermodynamic properties of a pure fluid.

    Properties can be read with their canonical names or any alias, either
    dictionary-style (``state["h"]``) or attribute-style (``state.h``).
    """

    # --- metadata
    fluid_name: str = eqx.field(static=True, default=None)
    identifier: str = eqx.field(static=True, default=None)

    # --- basic thermodynamic properties
    pressure: float = math.nan
    temperature: float = math.nan
    density: float = math.nan
    volume: float = math.nan
    enthalpy: float = math.nan
    entropy: float = math.nan
    internal_energy: float = math.nan
    gibbs_energy: float = math.nan
    compressibility_factor: float = math.nan

    # --- thermodynamic properties involving derivatives
    isobaric_heat_capacity: float = math.nan
    isochoric_heat_capacity: float = math.nan
    heat_capacity_ratio: float = math.nan
    speed_of_sound: float = math.nan
    isothermal_compressibility: float = math.nan
    isobaric_expansion_coefficient: float = math.nan

    # --- two-phase properties
    is_two_phase: bool = False
    quality_mass: float = math.nan
    density_liquid: float = math.nan
    density_vapor: float = math.nan
    pressure_saturation: float = math.nan

    _meta_fields = ("fluid_name", "identifier")

    # --- Access helpers
    def __getitem__(self, key: str):
        """Allow dictionary-style access via canonical or alias name"""
        # Metadata keys: passthrough
        if key in self._meta_fields:
            return getattr(self, key)

        # Canonical / alias keys
        if key in ALIAS_TO_CANONICAL:
            return getattr(self, ALIAS_TO_CANONICAL[key])

        raise KeyError(f"Unknown property alias: {key}")

    def __getattr__(self, key: str):
        """Allow attribute-style access via alias names"""
        if key in ALIAS_TO_CANONICAL and ALIAS_TO_CANONICAL[key] != key:
            return getattr(self, ALIAS_TO_CANONICAL[key])
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{key}'")

    def __repr__(self) -> str:
        lines = [f"  {name}={value}" for name, value in self.to_dict().items()]
        return f"{type(self).__name__}(fluid_name={self.fluid_name},\n" + ",\n".join(lines) + "\n)"

    def to_dict(self, include_aliases: bool = False):
        """Return dict of numeric properties, with optional aliases."""
        out = {name: getattr(self, name) for name in PROPERTIES_CANONICAL}

        # alias expansion
        if include_aliases:
            for canonical, aliases in PROPERTY_ALIASES.items():
                for alias in aliases:
                    if alias not in out:
                        out[alias] = out[canonical]

        return out

    def keys(self):
        """Dict-style iteration"""
        return self.to_dict().keys()

    def values(self):
        """Dict-style iteration"""
        return self.to_dict().values()

    def items(self):
        """Dict-style iteration"""
        return self.to_dict().items()
