from .base import EquationOfState, CriticalPoint, ValidRange, EOS_PROPERTIES
from .coolprop_eos import CoolPropEOS
from .van_der_waals import VanDerWaalsEOS, VanDerWaalsConstants, get_constants, compute_properties_rhoT
