# Highlight exception messages
# https://stackoverflow.com/questions/25109105/how-to-colorize-the-output-of-python-errors-in-the-gnome-terminal/52797444#52797444
try:
    import IPython.core.ultratb
except ImportError:
    # No IPython. Use default exception printing.
    pass
else:
    import sys
    sys.excepthook = IPython.core.ultratb.FormattedTB(call_pdb=False)


import os
os.environ["JAX_PLATFORM_NAME"] = "cpu"
import jax
jax.config.update("jax_enable_x64", True)


from .utils import *
from .exceptions import *
from .helpers_props import *

# Import subpackages
from . import eos
from . import solvers
from . import saturation
from . import resolver
from . import substances

# Import API classes
from .eos import EquationOfState, CoolPropEOS, VanDerWaalsEOS
from .saturation import SaturationNavigator
from .resolver import StateResolver, ResolverOptions
from .substances import SubstanceIdentity, build_substance
from .phase import ThermodynamicPhase, PureFluidPhase


# Package info
__version__ = "0.1.0"
PACKAGE_NAME = "purefluid"
BREAKLINE = 80 * "-"
