"""
Model constants, default input distributions and variable metadata.
"""

from __future__ import annotations

# Column order of the bulk CSV input file.
INPUT_VARIABLE_NAMES = ("b", "G", "gamma", "M", "phi", "Rs")

# Argument order of the model kernel.
KERNEL_ARGUMENT_ORDER = ("gamma", "phi", "Rs", "G", "b", "M")

OUTPUT_VARIABLE_NAMES = ("sigmaCMpa",)

PA_PER_MPA = 1_000_000

# ---- default distributions ----------------------------------------------

GAMMA_UNIFORM_MIN = 0.15
GAMMA_UNIFORM_MAX = 0.25
PHI_UNIFORM_MIN = 0.30
PHI_UNIFORM_MAX = 0.45
RS_MIXTURE_FIRST_MEAN = 1e-8
RS_MIXTURE_FIRST_SIGMA = 2e-9
RS_MIXTURE_SECOND_MEAN = 3e-8
RS_MIXTURE_SECOND_SIGMA = 2e-9
RS_MIXTURE_FIRST_WEIGHT = 0.5
G_UNIFORM_MIN = 6e10
G_UNIFORM_MAX = 8e10
BURGERS_VECTOR = 2.54e-10
M_UNIFORM_MIN = 1.9
M_UNIFORM_MAX = 4.1

# ---- fixed reference point ----------------------------------------------

EMPIRICAL_TAYLOR_FACTORS = (
    3.2, 3.9, 4.1, 3.2, 3.8,
    3.8, 2.1, 3.0, 1.9, 3.9,
    2.3, 2.2, 3.2, 2.2, 3.9,
    2.2, 1.9, 3.2, 3.9, 3.1,
)

REFERENCE_GAMMA = 0.2
REFERENCE_PHI = 0.375
REFERENCE_RS = 2e-8
REFERENCE_G = 7e10

# ---- descriptions ---------------------------------------------------------

# name -> (human description, unit suffix for verbose output)
INPUT_DESCRIPTIONS = {
    "gamma": ("Anti-phase boundary energy (γ)", " J/m^2"),
    "phi": ("Precipitate volume fraction (φ)", ""),
    "Rs": ("Mean particle radius on plane (Rs)", " m"),
    "G": ("Shear modulus (G)", " Pa"),
    "b": ("Magnitude of the Burger's vector (b)", " m"),
    "M": ("Taylor factor (M)", ""),
}

MODEL_DESCRIPTION = 'Precipitate "cutting" dislocation model from Brown and Ham'
SIGMA_DESCRIPTION = "Cutting stress (σc)"
CPU_TIME_SYMBOL = "cpuTimeUsed"
CPU_TIME_DESCRIPTION = "CPU time used (s)"

# JSON type tags
JSON_TYPE_DOUBLE = "double"
JSON_TYPE_DOUBLE_PARTICLE = "doubleParticle"

# ---- run defaults ---------------------------------------------------------

DEFAULT_SAMPLES_FILE = "mc_samples.npz"
DEFAULT_QUANTILES = [0.16, 0.50, 0.84]
# Iterations per independently seeded chunk; fixed so that results do not
# depend on the number of workers.
CHUNK_SIZE = 10_000
