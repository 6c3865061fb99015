"""Biological and numerical constants for bioenergetic food-web modeling.

This module centralizes the default values used throughout PyBEFW,
so that model components and the simulation driver agree on them.
"""

# ============================================================================
# NETWORK
# ============================================================================

PRODUCER = "producer"
INVERTEBRATE = "invertebrate"
VERTEBRATE = "ectotherm vertebrate"
METABOLIC_CLASSES = (PRODUCER, INVERTEBRATE, VERTEBRATE)

# ============================================================================
# BIOLOGICAL RATES (allometric defaults, Brose et al. 2006)
# ============================================================================

# (a_p, a_ect, a_inv, b_p, b_ect, b_inv)
GROWTH_ALLOMETRY = (1.0, 0.0, 0.0, -0.25, 0.0, 0.0)
METABOLISM_ALLOMETRY = (0.0, 0.88, 0.314, 0.0, -0.25, -0.25)
MAX_CONSUMPTION_ALLOMETRY = (0.0, 4.0, 8.0, 0.0, 0.0, 0.0)
MORTALITY_ALLOMETRY = (0.0138, 0.0314, 0.0314, -0.25, -0.25, -0.25)

# Assimilation efficiency by resource type
EFFICIENCY_HERBIVORY = 0.45
EFFICIENCY_CARNIVORY = 0.85

# ============================================================================
# FUNCTIONAL RESPONSE
# ============================================================================

DEFAULT_HILL_EXPONENT = 2.0
DEFAULT_HALF_SATURATION = 0.5  # B0 of the bioenergetic response
DEFAULT_INTERFERENCE = 0.0  # c, predator interference
DEFAULT_ATTACK_RATE = 1.0  # a_r, classic response
DEFAULT_HANDLING_TIME = 1.0  # h_t, classic response
DEFAULT_LINEAR_ALPHA = 1.0  # consumption rate of the linear response

# ============================================================================
# PRODUCER GROWTH
# ============================================================================

DEFAULT_CARRYING_CAPACITY = 1.0

# Nutrient intake
DEFAULT_N_NUTRIENTS = 2
DEFAULT_NUTRIENT_TURNOVER = 0.25
DEFAULT_NUTRIENT_SUPPLY = 4.0
DEFAULT_NUTRIENT_CONCENTRATION = 1.0
DEFAULT_NUTRIENT_HALF_SATURATION = 1.0

# ============================================================================
# TEMPERATURE
# ============================================================================

BOLTZMANN_EV = 8.617e-5  # Boltzmann constant (eV/K)
REFERENCE_TEMPERATURE = 293.15  # 20 degrees C in Kelvin

# Activation energies (eV) of the Boltzmann-Arrhenius scaling
ACTIVATION_ENERGY = {
    "r": 0.84,
    "x": 0.69,
    "y": 0.65,
    "d": 0.69,
}

# ============================================================================
# SIMULATION
# ============================================================================

DEFAULT_INITIAL_BIOMASS = 0.5
DEFAULT_TMAX = 500.0
EXTINCTION_THRESHOLD = 1e-5

# Integration tolerances
INTEGRATION_METHOD = "LSODA"
INTEGRATION_RTOL = 1e-6
INTEGRATION_ATOL = 1e-9

# Steady state: |dudt| <= STEADY_STATE_ATOL + STEADY_STATE_RTOL * |u|
STEADY_STATE_ATOL = 1e-8
STEADY_STATE_RTOL = 1e-6

# ============================================================================
# MEASURES
# ============================================================================

DEFAULT_LAST_FRACTION = 0.1  # Fraction of the trajectory used by measures
