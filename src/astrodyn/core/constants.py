"""
===============================================================================
ASTRODYN - Physical Constants and Element Layouts
===============================================================================
Central repository for the physical constants and state-vector index layouts
used throughout the toolkit. SI units throughout (meters, seconds, kilograms,
radians).

Physical values come from IAU 2012 / IERS standards where applicable.
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
TWO_PI = 2.0 * np.pi

# Tolerance used to decide whether an eccentricity, inclination or angle is
# zero, and whether an orbit is parabolic.
SINGULARITY_TOLERANCE = 20.0 * np.finfo(np.float64).eps

# =============================================================================
# FUNDAMENTAL PHYSICAL CONSTANTS
# =============================================================================
SPEED_OF_LIGHT = 299792458.0           # m/s
GRAVITATIONAL_CONSTANT = 6.67430e-11   # m^3 / (kg * s^2)
AU = 1.495978707e11                    # Astronomical Unit in meters

# =============================================================================
# BODY PARAMETERS
# =============================================================================
SUN_MU = 1.32712440018e20              # m^3/s^2
SUN_LUMINOSITY = 3.828e26              # W

EARTH_MU = 3.986004418e14              # m^3/s^2

MOON_MU = 4.9048695e12                 # m^3/s^2

# =============================================================================
# KEPLERIAN ELEMENT LAYOUT
# =============================================================================
# Element 0 holds the semi-latus rectum instead of the semi-major axis for
# parabolic orbits.
SEMI_MAJOR_AXIS_INDEX = 0
SEMI_LATUS_RECTUM_INDEX = 0
ECCENTRICITY_INDEX = 1
INCLINATION_INDEX = 2
ARGUMENT_OF_PERIAPSIS_INDEX = 3
LONGITUDE_OF_ASCENDING_NODE_INDEX = 4
TRUE_ANOMALY_INDEX = 5

# =============================================================================
# UNIFIED STATE MODEL LAYOUTS
# =============================================================================
# Hodograph elements, shared by USM7 and USMEM
C_HODOGRAPH_INDEX = 0
RF1_HODOGRAPH_INDEX = 1
RF2_HODOGRAPH_INDEX = 2

# USMEM: exponential map of the orbit-frame rotation
E1_EXPONENTIAL_MAP_INDEX = 3
E2_EXPONENTIAL_MAP_INDEX = 4
E3_EXPONENTIAL_MAP_INDEX = 5

# USM7: Euler parameters (quaternion) of the orbit-frame rotation
EPSILON1_QUATERNION_INDEX = 3
EPSILON2_QUATERNION_INDEX = 4
EPSILON3_QUATERNION_INDEX = 5
ETA_QUATERNION_INDEX = 6


def get_body_mu(body_name: str) -> float:
    """
    Look up gravitational parameter by body name.

    Args:
        body_name: One of 'sun', 'earth', 'moon'

    Returns:
        Gravitational parameter mu in m^3/s^2

    Raises:
        ValueError: If body_name is not recognized
    """
    lookup = {
        'sun': SUN_MU,
        'earth': EARTH_MU,
        'moon': MOON_MU,
    }
    if body_name.lower() not in lookup:
        raise ValueError(f"Unknown body: {body_name}. Valid: {list(lookup.keys())}")
    return lookup[body_name.lower()]
