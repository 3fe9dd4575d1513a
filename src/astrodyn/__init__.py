"""
===============================================================================
ASTRODYN - Astrodynamics Toolkit
===============================================================================
Orbital element conversions (Keplerian, Cartesian, unified state model) and
gravitational and radiation environment models, including the
constant-density polyhedron gravity field.

Subpackages:
    core        -- Constants, exception types, quaternion algebra
    dynamics    -- Element conversions, point-mass gravity, radiation models
    gravitation -- Polyhedron shape, dyads, geometry cache and gravity field
    config      -- YAML configuration, logging setup, gravity field factories
===============================================================================
"""

__version__ = "0.1.0"
