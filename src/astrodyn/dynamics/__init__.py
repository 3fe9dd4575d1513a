"""
===============================================================================
ASTRODYN - Dynamics Module
===============================================================================
Orbit representations and the environment acting on an orbiting body.

Submodules:
    element_conversions -- Keplerian <-> Cartesian <-> USM7 <-> USMEM conversions
    environment         -- Gravity field interface, point-mass gravity,
                           isotropic radiation source, cannonball radiation pressure
===============================================================================
"""
