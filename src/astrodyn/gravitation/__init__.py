"""
===============================================================================
ASTRODYN - Gravitation Module
===============================================================================
Constant-density polyhedron gravity field (Werner & Scheeres, 1997).

Submodules:
    polyhedron_shape   -- Immutable vertices, facets and edges
    polyhedron_dyads   -- Facet and edge dyads, computed once per shape
    polyhedron_cache   -- Per-field-point relative coordinates and factors
    polyhedron_gravity -- Potential, gradient, Hessian and Laplacian
===============================================================================
"""
