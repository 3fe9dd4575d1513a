"""
===============================================================================
ASTRODYN - Core Module
===============================================================================
Shared building blocks for the rest of the toolkit.

Submodules:
    constants  -- Physical constants and element-vector index layouts
    exceptions -- DegenerateGeometryError, InconsistentShapeError,
                  UninitializedCacheError
    quaternion -- Unit quaternion algebra and the exponential map
===============================================================================
"""
