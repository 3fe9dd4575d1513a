"""
Exception types raised by the astrodyn models.

All of them derive from the built-in exception a caller would otherwise have
caught (ValueError for bad input, RuntimeError for misuse of a stateful
object), so generic handlers keep working.
"""


class DegenerateGeometryError(ValueError):
    """
    An orbital element is mathematically undefined for the supplied geometry.

    Raised when a circular orbit carries a non-zero argument of periapsis, an
    equatorial orbit carries a non-zero longitude of the ascending node, the
    inclination lies outside [0, pi], or the node and the argument of latitude
    cannot be separated (inclination of exactly 180 degrees).
    """


class InconsistentShapeError(ValueError):
    """Polyhedron connectivity does not describe a valid closed shape."""


class UninitializedCacheError(RuntimeError):
    """A geometry cache was read before its first update."""
