"""
===============================================================================
ASTRODYN - Polyhedron Geometry Cache
===============================================================================
Field-point dependent quantities of the polyhedron gravity model:

    r_v   = P_v - x                                    (relative vertex coordinates)

    w_f   = 2 atan2( r1 . (r2 x r3),
                     r1 r2 r3 + r1 (r2 . r3) + r2 (r3 . r1) + r3 (r1 . r2) )
                                                       (per-facet factor, W&S eq. 27)

    L_e   = ln( (r_i + r_j + e_ij) / (r_i + r_j - e_ij) )
                                                       (per-edge factor, W&S eq. 7)

w_f is the signed solid angle the facet subtends at the field point; it sums
to 0 outside the body and to 4 pi inside. L_e is the potential of a
one-dimensional wire along the edge.

A PolyhedronGravityCache holds these quantities for the most recent field
point. It is mutable and must not be shared between threads without
external locking; create one cache per thread instead.
===============================================================================
"""

import numpy as np
from numpy.typing import NDArray

from astrodyn.core.exceptions import UninitializedCacheError
from astrodyn.gravitation.polyhedron_shape import PolyhedronShape


# ============================================================================
#  KERNELS
# ============================================================================

def compute_vertices_coordinates_relative_to_field_point(
        field_point: NDArray, vertices: NDArray) -> NDArray:
    """Vertex coordinates relative to the field point, shape (N, 3)."""
    return np.asarray(vertices, dtype=np.float64) - np.asarray(field_point, dtype=np.float64)


def compute_per_facet_factor(relative_vertices: NDArray, facets: NDArray) -> NDArray:
    """Signed solid angle w_f of every facet, shape (M,)."""
    r1 = relative_vertices[facets[:, 0]]
    r2 = relative_vertices[facets[:, 1]]
    r3 = relative_vertices[facets[:, 2]]

    n1 = np.linalg.norm(r1, axis=1)
    n2 = np.linalg.norm(r2, axis=1)
    n3 = np.linalg.norm(r3, axis=1)

    numerator = np.einsum('ij,ij->i', r1, np.cross(r2, r3))
    denominator = n1 * n2 * n3 \
        + n1 * np.einsum('ij,ij->i', r2, r3) \
        + n2 * np.einsum('ij,ij->i', r3, r1) \
        + n3 * np.einsum('ij,ij->i', r1, r2)

    return 2.0 * np.arctan2(numerator, denominator)


def compute_per_edge_factor(relative_vertices: NDArray, edges: NDArray) -> NDArray:
    """Wire-potential factor L_e of every edge, shape (E,)."""
    r_first = relative_vertices[edges[:, 0]]
    r_second = relative_vertices[edges[:, 1]]

    distance_sum = np.linalg.norm(r_first, axis=1) + np.linalg.norm(r_second, axis=1)
    edge_length = np.linalg.norm(r_second - r_first, axis=1)

    return np.log((distance_sum + edge_length) / (distance_sum - edge_length))


# ============================================================================
#  CACHE
# ============================================================================

class PolyhedronGravityCache:
    """
    Relative vertex coordinates and per-facet/per-edge factors for the last
    field point passed to update().

    The cache starts uninitialized (current position NaN); reading any
    derived quantity before the first update raises UninitializedCacheError.
    Every update overwrites all derived quantities.
    """

    def __init__(self, shape: PolyhedronShape) -> None:
        self._shape = shape
        self._current_position = np.full(3, np.nan)
        self._relative_vertices = None
        self._per_facet_factor = None
        self._per_edge_factor = None

    @property
    def shape(self) -> PolyhedronShape:
        return self._shape

    @property
    def is_valid(self) -> bool:
        """True once update() has been called."""
        return self._relative_vertices is not None

    def update(self, position: NDArray) -> None:
        """
        Recompute the cached quantities for *position* (body-fixed, m).

        Nothing is recomputed if *position* equals the cached position.
        """
        position = np.asarray(position, dtype=np.float64)
        if position.shape != (3,):
            raise ValueError(f"Position must be a 3-vector, got shape {position.shape}")

        if np.array_equal(position, self._current_position):
            return

        relative_vertices = compute_vertices_coordinates_relative_to_field_point(
            position, self._shape.vertices)
        per_facet_factor = compute_per_facet_factor(relative_vertices, self._shape.facets)
        per_edge_factor = compute_per_edge_factor(relative_vertices, self._shape.edges)

        # All three arrays describe one position; store them together
        for array in (relative_vertices, per_facet_factor, per_edge_factor):
            array.setflags(write=False)
        self._relative_vertices = relative_vertices
        self._per_facet_factor = per_facet_factor
        self._per_edge_factor = per_edge_factor
        self._current_position = position.copy()

    def _require_valid(self) -> None:
        if not self.is_valid:
            raise UninitializedCacheError(
                "Polyhedron geometry cache read before the first update()"
            )

    @property
    def current_position(self) -> NDArray:
        """Field point of the cached quantities; NaN before the first update."""
        return self._current_position.copy()

    @property
    def vertices_coordinates_relative_to_field_point(self) -> NDArray:
        self._require_valid()
        return self._relative_vertices

    @property
    def per_facet_factor(self) -> NDArray:
        self._require_valid()
        return self._per_facet_factor

    @property
    def per_edge_factor(self) -> NDArray:
        self._require_valid()
        return self._per_edge_factor
