"""
===============================================================================
ASTRODYN - Polyhedron Shape
===============================================================================
Immutable description of a constant-density polyhedron: vertex coordinates,
triangular facets and edges.

Facets list three vertex indices in counter-clockwise order as seen from
outside the body, so that (v1 - v0) x (v2 - v0) is the outward normal.
Edges list each undirected edge once as a pair of vertex indices.

The arrays handed out by PolyhedronShape are read-only, so one shape can
back any number of gravity fields and geometry caches.
===============================================================================
"""

import logging

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import ConvexHull

from astrodyn.core.exceptions import InconsistentShapeError


logger = logging.getLogger(__name__)


# ============================================================================
#  GEOMETRY HELPERS
# ============================================================================

def compute_polyhedron_edges(facets: NDArray) -> NDArray:
    """
    Derive the edge list of a triangulated surface.

    Parameters
    ----------
    facets : ndarray, shape (M, 3)
        Vertex indices of each facet.

    Returns
    -------
    ndarray, shape (E, 2)
        Each undirected edge once, as (smaller index, larger index), sorted
        lexicographically.
    """
    facets = np.asarray(facets, dtype=np.int64)
    directed = np.concatenate([facets[:, [0, 1]], facets[:, [1, 2]], facets[:, [2, 0]]])
    return np.unique(np.sort(directed, axis=1), axis=0)


def compute_facet_normals(vertices: NDArray, facets: NDArray) -> NDArray:
    """
    Unit outward normals of the facets, (v1 - v0) x (v2 - v0) normalized.

    Raises
    ------
    InconsistentShapeError
        If a facet has zero area.
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    facets = np.asarray(facets, dtype=np.int64)

    v0 = vertices[facets[:, 0]]
    normals = np.cross(vertices[facets[:, 1]] - v0, vertices[facets[:, 2]] - v0)
    lengths = np.linalg.norm(normals, axis=1)

    degenerate = np.flatnonzero(lengths == 0.0)
    if degenerate.size > 0:
        raise InconsistentShapeError(
            f"Facets with zero area: {degenerate.tolist()}"
        )

    return normals / lengths[:, np.newaxis]


def compute_polyhedron_volume(vertices: NDArray, facets: NDArray) -> float:
    """
    Enclosed volume by the divergence theorem,

        V = 1/6 * sum_f v0 . (v1 x v2)

    Positive when the facets are counter-clockwise seen from outside.
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    facets = np.asarray(facets, dtype=np.int64)

    v0 = vertices[facets[:, 0]]
    v1 = vertices[facets[:, 1]]
    v2 = vertices[facets[:, 2]]
    return float(np.einsum('ij,ij->', v0, np.cross(v1, v2)) / 6.0)


def _read_only(array: NDArray) -> NDArray:
    array = np.array(array, copy=True)
    array.setflags(write=False)
    return array


# ============================================================================
#  POLYHEDRON SHAPE
# ============================================================================

class PolyhedronShape:
    """
    Vertices and connectivity of a closed triangulated polyhedron.

    Parameters
    ----------
    vertices : array_like, shape (N, 3)
        Vertex coordinates in the body-fixed frame (m).
    facets : array_like, shape (M, 3)
        Vertex indices of each facet, counter-clockwise seen from outside.
    edges : array_like, shape (E, 2), optional
        Vertex indices of each edge, in any order and orientation. Derived
        from the facets if omitted; if given, must list every facet edge
        exactly once.

    Raises
    ------
    InconsistentShapeError
        If an array has the wrong shape, an index is out of range, a facet
        repeats a vertex or the edge list disagrees with the facets.
    """

    def __init__(self, vertices, facets, edges=None) -> None:
        vertices = np.asarray(vertices, dtype=np.float64)
        facets = np.asarray(facets)

        if vertices.ndim != 2 or vertices.shape[1] != 3 or vertices.shape[0] < 4:
            raise InconsistentShapeError(
                f"Vertices must be an (N, 3) array with N >= 4, got shape {vertices.shape}"
            )
        if not np.all(np.isfinite(vertices)):
            raise InconsistentShapeError("Vertex coordinates must be finite")

        self._vertices = _read_only(vertices)
        self._facets = _read_only(self._check_indices(facets, 3, "facets"))

        repeated = (self._facets[:, 0] == self._facets[:, 1]) | \
                   (self._facets[:, 1] == self._facets[:, 2]) | \
                   (self._facets[:, 2] == self._facets[:, 0])
        if np.any(repeated):
            raise InconsistentShapeError(
                f"Facets repeat a vertex: {np.flatnonzero(repeated).tolist()}"
            )

        facet_edges = compute_polyhedron_edges(self._facets)
        if edges is None:
            edges = facet_edges
        else:
            edges = self._check_indices(np.asarray(edges), 2, "edges")
            self._check_edges_match_facets(edges, facet_edges)
        self._edges = _read_only(edges)

        self._volume = compute_polyhedron_volume(self._vertices, self._facets)

        logger.info("Loaded polyhedron shape: %d vertices, %d facets, %d edges, "
                    "volume %.6e m^3", self.number_of_vertices,
                    self.number_of_facets, self.number_of_edges, self._volume)

    def _check_indices(self, indices: NDArray, width: int, name: str) -> NDArray:
        if indices.ndim != 2 or indices.shape[1] != width or indices.shape[0] == 0:
            raise InconsistentShapeError(
                f"{name} must be a non-empty (K, {width}) array, got shape {indices.shape}"
            )
        if not np.issubdtype(indices.dtype, np.integer):
            if not np.all(np.equal(np.mod(indices, 1), 0)):
                raise InconsistentShapeError(f"{name} must hold integer vertex indices")
        indices = indices.astype(np.int64)

        number_of_vertices = self._vertices.shape[0]
        out_of_range = (indices < 0) | (indices >= number_of_vertices)
        if np.any(out_of_range):
            rows = np.flatnonzero(np.any(out_of_range, axis=1))
            raise InconsistentShapeError(
                f"{name} {rows.tolist()} reference vertices outside [0, {number_of_vertices})"
            )
        return indices

    @staticmethod
    def _check_edges_match_facets(edges: NDArray, facet_edges: NDArray) -> None:
        """Each edge of the facets must be listed exactly once."""
        undirected = np.sort(edges, axis=1)
        unique_edges = np.unique(undirected, axis=0)

        if unique_edges.shape[0] != undirected.shape[0]:
            raise InconsistentShapeError(
                f"Edge list repeats {undirected.shape[0] - unique_edges.shape[0]} edge(s)"
            )
        if unique_edges.shape != facet_edges.shape or \
                not np.array_equal(unique_edges, facet_edges):
            raise InconsistentShapeError(
                f"Edge list ({unique_edges.shape[0]} edges) does not match the "
                f"{facet_edges.shape[0]} edges defined by the facets"
            )

    # ------------------------------------------------------------------ #
    #  Factory
    # ------------------------------------------------------------------ #
    @classmethod
    def from_convex_hull(cls, points) -> "PolyhedronShape":
        """
        Triangulated convex hull of a point cloud with outward-oriented
        facets. Interior points are dropped.
        """
        points = np.asarray(points, dtype=np.float64)
        hull = ConvexHull(points)

        # Renumber the hull vertices 0..N-1
        vertex_indices = np.sort(hull.vertices)
        renumber = np.full(points.shape[0], -1, dtype=np.int64)
        renumber[vertex_indices] = np.arange(vertex_indices.size)

        vertices = points[vertex_indices]
        facets = renumber[hull.simplices]

        # Qhull does not orient simplices; flip those whose normal points
        # against the hull's outward plane normal.
        v0 = vertices[facets[:, 0]]
        normals = np.cross(vertices[facets[:, 1]] - v0, vertices[facets[:, 2]] - v0)
        inward = np.einsum('ij,ij->i', normals, hull.equations[:, :3]) < 0.0
        facets[inward] = facets[inward][:, [0, 2, 1]]

        return cls(vertices, facets)

    # ------------------------------------------------------------------ #
    #  Accessors
    # ------------------------------------------------------------------ #
    @property
    def vertices(self) -> NDArray:
        return self._vertices

    @property
    def facets(self) -> NDArray:
        return self._facets

    @property
    def edges(self) -> NDArray:
        return self._edges

    @property
    def volume(self) -> float:
        """Enclosed volume (m^3), from the divergence theorem."""
        return self._volume

    @property
    def number_of_vertices(self) -> int:
        return self._vertices.shape[0]

    @property
    def number_of_facets(self) -> int:
        return self._facets.shape[0]

    @property
    def number_of_edges(self) -> int:
        return self._edges.shape[0]

    def __repr__(self) -> str:
        return (f"PolyhedronShape(vertices={self.number_of_vertices}, "
                f"facets={self.number_of_facets}, edges={self.number_of_edges})")
