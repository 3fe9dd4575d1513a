"""
===============================================================================
ASTRODYN - Polyhedron Facet and Edge Dyads
===============================================================================
Geometry-only 3x3 dyads of the constant-density polyhedron gravity model
(Werner & Scheeres, 1997). They depend on the shape alone and are computed
once per shape:

    Facet dyad:   F_f = n_f n_f^T

    Edge dyad:    E_e = n_A n_A,12^T + n_B n_B,21^T

where n_A and n_B are the outward normals of the two facets sharing the edge
P1-P2, and n_A,12 is the unit normal of the edge within facet A's plane,
pointing away from facet A (facet A traverses the edge as P1 -> P2, facet B
as P2 -> P1).

Reference
---------
    Werner & Scheeres, "Exterior gravitation of a polyhedron derived and
    compared with harmonic and mascon gravitation representations of
    asteroid 4769 Castalia", Celestial Mechanics and Dynamical Astronomy,
    65, 1997.
===============================================================================
"""

import logging

import numpy as np
from numpy.typing import NDArray

from astrodyn.core.exceptions import InconsistentShapeError
from astrodyn.gravitation.polyhedron_shape import compute_facet_normals


logger = logging.getLogger(__name__)


def compute_facet_dyads(vertices: NDArray, facets: NDArray) -> NDArray:
    """
    Facet dyads F_f = n_f n_f^T.

    Returns
    -------
    ndarray, shape (M, 3, 3)
        Read-only array of facet dyads.
    """
    normals = compute_facet_normals(vertices, facets)
    dyads = np.einsum('fi,fj->fij', normals, normals)
    dyads.setflags(write=False)
    return dyads


def _map_directed_edges_to_facets(facets: NDArray) -> dict:
    """Map each directed edge (i, j), as traversed by a facet, to that facet."""
    directed_edges = {}
    for facet_index, (a, b, c) in enumerate(facets):
        for edge in ((a, b), (b, c), (c, a)):
            if edge in directed_edges:
                raise InconsistentShapeError(
                    f"Edge {edge} is traversed in the same direction by facets "
                    f"{directed_edges[edge]} and {facet_index}; facets are not "
                    "consistently oriented"
                )
            directed_edges[edge] = facet_index
    return directed_edges


def compute_edge_dyads(vertices: NDArray, facets: NDArray, edges: NDArray) -> NDArray:
    """
    Edge dyads E_e = n_A n_A,12^T + n_B n_B,21^T.

    Parameters
    ----------
    vertices : ndarray, shape (N, 3)
    facets : ndarray, shape (M, 3)
        Counter-clockwise (seen from outside) vertex indices.
    edges : ndarray, shape (E, 2)

    Returns
    -------
    ndarray, shape (E, 3, 3)
        Read-only array of edge dyads.

    Raises
    ------
    InconsistentShapeError
        If an edge is not shared by exactly two oppositely-traversing facets.
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    facets = np.asarray(facets, dtype=np.int64)
    edges = np.asarray(edges, dtype=np.int64)

    facet_normals = compute_facet_normals(vertices, facets)
    directed_edges = _map_directed_edges_to_facets(
        [tuple(int(index) for index in facet) for facet in facets])

    dyads = np.zeros((edges.shape[0], 3, 3))
    for edge_index, (first, second) in enumerate(edges):
        first, second = int(first), int(second)
        facet_a = directed_edges.get((first, second))
        facet_b = directed_edges.get((second, first))
        if facet_a is None or facet_b is None:
            raise InconsistentShapeError(
                f"Edge ({first}, {second}) is not shared by two facets; "
                "the polyhedron is not closed"
            )

        edge_vector = vertices[second] - vertices[first]

        normal_a = facet_normals[facet_a]
        edge_normal_a = np.cross(edge_vector, normal_a)
        edge_normal_a /= np.linalg.norm(edge_normal_a)

        normal_b = facet_normals[facet_b]
        edge_normal_b = np.cross(-edge_vector, normal_b)
        edge_normal_b /= np.linalg.norm(edge_normal_b)

        dyads[edge_index] = np.outer(normal_a, edge_normal_a) + \
            np.outer(normal_b, edge_normal_b)

    logger.debug("Computed %d facet-pair edge dyads", edges.shape[0])

    dyads.setflags(write=False)
    return dyads
