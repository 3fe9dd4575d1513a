"""
===============================================================================
ASTRODYN - Polyhedron Gravity Test Suite
===============================================================================
Tests for the polyhedron shape provider, facet/edge dyads, geometry cache and
gravity field.

Most tests use a cube of side 2 centred on the origin with mu = 8, so that
the volume is 8 and G * rho = 1. Checks cover Laplace's equation outside the
body, Poisson's equation inside it, consistency of the gradient and Hessian
with finite differences, convergence to the point-mass potential far from
the body, and the cache state machine.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from astrodyn.core.constants import GRAVITATIONAL_CONSTANT
from astrodyn.core.exceptions import InconsistentShapeError, UninitializedCacheError
from astrodyn.gravitation.polyhedron_shape import (
    PolyhedronShape,
    compute_polyhedron_edges,
    compute_polyhedron_volume,
)
from astrodyn.gravitation.polyhedron_dyads import compute_edge_dyads, compute_facet_dyads
from astrodyn.gravitation import polyhedron_cache
from astrodyn.gravitation.polyhedron_cache import (
    PolyhedronGravityCache,
    compute_per_edge_factor,
    compute_per_facet_factor,
    compute_vertices_coordinates_relative_to_field_point,
)
from astrodyn.gravitation.polyhedron_gravity import PolyhedronGravityField


CUBE_VERTICES = np.array([
    [-1.0, -1.0, -1.0],
    [1.0, -1.0, -1.0],
    [1.0, 1.0, -1.0],
    [-1.0, 1.0, -1.0],
    [-1.0, -1.0, 1.0],
    [1.0, -1.0, 1.0],
    [1.0, 1.0, 1.0],
    [-1.0, 1.0, 1.0],
])

CUBE_FACETS = np.array([
    [0, 2, 1], [0, 3, 2],     # z = -1
    [4, 5, 6], [4, 6, 7],     # z = +1
    [0, 1, 5], [0, 5, 4],     # y = -1
    [3, 7, 6], [3, 6, 2],     # y = +1
    [0, 4, 7], [0, 7, 3],     # x = -1
    [1, 2, 6], [1, 6, 5],     # x = +1
])

OUTSIDE_POINT = np.array([3.0, 1.0, 0.5])
INSIDE_POINT = np.array([0.1, 0.2, -0.3])


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def cube_shape():
    """Return the side-2 cube."""
    return PolyhedronShape(CUBE_VERTICES, CUBE_FACETS)


@pytest.fixture
def cube_field(cube_shape):
    """Return the cube's gravity field with G * rho = 1."""
    return PolyhedronGravityField(8.0, cube_shape)


def find_edge(shape, first, second):
    """Index of the edge joining two vertices."""
    matches = np.flatnonzero(np.all(shape.edges == sorted((first, second)), axis=1))
    assert matches.size == 1
    return matches[0]


# =============================================================================
# Test: Shape
# =============================================================================

class TestPolyhedronShape:
    """Shape construction, derived edges and volume."""

    def test_counts(self, cube_shape):
        assert cube_shape.number_of_vertices == 8
        assert cube_shape.number_of_facets == 12
        assert cube_shape.number_of_edges == 18

    def test_volume(self, cube_shape):
        assert_allclose(cube_shape.volume, 8.0, rtol=1e-15)

    def test_edges_are_unique_and_sorted(self, cube_shape):
        edges = cube_shape.edges
        assert np.all(edges[:, 0] < edges[:, 1])
        assert len({tuple(edge) for edge in edges}) == len(edges)

    def test_compute_edges_matches_euler_characteristic(self):
        edges = compute_polyhedron_edges(CUBE_FACETS)
        assert 8 - edges.shape[0] + 12 == 2

    def test_inverted_facets_give_negative_volume(self):
        assert_allclose(compute_polyhedron_volume(CUBE_VERTICES, CUBE_FACETS[:, ::-1]),
                        -8.0, rtol=1e-15)

    def test_arrays_are_read_only(self, cube_shape):
        with pytest.raises(ValueError):
            cube_shape.vertices[0, 0] = 5.0
        with pytest.raises(ValueError):
            cube_shape.facets[0, 0] = 5

    def test_input_is_copied(self):
        vertices = CUBE_VERTICES.copy()
        shape = PolyhedronShape(vertices, CUBE_FACETS)
        vertices[0, 0] = 100.0
        assert shape.vertices[0, 0] == -1.0

    @pytest.mark.parametrize("vertices,facets", [
        pytest.param(CUBE_VERTICES, np.array([[0, 1, 8]]), id="index-out-of-range"),
        pytest.param(CUBE_VERTICES, np.array([[0, -1, 2]]), id="negative-index"),
        pytest.param(CUBE_VERTICES[:, :2], CUBE_FACETS, id="two-dimensional-vertices"),
        pytest.param(CUBE_VERTICES, CUBE_FACETS[:, :2], id="two-vertex-facets"),
        pytest.param(CUBE_VERTICES, np.array([[0, 0, 1]]), id="repeated-vertex"),
    ])
    def test_malformed_connectivity_raises(self, vertices, facets):
        with pytest.raises(InconsistentShapeError):
            PolyhedronShape(vertices, facets)

    def test_edge_index_out_of_range_raises(self):
        with pytest.raises(InconsistentShapeError):
            PolyhedronShape(CUBE_VERTICES, CUBE_FACETS, edges=[[0, 9]])

    def test_explicit_edges_in_any_order(self):
        edges = compute_polyhedron_edges(CUBE_FACETS)[::-1, ::-1]
        shape = PolyhedronShape(CUBE_VERTICES, CUBE_FACETS, edges=edges)
        assert_array_equal(shape.edges, edges)

    def test_missing_edge_raises(self):
        edges = compute_polyhedron_edges(CUBE_FACETS)[1:]
        with pytest.raises(InconsistentShapeError):
            PolyhedronShape(CUBE_VERTICES, CUBE_FACETS, edges=edges)

    def test_duplicated_edge_raises(self):
        edges = compute_polyhedron_edges(CUBE_FACETS)
        edges = np.vstack([edges, edges[:1, ::-1]])
        with pytest.raises(InconsistentShapeError):
            PolyhedronShape(CUBE_VERTICES, CUBE_FACETS, edges=edges)

    def test_edge_not_on_facets_raises(self):
        edges = compute_polyhedron_edges(CUBE_FACETS).copy()
        edges[0] = [0, 6]
        with pytest.raises(InconsistentShapeError):
            PolyhedronShape(CUBE_VERTICES, CUBE_FACETS, edges=edges)


class TestConvexHull:
    """Shapes built from point clouds."""

    def test_cube_hull(self, cube_field):
        points = np.vstack([CUBE_VERTICES, [[0.0, 0.0, 0.0], [0.5, -0.2, 0.1]]])
        shape = PolyhedronShape.from_convex_hull(points)

        assert shape.number_of_vertices == 8
        assert_allclose(shape.volume, 8.0, rtol=1e-14)

        hull_field = PolyhedronGravityField(8.0, shape)
        assert_allclose(hull_field.get_gravitational_potential(OUTSIDE_POINT),
                        cube_field.get_gravitational_potential(OUTSIDE_POINT), rtol=1e-12)

    def test_octahedron_poisson(self):
        points = np.array([
            [1.0, 0.0, 0.0], [-1.0, 0.0, 0.0],
            [0.0, 1.0, 0.0], [0.0, -1.0, 0.0],
            [0.0, 0.0, 1.0], [0.0, 0.0, -1.0],
        ])
        shape = PolyhedronShape.from_convex_hull(points)
        assert_allclose(shape.volume, 4.0 / 3.0, rtol=1e-14)

        field = PolyhedronGravityField(1.0, shape)
        assert_allclose(field.get_laplacian_of_potential([0.1, -0.1, 0.2]),
                        -4.0 * np.pi * field.density_constant, rtol=1e-12)


# =============================================================================
# Test: Dyads
# =============================================================================

class TestDyads:
    """Facet and edge dyads of the cube."""

    def test_facet_dyad_is_normal_outer_product(self, cube_shape):
        dyads = compute_facet_dyads(cube_shape.vertices, cube_shape.facets)
        # Facet 0 lies in z = -1, normal -z
        assert_allclose(dyads[0], np.diag([0.0, 0.0, 1.0]), atol=1e-15)

    def test_face_diagonal_edge_dyad_vanishes(self, cube_shape):
        """Two coplanar facets cancel."""
        dyads = compute_edge_dyads(cube_shape.vertices, cube_shape.facets, cube_shape.edges)
        assert_allclose(dyads[find_edge(cube_shape, 0, 2)], np.zeros((3, 3)), atol=1e-15)

    def test_cube_edge_dyad(self, cube_shape):
        """Edge 0-1 joins the faces with normals -y and -z."""
        dyads = compute_edge_dyads(cube_shape.vertices, cube_shape.facets, cube_shape.edges)
        expected = np.zeros((3, 3))
        expected[1, 2] = expected[2, 1] = 1.0
        assert_allclose(dyads[find_edge(cube_shape, 0, 1)], expected, atol=1e-15)

    def test_edge_dyads_are_symmetric(self, cube_field):
        dyads = cube_field.edge_dyads
        assert_allclose(dyads, np.transpose(dyads, (0, 2, 1)), atol=1e-15)

    def test_dyads_are_read_only(self, cube_field):
        with pytest.raises(ValueError):
            cube_field.facet_dyads[0, 0, 0] = 1.0
        with pytest.raises(ValueError):
            cube_field.edge_dyads[0, 0, 0] = 1.0

    def test_open_surface_raises(self):
        with pytest.raises(InconsistentShapeError):
            compute_edge_dyads(CUBE_VERTICES, CUBE_FACETS[1:],
                               compute_polyhedron_edges(CUBE_FACETS[1:]))

    def test_inconsistent_orientation_raises(self):
        facets = CUBE_FACETS.copy()
        facets[0] = facets[0, ::-1]
        with pytest.raises(InconsistentShapeError):
            compute_edge_dyads(CUBE_VERTICES, facets, compute_polyhedron_edges(facets))


# =============================================================================
# Test: Geometry cache
# =============================================================================

class TestGeometryCache:
    """Cache state machine and per-query factors."""

    def test_uninitialized_reads_raise(self, cube_shape):
        cache = PolyhedronGravityCache(cube_shape)
        assert not cache.is_valid
        assert np.all(np.isnan(cache.current_position))
        with pytest.raises(UninitializedCacheError):
            cache.vertices_coordinates_relative_to_field_point
        with pytest.raises(UninitializedCacheError):
            cache.per_facet_factor
        with pytest.raises(UninitializedCacheError):
            cache.per_edge_factor

    def test_update_sets_position(self, cube_shape):
        cache = PolyhedronGravityCache(cube_shape)
        cache.update(OUTSIDE_POINT)
        assert cache.is_valid
        assert_array_equal(cache.current_position, OUTSIDE_POINT)
        assert_array_equal(cache.vertices_coordinates_relative_to_field_point,
                           CUBE_VERTICES - OUTSIDE_POINT)

    def test_second_update_does_not_leak(self, cube_shape):
        cache = PolyhedronGravityCache(cube_shape)
        cache.update(OUTSIDE_POINT)
        cache.update(INSIDE_POINT)

        relative = compute_vertices_coordinates_relative_to_field_point(
            INSIDE_POINT, cube_shape.vertices)
        assert_array_equal(cache.vertices_coordinates_relative_to_field_point, relative)
        assert_array_equal(cache.per_facet_factor,
                           compute_per_facet_factor(relative, cube_shape.facets))
        assert_array_equal(cache.per_edge_factor,
                           compute_per_edge_factor(relative, cube_shape.edges))

    def test_same_position_is_not_recomputed(self, cube_shape):
        cache = PolyhedronGravityCache(cube_shape)
        cache.update(OUTSIDE_POINT)
        factors = cache.per_facet_factor
        cache.update(OUTSIDE_POINT.copy())
        assert cache.per_facet_factor is factors

    def test_cached_arrays_are_read_only(self, cube_shape):
        cache = PolyhedronGravityCache(cube_shape)
        cache.update(OUTSIDE_POINT)
        with pytest.raises(ValueError):
            cache.vertices_coordinates_relative_to_field_point[0, 0] = 0.0
        with pytest.raises(ValueError):
            cache.per_facet_factor[0] = 0.0
        with pytest.raises(ValueError):
            cache.per_edge_factor[0] = 0.0

    def test_failed_update_keeps_previous_state(self, cube_shape, monkeypatch):
        """An error part way through update leaves the cache at the old position."""
        cache = PolyhedronGravityCache(cube_shape)
        cache.update(OUTSIDE_POINT)
        facet_factor = cache.per_facet_factor
        edge_factor = cache.per_edge_factor

        def failing_edge_factor(relative_vertices, edges):
            raise FloatingPointError("edge factor failed")

        monkeypatch.setattr(polyhedron_cache, 'compute_per_edge_factor', failing_edge_factor)
        with pytest.raises(FloatingPointError):
            cache.update(INSIDE_POINT)

        assert_array_equal(cache.current_position, OUTSIDE_POINT)
        assert cache.per_facet_factor is facet_factor
        assert cache.per_edge_factor is edge_factor

    def test_solid_angles_sum(self, cube_shape):
        """Facet solid angles sum to 4 pi inside and 0 outside."""
        inside = compute_per_facet_factor(
            compute_vertices_coordinates_relative_to_field_point(INSIDE_POINT, CUBE_VERTICES),
            cube_shape.facets)
        outside = compute_per_facet_factor(
            compute_vertices_coordinates_relative_to_field_point(OUTSIDE_POINT, CUBE_VERTICES),
            cube_shape.facets)
        assert_allclose(inside.sum(), 4.0 * np.pi, rtol=1e-14)
        assert_allclose(outside.sum(), 0.0, atol=1e-14)

    def test_facet_seen_from_centre(self, cube_shape):
        """Each of the twelve triangles subtends 4 pi / 12 from the centre."""
        factors = compute_per_facet_factor(CUBE_VERTICES.astype(float), cube_shape.facets)
        assert_allclose(factors, np.full(12, np.pi / 3.0), rtol=1e-14)

    def test_invalid_position_shape_raises(self, cube_shape):
        cache = PolyhedronGravityCache(cube_shape)
        with pytest.raises(ValueError):
            cache.update(np.zeros(2))

    def test_independent_caches(self, cube_field):
        other = cube_field.create_cache()
        cube_field.get_gravitational_potential(OUTSIDE_POINT)
        other.update(INSIDE_POINT)
        assert_array_equal(cube_field.cache.current_position, OUTSIDE_POINT)
        assert_array_equal(other.current_position, INSIDE_POINT)
        assert other.shape is cube_field.shape


# =============================================================================
# Test: Gravity field
# =============================================================================

class TestPolyhedronGravityField:
    """Potential, gradient, Hessian and Laplacian of the cube."""

    def test_density_constant(self, cube_field):
        assert_allclose(cube_field.density_constant, 1.0, rtol=1e-15)
        assert_allclose(cube_field.volume, 8.0, rtol=1e-15)

    def test_laplacian_outside_is_zero(self, cube_field):
        assert_allclose(cube_field.get_laplacian_of_potential(OUTSIDE_POINT), 0.0, atol=1e-13)

    def test_laplacian_inside(self, cube_field):
        assert_allclose(cube_field.get_laplacian_of_potential(INSIDE_POINT),
                        -4.0 * np.pi, rtol=1e-13)

    @pytest.mark.parametrize("position", [OUTSIDE_POINT, INSIDE_POINT])
    def test_hessian_trace_is_laplacian(self, cube_field, position):
        hessian = cube_field.get_hessian_of_potential(position)
        assert_allclose(np.trace(hessian), cube_field.get_laplacian_of_potential(position),
                        rtol=1e-12, atol=1e-12)
        assert_allclose(hessian, hessian.T, atol=1e-14)

    @pytest.mark.parametrize("position", [OUTSIDE_POINT, INSIDE_POINT])
    def test_gradient_matches_finite_difference(self, cube_field, position):
        step = 1e-5
        numerical = np.zeros(3)
        for axis in range(3):
            offset = np.zeros(3)
            offset[axis] = step
            numerical[axis] = (cube_field.get_gravitational_potential(position + offset)
                               - cube_field.get_gravitational_potential(position - offset)) \
                / (2.0 * step)
        assert_allclose(cube_field.get_gradient_of_potential(position), numerical,
                        rtol=1e-6, atol=1e-9)

    @pytest.mark.parametrize("position", [OUTSIDE_POINT, INSIDE_POINT])
    def test_hessian_matches_finite_difference(self, cube_field, position):
        step = 1e-5
        numerical = np.zeros((3, 3))
        for axis in range(3):
            offset = np.zeros(3)
            offset[axis] = step
            numerical[:, axis] = (cube_field.get_gradient_of_potential(position + offset)
                                  - cube_field.get_gradient_of_potential(position - offset)) \
                / (2.0 * step)
        assert_allclose(cube_field.get_hessian_of_potential(position), numerical,
                        rtol=1e-6, atol=1e-9)

    def test_gradient_points_toward_body(self, cube_field):
        gradient = cube_field.get_gradient_of_potential(OUTSIDE_POINT)
        assert np.dot(gradient, OUTSIDE_POINT) < 0.0

    def test_gradient_vanishes_at_centre(self, cube_field):
        assert_allclose(cube_field.get_gradient_of_potential(np.zeros(3)), np.zeros(3),
                        atol=1e-14)

    def test_cubic_symmetry(self, cube_field):
        x, y, z = OUTSIDE_POINT
        reference = cube_field.get_gravitational_potential([x, y, z])
        for image in ([-x, y, z], [y, x, z], [x, -z, -y], [z, y, x]):
            assert_allclose(cube_field.get_gravitational_potential(image), reference,
                            rtol=1e-13)

    @pytest.mark.parametrize("distance", [50.0, 100.0, 200.0])
    def test_far_field_point_mass(self, cube_field, distance):
        """U -> mu / r and grad U -> -mu r / r^3 far from the body."""
        direction = np.array([1.0, 2.0, 3.0]) / np.sqrt(14.0)
        position = distance * direction
        assert_allclose(cube_field.get_gravitational_potential(position),
                        8.0 / distance, rtol=1e-5)
        assert_allclose(cube_field.get_gradient_of_potential(position),
                        -8.0 / distance ** 2 * direction, rtol=1e-5, atol=1e-12)

    def test_far_field_error_shrinks_with_distance(self, cube_field):
        direction = np.array([1.0, 2.0, 3.0]) / np.sqrt(14.0)
        errors = [abs(cube_field.get_gravitational_potential(d * direction) - 8.0 / d) * d / 8.0
                  for d in (5.0, 10.0, 20.0)]
        assert errors[0] > errors[1] > errors[2]

    def test_potential_continuous_across_surface(self, cube_field):
        just_inside = cube_field.get_gravitational_potential([0.999999, 0.2, 0.1])
        just_outside = cube_field.get_gravitational_potential([1.000001, 0.2, 0.1])
        assert_allclose(just_inside, just_outside, rtol=1e-5)

    def test_from_density(self, cube_shape):
        field = PolyhedronGravityField.from_density(2000.0, cube_shape)
        assert_allclose(field.gravitational_parameter,
                        GRAVITATIONAL_CONSTANT * 2000.0 * 8.0, rtol=1e-14)
        assert_allclose(field.density_constant, GRAVITATIONAL_CONSTANT * 2000.0, rtol=1e-14)

    def test_explicit_volume(self, cube_shape):
        field = PolyhedronGravityField(8.0, cube_shape, volume=4.0)
        assert_allclose(field.density_constant, 2.0, rtol=1e-15)

    def test_inverted_shape_raises(self):
        shape = PolyhedronShape(CUBE_VERTICES, CUBE_FACETS[:, ::-1])
        with pytest.raises(InconsistentShapeError):
            PolyhedronGravityField(8.0, shape)

    def test_accessors(self, cube_field, cube_shape):
        assert cube_field.vertices is cube_shape.vertices
        assert cube_field.facets is cube_shape.facets
        assert cube_field.edges is cube_shape.edges
        assert cube_field.facet_dyads.shape == (12, 3, 3)
        assert cube_field.edge_dyads.shape == (18, 3, 3)
