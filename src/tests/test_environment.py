"""
===============================================================================
ASTRODYN - Environment Model Test Suite
===============================================================================
Tests for the point-mass gravity helpers and field, the isotropic point
radiation source and the cannonball radiation-pressure target.

Reference values: surface gravity of the Earth and the Moon from their masses
(G = 6.6726e-11 m^3 kg^-1 s^-2), and the solar irradiance at 1 AU.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from astrodyn.core.constants import AU, EARTH_MU, SPEED_OF_LIGHT, SUN_LUMINOSITY
from astrodyn.dynamics.environment import (
    GravityFieldModel,
    PointMassGravityField,
    compute_gravitational_acceleration,
    compute_gravitational_acceleration_from_mass,
    IsotropicPointRadiationSource,
    CannonballRadiationPressureTarget,
)


G_TEST = 6.6726e-11


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def earth_field():
    """Return a point-mass gravity field of the Earth."""
    return PointMassGravityField(EARTH_MU, fixed_reference_frame="IAU_Earth")


@pytest.fixture
def sun():
    """Return the Sun as an isotropic radiation source."""
    return IsotropicPointRadiationSource(SUN_LUMINOSITY)


# =============================================================================
# Test: Point-mass acceleration helpers
# =============================================================================

class TestGravitationalAcceleration:
    """Point-mass accelerations computed from mass or gravitational parameter."""

    def test_earth_surface_gravity(self):
        """About 9.8 m/s^2 at the Earth's surface."""
        mass = 5.9742e24
        radius = 6.3781e6
        position = np.array([radius, 0.0, 0.0])

        acceleration = compute_gravitational_acceleration_from_mass(
            G_TEST, position, mass, np.zeros(3))

        assert_allclose(np.linalg.norm(acceleration), G_TEST * mass / radius ** 2, rtol=1e-14)
        assert_allclose(np.linalg.norm(acceleration), 9.8, rtol=1e-3)
        assert acceleration[0] < 0.0

    def test_moon_surface_gravity_offset_body(self):
        """About 1.63 m/s^2 at the Moon's surface, with the Moon off the origin."""
        mass = 7.36e22
        body_position = np.array([12.65, 0.23, -45.78])
        position = np.array([0.0, 1735771.89, 0.0])

        acceleration = compute_gravitational_acceleration_from_mass(
            G_TEST, position, mass, body_position)

        offset = position - body_position
        distance = np.linalg.norm(offset)
        assert_allclose(np.linalg.norm(acceleration), G_TEST * mass / distance ** 2, rtol=1e-14)
        assert_allclose(np.linalg.norm(acceleration), 1.63, rtol=1e-3)
        # Points from the position to the body
        assert_allclose(acceleration / np.linalg.norm(acceleration), -offset / distance,
                        atol=1e-15)

    def test_mu_and_mass_forms_agree(self):
        position = np.array([7.0e6, -1.0e6, 2.0e5])
        from_mu = compute_gravitational_acceleration(position, G_TEST * 5.9742e24)
        from_mass = compute_gravitational_acceleration_from_mass(
            G_TEST, position, 5.9742e24, np.zeros(3))
        assert_allclose(from_mu, from_mass, rtol=1e-15)

    def test_coincident_position_raises(self):
        with pytest.raises(ValueError):
            compute_gravitational_acceleration(np.ones(3), EARTH_MU, np.ones(3))


# =============================================================================
# Test: Point-mass gravity field
# =============================================================================

class TestPointMassGravityField:
    """Potential and derivatives of a point mass."""

    def test_potential(self, earth_field):
        assert_allclose(earth_field.get_gravitational_potential([7.0e6, 0.0, 0.0]),
                        EARTH_MU / 7.0e6, rtol=1e-15)

    def test_gradient_matches_finite_difference(self, earth_field):
        position = np.array([7.0e6, 1.0e6, -5.0e5])
        step = 1.0
        numerical = np.zeros(3)
        for axis in range(3):
            offset = np.zeros(3)
            offset[axis] = step
            numerical[axis] = (earth_field.get_gravitational_potential(position + offset)
                               - earth_field.get_gravitational_potential(position - offset)) \
                / (2.0 * step)
        assert_allclose(earth_field.get_gradient_of_potential(position), numerical, rtol=1e-6)

    def test_hessian_is_trace_free_and_symmetric(self, earth_field):
        hessian = earth_field.get_hessian_of_potential([7.0e6, 1.0e6, -5.0e5])
        assert_allclose(np.trace(hessian), 0.0, atol=1e-20)
        assert_allclose(hessian, hessian.T, atol=0.0)

    def test_laplacian_is_zero(self, earth_field):
        assert earth_field.get_laplacian_of_potential([7.0e6, 0.0, 0.0]) == 0.0

    def test_origin_raises(self, earth_field):
        with pytest.raises(ValueError):
            earth_field.get_gravitational_potential(np.zeros(3))

    def test_non_positive_mu_raises(self):
        with pytest.raises(ValueError):
            PointMassGravityField(0.0)

    def test_interface_is_abstract(self):
        with pytest.raises(TypeError):
            GravityFieldModel(EARTH_MU)

    def test_accessors(self, earth_field):
        assert earth_field.gravitational_parameter == EARTH_MU
        assert earth_field.fixed_reference_frame == "IAU_Earth"


# =============================================================================
# Test: Radiation source and target
# =============================================================================

class TestRadiation:
    """Isotropic point source and cannonball target."""

    def test_solar_irradiance_at_1_au(self, sun):
        """Solar constant of about 1361 W/m^2."""
        irradiance = sun.evaluate_irradiance(np.array([AU, 0.0, 0.0]))
        assert_allclose(irradiance, 1361.0, rtol=1e-3)

    def test_inverse_square_law(self, sun):
        near = sun.evaluate_irradiance([0.0, AU, 0.0])
        far = sun.evaluate_irradiance([0.0, 2.0 * AU, 0.0])
        assert_allclose(near / far, 4.0, rtol=1e-14)

    def test_offset_source(self, sun):
        source_position = np.array([1.0e9, -2.0e9, 3.0e8])
        irradiance = sun.evaluate_irradiance(source_position + [AU, 0.0, 0.0], source_position)
        assert_allclose(irradiance, sun.evaluate_irradiance([AU, 0.0, 0.0]), rtol=1e-14)

    def test_target_at_source_raises(self, sun):
        with pytest.raises(ValueError):
            sun.evaluate_irradiance(np.zeros(3))

    def test_cannonball_acceleration(self, sun):
        target = CannonballRadiationPressureTarget(area=2.0, radiation_pressure_coefficient=1.2)
        target_position = np.array([0.0, 0.0, AU])
        mass = 500.0

        acceleration = target.compute_radiation_pressure_acceleration(
            sun, np.zeros(3), target_position, mass)

        expected_magnitude = sun.evaluate_irradiance(target_position) / SPEED_OF_LIGHT \
            * 1.2 * 2.0 / mass
        assert_allclose(acceleration, [0.0, 0.0, expected_magnitude], rtol=1e-14, atol=1e-25)

    def test_cannonball_points_away_from_source(self, sun):
        target = CannonballRadiationPressureTarget(1.0, 1.0)
        source_position = np.array([AU, AU, 0.0])
        target_position = np.array([0.0, 0.0, 0.0])
        acceleration = target.compute_radiation_pressure_acceleration(
            sun, source_position, target_position, 100.0)
        assert np.dot(acceleration, target_position - source_position) > 0.0

    def test_non_positive_mass_raises(self, sun):
        target = CannonballRadiationPressureTarget(1.0, 1.0)
        with pytest.raises(ValueError):
            target.compute_radiation_pressure_acceleration(
                sun, np.zeros(3), np.array([AU, 0.0, 0.0]), 0.0)
