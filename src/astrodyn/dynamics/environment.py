"""
===============================================================================
ASTRODYN - Environment Models
===============================================================================
Gravitational and radiation environment models acting on a body in orbit:

    - GravityFieldModel               : Common interface of gravity fields
    - PointMassGravityField           : Central-body (point-mass) gravity
    - compute_gravitational_acceleration[_from_mass]
                                      : Point-mass acceleration helpers
    - IsotropicPointRadiationSource   : Point source radiating uniformly
    - CannonballRadiationPressureTarget
                                      : Cannonball radiation-pressure target

The polyhedron gravity field implements GravityFieldModel in
astrodyn.gravitation.polyhedron_gravity.

Gravity fields follow the geodesy sign convention: the potential is positive
(U = mu / r for a point mass) and its gradient is the gravitational
acceleration. SI units throughout (m, s, kg, W).
===============================================================================
"""

import logging
from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray

from astrodyn.core.constants import SPEED_OF_LIGHT


logger = logging.getLogger(__name__)


# ============================================================================
#  POINT-MASS ACCELERATION HELPERS
# ============================================================================

def compute_gravitational_acceleration(
    position: NDArray,
    mu: float,
    body_position: NDArray = None,
) -> NDArray:
    """
    Gravitational acceleration of a point mass:

        a = -mu / |r - r_b|^3 * (r - r_b)

    Parameters
    ----------
    position : ndarray, shape (3,)
        Position of the accelerated body (m).
    mu : float
        Gravitational parameter of the attracting body (m^3/s^2).
    body_position : ndarray, shape (3,), optional
        Position of the attracting body (m). Defaults to the origin.

    Returns
    -------
    ndarray, shape (3,)
        Acceleration (m/s^2), pointing toward the attracting body.

    Raises
    ------
    ValueError
        If the two positions coincide.
    """
    relative_position = np.asarray(position, dtype=np.float64)
    if body_position is not None:
        relative_position = relative_position - np.asarray(body_position, dtype=np.float64)

    distance = np.linalg.norm(relative_position)
    if distance == 0.0:
        raise ValueError("Position coincides with the attracting body; gravity is undefined.")

    return -mu / distance ** 3 * relative_position


def compute_gravitational_acceleration_from_mass(
    gravitational_constant: float,
    position: NDArray,
    mass: float,
    body_position: NDArray,
) -> NDArray:
    """
    Gravitational acceleration of a point mass given its mass and the
    gravitational constant, a = -G m / |r - r_b|^3 * (r - r_b).
    """
    return compute_gravitational_acceleration(
        position, gravitational_constant * mass, body_position)


# ============================================================================
#  GRAVITY FIELD INTERFACE
# ============================================================================

class GravityFieldModel(ABC):
    """
    Abstract gravity field.

    Concrete fields evaluate the potential and its first and second spatial
    derivatives at a position expressed in the field's body-fixed frame.

    Parameters
    ----------
    gravitational_parameter : float
        mu = G * M of the body (m^3/s^2).
    fixed_reference_frame : str, optional
        Name of the body-fixed frame the field is expressed in.
    """

    def __init__(self, gravitational_parameter: float,
                 fixed_reference_frame: str = "") -> None:
        if gravitational_parameter <= 0.0:
            raise ValueError(
                f"Gravitational parameter must be positive, got {gravitational_parameter}"
            )
        self._gravitational_parameter = float(gravitational_parameter)
        self.fixed_reference_frame = fixed_reference_frame
        logger.debug("Created %s with mu = %.6e m^3/s^2",
                     type(self).__name__, self._gravitational_parameter)

    @property
    def gravitational_parameter(self) -> float:
        return self._gravitational_parameter

    @abstractmethod
    def get_gravitational_potential(self, position: NDArray) -> float:
        """Gravitational potential (m^2/s^2)."""

    @abstractmethod
    def get_gradient_of_potential(self, position: NDArray) -> NDArray:
        """Gradient of the potential, i.e. the acceleration (m/s^2)."""

    @abstractmethod
    def get_hessian_of_potential(self, position: NDArray) -> NDArray:
        """3x3 matrix of second derivatives of the potential (1/s^2)."""

    @abstractmethod
    def get_laplacian_of_potential(self, position: NDArray) -> float:
        """Trace of the Hessian (1/s^2)."""

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(mu={self._gravitational_parameter:.6e}, "
                f"frame='{self.fixed_reference_frame}')")


# ============================================================================
#  POINT-MASS GRAVITY FIELD
# ============================================================================

class PointMassGravityField(GravityFieldModel):
    """
    Gravity field of a point mass (or spherically symmetric body) located at
    the origin of its body-fixed frame.

        U      = mu / r
        grad U = -mu / r^3 * r_vec
        H      = mu / r^3 * (3 r_hat r_hat^T - I)
    """

    def _relative_position(self, position: NDArray):
        r_vec = np.asarray(position, dtype=np.float64)
        r = np.linalg.norm(r_vec)
        if r == 0.0:
            raise ValueError("Position is at the origin; gravity is undefined.")
        return r_vec, r

    def get_gravitational_potential(self, position: NDArray) -> float:
        _, r = self._relative_position(position)
        return self._gravitational_parameter / r

    def get_gradient_of_potential(self, position: NDArray) -> NDArray:
        return compute_gravitational_acceleration(position, self._gravitational_parameter)

    def get_hessian_of_potential(self, position: NDArray) -> NDArray:
        r_vec, r = self._relative_position(position)
        r_hat = r_vec / r
        return self._gravitational_parameter / r ** 3 * (
            3.0 * np.outer(r_hat, r_hat) - np.eye(3))

    def get_laplacian_of_potential(self, position: NDArray) -> float:
        self._relative_position(position)
        return 0.0


# ============================================================================
#  RADIATION SOURCES AND TARGETS
# ============================================================================

class IsotropicPointRadiationSource:
    """
    Point source radiating its luminosity uniformly in all directions.

    The irradiance at distance d is

        E = L / (4 pi d^2)

    Parameters
    ----------
    luminosity : float
        Total radiated power (W).
    """

    def __init__(self, luminosity: float) -> None:
        if luminosity < 0.0:
            raise ValueError(f"Luminosity must be non-negative, got {luminosity}")
        self.luminosity = luminosity

    def evaluate_irradiance(self, target_position: NDArray,
                            source_position: NDArray = None) -> float:
        """
        Irradiance (W/m^2) at *target_position*.

        Raises
        ------
        ValueError
            If the target coincides with the source.
        """
        offset = np.asarray(target_position, dtype=np.float64)
        if source_position is not None:
            offset = offset - np.asarray(source_position, dtype=np.float64)

        distance = np.linalg.norm(offset)
        if distance == 0.0:
            raise ValueError("Target coincides with the radiation source.")

        return self.luminosity / (4.0 * np.pi * distance * distance)


class CannonballRadiationPressureTarget:
    """
    Cannonball (spherical) radiation-pressure target.

    The radiation force on the target is

        F = (E / c) * C_r * A * u_hat

    where
        E    = irradiance at the target (W/m^2)
        c    = speed of light (m/s)
        C_r  = radiation pressure coefficient
               (1 = fully absorbing, 2 = fully reflecting)
        A    = cross-section area (m^2)
        u_hat = unit vector from the source to the target

    Parameters
    ----------
    area : float
        Cross-section area (m^2).
    radiation_pressure_coefficient : float
        C_r, dimensionless.
    """

    def __init__(self, area: float, radiation_pressure_coefficient: float) -> None:
        if area < 0.0:
            raise ValueError(f"Area must be non-negative, got {area}")
        self.area = area
        self.radiation_pressure_coefficient = radiation_pressure_coefficient

    def compute_radiation_pressure_force(self, irradiance: float,
                                         source_to_target_direction: NDArray) -> NDArray:
        """Radiation pressure force (N) for the given irradiance and incidence."""
        direction = np.asarray(source_to_target_direction, dtype=np.float64)
        direction = direction / np.linalg.norm(direction)
        pressure = irradiance / SPEED_OF_LIGHT
        return pressure * self.radiation_pressure_coefficient * self.area * direction

    def compute_radiation_pressure_acceleration(
        self,
        source: IsotropicPointRadiationSource,
        source_position: NDArray,
        target_position: NDArray,
        mass: float,
    ) -> NDArray:
        """
        Acceleration (m/s^2) of a target of *mass* kg illuminated by *source*,
        directed away from the source.
        """
        if mass <= 0.0:
            raise ValueError(f"Mass must be positive, got {mass}")

        source_position = np.asarray(source_position, dtype=np.float64)
        target_position = np.asarray(target_position, dtype=np.float64)

        irradiance = source.evaluate_irradiance(target_position, source_position)
        force = self.compute_radiation_pressure_force(
            irradiance, target_position - source_position)
        return force / mass
