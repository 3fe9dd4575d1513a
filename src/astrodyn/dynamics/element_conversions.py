"""
===============================================================================
ASTRODYN - Orbital Element Conversions
===============================================================================
Conversions between Keplerian elements, Cartesian state and the Unified
State Model (USM) in its quaternion (USM7) and exponential-map (USMEM)
forms.

The unified state model describes an orbit by

    1. **Hodograph elements** (C, Rf1, Rf2) -- the velocity-space circle
       traced by the velocity vector. C = sqrt(mu / p) is the component
       perpendicular to the radius that is constant over the orbit, and
       (Rf1, Rf2) is the eccentricity-related offset of the hodograph
       centre, scaled by C.

    2. **Orbit-frame rotation** -- the rotation from the inertial frame to
       the frame (r_hat, theta_hat, h_hat). As a 3-1-3 sequence this is

           R = Rz(Omega) * Rx(i) * Rz(u),     u = omega + nu

       USM7 stores its Euler parameters (eps1, eps2, eps3, eta); USMEM
       stores its rotation vector (e1, e2, e3).

Singularities
-------------
    - e = 0: the argument of periapsis is undefined and must be 0.
    - i = 0: the longitude of the ascending node is undefined and must be 0.
    - i outside [0, pi]: rejected.
    - i = pi: the forward conversion succeeds, but Omega and u cannot be
      separated again, so the inverse conversion rejects it. Inclinations
      close to pi lose precision in the inverse conversion.

Element layouts are defined in astrodyn.core.constants. All angles are in
radians, lengths in meters and gravitational parameters in m^3/s^2.

References
----------
    [1] Vittaldev, Mooij & Naeije, "Unified State Model theory and
        application in Astrodynamics", Celestial Mechanics and Dynamical
        Astronomy, 2012.
    [2] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.

===============================================================================
"""

import numpy as np

from astrodyn.core.constants import (
    PI,
    TWO_PI,
    SINGULARITY_TOLERANCE,
    SEMI_MAJOR_AXIS_INDEX,
    SEMI_LATUS_RECTUM_INDEX,
    ECCENTRICITY_INDEX,
    INCLINATION_INDEX,
    ARGUMENT_OF_PERIAPSIS_INDEX,
    LONGITUDE_OF_ASCENDING_NODE_INDEX,
    TRUE_ANOMALY_INDEX,
    C_HODOGRAPH_INDEX,
    RF1_HODOGRAPH_INDEX,
    RF2_HODOGRAPH_INDEX,
    E1_EXPONENTIAL_MAP_INDEX,
    E3_EXPONENTIAL_MAP_INDEX,
    EPSILON1_QUATERNION_INDEX,
    EPSILON2_QUATERNION_INDEX,
    EPSILON3_QUATERNION_INDEX,
    ETA_QUATERNION_INDEX,
)
from astrodyn.core.exceptions import DegenerateGeometryError
from astrodyn.core.quaternion import Quaternion


# Tolerance used when classifying Cartesian states. Eccentricities and
# inclinations recovered from position and velocity carry round-off far
# larger than machine epsilon.
CARTESIAN_TOLERANCE = 1e-12


# =============================================================================
# HELPERS
# =============================================================================

def _wrap_angle(angle: float, tolerance: float) -> float:
    """Wrap an angle to [0, 2*pi); values within tolerance of 2*pi become 0."""
    wrapped = float(np.mod(angle, TWO_PI))
    if TWO_PI - wrapped < tolerance:
        return 0.0
    return wrapped


def _as_element_vector(elements, size: int, name: str) -> np.ndarray:
    vector = np.asarray(elements, dtype=np.float64)
    if vector.shape != (size,):
        raise ValueError(
            f"{name} must be a {size}-element vector, got shape {vector.shape}"
        )
    return vector


def _compute_semi_latus_rectum(semi_major_axis_or_latus_rectum: float,
                               eccentricity: float,
                               tolerance: float) -> float:
    """
    Semi-latus rectum from element 0 of a Keplerian set.

    Element 0 already is the semi-latus rectum for parabolic orbits.
    """
    if abs(eccentricity - 1.0) < tolerance:
        p = semi_major_axis_or_latus_rectum
    else:
        p = semi_major_axis_or_latus_rectum * (1.0 - eccentricity * eccentricity)

    if p <= 0.0:
        raise ValueError(
            f"Semi-latus rectum must be positive (got {p:.6e} m); the sign of "
            f"element 0 ({semi_major_axis_or_latus_rectum:.6e}) is inconsistent "
            f"with eccentricity {eccentricity}."
        )
    return p


def _validate_keplerian_elements(keplerian: np.ndarray, tolerance: float) -> None:
    """
    Reject Keplerian sets whose angles are undefined or out of range.

    Raises
    ------
    ValueError
        For a negative eccentricity.
    DegenerateGeometryError
        For an inclination outside [0, pi], a non-zero argument of periapsis
        on a circular orbit or a non-zero node on an equatorial orbit.
    """
    eccentricity = keplerian[ECCENTRICITY_INDEX]
    inclination = keplerian[INCLINATION_INDEX]

    if eccentricity < 0.0:
        raise ValueError(f"Eccentricity must be non-negative, got {eccentricity}")

    if inclination < 0.0 or inclination > PI + tolerance:
        raise DegenerateGeometryError(
            f"Inclination must lie in [0, pi], got {inclination} rad"
        )

    if eccentricity < tolerance and \
            abs(keplerian[ARGUMENT_OF_PERIAPSIS_INDEX]) > tolerance:
        raise DegenerateGeometryError(
            "Argument of periapsis is undefined for a circular orbit; "
            f"got {keplerian[ARGUMENT_OF_PERIAPSIS_INDEX]} rad with "
            f"eccentricity {eccentricity}"
        )

    if inclination < tolerance and \
            abs(keplerian[LONGITUDE_OF_ASCENDING_NODE_INDEX]) > tolerance:
        raise DegenerateGeometryError(
            "Longitude of the ascending node is undefined for an equatorial "
            f"orbit; got {keplerian[LONGITUDE_OF_ASCENDING_NODE_INDEX]} rad with "
            f"inclination {inclination}"
        )


def _compute_orbit_frame_euler_parameters(inclination: float,
                                          longitude_of_ascending_node: float,
                                          argument_of_latitude: float) -> np.ndarray:
    """
    Euler parameters [eps1, eps2, eps3, eta] of Rz(Omega) Rx(i) Rz(u).

    The signs are those of the closed-form expressions; eta may be negative.
    """
    sin_half_i = np.sin(0.5 * inclination)
    cos_half_i = np.cos(0.5 * inclination)
    half_difference = 0.5 * (longitude_of_ascending_node - argument_of_latitude)
    half_sum = 0.5 * (longitude_of_ascending_node + argument_of_latitude)

    return np.array([
        sin_half_i * np.cos(half_difference),
        sin_half_i * np.sin(half_difference),
        cos_half_i * np.sin(half_sum),
        cos_half_i * np.cos(half_sum),
    ], dtype=np.float64)


# =============================================================================
# KEPLERIAN <-> USM7 (QUATERNION FORM)
# =============================================================================

def convert_keplerian_to_usm7(keplerian, mu: float,
                              tolerance: float = SINGULARITY_TOLERANCE) -> np.ndarray:
    """
    Convert Keplerian elements to the quaternion form of the unified state
    model.

    Parameters
    ----------
    keplerian : array_like
        [a (or p if e = 1), e, i, omega, Omega, nu].
    mu : float
        Gravitational parameter of the central body (m^3/s^2).
    tolerance : float, optional
        Threshold below which e and i are treated as zero and |e - 1| as
        parabolic.

    Returns
    -------
    np.ndarray
        [C, Rf1, Rf2, eps1, eps2, eps3, eta].

    Raises
    ------
    DegenerateGeometryError
        If an angle is undefined for the given geometry or i is outside
        [0, pi].
    ValueError
        If e < 0, the semi-latus rectum is not positive, or a hyperbolic
        true anomaly lies at or beyond the asymptote.
    """
    kep = _as_element_vector(keplerian, 6, "Keplerian element set")
    _validate_keplerian_elements(kep, tolerance)

    eccentricity = kep[ECCENTRICITY_INDEX]
    argument_of_periapsis = kep[ARGUMENT_OF_PERIAPSIS_INDEX]
    longitude_of_ascending_node = kep[LONGITUDE_OF_ASCENDING_NODE_INDEX]
    true_anomaly = kep[TRUE_ANOMALY_INDEX]

    p = _compute_semi_latus_rectum(kep[SEMI_MAJOR_AXIS_INDEX], eccentricity, tolerance)

    if 1.0 + eccentricity * np.cos(true_anomaly) <= 0.0:
        raise ValueError(
            f"True anomaly {true_anomaly} rad is unreachable on an orbit with "
            f"eccentricity {eccentricity}"
        )

    # Hodograph
    c_hodograph = np.sqrt(mu / p)
    longitude_of_periapsis = longitude_of_ascending_node + argument_of_periapsis

    usm7 = np.zeros(7)
    usm7[C_HODOGRAPH_INDEX] = c_hodograph
    usm7[RF1_HODOGRAPH_INDEX] = -c_hodograph * eccentricity * np.sin(longitude_of_periapsis)
    usm7[RF2_HODOGRAPH_INDEX] = c_hodograph * eccentricity * np.cos(longitude_of_periapsis)

    # Orbit-frame rotation
    usm7[EPSILON1_QUATERNION_INDEX:ETA_QUATERNION_INDEX + 1] = \
        _compute_orbit_frame_euler_parameters(
            kep[INCLINATION_INDEX],
            longitude_of_ascending_node,
            argument_of_periapsis + true_anomaly,
        )

    return usm7


def convert_usm7_to_keplerian(usm7, mu: float,
                              tolerance: float = SINGULARITY_TOLERANCE) -> np.ndarray:
    """
    Convert the quaternion form of the unified state model to Keplerian
    elements.

    The Euler parameters need not be normalized, and q and -q give the same
    result.

    Parameters
    ----------
    usm7 : array_like
        [C, Rf1, Rf2, eps1, eps2, eps3, eta].
    mu : float
        Gravitational parameter (m^3/s^2).
    tolerance : float, optional
        Threshold below which e and i are treated as zero and |e - 1| as
        parabolic.

    Returns
    -------
    np.ndarray
        [a (or p if e = 1), e, i, omega, Omega, nu]. Undefined angles are
        returned as 0 (omega for circular, Omega for equatorial orbits).

    Raises
    ------
    DegenerateGeometryError
        If the inclination is 180 degrees, where the node and the argument
        of latitude cannot be separated.
    ValueError
        If C is not positive.
    """
    usm = _as_element_vector(usm7, 7, "USM7 element set")

    c_hodograph = usm[C_HODOGRAPH_INDEX]
    rf1 = usm[RF1_HODOGRAPH_INDEX]
    rf2 = usm[RF2_HODOGRAPH_INDEX]

    if c_hodograph <= 0.0:
        raise ValueError(f"Hodograph element C must be positive, got {c_hodograph}")

    quaternion = usm[EPSILON1_QUATERNION_INDEX:ETA_QUATERNION_INDEX + 1]
    quaternion = quaternion / np.linalg.norm(quaternion)
    eps1, eps2, eps3, eta = quaternion

    in_plane_norm = np.hypot(eps1, eps2)
    out_of_plane_norm = np.hypot(eps3, eta)

    if out_of_plane_norm < tolerance:
        raise DegenerateGeometryError(
            "Inclination is 180 degrees; the longitude of the ascending node "
            "and the argument of latitude cannot be separated"
        )

    inclination = 2.0 * np.arctan2(in_plane_norm, out_of_plane_norm)

    # lambda = Omega + omega + nu
    true_longitude = 2.0 * np.arctan2(eps3, eta)

    if inclination < tolerance:
        inclination = 0.0
        longitude_of_ascending_node = 0.0
    else:
        longitude_of_ascending_node = np.arctan2(eps1 * eps3 + eps2 * eta,
                                                 eps1 * eta - eps2 * eps3)

    # Velocity components in the rotating (r_hat, theta_hat) frame
    sin_lambda = np.sin(true_longitude)
    cos_lambda = np.cos(true_longitude)
    radial_velocity = rf1 * cos_lambda + rf2 * sin_lambda
    transverse_velocity = c_hodograph - rf1 * sin_lambda + rf2 * cos_lambda

    eccentricity = np.hypot(rf1, rf2) / c_hodograph

    if eccentricity < tolerance:
        argument_of_periapsis = 0.0
        true_anomaly = true_longitude - longitude_of_ascending_node
    else:
        true_anomaly = np.arctan2(radial_velocity, transverse_velocity - c_hodograph)
        argument_of_periapsis = true_longitude - longitude_of_ascending_node - true_anomaly

    p = mu / (c_hodograph * c_hodograph)

    keplerian = np.zeros(6)
    if abs(eccentricity - 1.0) < tolerance:
        keplerian[SEMI_LATUS_RECTUM_INDEX] = p
    else:
        keplerian[SEMI_MAJOR_AXIS_INDEX] = p / (1.0 - eccentricity * eccentricity)
    keplerian[ECCENTRICITY_INDEX] = eccentricity
    keplerian[INCLINATION_INDEX] = inclination
    keplerian[ARGUMENT_OF_PERIAPSIS_INDEX] = _wrap_angle(argument_of_periapsis, tolerance)
    keplerian[LONGITUDE_OF_ASCENDING_NODE_INDEX] = _wrap_angle(longitude_of_ascending_node,
                                                               tolerance)
    keplerian[TRUE_ANOMALY_INDEX] = _wrap_angle(true_anomaly, tolerance)

    return keplerian


# =============================================================================
# USM7 <-> USMEM (QUATERNION <-> EXPONENTIAL MAP)
# =============================================================================

def convert_usm7_to_usm(usm7) -> np.ndarray:
    """
    Replace the Euler parameters of a USM7 set by the exponential map of the
    same rotation.

    The rotation vector is taken from the quaternion with eta >= 0, so its
    magnitude (the rotation angle) lies in [0, pi].

    Returns
    -------
    np.ndarray
        [C, Rf1, Rf2, e1, e2, e3].
    """
    usm = _as_element_vector(usm7, 7, "USM7 element set")

    rotation = Quaternion(usm[ETA_QUATERNION_INDEX],
                          usm[EPSILON1_QUATERNION_INDEX],
                          usm[EPSILON2_QUATERNION_INDEX],
                          usm[EPSILON3_QUATERNION_INDEX])

    usmem = np.zeros(6)
    usmem[C_HODOGRAPH_INDEX:RF2_HODOGRAPH_INDEX + 1] = \
        usm[C_HODOGRAPH_INDEX:RF2_HODOGRAPH_INDEX + 1]
    usmem[E1_EXPONENTIAL_MAP_INDEX:E3_EXPONENTIAL_MAP_INDEX + 1] = \
        rotation.to_rotation_vector()
    return usmem


def convert_usm_to_usm7(usm) -> np.ndarray:
    """
    Replace the exponential map of a USMEM set by the Euler parameters
    (eta >= 0) of the same rotation.

    Returns
    -------
    np.ndarray
        [C, Rf1, Rf2, eps1, eps2, eps3, eta].
    """
    usmem = _as_element_vector(usm, 6, "USMEM element set")

    rotation = Quaternion.from_rotation_vector(
        usmem[E1_EXPONENTIAL_MAP_INDEX:E3_EXPONENTIAL_MAP_INDEX + 1])

    usm7 = np.zeros(7)
    usm7[C_HODOGRAPH_INDEX:RF2_HODOGRAPH_INDEX + 1] = \
        usmem[C_HODOGRAPH_INDEX:RF2_HODOGRAPH_INDEX + 1]
    usm7[EPSILON1_QUATERNION_INDEX:EPSILON3_QUATERNION_INDEX + 1] = rotation.vector
    usm7[ETA_QUATERNION_INDEX] = rotation.scalar
    return usm7


# =============================================================================
# KEPLERIAN <-> USMEM
# =============================================================================

def convert_keplerian_to_usm(keplerian, mu: float,
                             tolerance: float = SINGULARITY_TOLERANCE) -> np.ndarray:
    """
    Convert Keplerian elements to the unified state model with exponential
    map (USMEM): [C, Rf1, Rf2, e1, e2, e3].

    See convert_keplerian_to_usm7 for the parameters and the errors raised.
    """
    return convert_usm7_to_usm(convert_keplerian_to_usm7(keplerian, mu, tolerance))


def convert_usm_to_keplerian(usm, mu: float,
                             tolerance: float = SINGULARITY_TOLERANCE) -> np.ndarray:
    """
    Convert unified-state-model elements with exponential map (USMEM) to
    Keplerian elements.

    See convert_usm7_to_keplerian for the conventions and the errors raised.
    """
    return convert_usm7_to_keplerian(convert_usm_to_usm7(usm), mu, tolerance)


# =============================================================================
# KEPLERIAN <-> CARTESIAN
# =============================================================================

def convert_keplerian_to_cartesian(keplerian, mu: float,
                                   tolerance: float = SINGULARITY_TOLERANCE) -> np.ndarray:
    """
    Convert Keplerian elements to a Cartesian state.

    The position and velocity follow from the orbit equation and the
    hodograph, expressed in the orbit frame (r_hat, theta_hat, h_hat):

        r = p / (1 + e cos(nu)) * r_hat
        v = sqrt(mu/p) * (e sin(nu) * r_hat + (1 + e cos(nu)) * theta_hat)

    and rotated to the inertial frame with Rz(Omega) Rx(i) Rz(omega + nu).

    Parameters
    ----------
    keplerian : array_like
        [a (or p if e = 1), e, i, omega, Omega, nu].
    mu : float
        Gravitational parameter (m^3/s^2).

    Returns
    -------
    np.ndarray
        [x, y, z, vx, vy, vz] in m and m/s.
    """
    kep = _as_element_vector(keplerian, 6, "Keplerian element set")
    _validate_keplerian_elements(kep, tolerance)

    eccentricity = kep[ECCENTRICITY_INDEX]
    true_anomaly = kep[TRUE_ANOMALY_INDEX]

    p = _compute_semi_latus_rectum(kep[SEMI_MAJOR_AXIS_INDEX], eccentricity, tolerance)

    denominator = 1.0 + eccentricity * np.cos(true_anomaly)
    if denominator <= 0.0:
        raise ValueError(
            f"True anomaly {true_anomaly} rad is unreachable on an orbit with "
            f"eccentricity {eccentricity}"
        )

    eps1, eps2, eps3, eta = _compute_orbit_frame_euler_parameters(
        kep[INCLINATION_INDEX],
        kep[LONGITUDE_OF_ASCENDING_NODE_INDEX],
        kep[ARGUMENT_OF_PERIAPSIS_INDEX] + true_anomaly,
    )
    orbit_frame = Quaternion(eta, eps1, eps2, eps3).to_dcm()
    radial_direction = orbit_frame[:, 0]
    transverse_direction = orbit_frame[:, 1]

    speed_scale = np.sqrt(mu / p)

    cartesian = np.zeros(6)
    cartesian[:3] = p / denominator * radial_direction
    cartesian[3:] = speed_scale * (eccentricity * np.sin(true_anomaly) * radial_direction
                                   + denominator * transverse_direction)
    return cartesian


def convert_cartesian_to_keplerian(cartesian, mu: float,
                                   tolerance: float = CARTESIAN_TOLERANCE) -> np.ndarray:
    """
    Convert a Cartesian state to Keplerian elements.

    The algorithm computes:
        h = r x v                       (angular momentum)
        n = z_hat x h                   (ascending node vector)
        e_vec = (v x h)/mu - r/|r|      (eccentricity vector)
        p = |h|^2 / mu                  (semi-latus rectum)
        i = atan2(|n|, h_z)             (inclination)

    Edge cases:
        - Circular orbit (e ~ 0): omega set to 0, nu measured from the node.
        - Equatorial orbit (i ~ 0): Omega set to 0, omega measured from the
          x-axis.
        - Circular equatorial: omega and Omega set to 0, nu measured from
          the x-axis.
        - Parabolic (|e - 1| ~ 0): element 0 holds the semi-latus rectum.

    Parameters
    ----------
    cartesian : array_like
        [x, y, z, vx, vy, vz] in m and m/s.
    mu : float
        Gravitational parameter (m^3/s^2).
    tolerance : float, optional
        Threshold on e, i and |e - 1| for the special cases above.

    Returns
    -------
    np.ndarray
        [a (or p if e = 1), e, i, omega, Omega, nu].

    References
    ----------
    Vallado (2013), Algorithm 9.
    """
    state = _as_element_vector(cartesian, 6, "Cartesian state")
    r = state[:3]
    v = state[3:]

    r_mag = np.linalg.norm(r)

    # Angular momentum
    h = np.cross(r, v)
    h_mag = np.linalg.norm(h)
    if h_mag == 0.0:
        raise DegenerateGeometryError(
            "Position and velocity are parallel; the orbital plane is undefined"
        )

    # Node vector (z_hat x h)
    n = np.array([-h[1], h[0], 0.0])
    n_mag = np.linalg.norm(n)

    # Eccentricity vector
    e_vec = np.cross(v, h) / mu - r / r_mag
    eccentricity = np.linalg.norm(e_vec)

    p = h_mag * h_mag / mu
    inclination = np.arctan2(n_mag, h[2])

    keplerian = np.zeros(6)
    if abs(eccentricity - 1.0) < tolerance:
        keplerian[SEMI_LATUS_RECTUM_INDEX] = p
    else:
        keplerian[SEMI_MAJOR_AXIS_INDEX] = p / (1.0 - eccentricity * eccentricity)

    is_circular = eccentricity < tolerance
    is_equatorial = inclination < tolerance or PI - inclination < tolerance

    # Right ascension of the ascending node
    if is_equatorial:
        raan = 0.0
    else:
        raan = np.arctan2(n[1], n[0])

    # Argument of periapsis
    if is_circular:
        omega = 0.0
    elif is_equatorial:
        omega = np.arctan2(e_vec[1], e_vec[0])
        if h[2] < 0.0:
            omega = -omega
    else:
        omega = np.arctan2(np.dot(np.cross(n, e_vec), h) / h_mag, np.dot(n, e_vec))

    # True anomaly
    if not is_circular:
        nu = np.arctan2(np.dot(np.cross(e_vec, r), h) / h_mag, np.dot(e_vec, r))
    elif not is_equatorial:
        nu = np.arctan2(np.dot(np.cross(n, r), h) / h_mag, np.dot(n, r))
    else:
        nu = np.arctan2(r[1], r[0])
        if h[2] < 0.0:
            nu = -nu

    keplerian[ECCENTRICITY_INDEX] = eccentricity
    keplerian[INCLINATION_INDEX] = inclination
    keplerian[ARGUMENT_OF_PERIAPSIS_INDEX] = _wrap_angle(omega, tolerance)
    keplerian[LONGITUDE_OF_ASCENDING_NODE_INDEX] = _wrap_angle(raan, tolerance)
    keplerian[TRUE_ANOMALY_INDEX] = _wrap_angle(nu, tolerance)

    return keplerian
