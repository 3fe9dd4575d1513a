"""
===============================================================================
ASTRODYN - Quaternion Mathematics
===============================================================================

Unit quaternion (Euler parameter) representation of the orbit-frame
orientation used by the unified state model. The USM7 set stores that
rotation as a quaternion and the USMEM set stores it as an exponential map
(rotation vector); this module converts between the two and to the direction
cosine matrix.

Convention
----------
We use the scalar-first convention:

    q = [q_w, q_x, q_y, q_z] = q_w + q_x*i + q_y*j + q_z*k

A rotation by angle theta about the unit axis n is

    q = [cos(theta/2), sin(theta/2) * n]

and the corresponding (active) rotation matrix R satisfies v' = R v, so its
columns are the rotated frame's axes expressed in the original frame.

Unit quaternion constraint: |q| = 1. Since q and -q are the same rotation,
instances are stored with q_w >= 0, which keeps the rotation angle of the
exponential map in [0, pi] (the "shadow" rotation vector is never produced).

References
----------
    [1] Markley & Crassidis, "Fundamentals of Spacecraft Attitude
        Determination and Control", Springer, 2014.
    [2] Grassia, "Practical Parameterization of Rotations Using the
        Exponential Map", Journal of Graphics Tools, 1998.

===============================================================================
"""

import numpy as np


class Quaternion:
    """
    Unit quaternion of an orbit-frame rotation.

    Parameters
    ----------
    w : float
        Scalar part, cos(theta/2) (eta in unified-state-model notation).
    x, y, z : float
        Vector part, sin(theta/2) * n (epsilon in unified-state-model notation).

    Examples
    --------
    >>> q = Quaternion.from_rotation_vector(np.array([0.0, 0.0, np.pi / 2]))
    >>> q.to_dcm() @ np.array([1.0, 0.0, 0.0])
    array([0., 1., 0.])
    """

    _NORM_TOLERANCE = 1e-10

    # Below this rotation angle the exponential map is evaluated with its
    # Taylor series instead of sin(theta/2) / theta.
    _SMALL_ANGLE_THRESHOLD = 1e-6

    def __init__(self, w: float, x: float, y: float, z: float) -> None:
        self._q = np.array([w, x, y, z], dtype=np.float64)
        self._normalize_in_place()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def scalar(self) -> float:
        """Scalar part q_w (eta)."""
        return float(self._q[0])

    @property
    def vector(self) -> np.ndarray:
        """Vector part [q_x, q_y, q_z] (epsilon)."""
        return self._q[1:].copy()

    @property
    def components(self) -> np.ndarray:
        """All four components as [w, x, y, z]."""
        return self._q.copy()

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _normalize_in_place(self) -> None:
        """
        Normalize to unit magnitude and enforce q_w >= 0.

        Raises
        ------
        ValueError
            If the quaternion has near-zero norm.
        """
        n = np.linalg.norm(self._q)

        if n < self._NORM_TOLERANCE:
            raise ValueError(
                f"Cannot normalize near-zero quaternion (norm = {n:.2e})."
            )

        self._q /= n

        if self._q[0] < 0.0:
            self._q = -self._q

    # =========================================================================
    # FACTORY METHODS
    # =========================================================================

    @staticmethod
    def from_rotation_vector(rot_vec: np.ndarray) -> 'Quaternion':
        """
        Create a quaternion from a rotation vector (exponential map).

        The rotation vector packs the axis and angle into one 3-vector,
        rot_vec = theta * n, so that

            q = [cos(theta/2), sin(theta/2)/theta * rot_vec]

        For small theta, sin(theta/2)/theta is replaced by its series
        0.5 * (1 - theta^2/24).

        Parameters
        ----------
        rot_vec : np.ndarray
            3-element rotation vector (radians).
        """
        rot_vec = np.asarray(rot_vec, dtype=np.float64)
        angle = np.linalg.norm(rot_vec)

        if angle < Quaternion._SMALL_ANGLE_THRESHOLD:
            scale = 0.5 * (1.0 - angle * angle / 24.0)
        else:
            scale = np.sin(0.5 * angle) / angle

        vec = scale * rot_vec
        return Quaternion(np.cos(0.5 * angle), vec[0], vec[1], vec[2])

    # =========================================================================
    # CONVERSIONS
    # =========================================================================

    def to_dcm(self) -> np.ndarray:
        """
        Convert to a rotation matrix.

            R = | 1-2(y^2+z^2)    2(xy-wz)      2(xz+wy)   |
                | 2(xy+wz)      1-2(x^2+z^2)    2(yz-wx)   |
                | 2(xz-wy)      2(yz+wx)      1-2(x^2+y^2) |
        """
        w, x, y, z = self._q

        xx = x * x
        yy = y * y
        zz = z * z
        xy = x * y
        xz = x * z
        yz = y * z
        wx = w * x
        wy = w * y
        wz = w * z

        return np.array([
            [1.0 - 2.0 * (yy + zz),  2.0 * (xy - wz),        2.0 * (xz + wy)],
            [2.0 * (xy + wz),         1.0 - 2.0 * (xx + zz),  2.0 * (yz - wx)],
            [2.0 * (xz - wy),         2.0 * (yz + wx),         1.0 - 2.0 * (xx + yy)]
        ], dtype=np.float64)

    def to_rotation_vector(self) -> np.ndarray:
        """
        Convert to a rotation vector (exponential map), theta * n.

        Because q_w >= 0 the angle lies in [0, pi]. At a rotation of pi,
        theta * n and -theta * n describe the same rotation and the sign
        returned follows the rounding of q_w: a computed q_w that lands a
        few ulps below zero flips the vector part on construction.
        """
        vec = self._q[1:]
        vec_norm = np.linalg.norm(vec)

        if vec_norm == 0.0:
            return np.zeros(3)

        angle = 2.0 * np.arctan2(vec_norm, self._q[0])
        if angle < self._SMALL_ANGLE_THRESHOLD:
            # theta / sin(theta/2) = 2 * (1 + theta^2/24 + ...)
            return 2.0 * (1.0 + angle * angle / 24.0) * vec

        return angle / vec_norm * vec

    def __repr__(self) -> str:
        w, x, y, z = self._q
        return f"Quaternion(w={w:+.8f}, x={x:+.8f}, y={y:+.8f}, z={z:+.8f})"
