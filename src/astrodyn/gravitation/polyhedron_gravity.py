"""
===============================================================================
ASTRODYN - Polyhedron Gravity Field
===============================================================================
Exterior and interior gravity of a constant-density polyhedron
(Werner & Scheeres, 1997). With G rho = mu / V and, for every field point x,

    r_e = P_e1 - x    (first vertex of edge e)
    r_f = P_f1 - x    (first vertex of facet f)

the potential and its derivatives are

    U         =  G rho / 2 * [ sum_e r_e^T E_e r_e L_e - sum_f r_f^T F_f r_f w_f ]   (eq. 10)
    grad U    = -G rho     * [ sum_e E_e r_e L_e     - sum_f F_f r_f w_f     ]       (eq. 15)
    H         =  G rho     * [ sum_e E_e L_e         - sum_f F_f w_f         ]       (eq. 16)
    lap U     = -G rho     *   sum_f w_f                                             (eq. 17)

U is positive and tends to mu / r far from the body; grad U is the
gravitational acceleration. The Laplacian is 0 outside the body and
-4 pi G rho inside it.

The dyads E_e and F_f come from astrodyn.gravitation.polyhedron_dyads and the
factors L_e and w_f from astrodyn.gravitation.polyhedron_cache.
===============================================================================
"""

import logging
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from astrodyn.core.constants import GRAVITATIONAL_CONSTANT
from astrodyn.core.exceptions import InconsistentShapeError
from astrodyn.dynamics.environment import GravityFieldModel
from astrodyn.gravitation.polyhedron_cache import PolyhedronGravityCache
from astrodyn.gravitation.polyhedron_dyads import compute_edge_dyads, compute_facet_dyads
from astrodyn.gravitation.polyhedron_shape import PolyhedronShape


logger = logging.getLogger(__name__)


# ============================================================================
#  EVALUATION KERNELS
# ============================================================================

def calculate_polyhedron_gravitational_potential(
    density_constant: float,
    relative_vertices: NDArray,
    facets: NDArray,
    edges: NDArray,
    facet_dyads: NDArray,
    edge_dyads: NDArray,
    per_facet_factor: NDArray,
    per_edge_factor: NDArray,
) -> float:
    """Potential U (m^2/s^2), eq. 10."""
    r_e = relative_vertices[edges[:, 0]]
    r_f = relative_vertices[facets[:, 0]]

    edge_terms = np.einsum('ei,eij,ej->e', r_e, edge_dyads, r_e) * per_edge_factor
    facet_terms = np.einsum('fi,fij,fj->f', r_f, facet_dyads, r_f) * per_facet_factor

    return float(0.5 * density_constant * (edge_terms.sum() - facet_terms.sum()))


def calculate_polyhedron_gradient_of_gravitational_potential(
    density_constant: float,
    relative_vertices: NDArray,
    facets: NDArray,
    edges: NDArray,
    facet_dyads: NDArray,
    edge_dyads: NDArray,
    per_facet_factor: NDArray,
    per_edge_factor: NDArray,
) -> NDArray:
    """Gradient of U, i.e. the gravitational acceleration (m/s^2), eq. 15."""
    r_e = relative_vertices[edges[:, 0]]
    r_f = relative_vertices[facets[:, 0]]

    edge_sum = np.einsum('eij,ej,e->i', edge_dyads, r_e, per_edge_factor)
    facet_sum = np.einsum('fij,fj,f->i', facet_dyads, r_f, per_facet_factor)

    return -density_constant * (edge_sum - facet_sum)


def calculate_polyhedron_hessian_of_gravitational_potential(
    density_constant: float,
    facet_dyads: NDArray,
    edge_dyads: NDArray,
    per_facet_factor: NDArray,
    per_edge_factor: NDArray,
) -> NDArray:
    """Hessian of U (1/s^2), eq. 16."""
    edge_sum = np.einsum('eij,e->ij', edge_dyads, per_edge_factor)
    facet_sum = np.einsum('fij,f->ij', facet_dyads, per_facet_factor)

    return density_constant * (edge_sum - facet_sum)


def calculate_polyhedron_laplacian_of_gravitational_potential(
    density_constant: float,
    per_facet_factor: NDArray,
) -> float:
    """Laplacian of U (1/s^2), eq. 17."""
    return float(-density_constant * per_facet_factor.sum())


# ============================================================================
#  GRAVITY FIELD
# ============================================================================

class PolyhedronGravityField(GravityFieldModel):
    """
    Gravity field of a constant-density polyhedron.

    Parameters
    ----------
    gravitational_parameter : float
        mu of the body (m^3/s^2).
    shape : PolyhedronShape
        Immutable vertices and connectivity in the body-fixed frame.
    volume : float, optional
        Volume of the body (m^3). Computed from the shape if omitted.
    fixed_reference_frame : str, optional
        Name of the body-fixed frame.

    Raises
    ------
    InconsistentShapeError
        If the volume is not positive (e.g. inward-oriented facets) or the
        shape is not a closed, consistently oriented surface.

    Notes
    -----
    Every evaluation updates the field's geometry cache, so one instance must
    not be evaluated from several threads at once. For concurrent use, give
    each thread its own cache via create_cache() and the module-level
    kernels, or its own field instance.
    """

    def __init__(self, gravitational_parameter: float, shape: PolyhedronShape,
                 volume: Optional[float] = None,
                 fixed_reference_frame: str = "") -> None:
        super().__init__(gravitational_parameter, fixed_reference_frame)

        if volume is None:
            volume = shape.volume
        if volume <= 0.0:
            raise InconsistentShapeError(
                f"Polyhedron volume must be positive, got {volume:.6e} m^3; "
                "check that facets are counter-clockwise seen from outside"
            )

        self._shape = shape
        self._volume = float(volume)
        self._density_constant = self._gravitational_parameter / self._volume

        self._facet_dyads = compute_facet_dyads(shape.vertices, shape.facets)
        self._edge_dyads = compute_edge_dyads(shape.vertices, shape.facets, shape.edges)
        self._cache = PolyhedronGravityCache(shape)

        logger.info("Created polyhedron gravity field: mu = %.6e m^3/s^2, "
                    "volume = %.6e m^3, G*rho = %.6e 1/s^2",
                    self._gravitational_parameter, self._volume, self._density_constant)

    @classmethod
    def from_density(cls, density: float, shape: PolyhedronShape,
                     gravitational_constant: float = GRAVITATIONAL_CONSTANT,
                     fixed_reference_frame: str = "") -> "PolyhedronGravityField":
        """Build the field from a bulk density (kg/m^3), mu = G * rho * V."""
        if density <= 0.0:
            raise ValueError(f"Density must be positive, got {density}")
        mu = gravitational_constant * density * shape.volume
        return cls(mu, shape, fixed_reference_frame=fixed_reference_frame)

    # ------------------------------------------------------------------ #
    #  Accessors
    # ------------------------------------------------------------------ #
    @property
    def shape(self) -> PolyhedronShape:
        return self._shape

    @property
    def vertices(self) -> NDArray:
        return self._shape.vertices

    @property
    def facets(self) -> NDArray:
        return self._shape.facets

    @property
    def edges(self) -> NDArray:
        return self._shape.edges

    @property
    def facet_dyads(self) -> NDArray:
        return self._facet_dyads

    @property
    def edge_dyads(self) -> NDArray:
        return self._edge_dyads

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def density_constant(self) -> float:
        """G * rho = mu / V (1/s^2)."""
        return self._density_constant

    @property
    def cache(self) -> PolyhedronGravityCache:
        return self._cache

    def create_cache(self) -> PolyhedronGravityCache:
        """Independent geometry cache over the same immutable shape."""
        return PolyhedronGravityCache(self._shape)

    # ------------------------------------------------------------------ #
    #  Evaluation
    # ------------------------------------------------------------------ #
    def get_gravitational_potential(self, position: NDArray) -> float:
        self._cache.update(position)
        return calculate_polyhedron_gravitational_potential(
            self._density_constant,
            self._cache.vertices_coordinates_relative_to_field_point,
            self._shape.facets,
            self._shape.edges,
            self._facet_dyads,
            self._edge_dyads,
            self._cache.per_facet_factor,
            self._cache.per_edge_factor,
        )

    def get_gradient_of_potential(self, position: NDArray) -> NDArray:
        self._cache.update(position)
        return calculate_polyhedron_gradient_of_gravitational_potential(
            self._density_constant,
            self._cache.vertices_coordinates_relative_to_field_point,
            self._shape.facets,
            self._shape.edges,
            self._facet_dyads,
            self._edge_dyads,
            self._cache.per_facet_factor,
            self._cache.per_edge_factor,
        )

    def get_hessian_of_potential(self, position: NDArray) -> NDArray:
        self._cache.update(position)
        return calculate_polyhedron_hessian_of_gravitational_potential(
            self._density_constant,
            self._facet_dyads,
            self._edge_dyads,
            self._cache.per_facet_factor,
            self._cache.per_edge_factor,
        )

    def get_laplacian_of_potential(self, position: NDArray) -> float:
        self._cache.update(position)
        return calculate_polyhedron_laplacian_of_gravitational_potential(
            self._density_constant,
            self._cache.per_facet_factor,
        )
