"""
===============================================================================
ASTRODYN - Configuration
===============================================================================
YAML configuration loading, logging setup and construction of gravity field
models from configuration sections.

The default configuration lives in config/default_config.yaml at the
repository root.
===============================================================================
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import yaml

from astrodyn.core.constants import SINGULARITY_TOLERANCE, get_body_mu
from astrodyn.dynamics.environment import GravityFieldModel, PointMassGravityField
from astrodyn.gravitation.polyhedron_gravity import PolyhedronGravityField
from astrodyn.gravitation.polyhedron_shape import PolyhedronShape


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / 'config' / 'default_config.yaml'
DEFAULT_LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

logger = logging.getLogger(__name__)


def load_config(config_path: Optional[str] = None) -> dict:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to YAML config. Defaults to config/default_config.yaml

    Returns:
        Dictionary of configuration parameters (empty for an empty file)
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    logger.info("Loading configuration from: %s", config_path)
    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)
    return config or {}


def configure_logging(level='INFO', fmt: str = DEFAULT_LOG_FORMAT,
                      config: Optional[dict] = None) -> None:
    """
    Configure root logging.

    Args:
        level: Logging level name or number
        fmt: Log record format
        config: Optional full configuration; its 'logging' section overrides
            level and fmt
    """
    if config is not None:
        section = config.get('logging', {}) or {}
        level = section.get('level', level)
        fmt = section.get('format', fmt)

    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=fmt)


def get_singularity_tolerance(config: dict) -> float:
    """
    Element-conversion singularity tolerance from the configuration.

    The conversion functions take it as their ``tolerance`` argument; they
    do not read the configuration themselves.
    """
    section = config.get('element_conversion', {}) or {}
    return float(section.get('singularity_tolerance', SINGULARITY_TOLERANCE))


def _build_polyhedron_shape(settings: dict) -> PolyhedronShape:
    if 'points' in settings:
        return PolyhedronShape.from_convex_hull(settings['points'])
    if 'vertices' in settings and 'facets' in settings:
        return PolyhedronShape(settings['vertices'], settings['facets'],
                               settings.get('edges'))
    raise ValueError("Polyhedron gravity field needs 'vertices' and 'facets', or 'points'")


def create_gravity_field(settings: dict) -> GravityFieldModel:
    """
    Create a gravity field from one configuration entry.

    Args:
        settings: Mapping with a 'type' key ('point_mass' or 'polyhedron')
            and the parameters of that type

    Returns:
        The gravity field model

    Raises:
        ValueError: If the type is unknown or required parameters are missing
    """
    field_type = settings.get('type')
    frame = settings.get('frame', '')

    if field_type == 'point_mass':
        if 'gravitational_parameter' in settings:
            mu = float(settings['gravitational_parameter'])
        elif 'body' in settings:
            mu = get_body_mu(settings['body'])
        else:
            raise ValueError("Point-mass gravity field needs 'gravitational_parameter' or 'body'")
        return PointMassGravityField(mu, fixed_reference_frame=frame)

    if field_type == 'polyhedron':
        shape = _build_polyhedron_shape(settings)
        if 'gravitational_parameter' in settings:
            return PolyhedronGravityField(float(settings['gravitational_parameter']), shape,
                                          fixed_reference_frame=frame)
        if 'density' in settings:
            return PolyhedronGravityField.from_density(float(settings['density']), shape,
                                                       fixed_reference_frame=frame)
        raise ValueError("Polyhedron gravity field needs 'gravitational_parameter' or 'density'")

    raise ValueError(f"Unknown gravity field type: {field_type}. Valid: ['point_mass', 'polyhedron']")


def create_gravity_fields(config: dict) -> Dict[str, GravityFieldModel]:
    """Create every gravity field of the 'gravity_fields' section, by name."""
    fields = {}
    for name, settings in (config.get('gravity_fields', {}) or {}).items():
        fields[name] = create_gravity_field(settings)
        logger.info("Gravity field '%s': %r", name, fields[name])
    return fields
