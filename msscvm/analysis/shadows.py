"""
Cloud Shadow Projection

Shadows are dark pixels (topographically corrected NIR < 0.11) that lie
in the corridor a cloud casts away from the sun. The corridor is found
with a directional distance transform of the cloud mask, searching from
each pixel towards the sun for at most 50 pixels. Water is excluded, the
result is closed with a 2-pixel max filter, and water is excluded again
so shadow and water never overlap.
"""

import logging

import numpy as np

from msscvm.raster import directional_distance_transform, focal_max
from msscvm.terrain.illumination import SunGeometry

logger = logging.getLogger(__name__)

DARK_NIR_THRESHOLD = 0.11
SHADOW_SEARCH_PIXELS = 50
SHADOW_BUFFER_PIXELS = 2


def shadow_search_angle(sun: SunGeometry) -> float:
    """
    Direction from a shadow towards its cloud.

    Degrees counter-clockwise from east: a compass azimuth a corresponds
    to 90 - a.
    """
    return 90.0 - sun.azimuth_deg


def cloud_projection(
    clouds: np.ndarray,
    sun: SunGeometry,
    max_distance: int = SHADOW_SEARCH_PIXELS,
) -> np.ndarray:
    """
    Pixels that have a cloud within ``max_distance`` towards the sun.

    Cloud pixels themselves (distance 0) are not part of the corridor.
    """
    distance = directional_distance_transform(
        clouds, shadow_search_angle(sun), max_distance
    )
    return (distance > 0) & np.isfinite(distance)


def dark_pixels(corrected_nir: np.ndarray) -> np.ndarray:
    """Shadow candidates from corrected NIR (NaN is never dark)."""
    with np.errstate(invalid="ignore"):
        return np.asarray(corrected_nir) < DARK_NIR_THRESHOLD


def shadow_layer(
    corrected_nir: np.ndarray,
    clouds: np.ndarray,
    water: np.ndarray,
    sun: SunGeometry,
) -> np.ndarray:
    """
    Cloud shadow mask.

    Args:
        corrected_nir: Minnaert-corrected NIR reflectance
        clouds: Dilated cloud mask
        water: Water mask
        sun: Solar position

    Returns:
        Boolean shadow mask on the same grid
    """
    water = np.asarray(water, dtype=bool)
    dark = dark_pixels(corrected_nir)
    projection = cloud_projection(clouds, sun)

    shadows = dark & ~water & projection
    shadows = focal_max(shadows, radius=SHADOW_BUFFER_PIXELS) & ~water

    logger.debug(
        f"Shadow test: {int(np.sum(dark))} dark, {int(np.sum(projection))} in projection, "
        f"{int(np.sum(shadows))} shadow pixels"
    )
    return shadows
