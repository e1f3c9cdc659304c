"""
Spectral Water Test

A pixel is water when ND(nir, red) < -0.085 and it lies inside the
maximum historical surface-water extent.
"""

import logging

import numpy as np

from msscvm.exceptions import GridMismatchError
from msscvm.image import Image
from msscvm.raster import normalized_difference

logger = logging.getLogger(__name__)

WATER_ND_THRESHOLD = -0.085


def water_layer(image: Image, water_extent: np.ndarray) -> np.ndarray:
    """
    Water mask for a reflectance image.

    Args:
        image: TOA reflectance image with nir and red bands
        water_extent: Historical maximum water extent on the image grid
            (non-zero = water observed; NaN = no data)

    Returns:
        Boolean water mask
    """
    image.require_bands(["nir", "red"])
    water_extent = np.asarray(water_extent)
    if water_extent.shape != image.shape:
        raise GridMismatchError(image.shape, water_extent.shape, name="water_extent")

    nd = normalized_difference(image.band("nir"), image.band("red"))
    with np.errstate(invalid="ignore"):
        in_extent = np.nan_to_num(water_extent.astype(np.float64), nan=0.0) > 0
        water = (nd < WATER_ND_THRESHOLD) & in_extent

    logger.debug(f"Water test: {int(np.sum(water))} pixels")
    return water
