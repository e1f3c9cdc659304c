"""
Band indices and QA masking for MSS images.

- NDVI: ND(nir, red)
- Tasseled Cap brightness, greenness and angle (MSS coefficients)
- Quality band mask: BQA == 32 marks clear, fully calibrated pixels
"""

import logging

import numpy as np

from msscvm.calibration import QA_BAND, SPECTRAL_BANDS
from msscvm.image import Image
from msscvm.raster import normalized_difference

logger = logging.getLogger(__name__)

# Tasseled Cap coefficients in spectral band order (green, red, red_edge, nir)
TC_BRIGHTNESS = np.array([0.433, 0.632, 0.586, 0.264], dtype=np.float32)
TC_GREENNESS = np.array([-0.290, -0.562, 0.600, 0.491], dtype=np.float32)

QA_CLEAR_VALUE = 32
QA_MASK_BAND = "BQA_mask"


def add_ndvi(image: Image) -> Image:
    """Append band ``ndvi``."""
    image.require_bands(["nir", "red"])
    ndvi = normalized_difference(image.band("nir"), image.band("red"))
    return image.add_bands({"ndvi": ndvi}, overwrite=True)


def add_tasseled_cap(image: Image) -> Image:
    """
    Append Tasseled Cap bands ``tcb``, ``tcg`` and ``tca``.

    tca is the angle atan(tcg / tcb) in degrees.
    """
    image.require_bands(SPECTRAL_BANDS)
    stack = np.stack([image.band(name).astype(np.float32) for name in SPECTRAL_BANDS])
    tcb = np.tensordot(TC_BRIGHTNESS, stack, axes=1).astype(np.float32)
    tcg = np.tensordot(TC_GREENNESS, stack, axes=1).astype(np.float32)
    with np.errstate(divide="ignore", invalid="ignore"):
        tca = np.degrees(np.arctan(tcg / tcb)).astype(np.float32)
    return image.add_bands({"tcb": tcb, "tcg": tcg, "tca": tca}, overwrite=True)


def qa_mask(image: Image) -> np.ndarray:
    """Boolean mask of pixels whose quality band equals 32."""
    image.require_bands([QA_BAND])
    return image.band(QA_BAND) == QA_CLEAR_VALUE


def add_qa_mask(image: Image) -> Image:
    """Append the QA mask as band ``BQA_mask`` (uint8)."""
    return image.add_bands({QA_MASK_BAND: qa_mask(image).astype(np.uint8)}, overwrite=True)


def apply_qa_mask(image: Image) -> Image:
    """Mask out every pixel whose quality band is not 32."""
    mask = qa_mask(image)
    logger.debug(f"QA mask keeps {int(np.sum(mask))}/{mask.size} pixels")
    return image.update_mask(mask)
