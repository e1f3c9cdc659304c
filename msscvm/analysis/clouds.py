"""
Spectral Cloud Test

Flags bright pixels whose green reflectance exceeds red reflectance:

    candidate = ND(green, red) > 0 AND (green > 0.175 OR green > 0.39)

Candidates are sieved on the native grid (8-connected components of at
least 9 pixels survive) and then dilated by a 2-pixel circular buffer to
cover contaminated cloud edges.

The two brightness thresholds combine as a single OR.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

import numpy as np

from msscvm.image import Image
from msscvm.raster import focal_max, normalized_difference, sieve

logger = logging.getLogger(__name__)

CLOUD_ND_THRESHOLD = 0.0
CLOUD_GREEN_THRESHOLD = 0.175
BRIGHT_CLOUD_GREEN_THRESHOLD = 0.39
MIN_CLOUD_PIXELS = 9
CLOUD_BUFFER_PIXELS = 2


@dataclass(frozen=True)
class CloudLayer:
    """
    Cloud masks at each stage of the cloud test.

    Attributes:
        candidates: Spectral test result
        sieved: Candidates in components of at least MIN_CLOUD_PIXELS
        dilated: Sieved mask grown by CLOUD_BUFFER_PIXELS
    """
    candidates: np.ndarray
    sieved: np.ndarray
    dilated: np.ndarray

    def statistics(self) -> Dict[str, Any]:
        return {
            "candidate_pixels": int(np.sum(self.candidates)),
            "sieved_pixels": int(np.sum(self.sieved)),
            "cloud_pixels": int(np.sum(self.dilated)),
        }


def cloud_candidates(green: np.ndarray, red: np.ndarray) -> np.ndarray:
    """
    Spectral cloud test on TOA reflectance.

    Args:
        green: Green band reflectance (0-1)
        red: Red band reflectance (0-1)

    Returns:
        Boolean candidate mask
    """
    green = np.asarray(green, dtype=np.float32)
    nd = normalized_difference(green, red)
    with np.errstate(invalid="ignore"):
        bright = (green > CLOUD_GREEN_THRESHOLD).astype(np.uint8) + (
            green > BRIGHT_CLOUD_GREEN_THRESHOLD
        ).astype(np.uint8)
        return (nd > CLOUD_ND_THRESHOLD) & (bright > 0)


def cloud_layer(image: Image) -> CloudLayer:
    """
    Run the cloud test, sieve and buffer on a reflectance image.

    Raises:
        MissingBandError: If green or red is absent
    """
    image.require_bands(["green", "red"])
    candidates = cloud_candidates(image.band("green"), image.band("red"))
    sieved = sieve(candidates, MIN_CLOUD_PIXELS, eight_connected=True)
    dilated = focal_max(sieved, radius=CLOUD_BUFFER_PIXELS)

    layer = CloudLayer(candidates=candidates, sieved=sieved, dilated=dilated)
    stats = layer.statistics()
    logger.debug(
        f"Cloud test: {stats['candidate_pixels']} candidates, "
        f"{stats['sieved_pixels']} after sieve, {stats['cloud_pixels']} after buffer"
    )
    return layer
