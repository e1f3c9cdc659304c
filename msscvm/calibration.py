"""
Radiometric Calibration for MSS Imagery.

Converts raw digital numbers (DN) to at-sensor radiance or top of
atmosphere (TOA) reflectance using the per-band linear rescaling
coefficients shipped with each scene:

    value = DN * gain + bias

MSS band numbering depends on the platform: Landsat 1-3 (WRS-1) carry
bands 4-7, Landsat 4-5 (WRS-2) carry bands 1-4. Both map onto the same
four spectral bands (green, red, red edge, NIR), so coefficients are
looked up through a fixed band-number table rather than by sorting
property names.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from msscvm.exceptions import MissingMetadataError
from msscvm.image import Image

logger = logging.getLogger(__name__)

SPECTRAL_BANDS = ("green", "red", "red_edge", "nir")
QA_BAND = "BQA"
SCENE_BANDS = SPECTRAL_BANDS + (QA_BAND,)

# Sensor band numbers in spectral band order (green, red, red_edge, nir)
SENSOR_BAND_NUMBERS: Dict[str, Tuple[int, int, int, int]] = {
    "WRS-1": (4, 5, 6, 7),
    "WRS-2": (1, 2, 3, 4),
}


class Unit(Enum):
    """Output units for DN rescaling."""
    RADIANCE = "radiance"
    REFLECTANCE = "reflectance"

    @property
    def gain_prefix(self) -> str:
        return f"{self.name}_MULT_BAND_"

    @property
    def bias_prefix(self) -> str:
        return f"{self.name}_ADD_BAND_"


@dataclass(frozen=True)
class CalibrationCoefficients:
    """
    Per-band gain and bias, indexed by spectral band order 0..3.

    Attributes:
        unit: Output unit the coefficients produce
        gains: Multiplicative rescaling factor per band
        biases: Additive rescaling factor per band
        wrs: Reference system whose band numbering was used
    """
    unit: Unit
    gains: Tuple[float, float, float, float]
    biases: Tuple[float, float, float, float]
    wrs: Optional[str] = None

    def __post_init__(self):
        """Validate coefficient counts and values."""
        if len(self.gains) != len(SPECTRAL_BANDS):
            raise ValueError(f"Expected {len(SPECTRAL_BANDS)} gains, got {len(self.gains)}")
        if len(self.biases) != len(SPECTRAL_BANDS):
            raise ValueError(f"Expected {len(SPECTRAL_BANDS)} biases, got {len(self.biases)}")
        if not all(np.isfinite(self.gains)) or not all(np.isfinite(self.biases)):
            raise ValueError("Calibration coefficients must be finite")

    @classmethod
    def from_properties(
        cls,
        properties: Mapping[str, Any],
        unit: Unit,
    ) -> "CalibrationCoefficients":
        """
        Build coefficients from scene properties.

        Uses the band numbering of the ``wrs`` property when present,
        otherwise the first numbering whose properties are all present.

        Raises:
            MissingMetadataError: If four gains and four biases cannot be found
        """
        wrs = properties.get("wrs")
        if wrs in SENSOR_BAND_NUMBERS:
            candidates = [wrs]
        else:
            candidates = list(SENSOR_BAND_NUMBERS)

        best_missing: Optional[List[str]] = None
        for system in candidates:
            keys = cls._property_names(unit, SENSOR_BAND_NUMBERS[system])
            missing = [key for key in keys if properties.get(key) is None]
            if not missing:
                numbers = SENSOR_BAND_NUMBERS[system]
                gains = tuple(float(properties[f"{unit.gain_prefix}{n}"]) for n in numbers)
                biases = tuple(float(properties[f"{unit.bias_prefix}{n}"]) for n in numbers)
                logger.debug(f"Using {system} band numbering {numbers} for {unit.value}")
                return cls(unit=unit, gains=gains, biases=biases, wrs=system)
            if best_missing is None or len(missing) < len(best_missing):
                best_missing = missing

        raise MissingMetadataError(", ".join(best_missing), list(properties))

    @staticmethod
    def _property_names(unit: Unit, numbers: Tuple[int, ...]) -> List[str]:
        return [f"{unit.gain_prefix}{n}" for n in numbers] + [
            f"{unit.bias_prefix}{n}" for n in numbers
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit": self.unit.value,
            "wrs": self.wrs,
            "gains": dict(zip(SPECTRAL_BANDS, self.gains)),
            "biases": dict(zip(SPECTRAL_BANDS, self.biases)),
        }


def scale_dn(image: Image, unit: Unit) -> Image:
    """
    Rescale the four spectral DN bands to the requested unit.

    The quality band is carried over unchanged, as are all properties and
    band masks. Output spectral bands are float32.

    Raises:
        MissingBandError: If a spectral or quality band is absent
        MissingMetadataError: If calibration coefficients are incomplete
    """
    image.require_bands(SCENE_BANDS)
    coefficients = CalibrationCoefficients.from_properties(image.properties, unit)

    bands = {}
    for index, name in enumerate(SPECTRAL_BANDS):
        dn = image.band(name).astype(np.float32)
        bands[name] = dn * np.float32(coefficients.gains[index]) + np.float32(
            coefficients.biases[index]
        )
    bands[QA_BAND] = image.band(QA_BAND)

    masks = {name: image.mask(name) for name in SCENE_BANDS}
    logger.info(
        f"Converted {image.get_property('LANDSAT_SCENE_ID', 'image')} DN to {unit.value}"
    )
    return Image(bands, image.grid, image.properties, masks)


def to_radiance(image: Image) -> Image:
    """Convert a DN image to at-sensor radiance."""
    return scale_dn(image, Unit.RADIANCE)


def to_reflectance(image: Image) -> Image:
    """Convert a DN image to TOA reflectance."""
    return scale_dn(image, Unit.REFLECTANCE)
