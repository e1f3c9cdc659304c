"""
Terrain Illumination and Minnaert Topographic Correction.

Computes the cosine of the solar incidence angle on sloped terrain and
uses it to correct the NIR band for illumination differences:

    cos(i) = cos(zenith) * cos(slope) + sin(zenith) * sin(slope) * cos(azimuth - aspect)
    NIR_corrected = NIR * (cos(zenith) / cos(i)) ** k

The Minnaert exponent k is an empirical fifth-order polynomial in slope
(degrees), fitted for slopes up to 50 degrees. Slopes beyond that are
clamped to 50 before evaluation.

cos(i) is not clamped. On self-shadowed or grazing terrain it can be
near zero or negative, in which case the correction factor becomes
extreme or NaN; such pixels are counted and logged, never patched.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

import numpy as np

from msscvm.exceptions import GridMismatchError
from msscvm.image import Image
from msscvm.terrain.dem import TerrainModel

logger = logging.getLogger(__name__)

# Minnaert k polynomial, increasing powers of slope (degrees)
MINNAERT_COEFFICIENTS = (
    1.0021313684,
    -0.1308793751,
    0.0106861276,
    -0.0004051135,
    0.0000071825,
    -0.0000000488,
)
MINNAERT_MAX_SLOPE_DEG = 50.0


@dataclass(frozen=True)
class SunGeometry:
    """
    Solar position for a scene.

    Attributes:
        azimuth_deg: Sun azimuth, degrees clockwise from north
        elevation_deg: Sun elevation above the horizon, degrees
    """
    azimuth_deg: float
    elevation_deg: float

    @property
    def zenith_deg(self) -> float:
        return 90.0 - self.elevation_deg

    @classmethod
    def from_image(cls, image: Image) -> "SunGeometry":
        """
        Read sun angles from image properties.

        Raises:
            MissingMetadataError: If SUN_AZIMUTH or SUN_ELEVATION is absent
        """
        return cls(
            azimuth_deg=float(image.get_property("SUN_AZIMUTH")),
            elevation_deg=float(image.get_property("SUN_ELEVATION")),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "azimuth_deg": self.azimuth_deg,
            "elevation_deg": self.elevation_deg,
            "zenith_deg": self.zenith_deg,
        }


def illumination(sun: SunGeometry, slope_deg: np.ndarray, aspect_deg: np.ndarray) -> np.ndarray:
    """
    Calculate the illumination coefficient cos(i).

    Args:
        sun: Solar position
        slope_deg: Slope grid (degrees)
        aspect_deg: Aspect grid (degrees clockwise from north)

    Returns:
        Unclamped cos(i) grid
    """
    zenith = np.radians(sun.zenith_deg)
    azimuth = np.radians(sun.azimuth_deg)
    slope = np.radians(np.asarray(slope_deg, dtype=np.float64))
    aspect = np.radians(np.asarray(aspect_deg, dtype=np.float64))

    return (
        np.cos(zenith) * np.cos(slope)
        + np.sin(zenith) * np.sin(slope) * np.cos(azimuth - aspect)
    )


def minnaert_k(slope_deg: np.ndarray) -> np.ndarray:
    """Minnaert exponent from slope, with slope clamped to 50 degrees."""
    slope = np.minimum(np.asarray(slope_deg, dtype=np.float64), MINNAERT_MAX_SLOPE_DEG)
    return np.polynomial.polynomial.polyval(slope, MINNAERT_COEFFICIENTS)


@dataclass
class CorrectionResult:
    """
    Result from a topographic correction.

    Attributes:
        corrected_data: Corrected band
        correction_factor: Per-pixel factor applied
        illumination: cos(i) grid
        minnaert_k: Per-pixel Minnaert exponent
        parameters: Parameters used for correction
        diagnostics: Diagnostic information
    """
    corrected_data: np.ndarray
    correction_factor: np.ndarray
    illumination: np.ndarray
    minnaert_k: np.ndarray
    parameters: Dict[str, Any] = field(default_factory=dict)
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (without large arrays)."""
        return {
            "data_shape": list(self.corrected_data.shape),
            "data_dtype": str(self.corrected_data.dtype),
            "parameters": self.parameters,
            "diagnostics": self.diagnostics,
        }


class MinnaertCorrector:
    """
    Slope-dependent Minnaert correction of a single band.

    Args:
        sun: Solar position of the scene being corrected
    """

    def __init__(self, sun: SunGeometry):
        self.sun = sun

    def correct(self, data: np.ndarray, terrain: TerrainModel) -> CorrectionResult:
        """
        Apply the Minnaert correction.

        Args:
            data: Band to correct (TOA reflectance), shape terrain.grid.shape
            terrain: Terrain model on the same grid

        Returns:
            CorrectionResult with the corrected band
        """
        data = np.asarray(data)
        if data.shape != terrain.slope.shape:
            raise GridMismatchError(terrain.slope.shape, data.shape, name="nir")

        cos_i = illumination(self.sun, terrain.slope, terrain.aspect)
        k = minnaert_k(terrain.slope)
        cos_zenith = np.cos(np.radians(self.sun.zenith_deg))

        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            factor = (cos_zenith / cos_i) ** k
            corrected = (data * factor).astype(np.float32)

        degenerate = int(np.sum(~np.isfinite(factor) & np.isfinite(terrain.slope)))
        if degenerate:
            logger.warning(
                f"Minnaert correction undefined for {degenerate} pixels "
                f"(illumination <= 0 on self-shadowed terrain)"
            )

        finite = np.isfinite(factor)
        return CorrectionResult(
            corrected_data=corrected,
            correction_factor=factor,
            illumination=cos_i,
            minnaert_k=k,
            parameters={
                "sun": self.sun.to_dict(),
                "max_slope_deg": MINNAERT_MAX_SLOPE_DEG,
            },
            diagnostics={
                "illumination_min": float(np.nanmin(cos_i)) if np.isfinite(cos_i).any() else None,
                "correction_factor_mean": float(np.mean(factor[finite])) if finite.any() else None,
                "degenerate_pixels": degenerate,
            },
        )


def topographic_correct_nir(image: Image, terrain: TerrainModel, sun: SunGeometry) -> np.ndarray:
    """Minnaert-corrected NIR band of a reflectance image."""
    return MinnaertCorrector(sun).correct(image.band("nir"), terrain).corrected_data
