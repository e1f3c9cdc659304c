"""
MSS Clear-View Mask (cloud, shadow, water)

Combines the cloud test, the Minnaert-corrected dark-pixel shadow test
and the water test into one categorical band:

    0 = clear, 1 = cloud, 2 = shadow   (cloud wins where both apply)

The full pipeline runs once per image in CloudShadowMasker.execute();
add_cloud_shadow_mask() and apply_cloud_shadow_mask() are projections of
that one result. Without a precomputed result each call recomputes from
scratch.

Algorithm ID: quality.baseline.msscvm
Version: 1.0.0
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from msscvm.auxiliary import AuxiliaryData
from msscvm.calibration import SPECTRAL_BANDS
from msscvm.analysis.clouds import CloudLayer, cloud_layer
from msscvm.analysis.shadows import shadow_layer
from msscvm.analysis.water import water_layer
from msscvm.image import Image
from msscvm.terrain.dem import TerrainModel, TerrainModelProvider
from msscvm.terrain.illumination import MinnaertCorrector, SunGeometry

logger = logging.getLogger(__name__)

MASK_BAND = "msscvm"


class MaskClass(IntEnum):
    """Classification codes of the mask band."""
    CLEAR = 0
    CLOUD = 1
    SHADOW = 2


def compose_classification(cloud: np.ndarray, shadow: np.ndarray) -> np.ndarray:
    """Per-pixel priority: cloud, then shadow, else clear."""
    cloud = np.asarray(cloud, dtype=bool)
    shadow = np.asarray(shadow, dtype=bool)
    return np.where(
        cloud,
        np.uint8(MaskClass.CLOUD),
        np.where(shadow, np.uint8(MaskClass.SHADOW), np.uint8(MaskClass.CLEAR)),
    ).astype(np.uint8)


@dataclass
class CloudShadowMaskResult:
    """Results from cloud/shadow/water masking."""

    classification: np.ndarray  # MaskClass codes (uint8)
    clouds: CloudLayer  # Cloud test stages
    shadows: np.ndarray  # Shadow mask
    water: np.ndarray  # Water mask
    corrected_nir: np.ndarray  # Minnaert-corrected NIR
    terrain: TerrainModel  # Terrain used for the correction
    metadata: Dict[str, Any] = field(default_factory=dict)
    statistics: Dict[str, Any] = field(default_factory=dict)

    @property
    def cloud_mask(self) -> np.ndarray:
        return self.classification == MaskClass.CLOUD

    @property
    def shadow_mask(self) -> np.ndarray:
        return self.classification == MaskClass.SHADOW

    @property
    def clear_mask(self) -> np.ndarray:
        return self.classification == MaskClass.CLEAR

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary format (without large arrays)."""
        return {
            "metadata": self.metadata,
            "statistics": self.statistics,
            "terrain": self.terrain.to_dict(),
        }


class CloudShadowMasker:
    """
    Cloud, cloud-shadow and water detection for MSS TOA reflectance.

    Requirements:
        - TOA reflectance image with green, red, red_edge, nir bands
        - SUN_AZIMUTH and SUN_ELEVATION properties (or explicit SunGeometry)
        - Elevation sources and a historical water-extent layer

    Outputs:
        - classification: 0 clear, 1 cloud, 2 shadow
        - intermediate cloud, shadow, water and corrected NIR layers
    """

    METADATA = {
        "id": "quality.baseline.msscvm",
        "name": "MSS Clear-View Mask",
        "category": "baseline",
        "version": "1.0.0",
        "deterministic": True,
        "seed_required": False,
        "requirements": {
            "data": {
                "optical": {
                    "bands": list(SPECTRAL_BANDS),
                    "units": "toa_reflectance",
                },
                "dem": {"type": "elevation", "unit": "meters"},
                "water_extent": {"type": "max_extent"},
            },
        },
        "classes": {cls.name.lower(): int(cls) for cls in MaskClass},
    }

    def __init__(self, auxiliary: AuxiliaryData):
        """
        Initialize the masker.

        Args:
            auxiliary: Elevation and water-extent sources
        """
        self.auxiliary = auxiliary
        self.terrain_provider = TerrainModelProvider(auxiliary.elevation)

    def execute(self, image: Image, sun: Optional[SunGeometry] = None) -> CloudShadowMaskResult:
        """
        Run the full masking pipeline on one image.

        Args:
            image: TOA reflectance image
            sun: Solar position; read from the image properties if None

        Returns:
            CloudShadowMaskResult
        """
        image.require_bands(SPECTRAL_BANDS)
        if sun is None:
            sun = SunGeometry.from_image(image)
        scene_id = image.get_property("LANDSAT_SCENE_ID", "image")
        logger.info(
            f"Masking {scene_id}: sun azimuth {sun.azimuth_deg:.1f}, "
            f"elevation {sun.elevation_deg:.1f}"
        )

        # Auxiliary data first, so unavailable sources fail before any work
        terrain = self.terrain_provider.terrain(image.grid)
        water_extent = self.auxiliary.water_extent.read(image.grid, resampling="nearest")

        clouds = cloud_layer(image)
        water = water_layer(image, water_extent)
        correction = MinnaertCorrector(sun).correct(image.band("nir"), terrain)
        shadows = shadow_layer(correction.corrected_data, clouds.dilated, water, sun)
        classification = compose_classification(clouds.dilated, shadows)

        total = classification.size
        cloud_pixels = int(np.sum(classification == MaskClass.CLOUD))
        shadow_pixels = int(np.sum(classification == MaskClass.SHADOW))
        statistics = {
            "total_pixels": int(total),
            "cloud_pixels": cloud_pixels,
            "shadow_pixels": shadow_pixels,
            "clear_pixels": int(total - cloud_pixels - shadow_pixels),
            "water_pixels": int(np.sum(water)),
            "cloud_percent": float(100.0 * cloud_pixels / total),
            "shadow_percent": float(100.0 * shadow_pixels / total),
            "degenerate_correction_pixels": correction.diagnostics["degenerate_pixels"],
            **clouds.statistics(),
        }
        metadata = {
            **self.METADATA,
            "scene_id": scene_id,
            "sun": sun.to_dict(),
            "elevation_sources": [source.name for source in self.auxiliary.elevation],
            "water_extent_source": self.auxiliary.water_extent.name,
        }

        logger.info(
            f"Mask complete for {scene_id}: {statistics['cloud_percent']:.1f}% cloud, "
            f"{statistics['shadow_percent']:.1f}% shadow"
        )

        return CloudShadowMaskResult(
            classification=classification,
            clouds=clouds,
            shadows=shadows,
            water=water,
            corrected_nir=correction.corrected_data,
            terrain=terrain,
            metadata=metadata,
            statistics=statistics,
        )

    @staticmethod
    def get_metadata() -> Dict[str, Any]:
        """Get algorithm metadata."""
        return CloudShadowMasker.METADATA


def compute_cloud_shadow_mask(
    image: Image,
    auxiliary: AuxiliaryData,
    sun: Optional[SunGeometry] = None,
) -> CloudShadowMaskResult:
    """Run the masking pipeline once and return every layer."""
    return CloudShadowMasker(auxiliary).execute(image, sun=sun)


def add_cloud_shadow_mask(
    image: Image,
    auxiliary: AuxiliaryData,
    result: Optional[CloudShadowMaskResult] = None,
) -> Image:
    """
    Append the classification as band ``msscvm`` (non-destructive).

    Args:
        image: TOA reflectance image
        auxiliary: Elevation and water-extent sources
        result: Precomputed result for this image, to skip recomputation
    """
    if result is None:
        result = compute_cloud_shadow_mask(image, auxiliary)
    return image.add_bands({MASK_BAND: result.classification}, overwrite=True)


def apply_cloud_shadow_mask(
    image: Image,
    auxiliary: AuxiliaryData,
    result: Optional[CloudShadowMaskResult] = None,
) -> Image:
    """
    Mask out cloud and shadow pixels in every band (destructive).

    Band masks are ANDed with NOT(cloud OR shadow); properties are kept.
    """
    if result is None:
        result = compute_cloud_shadow_mask(image, auxiliary)
    keep = result.classification == MaskClass.CLEAR
    return image.update_mask(keep)


def mask_collection(
    images: Sequence[Image],
    auxiliary: AuxiliaryData,
    mode: str = "add",
    max_workers: int = 4,
) -> List[Image]:
    """
    Mask independent images in parallel.

    Args:
        images: TOA reflectance images
        auxiliary: Elevation and water-extent sources
        mode: "add" to append the mask band, "apply" to mask pixels
        max_workers: Thread pool size

    Returns:
        Masked images in input order. The first failure propagates.
    """
    operations = {"add": add_cloud_shadow_mask, "apply": apply_cloud_shadow_mask}
    if mode not in operations:
        raise ValueError(f"mode must be one of {sorted(operations)}, got {mode!r}")
    operation = operations[mode]

    logger.info(f"Masking {len(images)} images ({mode}) with {max_workers} workers")
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(operation, image, auxiliary) for image in images]
        return [future.result() for future in futures]
