"""
msscvm - Landsat MSS Clear-View Mask

Cloud, cloud-shadow and water detection for Landsat Multispectral
Scanner imagery:

    DN -> TOA reflectance -> cloud test / water test / Minnaert NIR
       -> shadow projection -> categorical mask (0 clear, 1 cloud, 2 shadow)

Usage:
    from msscvm import AuxiliaryData, add_cloud_shadow_mask, load_config, read_scene, to_reflectance

    toa = to_reflectance(read_scene("LM05_..._MTL.txt"))
    masked = add_cloud_shadow_mask(toa, AuxiliaryData.from_config(load_config().auxiliary))
"""

__version__ = "0.1.0"

from msscvm.analysis import (
    MASK_BAND,
    CloudShadowMasker,
    CloudShadowMaskResult,
    MaskClass,
    add_cloud_shadow_mask,
    apply_cloud_shadow_mask,
    compute_cloud_shadow_mask,
    mask_collection,
)
from msscvm.auxiliary import ArraySource, AuxiliaryData, FileSource, RasterSource
from msscvm.calibration import Unit, to_radiance, to_reflectance
from msscvm.config import MsscvmConfig, load_config
from msscvm.exceptions import (
    AuxiliaryDataUnavailableError,
    GridMismatchError,
    MissingBandError,
    MissingMetadataError,
    MsscvmError,
)
from msscvm.image import GridSpec, Image
from msscvm.io import read_image, read_mtl, read_scene, write_image
from msscvm.terrain import SunGeometry, TerrainModelProvider

__all__ = [
    "__version__",
    # Data model
    "GridSpec",
    "Image",
    # Calibration
    "Unit",
    "to_radiance",
    "to_reflectance",
    # Auxiliary data
    "RasterSource",
    "ArraySource",
    "FileSource",
    "AuxiliaryData",
    "TerrainModelProvider",
    "SunGeometry",
    # Masking
    "MASK_BAND",
    "MaskClass",
    "CloudShadowMasker",
    "CloudShadowMaskResult",
    "compute_cloud_shadow_mask",
    "add_cloud_shadow_mask",
    "apply_cloud_shadow_mask",
    "mask_collection",
    # IO and config
    "read_mtl",
    "read_scene",
    "read_image",
    "write_image",
    "MsscvmConfig",
    "load_config",
    # Errors
    "MsscvmError",
    "MissingMetadataError",
    "MissingBandError",
    "AuxiliaryDataUnavailableError",
    "GridMismatchError",
]
