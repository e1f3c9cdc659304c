"""
Terrain Modelling for Topographic Correction.

Submodules:
- dem: Prioritised elevation mosaic, slope and aspect
- illumination: Solar incidence on terrain and Minnaert NIR correction
"""

from msscvm.terrain.dem import (
    TerrainModel,
    TerrainModelProvider,
    slope_aspect,
)
from msscvm.terrain.illumination import (
    MINNAERT_COEFFICIENTS,
    MINNAERT_MAX_SLOPE_DEG,
    CorrectionResult,
    MinnaertCorrector,
    SunGeometry,
    illumination,
    minnaert_k,
    topographic_correct_nir,
)

__all__ = [
    "TerrainModel",
    "TerrainModelProvider",
    "slope_aspect",
    "MINNAERT_COEFFICIENTS",
    "MINNAERT_MAX_SLOPE_DEG",
    "CorrectionResult",
    "MinnaertCorrector",
    "SunGeometry",
    "illumination",
    "minnaert_k",
    "topographic_correct_nir",
]
