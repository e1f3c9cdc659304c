"""
Terrain Model Provider.

Assembles elevation on an image's grid from a prioritised list of
elevation sources (first valid value wins per pixel) and derives slope
and aspect with Horn's 3x3 finite-difference method.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from msscvm.auxiliary import RasterSource
from msscvm.image import GridSpec
from msscvm.raster import mosaic_first_valid

logger = logging.getLogger(__name__)

# Metres per degree of latitude / of longitude at the equator
METRES_PER_DEGREE_LAT = 110574.0
METRES_PER_DEGREE_LON = 111320.0


@dataclass(frozen=True)
class TerrainModel:
    """
    Elevation-derived terrain grids aligned to an image.

    Attributes:
        elevation: Elevation (metres)
        slope: Slope (degrees, 0 = flat)
        aspect: Aspect (degrees clockwise from north, facing downslope)
        grid: Grid the arrays are aligned to
    """
    elevation: np.ndarray
    slope: np.ndarray
    aspect: np.ndarray
    grid: GridSpec

    def to_dict(self) -> Dict[str, Any]:
        """Summary without the large arrays."""
        return {
            "grid": self.grid.to_dict(),
            "elevation_mean_m": float(np.nanmean(self.elevation)) if np.isfinite(self.elevation).any() else None,
            "slope_mean_deg": float(np.nanmean(self.slope)) if np.isfinite(self.slope).any() else None,
            "slope_max_deg": float(np.nanmax(self.slope)) if np.isfinite(self.slope).any() else None,
        }


def _pixel_size_metres(grid: GridSpec) -> Tuple[np.ndarray, np.ndarray]:
    """Pixel size in metres, per row for geographic grids."""
    res_x, res_y = grid.resolution
    if not grid.is_geographic:
        return np.asarray(res_x), np.asarray(res_y)

    rows = np.arange(grid.height) + 0.5
    latitude = grid.transform.f + grid.transform.e * rows
    x_metres = res_x * METRES_PER_DEGREE_LON * np.cos(np.radians(latitude))
    y_metres = res_y * METRES_PER_DEGREE_LAT
    return x_metres[:, np.newaxis], np.asarray(y_metres)


def slope_aspect(elevation: np.ndarray, grid: GridSpec) -> Tuple[np.ndarray, np.ndarray]:
    """
    Calculate slope and aspect from elevation.

    Uses Horn's weighted 3x3 finite differences with edge replication.

    Args:
        elevation: Elevation in metres, shape grid.shape
        grid: Grid providing the pixel size

    Returns:
        Tuple of (slope, aspect) in degrees. Aspect is measured clockwise
        from north and points downslope; flat cells get 0.
    """
    x_size, y_size = _pixel_size_metres(grid)
    p = np.pad(np.asarray(elevation, dtype=np.float64), 1, mode="edge")

    # Neighbourhood layout:  a b c / d e f / g h i
    a, b, c = p[:-2, :-2], p[:-2, 1:-1], p[:-2, 2:]
    d, f = p[1:-1, :-2], p[1:-1, 2:]
    g, h, i = p[2:, :-2], p[2:, 1:-1], p[2:, 2:]

    dz_east = ((c + 2 * f + i) - (a + 2 * d + g)) / (8.0 * x_size)
    dz_south = ((g + 2 * h + i) - (a + 2 * b + c)) / (8.0 * y_size)

    slope = np.degrees(np.arctan(np.hypot(dz_east, dz_south)))

    aspect = np.degrees(np.arctan2(-dz_east, dz_south)) % 360.0
    flat = (dz_east == 0) & (dz_south == 0)
    aspect = np.where(flat, 0.0, aspect)

    return slope.astype(np.float32), aspect.astype(np.float32)


class TerrainModelProvider:
    """
    Builds terrain models from prioritised elevation sources.

    Args:
        sources: Elevation sources, highest priority first (a
            high-resolution override before a global fallback)
    """

    def __init__(self, sources: Sequence[RasterSource]):
        if not sources:
            raise ValueError("At least one elevation source is required")
        self.sources: List[RasterSource] = list(sources)

    def elevation(self, grid: GridSpec) -> np.ndarray:
        """Prioritised elevation mosaic on ``grid``."""
        layers = [source.read(grid, resampling="bilinear") for source in self.sources]
        elevation = mosaic_first_valid(layers)

        missing = int(np.sum(~np.isfinite(elevation)))
        if missing:
            logger.warning(
                f"Elevation missing for {missing}/{elevation.size} pixels "
                f"after mosaicking {len(self.sources)} sources"
            )
        return elevation

    def terrain(self, grid: GridSpec) -> TerrainModel:
        """Elevation, slope and aspect on ``grid``."""
        elevation = self.elevation(grid)
        slope, aspect = slope_aspect(elevation, grid)
        logger.debug(
            f"Terrain model: slope mean {np.nanmean(slope):.2f} deg, "
            f"max {np.nanmax(slope):.2f} deg"
        )
        return TerrainModel(elevation=elevation, slope=slope, aspect=aspect, grid=grid)
