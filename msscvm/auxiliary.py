"""
Auxiliary raster sources.

Elevation mosaics and the historical water-extent layer are fixed,
read-only rasters identified by name or path. Sources deliver their
values resampled onto an image's grid; retrieval failures surface as
AuxiliaryDataUnavailableError and are never skipped.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from msscvm.exceptions import AuxiliaryDataUnavailableError
from msscvm.image import GridSpec
from msscvm.raster import reproject_to_grid

logger = logging.getLogger(__name__)


class RasterSource(ABC):
    """A read-only single-band raster that can be sampled onto any grid."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @abstractmethod
    def read(self, grid: GridSpec, resampling: str = "bilinear") -> np.ndarray:
        """
        Read the source onto ``grid``.

        Returns:
            Float64 array of shape grid.shape, NaN where the source has no data
        """


class ArraySource(RasterSource):
    """
    In-memory raster source.

    Args:
        name: Identifier used in logs and errors
        data: 2-D array of values
        grid: Grid the values live on
        nodata: Optional nodata value
    """

    def __init__(
        self,
        name: str,
        data: np.ndarray,
        grid: GridSpec,
        nodata: Optional[float] = None,
    ):
        super().__init__(name)
        data = np.asarray(data)
        if data.shape != grid.shape:
            raise ValueError(
                f"Source '{name}' data shape {data.shape} does not match grid {grid.shape}"
            )
        self.data = data
        self.grid = grid
        self.nodata = nodata

    def read(self, grid: GridSpec, resampling: str = "bilinear") -> np.ndarray:
        return reproject_to_grid(self.data, self.grid, grid, resampling, self.nodata)


class FileSource(RasterSource):
    """
    Raster file source read through rasterio.

    Args:
        name: Identifier used in logs and errors
        path: Path or URL of any GDAL-readable raster
        band: 1-based band index to read
    """

    def __init__(self, name: str, path: Union[str, Path], band: int = 1):
        super().__init__(name)
        self.path = path
        self.band = band

    def read(self, grid: GridSpec, resampling: str = "bilinear") -> np.ndarray:
        if isinstance(self.path, Path) and not self.path.exists():
            raise AuxiliaryDataUnavailableError(f"{self.name} ({self.path})")

        import rasterio
        from rasterio.errors import RasterioError

        try:
            with rasterio.open(self.path) as src:
                data = src.read(self.band).astype(np.float64)
                src_grid = GridSpec(
                    crs=src.crs.to_string(),
                    transform=src.transform,
                    width=src.width,
                    height=src.height,
                )
                nodata = src.nodata
        except (RasterioError, OSError, IndexError) as e:
            raise AuxiliaryDataUnavailableError(f"{self.name} ({self.path})", e) from e

        logger.info(f"Read auxiliary source {self.name} from {self.path}")
        return reproject_to_grid(data, src_grid, grid, resampling, nodata)


@dataclass
class AuxiliaryData:
    """
    Auxiliary rasters consumed by the masking pipeline.

    Attributes:
        elevation: Elevation sources, highest priority first
        water_extent: Maximum historical water extent (non-zero = water seen)
    """
    elevation: List[RasterSource] = field(default_factory=list)
    water_extent: Optional[RasterSource] = None

    def __post_init__(self):
        if not self.elevation:
            raise AuxiliaryDataUnavailableError("elevation (no sources configured)")
        if self.water_extent is None:
            raise AuxiliaryDataUnavailableError("water_extent (no source configured)")

    @classmethod
    def from_config(cls, config) -> "AuxiliaryData":
        """Build file-backed sources from an AuxiliaryDataConfig."""
        elevation = [
            FileSource(f"elevation[{i}]", path)
            for i, path in enumerate(config.elevation_sources)
        ]
        water = (
            FileSource("water_extent", config.water_extent)
            if config.water_extent is not None
            else None
        )
        return cls(elevation=elevation, water_extent=water)
