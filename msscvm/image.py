"""
Immutable multi-band raster image model.

An Image is an ordered set of named 2-D bands on a shared grid, with
per-band validity masks and a read-only mapping of scalar properties
(sun angles, calibration coefficients, scene identifiers). Every
operation returns a new Image; band arrays are frozen on construction.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
from affine import Affine

from msscvm.exceptions import GridMismatchError, MissingBandError, MissingMetadataError

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class GridSpec:
    """
    Spatial reference grid shared by all bands of an image.

    Attributes:
        crs: Coordinate reference system (EPSG code or WKT)
        transform: Affine geotransform (pixel -> CRS coordinates)
        width: Grid width in pixels
        height: Grid height in pixels
    """
    crs: str
    transform: Affine
    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {self.width}x{self.height}")

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    @property
    def resolution(self) -> Tuple[float, float]:
        """Pixel size (x, y) in CRS units."""
        return (abs(self.transform.a), abs(self.transform.e))

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Bounding box (minx, miny, maxx, maxy)."""
        west, north = self.transform.c, self.transform.f
        east = west + self.transform.a * self.width
        south = north + self.transform.e * self.height
        return (min(west, east), min(south, north), max(west, east), max(south, north))

    @property
    def is_geographic(self) -> bool:
        """True when the CRS is expressed in angular units."""
        from rasterio.crs import CRS

        return bool(CRS.from_user_input(self.crs).is_geographic)

    def matches(self, other: "GridSpec") -> bool:
        """Check if another grid has the same CRS, transform and size."""
        return (
            _normalize_crs(self.crs) == _normalize_crs(other.crs)
            and self.shape == other.shape
            and self.transform.almost_equals(other.transform)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "crs": self.crs,
            "transform": list(self.transform)[:6],
            "width": self.width,
            "height": self.height,
            "bounds": self.bounds,
        }


def _normalize_crs(crs: str) -> str:
    crs = str(crs).upper().strip()
    if crs.isdigit():
        return f"EPSG:{crs}"
    return crs


def _freeze(values: np.ndarray) -> np.ndarray:
    """Return a non-writeable array, copying only if the input is writeable."""
    array = np.asarray(values)
    if array.flags.writeable:
        array = array.copy()
        array.flags.writeable = False
    return array


class Image:
    """
    A 2-D grid of pixels holding named bands plus scalar properties.

    Args:
        bands: Ordered mapping of band name to 2-D array of shape grid.shape
        grid: Spatial reference grid
        properties: Scalar metadata (sun angles, calibration, identifiers)
        masks: Optional per-band validity masks (True = valid)
    """

    def __init__(
        self,
        bands: Mapping[str, np.ndarray],
        grid: GridSpec,
        properties: Optional[Mapping[str, Any]] = None,
        masks: Optional[Mapping[str, np.ndarray]] = None,
    ):
        self._grid = grid
        self._bands: Dict[str, np.ndarray] = {}
        for name, values in bands.items():
            array = _freeze(values)
            if array.shape != grid.shape:
                raise GridMismatchError(grid.shape, array.shape, name=name)
            self._bands[name] = array

        self._masks: Dict[str, np.ndarray] = {}
        for name, mask in (masks or {}).items():
            if name not in self._bands:
                raise MissingBandError(name, list(self._bands), list(self._bands))
            mask = np.asarray(mask, dtype=bool)
            if mask.shape != grid.shape:
                raise GridMismatchError(grid.shape, mask.shape, name=name)
            self._masks[name] = _freeze(mask)

        self._properties = MappingProxyType(dict(properties or {}))

    def __repr__(self) -> str:
        return (
            f"Image(bands={self.band_names}, shape={self._grid.shape}, "
            f"crs={self._grid.crs!r}, properties={len(self._properties)})"
        )

    @property
    def grid(self) -> GridSpec:
        return self._grid

    @property
    def shape(self) -> Tuple[int, int]:
        return self._grid.shape

    @property
    def band_names(self) -> List[str]:
        return list(self._bands)

    @property
    def properties(self) -> Mapping[str, Any]:
        return self._properties

    def band(self, name: str) -> np.ndarray:
        """Get a band array by name."""
        try:
            return self._bands[name]
        except KeyError:
            raise MissingBandError(name, [name], self.band_names) from None

    def mask(self, name: str) -> np.ndarray:
        """Get a band's validity mask (True = valid)."""
        if name not in self._bands:
            raise MissingBandError(name, [name], self.band_names)
        mask = self._masks.get(name)
        if mask is None:
            mask = np.ones(self.shape, dtype=bool)
        return mask

    def has_band(self, name: str) -> bool:
        return name in self._bands

    def require_bands(self, names: Iterable[str]) -> None:
        """Raise MissingBandError for the first band not present."""
        names = list(names)
        for name in names:
            if name not in self._bands:
                raise MissingBandError(name, names, self.band_names)

    def get_property(self, name: str, default: Any = _MISSING) -> Any:
        """
        Read a scalar property.

        Raises:
            MissingMetadataError: If the property is absent and no default given
        """
        value = self._properties.get(name, default)
        if value is _MISSING:
            raise MissingMetadataError(name, list(self._properties))
        return value

    def select(self, names: Union[str, Iterable[str]]) -> "Image":
        """Return a new image with only the named bands, in the given order."""
        if isinstance(names, str):
            names = [names]
        names = list(names)
        self.require_bands(names)
        return Image(
            {name: self._bands[name] for name in names},
            self._grid,
            self._properties,
            {name: self._masks[name] for name in names if name in self._masks},
        )

    def add_bands(
        self,
        bands: Mapping[str, np.ndarray],
        masks: Optional[Mapping[str, np.ndarray]] = None,
        overwrite: bool = False,
    ) -> "Image":
        """Return a new image with extra bands appended."""
        if not overwrite:
            clashes = [name for name in bands if name in self._bands]
            if clashes:
                raise ValueError(f"Bands already present: {clashes}")
        new_bands = dict(self._bands)
        new_bands.update(bands)
        new_masks = {k: v for k, v in self._masks.items() if k not in bands}
        new_masks.update(masks or {})
        return Image(new_bands, self._grid, self._properties, new_masks)

    def update_mask(self, mask: np.ndarray) -> "Image":
        """
        Return a new image whose band masks are ANDed with ``mask``.

        Values are left in place; masked pixels are treated as no data.
        """
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != self.shape:
            raise GridMismatchError(self.shape, mask.shape)
        new_masks = {name: self.mask(name) & mask for name in self._bands}
        return Image(self._bands, self._grid, self._properties, new_masks)

    def with_properties(self, **properties: Any) -> "Image":
        """Return a new image with properties added or replaced."""
        merged = dict(self._properties)
        merged.update(properties)
        return Image(self._bands, self._grid, merged, self._masks)

    def to_masked(self, name: str) -> np.ma.MaskedArray:
        """Get a band as a numpy masked array (mask = invalid)."""
        return np.ma.MaskedArray(self.band(name), mask=~self.mask(name))
