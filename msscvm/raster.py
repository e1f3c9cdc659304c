"""
Primitive raster operations on the native pixel grid.

Band arithmetic is plain numpy; neighbourhood reductions use
scipy.ndimage; reprojection goes through rasterio.warp. Every function
is pure: inputs are never modified and the same inputs give the same
output, so callers may tile or cache freely.
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np
from scipy import ndimage

from msscvm.image import GridSpec

logger = logging.getLogger(__name__)

# 8-connectivity structuring element
EIGHT_CONNECTED = np.ones((3, 3), dtype=bool)
FOUR_CONNECTED = ndimage.generate_binary_structure(2, 1)


def normalized_difference(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    """
    Calculate (first - second) / (first + second).

    Pixels where the denominator is zero are set to 0.
    """
    first = np.asarray(first, dtype=np.float32)
    second = np.asarray(second, dtype=np.float32)
    denominator = first + second
    with np.errstate(divide="ignore", invalid="ignore"):
        nd = np.where(denominator != 0, (first - second) / denominator, 0.0)
    return nd.astype(np.float32)


def circle_kernel(radius: int) -> np.ndarray:
    """Boolean disk footprint of the given pixel radius (x^2 + y^2 <= r^2)."""
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")
    y, x = np.ogrid[-radius:radius + 1, -radius:radius + 1]
    return (x * x + y * y) <= radius * radius


def focal_max(
    layer: np.ndarray,
    radius: int = 2,
    kernel: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Morphological dilation with a circular (or custom) footprint.

    Pixels beyond the grid edge count as zero. Boolean input gives
    boolean output.
    """
    footprint = circle_kernel(radius) if kernel is None else np.asarray(kernel) > 0
    layer = np.asarray(layer)
    if layer.dtype == bool:
        return ndimage.maximum_filter(
            layer.astype(np.uint8), footprint=footprint, mode="constant", cval=0
        ).astype(bool)
    return ndimage.maximum_filter(layer, footprint=footprint, mode="constant", cval=0)


def connected_pixel_count(
    layer: np.ndarray,
    max_size: Optional[int] = None,
    eight_connected: bool = True,
) -> np.ndarray:
    """
    Size of the connected component each true pixel belongs to.

    Background pixels get 0. When ``max_size`` is given counts are capped
    at that value.
    """
    layer = np.asarray(layer, dtype=bool)
    structure = EIGHT_CONNECTED if eight_connected else FOUR_CONNECTED
    labeled, num_features = ndimage.label(layer, structure=structure)
    if num_features == 0:
        return np.zeros(layer.shape, dtype=np.int32)

    sizes = np.bincount(labeled.ravel())
    sizes[0] = 0
    counts = sizes[labeled].astype(np.int32)
    if max_size is not None:
        counts = np.minimum(counts, max_size)
    return counts


def sieve(layer: np.ndarray, min_size: int, eight_connected: bool = True) -> np.ndarray:
    """Drop connected components smaller than ``min_size`` pixels."""
    counts = connected_pixel_count(layer, max_size=min_size, eight_connected=eight_connected)
    return counts >= min_size


def _shift(layer: np.ndarray, d_row: int, d_col: int) -> np.ndarray:
    """out[r, c] = layer[r + d_row, c + d_col], False outside the grid."""
    rows, cols = layer.shape
    out = np.zeros_like(layer, dtype=bool)
    if abs(d_row) >= rows or abs(d_col) >= cols:
        return out

    src_r = slice(max(d_row, 0), rows + min(d_row, 0))
    dst_r = slice(max(-d_row, 0), rows + min(-d_row, 0))
    src_c = slice(max(d_col, 0), cols + min(d_col, 0))
    dst_c = slice(max(-d_col, 0), cols + min(-d_col, 0))
    out[dst_r, dst_c] = layer[src_r, src_c]
    return out


def directional_distance_transform(
    layer: np.ndarray,
    angle_deg: float,
    max_distance: int,
) -> np.ndarray:
    """
    Distance to the nearest true pixel along a fixed direction.

    The direction is measured in degrees counter-clockwise from east
    (0 = east, 90 = north) on a north-up grid. True pixels get 0, pixels
    with a true pixel within ``max_distance`` steps get the distance in
    pixels, all others get ``inf``.

    Args:
        layer: Boolean source layer
        angle_deg: Search direction in degrees
        max_distance: Maximum search distance in pixels

    Returns:
        Float32 distance array
    """
    layer = np.asarray(layer, dtype=bool)
    distance = np.full(layer.shape, np.inf, dtype=np.float32)
    distance[layer] = 0.0

    theta = math.radians(angle_deg)
    step_col = math.cos(theta)
    step_row = -math.sin(theta)  # rows increase southward

    seen = set()
    for step in range(1, int(max_distance) + 1):
        d_row = int(round(step * step_row))
        d_col = int(round(step * step_col))
        if (d_row, d_col) in seen or (d_row, d_col) == (0, 0):
            continue
        seen.add((d_row, d_col))

        hit = _shift(layer, d_row, d_col) & np.isinf(distance)
        distance[hit] = math.hypot(d_row, d_col)

    return distance


def mosaic_first_valid(layers: Sequence[np.ndarray]) -> np.ndarray:
    """
    Prioritised mosaic: the first finite value per pixel wins.

    Layers are given highest priority first; pixels missing from every
    layer stay NaN.
    """
    if not layers:
        raise ValueError("At least one layer is required for a mosaic")

    result = np.array(layers[0], dtype=np.float64, copy=True)
    for layer in layers[1:]:
        missing = ~np.isfinite(result)
        if not missing.any():
            break
        result[missing] = np.asarray(layer, dtype=np.float64)[missing]
    return result


def reproject_to_grid(
    data: np.ndarray,
    src_grid: GridSpec,
    dst_grid: GridSpec,
    resampling: str = "bilinear",
    src_nodata: Optional[float] = None,
) -> np.ndarray:
    """
    Reproject/resample a single band onto another grid.

    Output is float64 with NaN wherever the source has no data.

    Args:
        data: Source band
        src_grid: Grid the source band lives on
        dst_grid: Target grid
        resampling: rasterio resampling name (nearest, bilinear, cubic, ...)
        src_nodata: Source nodata value, in addition to NaN
    """
    data = np.asarray(data, dtype=np.float64)
    if src_nodata is not None and not np.isnan(src_nodata):
        data = np.where(data == src_nodata, np.nan, data)

    if src_grid.matches(dst_grid):
        return data.copy()

    from rasterio.enums import Resampling
    from rasterio.warp import reproject

    method = getattr(Resampling, resampling.lower(), None)
    if method is None:
        raise ValueError(f"Unknown resampling method: {resampling}")

    destination = np.full(dst_grid.shape, np.nan, dtype=np.float64)
    reproject(
        source=data,
        destination=destination,
        src_transform=src_grid.transform,
        src_crs=src_grid.crs,
        src_nodata=np.nan,
        dst_transform=dst_grid.transform,
        dst_crs=dst_grid.crs,
        dst_nodata=np.nan,
        resampling=method,
    )
    logger.debug(
        f"Reprojected {src_grid.shape} {src_grid.crs} -> {dst_grid.shape} {dst_grid.crs} "
        f"({resampling})"
    )
    return destination
