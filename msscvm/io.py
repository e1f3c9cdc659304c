"""
Scene and GeoTIFF input/output.

- read_mtl: parse a Landsat MTL metadata file into a flat property dict
- read_scene: load the per-band GeoTIFFs listed in an MTL as a DN Image
- read_image / write_image: round-trip any Image through a multi-band
  GeoTIFF (band names as band descriptions, properties as tags, masked
  pixels as nodata)
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from msscvm.calibration import QA_BAND, SENSOR_BAND_NUMBERS, SPECTRAL_BANDS
from msscvm.collection import wrs_system
from msscvm.exceptions import GridMismatchError, MissingBandError, MissingMetadataError
from msscvm.image import GridSpec, Image

logger = logging.getLogger(__name__)

QA_FILE_KEY = "FILE_NAME_BAND_QUALITY"


def parse_value(text: str) -> Any:
    """Coerce a metadata string to int, float or unquoted string."""
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1]
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            pass
    return text


def read_mtl(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Parse a Landsat MTL file.

    Groups are flattened; later duplicate keys win.

    Args:
        path: Path to the *_MTL.txt file

    Returns:
        Dictionary of property name to value
    """
    path = Path(path)
    properties: Dict[str, Any] = {}
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line == "END" or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            if key in ("GROUP", "END_GROUP"):
                continue
            properties[key] = parse_value(value)

    logger.debug(f"Read {len(properties)} properties from {path}")
    return properties


def _read_band(path: Path):
    import rasterio

    with rasterio.open(path) as src:
        data = src.read(1)
        valid = src.read_masks(1) > 0
        grid = GridSpec(
            crs=src.crs.to_string() if src.crs else "",
            transform=src.transform,
            width=src.width,
            height=src.height,
        )
    return data, valid, grid


def read_scene(mtl_path: Union[str, Path]) -> Image:
    """
    Load an MSS Level-1 scene as a DN image.

    Bands are renamed to green, red, red_edge, nir and BQA according to
    the platform's band numbering; the MTL properties become the image
    properties, with ``wrs`` added.

    Raises:
        MissingMetadataError: If the platform cannot be determined
        MissingBandError: If a band file is not listed in the MTL
        GridMismatchError: If band files are not on the same grid
    """
    mtl_path = Path(mtl_path)
    properties = read_mtl(mtl_path)

    wrs = wrs_system(properties)
    if wrs is None:
        raise MissingMetadataError("SPACECRAFT_ID", list(properties))
    properties["wrs"] = wrs

    file_keys = [f"FILE_NAME_BAND_{n}" for n in SENSOR_BAND_NUMBERS[wrs]] + [QA_FILE_KEY]
    names = list(SPECTRAL_BANDS) + [QA_BAND]

    bands, masks = {}, {}
    grid: Optional[GridSpec] = None
    for name, key in zip(names, file_keys):
        filename = properties.get(key)
        if not filename:
            raise MissingBandError(name, names, list(bands))
        data, valid, band_grid = _read_band(mtl_path.parent / filename)
        if grid is None:
            grid = band_grid
        elif not grid.matches(band_grid):
            raise GridMismatchError(grid.shape, band_grid.shape, name=name)
        bands[name] = data
        masks[name] = valid

    logger.info(f"Loaded scene {properties.get('LANDSAT_SCENE_ID', mtl_path.stem)} ({wrs})")
    return Image(bands, grid, properties, masks)


def write_image(
    image: Image,
    path: Union[str, Path],
    bands: Optional[Sequence[str]] = None,
    compress: str = "deflate",
) -> Path:
    """
    Write an image to a multi-band GeoTIFF.

    Masked pixels are written as NaN (integer bands are promoted to
    float32 when any pixel is masked).

    Args:
        image: Image to write
        path: Output path
        bands: Band names to write (all bands if None)
        compress: GDAL compression method

    Returns:
        Output path
    """
    import rasterio

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    names: List[str] = list(bands) if bands is not None else image.band_names
    image.require_bands(names)
    arrays = [image.band(name) for name in names]
    masks = [image.mask(name) for name in names]

    dtype = np.result_type(*arrays)
    if dtype == bool:
        dtype = np.dtype(np.uint8)
    nodata = None
    if not all(mask.all() for mask in masks):
        if dtype.kind != "f":
            dtype = np.dtype(np.float32)
        nodata = np.nan

    stack = np.stack([array.astype(dtype) for array in arrays])
    if nodata is not None:
        for index, mask in enumerate(masks):
            stack[index][~mask] = nodata

    profile = {
        "driver": "GTiff",
        "height": image.grid.height,
        "width": image.grid.width,
        "count": len(names),
        "dtype": dtype.name,
        "crs": image.grid.crs or None,
        "transform": image.grid.transform,
        "compress": compress,
        "nodata": nodata,
    }

    with rasterio.open(path, "w", **profile) as dst:
        dst.write(stack)
        for index, name in enumerate(names, start=1):
            dst.set_band_description(index, name)
        dst.update_tags(**{key: str(value) for key, value in image.properties.items()})

    logger.info(f"Wrote {len(names)} bands to {path}")
    return path


def read_image(path: Union[str, Path]) -> Image:
    """Read a GeoTIFF written by write_image (or any multi-band raster)."""
    import rasterio

    with rasterio.open(path) as src:
        data = src.read()
        valid = src.read_masks() > 0
        names = [
            description or f"band_{index}"
            for index, description in enumerate(src.descriptions, start=1)
        ]
        properties = {key: parse_value(value) for key, value in src.tags().items()}
        grid = GridSpec(
            crs=src.crs.to_string() if src.crs else "",
            transform=src.transform,
            width=src.width,
            height=src.height,
        )

    bands = {name: data[index] for index, name in enumerate(names)}
    masks = {name: valid[index] for index, name in enumerate(names)}
    return Image(bands, grid, properties, masks)
