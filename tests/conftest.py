"""
Pytest configuration and fixtures for msscvm tests.

Markers:
    @pytest.mark.calibration - DN to radiance/reflectance conversion
    @pytest.mark.terrain - Elevation, slope/aspect, illumination, Minnaert
    @pytest.mark.clouds - Cloud test, sieve and buffer
    @pytest.mark.shadows - Shadow projection
    @pytest.mark.mask - Mask composition and the end-to-end pipeline
    @pytest.mark.io - Tests reading or writing rasters on disk
    @pytest.mark.slow - Tests that take longer to run

Usage:
    pytest -m clouds             # Run only cloud tests
    pytest -m "not io"           # Skip tests touching the filesystem
"""

import pytest
import sys
from pathlib import Path

import numpy as np

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "calibration: Radiometric calibration tests")
    config.addinivalue_line("markers", "terrain: Terrain model and correction tests")
    config.addinivalue_line("markers", "clouds: Cloud detection tests")
    config.addinivalue_line("markers", "shadows: Cloud shadow tests")
    config.addinivalue_line("markers", "mask: Mask composition and pipeline tests")
    config.addinivalue_line("markers", "io: Raster and metadata IO tests")
    config.addinivalue_line("markers", "slow: Slow-running tests")


def pytest_collection_modifyitems(config, items):
    """Auto-apply markers based on test file names and test names."""
    for item in items:
        basename = item.fspath.basename
        if "calibration" in basename:
            item.add_marker(pytest.mark.calibration)
        if "terrain" in basename:
            item.add_marker(pytest.mark.terrain)
        if basename in ("test_io.py", "test_cli.py"):
            item.add_marker(pytest.mark.io)

        test_name = item.name.lower()
        if "cloud" in test_name and not item.get_closest_marker("clouds"):
            item.add_marker(pytest.mark.clouds)
        if "shadow" in test_name and not item.get_closest_marker("shadows"):
            item.add_marker(pytest.mark.shadows)
        if ("mask" in test_name or "pipeline" in test_name) and not item.get_closest_marker("mask"):
            item.add_marker(pytest.mark.mask)

        if "large" in test_name or "parallel" in test_name:
            item.add_marker(pytest.mark.slow)


# ============================================================================
# Synthetic Data
# ============================================================================

WRS2_SCENE_ID = "LM50450291984210AAA03"

# Background reflectance: not cloud (ND(green, red) == 0), not dark, not water
BACKGROUND = {"green": 0.1, "red": 0.1, "red_edge": 0.2, "nir": 0.3}


def build_grid(height=40, width=40, resolution=60.0, crs="EPSG:32610"):
    from affine import Affine
    from msscvm.image import GridSpec

    return GridSpec(
        crs=crs,
        transform=Affine(resolution, 0.0, 500000.0, 0.0, -resolution, 4200000.0),
        width=width,
        height=height,
    )


def build_reflectance_image(shape=(40, 40), sun=(90.0, 45.0), grid=None, properties=None, **bands):
    """TOA reflectance image filled with BACKGROUND, overridden per band."""
    from msscvm.image import Image

    grid = grid or build_grid(*shape)
    data = {}
    for name, value in BACKGROUND.items():
        array = bands.get(name)
        if array is None:
            array = np.full(grid.shape, value, dtype=np.float32)
        data[name] = np.asarray(array, dtype=np.float32)
    data["BQA"] = np.full(grid.shape, 32, dtype=np.uint16)

    props = {"LANDSAT_SCENE_ID": WRS2_SCENE_ID, "wrs": "WRS-2"}
    if sun is not None:
        props["SUN_AZIMUTH"], props["SUN_ELEVATION"] = sun
    props.update(properties or {})
    return Image(data, grid, props)


def build_auxiliary(grid, elevation=None, water=None):
    """Flat terrain and an empty water extent unless given."""
    from msscvm.auxiliary import ArraySource, AuxiliaryData

    if elevation is None:
        elevation = np.zeros(grid.shape)
    if water is None:
        water = np.zeros(grid.shape)
    return AuxiliaryData(
        elevation=[ArraySource("dem", elevation, grid)],
        water_extent=ArraySource("water", water, grid),
    )


def write_mss_scene(
    directory,
    scene_id=WRS2_SCENE_ID,
    spacecraft="LANDSAT_5",
    acquired="1984-07-28",
    path=45,
    row=29,
    cloud_cover=10.0,
    rmse=0.3,
    data_type="L1TP",
    sun=(130.0, 55.0),
    dn=None,
    shape=(20, 20),
    with_rasters=True,
):
    """
    Write an MSS Level-1 scene (MTL plus per-band GeoTIFFs).

    DNs default to the BACKGROUND reflectance with gain 0.002 and bias 0.
    Returns the MTL path.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    numbers = (4, 5, 6, 7) if spacecraft in ("LANDSAT_1", "LANDSAT_2", "LANDSAT_3") else (1, 2, 3, 4)
    names = ("green", "red", "red_edge", "nir")

    lines = [
        "GROUP = L1_METADATA_FILE",
        "  GROUP = METADATA_FILE_INFO",
        f'    LANDSAT_SCENE_ID = "{scene_id}"',
        "  END_GROUP = METADATA_FILE_INFO",
        "  GROUP = PRODUCT_METADATA",
        f'    DATA_TYPE = "{data_type}"',
        f'    SPACECRAFT_ID = "{spacecraft}"',
        '    SENSOR_ID = "MSS"',
        f"    WRS_PATH = {path}",
        f"    WRS_ROW = {row}",
        f"    DATE_ACQUIRED = {acquired}",
        "    CORNER_UL_LAT_PRODUCT = 46.51",
        "    CORNER_UL_LON_PRODUCT = -123.05",
        "    CORNER_UR_LAT_PRODUCT = 46.43",
        "    CORNER_UR_LON_PRODUCT = -120.22",
        "    CORNER_LL_LAT_PRODUCT = 44.59",
        "    CORNER_LL_LON_PRODUCT = -123.13",
        "    CORNER_LR_LAT_PRODUCT = 44.52",
        "    CORNER_LR_LON_PRODUCT = -120.38",
    ]
    for n in numbers:
        lines.append(f'    FILE_NAME_BAND_{n} = "{scene_id}_B{n}.TIF"')
    lines += [
        f'    FILE_NAME_BAND_QUALITY = "{scene_id}_BQA.TIF"',
        "  END_GROUP = PRODUCT_METADATA",
        "  GROUP = IMAGE_ATTRIBUTES",
        f"    CLOUD_COVER = {cloud_cover}",
        f"    GEOMETRIC_RMSE_VERIFY = {rmse}",
        f"    SUN_AZIMUTH = {sun[0]}",
        f"    SUN_ELEVATION = {sun[1]}",
        "  END_GROUP = IMAGE_ATTRIBUTES",
        "  GROUP = RADIOMETRIC_RESCALING",
    ]
    for n in numbers:
        lines.append(f"    RADIANCE_MULT_BAND_{n} = 1.0")
        lines.append(f"    RADIANCE_ADD_BAND_{n} = 2.0")
    for n in numbers:
        lines.append(f"    REFLECTANCE_MULT_BAND_{n} = 2.0000E-03")
        lines.append(f"    REFLECTANCE_ADD_BAND_{n} = 0.00000")
    lines += [
        "  END_GROUP = RADIOMETRIC_RESCALING",
        "END_GROUP = L1_METADATA_FILE",
        "END",
    ]

    mtl_path = directory / f"{scene_id}_MTL.txt"
    mtl_path.write_text("\n".join(lines) + "\n")

    if with_rasters:
        import rasterio

        grid = build_grid(*shape)
        dn = dn or {}
        files = {name: f"{scene_id}_B{n}.TIF" for name, n in zip(names, numbers)}
        files["BQA"] = f"{scene_id}_BQA.TIF"
        for name, filename in files.items():
            if name == "BQA":
                default = 32
            else:
                default = int(round(BACKGROUND[name] / 0.002))
            array = np.asarray(dn.get(name, np.full(grid.shape, default)), dtype=np.uint16)
            with rasterio.open(
                directory / filename,
                "w",
                driver="GTiff",
                height=grid.height,
                width=grid.width,
                count=1,
                dtype="uint16",
                crs=grid.crs,
                transform=grid.transform,
                nodata=0,
            ) as dst:
                dst.write(array, 1)

    return mtl_path


def write_single_band(path, data, grid, nodata=None):
    """Write a float32 single-band GeoTIFF."""
    import rasterio

    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=grid.height,
        width=grid.width,
        count=1,
        dtype="float32",
        crs=grid.crs,
        transform=grid.transform,
        nodata=nodata,
    ) as dst:
        dst.write(np.asarray(data, dtype=np.float32), 1)
    return path


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def make_grid():
    """Factory for projected (UTM) grids."""
    return build_grid


@pytest.fixture
def make_reflectance_image():
    """Factory for synthetic TOA reflectance images."""
    return build_reflectance_image


@pytest.fixture
def make_auxiliary():
    """Factory for in-memory auxiliary data (flat terrain, no water)."""
    return build_auxiliary


@pytest.fixture
def mss_scene(tmp_path):
    """Factory writing MSS Level-1 scenes below tmp_path."""
    def _write(**kwargs):
        directory = tmp_path / kwargs.get("scene_id", WRS2_SCENE_ID)
        return write_mss_scene(directory, **kwargs)
    return _write


@pytest.fixture
def single_band_tif():
    """Factory writing single-band float32 GeoTIFFs."""
    return write_single_band


@pytest.fixture
def cloud_block_image():
    """40x40 image with a bright 5x5 cloud block at rows 10-14, cols 25-29."""
    green = np.full((40, 40), BACKGROUND["green"], dtype=np.float32)
    red = np.full((40, 40), BACKGROUND["red"], dtype=np.float32)
    green[10:15, 25:30] = 0.5
    return build_reflectance_image(green=green, red=red)
