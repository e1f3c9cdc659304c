"""
Tests for the msscvm command-line interface.
"""

import json

import numpy as np
import pytest
from click.testing import CliRunner

from msscvm import __version__
from msscvm.analysis import MASK_BAND
from msscvm.cli.main import app
from msscvm.io import read_image


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def empty_config(tmp_path):
    """Config file without auxiliary sources, isolating tests from user config."""
    path = tmp_path / "empty.yaml"
    path.write_text(f"output_dir: {tmp_path / 'output'}\n")
    return path


@pytest.fixture
def auxiliary_files(tmp_path, make_grid, single_band_tif):
    """Flat DEM and empty water extent covering the synthetic scenes."""
    grid = make_grid(20, 20)
    dem = single_band_tif(tmp_path / "dem.tif", np.zeros(grid.shape), grid)
    water = single_band_tif(tmp_path / "water.tif", np.zeros(grid.shape), grid)
    return dem, water


class TestApp:
    """Tests for the command group."""

    def test_help(self, runner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "msscvm" in result.output
        for command in ("convert", "mask", "scenes", "info"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"msscvm version {__version__}" in result.output

    def test_verbose_and_quiet_conflict(self, runner):
        result = runner.invoke(app, ["-v", "-q", "info"])
        assert result.exit_code != 0
        assert "Cannot use both" in result.output

    def test_info(self, runner, empty_config):
        result = runner.invoke(app, ["-c", str(empty_config), "info"])
        assert result.exit_code == 0
        assert "quality.baseline.msscvm" in result.output
        assert "Elevation sources: not configured" in result.output


class TestConvertCommand:
    """Tests for msscvm convert."""

    def test_reflectance(self, runner, mss_scene, empty_config, tmp_path):
        output = tmp_path / "toa.tif"
        result = runner.invoke(app, ["-c", str(empty_config), "convert", str(mss_scene()), "-o", str(output)])

        assert result.exit_code == 0, result.output
        image = read_image(output)
        assert image.band_names == ["green", "red", "red_edge", "nir", "BQA"]
        np.testing.assert_allclose(image.band("nir"), 0.3, rtol=1e-5)

    def test_radiance_default_output(self, runner, mss_scene, empty_config, tmp_path):
        result = runner.invoke(app, ["-c", str(empty_config), "convert", str(mss_scene()), "--unit", "radiance"])

        assert result.exit_code == 0, result.output
        output = tmp_path / "output" / "LM50450291984210AAA03_radiance.tif"
        assert output.exists()
        # DN 150 * 1.0 + 2.0
        np.testing.assert_allclose(read_image(output).band("nir"), 152.0)

    def test_missing_metadata_exits_nonzero(self, runner, mss_scene, empty_config):
        mtl = mss_scene()
        mtl.write_text(mtl.read_text().replace("REFLECTANCE_MULT_BAND_2", "OTHER_KEY"))
        result = runner.invoke(app, ["-c", str(empty_config), "convert", str(mtl)])
        assert result.exit_code == 1
        assert "REFLECTANCE_MULT_BAND_2" in result.output


class TestMaskCommand:
    """Tests for msscvm mask."""

    def test_add_mode(self, runner, mss_scene, empty_config, auxiliary_files, tmp_path):
        green = np.full((20, 20), 50, dtype=np.uint16)
        green[5:10, 5:10] = 250  # reflectance 0.5
        dem, water = auxiliary_files
        output = tmp_path / "masked.tif"
        stats = tmp_path / "stats.json"

        result = runner.invoke(app, [
            "-c", str(empty_config), "mask", str(mss_scene(dn={"green": green})),
            "--dem", str(dem), "--water", str(water), "-o", str(output), "--stats", str(stats),
        ])

        assert result.exit_code == 0, result.output
        image = read_image(output)
        assert image.band_names[-1] == MASK_BAND
        assert np.all(image.band(MASK_BAND)[5:10, 5:10] == 1)
        assert image.band(MASK_BAND)[19, 19] == 0

        summary = json.loads(stats.read_text())
        assert summary["statistics"]["sieved_pixels"] == 25

    def test_apply_mode(self, runner, mss_scene, empty_config, auxiliary_files, tmp_path):
        green = np.full((20, 20), 50, dtype=np.uint16)
        green[5:10, 5:10] = 250
        dem, water = auxiliary_files
        output = tmp_path / "clear.tif"

        result = runner.invoke(app, [
            "-c", str(empty_config), "mask", str(mss_scene(dn={"green": green})),
            "-d", str(dem), "-w", str(water), "--mode", "apply", "-o", str(output),
        ])

        assert result.exit_code == 0, result.output
        image = read_image(output)
        assert MASK_BAND not in image.band_names
        assert not image.mask("nir")[7, 7]
        assert image.mask("nir")[19, 19]

    def test_sources_from_config(self, runner, mss_scene, auxiliary_files, tmp_path):
        dem, water = auxiliary_files
        config = tmp_path / "msscvm.yaml"
        config.write_text(
            f"auxiliary:\n  elevation_sources: [{dem}]\n  water_extent: {water}\n"
            f"output_dir: {tmp_path / 'products'}\n"
        )
        result = runner.invoke(app, ["-c", str(config), "mask", str(mss_scene())])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "products" / f"LM50450291984210AAA03_{MASK_BAND}.tif").exists()

    def test_without_auxiliary_data_fails(self, runner, mss_scene, empty_config):
        result = runner.invoke(app, ["-c", str(empty_config), "mask", str(mss_scene())])
        assert result.exit_code == 1
        assert "Auxiliary data unavailable" in result.output


class TestScenesCommand:
    """Tests for msscvm scenes."""

    @pytest.fixture
    def scene_dir(self, tmp_path, mss_scene):
        mss_scene(scene_id="LM50450291984210AAA03", with_rasters=False)
        mss_scene(scene_id="LM50450291983180AAA03", acquired="1983-06-29", with_rasters=False)
        mss_scene(scene_id="LM20490281975190AAA02", spacecraft="LANDSAT_2",
                  acquired="1975-07-09", with_rasters=False)
        mss_scene(scene_id="LM50450291985200AAA03", acquired="1985-07-19",
                  cloud_cover=80.0, with_rasters=False)
        return tmp_path

    def test_json(self, runner, scene_dir, empty_config):
        result = runner.invoke(app, ["-c", str(empty_config), "scenes", str(scene_dir), "--format", "json"])

        assert result.exit_code == 0, result.output
        records = json.loads(result.output)
        assert [r["scene_id"] for r in records] == [
            "LM20490281975190AAA02",
            "LM50450291983180AAA03",
            "LM50450291984210AAA03",
        ]
        assert records[0]["wrs"] == "WRS-1"

    def test_text_with_filters(self, runner, scene_dir, empty_config):
        result = runner.invoke(app, [
            "-c", str(empty_config), "scenes", str(scene_dir), "--wrs", "2", "--years", "1984-1990",
        ])

        assert result.exit_code == 0, result.output
        assert "1 of 4 scenes selected" in result.output
        assert "LM50450291984210AAA03" in result.output
        assert "045029" in result.output

    def test_bad_range(self, runner, scene_dir, empty_config):
        result = runner.invoke(app, ["-c", str(empty_config), "scenes", str(scene_dir), "--years", "abc"])
        assert result.exit_code != 0
