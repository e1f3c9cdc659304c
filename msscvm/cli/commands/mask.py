"""
Mask Command - Cloud, shadow and water masking of one scene.

Usage:
    msscvm mask LM05_..._MTL.txt --dem aw3d30.tif --dem gmted.tif --water max_extent.tif
    msscvm mask LM05_..._MTL.txt --mode apply --output clear.tif
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from msscvm.analysis import (
    MASK_BAND,
    CloudShadowMasker,
    add_cloud_shadow_mask,
    apply_cloud_shadow_mask,
)
from msscvm.auxiliary import AuxiliaryData
from msscvm.calibration import to_reflectance
from msscvm.config import AuxiliaryDataConfig
from msscvm.exceptions import MsscvmError
from msscvm.indices import apply_qa_mask
from msscvm.io import read_scene, write_image

logger = logging.getLogger("msscvm.mask")


def resolve_auxiliary(ctx, dem: Tuple[Path, ...], water: Optional[Path]) -> AuxiliaryData:
    """Command-line sources override the configured ones."""
    configured = ctx.config.auxiliary
    aux_config = AuxiliaryDataConfig(
        elevation_sources=list(dem) or configured.elevation_sources,
        water_extent=water or configured.water_extent,
    )
    return AuxiliaryData.from_config(aux_config)


@click.command("mask")
@click.argument("mtl", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--dem",
    "-d",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Elevation raster; repeat for a mosaic, highest priority first.",
)
@click.option(
    "--water",
    "-w",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Maximum historical water extent raster.",
)
@click.option(
    "--mode",
    "-m",
    type=click.Choice(["add", "apply"], case_sensitive=False),
    default="add",
    help="add: append the mask band; apply: mask cloud and shadow pixels.",
)
@click.option(
    "--qa/--no-qa",
    default=False,
    help="Also mask pixels whose quality band is not clear.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output GeoTIFF (default: <output_dir>/<scene>_msscvm.tif).",
)
@click.option(
    "--stats",
    "stats_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write masking statistics as JSON.",
)
@click.pass_obj
def mask(
    ctx,
    mtl: Path,
    dem: Tuple[Path, ...],
    water: Optional[Path],
    mode: str,
    qa: bool,
    output: Optional[Path],
    stats_path: Optional[Path],
):
    """
    Compute the clear-view mask of a Level-1 MSS scene.

    The scene is converted to TOA reflectance, then clouds, cloud shadows
    and water are detected. In add mode the categorical band 'msscvm'
    (0 clear, 1 cloud, 2 shadow) is appended; in apply mode cloud and
    shadow pixels are written as nodata.

    Elevation and water sources default to the configuration file.

    \b
    Examples:
        msscvm mask LM05_..._MTL.txt --dem aw3d30.tif --dem gmted.tif --water max_extent.tif
        msscvm -c msscvm.yaml mask LM05_..._MTL.txt --mode apply --qa
    """
    mode = mode.lower()
    try:
        auxiliary = resolve_auxiliary(ctx, dem, water)
        toa = to_reflectance(read_scene(mtl))
        result = CloudShadowMasker(auxiliary).execute(toa)

        if mode == "add":
            masked = add_cloud_shadow_mask(toa, auxiliary, result=result)
        else:
            masked = apply_cloud_shadow_mask(toa, auxiliary, result=result)
        if qa:
            masked = apply_qa_mask(masked)

        scene_id = toa.get_property("LANDSAT_SCENE_ID", mtl.stem)
        path = write_image(
            masked, output or ctx.config.output_dir / f"{scene_id}_{MASK_BAND}.tif"
        )
    except MsscvmError as e:
        logger.error(f"Masking failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    stats = result.statistics
    click.echo(f"\n  Scene: {scene_id}")
    click.echo(f"  Cloud: {stats['cloud_percent']:.2f}%")
    click.echo(f"  Shadow: {stats['shadow_percent']:.2f}%")
    click.echo(f"  Water pixels: {stats['water_pixels']}")
    if stats["degenerate_correction_pixels"]:
        click.echo(f"  Non-finite NIR corrections: {stats['degenerate_correction_pixels']}")
    click.echo(f"  Output ({mode}): {path}")

    if stats_path is not None:
        stats_path.parent.mkdir(parents=True, exist_ok=True)
        with open(stats_path, "w") as f:
            json.dump(result.to_dict(), f, indent=2, default=str)
        click.echo(f"  Statistics: {stats_path}")
