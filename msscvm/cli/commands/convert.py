"""
Convert Command - DN scene to radiance or TOA reflectance.

Usage:
    msscvm convert LM05_..._MTL.txt --unit reflectance --output toa.tif
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from msscvm.calibration import Unit, scale_dn
from msscvm.exceptions import MsscvmError
from msscvm.io import read_scene, write_image

logger = logging.getLogger("msscvm.convert")


def default_output(ctx, scene_id: str, suffix: str) -> Path:
    """Output path under the configured output directory."""
    return ctx.config.output_dir / f"{scene_id}_{suffix}.tif"


@click.command("convert")
@click.argument("mtl", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--unit",
    "-u",
    type=click.Choice([u.value for u in Unit], case_sensitive=False),
    default=Unit.REFLECTANCE.value,
    help="Output unit (default: reflectance).",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output GeoTIFF (default: <output_dir>/<scene>_<unit>.tif).",
)
@click.pass_obj
def convert(ctx, mtl: Path, unit: str, output: Optional[Path]):
    """
    Convert a Level-1 MSS scene from DN to radiance or TOA reflectance.

    MTL is the scene's metadata file; band files are read from the same
    directory. The quality band is carried over unchanged.

    \b
    Examples:
        msscvm convert LM05_L1TP_045029_19840728_MTL.txt
        msscvm convert LM02_..._MTL.txt --unit radiance -o radiance.tif
    """
    try:
        image = read_scene(mtl)
        converted = scale_dn(image, Unit(unit.lower()))
        scene_id = converted.get_property("LANDSAT_SCENE_ID", mtl.stem)
        path = write_image(converted, output or default_output(ctx, scene_id, unit.lower()))
    except MsscvmError as e:
        logger.error(f"Conversion failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Wrote {unit.lower()} image to {path}")
