"""
Scenes Command - Select usable scenes from a directory of MTL files.

Usage:
    msscvm scenes ./scenes/
    msscvm scenes ./scenes/ --wrs 2 --years 1982-1990 --max-cloud-cover 20 --format json
"""

import dataclasses
import json
import logging
from pathlib import Path
from typing import Optional, Tuple

import click

from msscvm.collection import SceneRecord, filter_scenes
from msscvm.io import read_mtl

logger = logging.getLogger("msscvm.scenes")


def parse_range(spec: str) -> Tuple[int, int]:
    """Parse an inclusive integer range ('1975-1985' or '1980')."""
    try:
        if "-" in spec:
            start, end = spec.split("-", 1)
            return int(start), int(end)
        value = int(spec)
    except ValueError:
        raise click.BadParameter(f"expected N or N-M, got {spec!r}")
    return value, value


@click.command("scenes")
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--max-cloud-cover", type=float, default=None, help="Maximum cloud cover (percent).")
@click.option("--max-rmse", type=float, default=None, help="Maximum geometric RMSE (pixels).")
@click.option(
    "--wrs",
    type=click.Choice(["1", "2", "1&2"]),
    default=None,
    help="Reference systems to include.",
)
@click.option("--years", default=None, help="Year range, e.g. 1975-1985.")
@click.option("--doy", default=None, help="Day-of-year range, e.g. 152-243.")
@click.option("--exclude", multiple=True, help="Scene id to exclude; repeatable.")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format (default: text).",
)
@click.pass_obj
def scenes(
    ctx,
    directory: Path,
    max_cloud_cover: Optional[float],
    max_rmse: Optional[float],
    wrs: Optional[str],
    years: Optional[str],
    doy: Optional[str],
    exclude: Tuple[str, ...],
    output_format: str,
):
    """
    List the scenes under DIRECTORY that pass the selection criteria.

    Every *_MTL.txt file below DIRECTORY is read. Criteria default to the
    configuration file; options override them.

    \b
    Examples:
        msscvm scenes ./scenes/
        msscvm scenes ./scenes/ --years 1982-1990 --doy 152-243 --format json
    """
    overrides = {}
    if max_cloud_cover is not None:
        overrides["max_cloud_cover"] = max_cloud_cover
    if max_rmse is not None:
        overrides["max_rmse_verify"] = max_rmse
    if wrs is not None:
        overrides["wrs"] = wrs
    if years is not None:
        overrides["year_range"] = parse_range(years)
    if doy is not None:
        overrides["doy_range"] = parse_range(doy)
    if exclude:
        overrides["exclude_ids"] = list(exclude)

    try:
        criteria = dataclasses.replace(ctx.config.collection, **overrides)
    except ValueError as e:
        raise click.BadParameter(str(e))

    records = [
        SceneRecord.from_properties(read_mtl(path))
        for path in sorted(directory.rglob("*_MTL.txt"))
    ]
    logger.debug(f"Found {len(records)} MTL files under {directory}")
    selected = filter_scenes(records, criteria)

    if output_format.lower() == "json":
        click.echo(json.dumps([record.to_dict() for record in selected], indent=2))
        return

    click.echo(f"\n  {len(selected)} of {len(records)} scenes selected\n")
    for record in selected:
        click.echo(
            f"  {record.scene_id}  {record.wrs}  {record.pr}  "
            f"{record.acquired.isoformat()}  cloud {record.cloud_cover:.0f}%"
        )
    click.echo()
