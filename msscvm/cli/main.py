"""
msscvm CLI - Main Entry Point

Command-line interface for Landsat MSS cloud/shadow/water masking.
Built with Click for argument parsing and help generation.
"""

import sys
import logging
from pathlib import Path
from typing import Optional

import click

from msscvm import __version__

# Configure logging for CLI
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("msscvm")


class MsscvmContext:
    """Context object for passing global options to subcommands."""

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        config_path: Optional[Path] = None,
    ):
        self.verbose = verbose
        self.quiet = quiet
        self.config_path = config_path
        self._config = None

        # Configure logging based on verbosity
        if quiet:
            logger.setLevel(logging.WARNING)
        elif verbose:
            logger.setLevel(logging.DEBUG)
        else:
            logger.setLevel(logging.INFO)

    @property
    def config(self):
        """Lazy load configuration from file."""
        if self._config is None:
            from msscvm.config import load_config

            self._config = load_config(self.config_path)
        return self._config


class MsscvmGroup(click.Group):
    """Click group with a banner and examples in the help text."""

    def format_help(self, ctx, formatter):
        formatter.write_paragraph()
        formatter.write_text("msscvm - Landsat MSS Clear-View Mask")
        formatter.write_paragraph()
        formatter.write_text(
            "Flag clouds, cloud shadows and water in MSS scenes (0 clear, 1 cloud, 2 shadow)."
        )
        formatter.write_paragraph()

        super().format_help(ctx, formatter)

        formatter.write_paragraph()
        formatter.write_text("Examples:")
        formatter.indent()

        examples = [
            "# Convert a Level-1 scene to TOA reflectance",
            "msscvm convert LM05_L1TP_045029_19840728_MTL.txt --output toa.tif",
            "",
            "# Add the mask band using a high-resolution DEM over a global one",
            "msscvm mask LM05_..._MTL.txt --dem aw3d30.tif --dem gmted.tif --water max_extent.tif",
            "",
            "# List usable scenes in a directory as JSON",
            "msscvm scenes ./scenes/ --max-cloud-cover 30 --format json",
        ]

        for line in examples:
            formatter.write_text(line)

        formatter.dedent()


pass_context = click.make_pass_decorator(MsscvmContext, ensure=True)


@click.group(cls=MsscvmGroup)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable verbose output (debug logging).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Quiet mode (only warnings and errors).",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file.",
)
@click.version_option(
    version=__version__,
    prog_name="msscvm",
    message="%(prog)s version %(version)s - MSS Clear-View Mask",
)
@click.pass_context
def app(ctx, verbose: bool, quiet: bool, config_path: Optional[Path]):
    """
    msscvm - Cloud, shadow and water masking for Landsat MSS imagery.
    """
    if verbose and quiet:
        raise click.UsageError("Cannot use both --verbose and --quiet")

    ctx.obj = MsscvmContext(
        verbose=verbose,
        quiet=quiet,
        config_path=config_path,
    )


def register_commands():
    """Register all subcommands."""
    from msscvm.cli.commands import convert, mask, scenes

    app.add_command(convert.convert)
    app.add_command(mask.mask)
    app.add_command(scenes.scenes)


@app.command("info")
@pass_context
def info(ctx):
    """Display system information and configuration."""
    import importlib.metadata
    import platform

    from msscvm.analysis import CloudShadowMasker

    click.echo("\n=== msscvm System Info ===\n")

    click.echo(f"msscvm: {__version__}")
    click.echo(f"Python: {platform.python_version()}")
    click.echo(f"Platform: {platform.system()} {platform.release()}")

    click.echo("\n--- Package Versions ---")
    for pkg in ["numpy", "scipy", "rasterio", "click", "PyYAML"]:
        try:
            click.echo(f"  {pkg}: {importlib.metadata.version(pkg)}")
        except importlib.metadata.PackageNotFoundError:
            click.echo(f"  {pkg}: not installed")

    click.echo("\n--- Algorithm ---")
    metadata = CloudShadowMasker.get_metadata()
    click.echo(f"  {metadata['name']} ({metadata['id']} v{metadata['version']})")
    classes = ", ".join(f"{code}={name}" for name, code in metadata["classes"].items())
    click.echo(f"  Classes: {classes}")

    click.echo("\n--- Configuration ---")
    config = ctx.config
    aux = config.auxiliary
    elevation = ", ".join(str(p) for p in aux.elevation_sources) or "not configured"
    click.echo(f"  Elevation sources: {elevation}")
    click.echo(f"  Water extent: {aux.water_extent or 'not configured'}")
    click.echo(f"  Max workers: {config.max_workers}")
    click.echo(f"  Output directory: {config.output_dir}")

    click.echo()


register_commands()


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except Exception as e:
        logger.error(f"Error: {e}")
        if "--verbose" in sys.argv or "-v" in sys.argv:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
