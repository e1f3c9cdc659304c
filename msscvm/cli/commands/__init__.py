"""
msscvm CLI Commands

Commands:
    convert - Convert a DN scene to radiance or TOA reflectance
    mask    - Compute the cloud/shadow mask of a scene
    scenes  - Select usable scenes from a directory of MTL files
"""

from msscvm.cli.commands import (
    convert,
    mask,
    scenes,
)

__all__ = [
    "convert",
    "mask",
    "scenes",
]
