"""
msscvm CLI Package

Command-line interface for MSS cloud/shadow masking.

Usage:
    msscvm convert LM05_..._MTL.txt --unit reflectance --output toa.tif
    msscvm mask LM05_..._MTL.txt --dem aw3d30.tif --dem gmted.tif --water max_extent.tif
    msscvm scenes ./scenes/ --max-cloud-cover 30 --format json
"""

from msscvm.cli.main import app

__all__ = ["app"]
