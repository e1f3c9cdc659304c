"""
Configuration for the masking pipeline.

Only deployment concerns are configurable: where the auxiliary rasters
live, how many images are processed at once, where outputs go and the
default scene-selection criteria. Classification thresholds are fixed
module constants.

Example YAML::

    auxiliary:
      elevation_sources:
        - /data/dem/aw3d30.tif
        - /data/dem/gmted2010.tif
      water_extent: /data/water/max_extent.tif
    max_workers: 4
    output_dir: ./output
    collection:
      max_cloud_cover: 30
      year_range: [1975, 1985]
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from msscvm.collection import CollectionFilter

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = [
    Path.cwd() / ".msscvm.yaml",
    Path.cwd() / "msscvm.yaml",
    Path.home() / ".msscvm" / "config.yaml",
]

DEFAULTS: Dict[str, Any] = {
    "auxiliary": {
        "elevation_sources": [],
        "water_extent": None,
    },
    "max_workers": 4,
    "output_dir": "output",
    "collection": {},
}


@dataclass
class AuxiliaryDataConfig:
    """Locations of the auxiliary rasters."""

    elevation_sources: List[Path] = field(default_factory=list)  # Highest priority first
    water_extent: Optional[Path] = None

    def __post_init__(self):
        self.elevation_sources = [Path(p) for p in self.elevation_sources]
        if self.water_extent is not None:
            self.water_extent = Path(self.water_extent)

    @property
    def is_complete(self) -> bool:
        return bool(self.elevation_sources) and self.water_extent is not None


@dataclass
class MsscvmConfig:
    """Top-level configuration."""

    auxiliary: AuxiliaryDataConfig = field(default_factory=AuxiliaryDataConfig)
    max_workers: int = 4
    output_dir: Path = Path("output")
    collection: CollectionFilter = field(default_factory=CollectionFilter)

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        self.output_dir = Path(self.output_dir)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "MsscvmConfig":
        """
        Build a config from a (merged) dictionary.

        Relative paths are resolved against ``base_dir`` when given.
        """
        def resolve(value):
            path = Path(value).expanduser()
            if base_dir is not None and not path.is_absolute():
                path = base_dir / path
            return path

        aux = data.get("auxiliary") or {}
        water = aux.get("water_extent")
        auxiliary = AuxiliaryDataConfig(
            elevation_sources=[resolve(p) for p in aux.get("elevation_sources") or []],
            water_extent=resolve(water) if water else None,
        )

        collection = dict(data.get("collection") or {})
        for key in ("year_range", "doy_range", "aoi"):
            if collection.get(key) is not None:
                collection[key] = tuple(collection[key])

        return cls(
            auxiliary=auxiliary,
            max_workers=int(data.get("max_workers", 4)),
            output_dir=resolve(data.get("output_dir", "output")),
            collection=CollectionFilter(**collection),
        )


def merge_config(base: dict, override: dict) -> dict:
    """Deep merge override into base config (in place)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            merge_config(base[key], value)
        else:
            base[key] = value
    return base


def _read_yaml(path: Path) -> dict:
    import yaml

    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(path: Optional[Union[str, Path]] = None) -> MsscvmConfig:
    """
    Load configuration from YAML.

    An explicit path must be readable. Without one, the first existing
    default location is used; unreadable defaults are skipped with a
    warning.

    Args:
        path: Optional configuration file

    Returns:
        MsscvmConfig
    """
    import yaml

    config = copy.deepcopy(DEFAULTS)
    source: Optional[Path] = None

    if path is not None:
        source = Path(path)
        merge_config(config, _read_yaml(source))
    else:
        for candidate in DEFAULT_CONFIG_PATHS:
            if not candidate.exists():
                continue
            try:
                merge_config(config, _read_yaml(candidate))
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config from {candidate}: {e}")
                continue
            source = candidate
            break

    if source is not None:
        logger.debug(f"Loaded config from {source}")
    return MsscvmConfig.from_dict(config, base_dir=source.parent if source else None)
