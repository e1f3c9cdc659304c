"""
MSS Scene Selection.

Filters scene metadata records (parsed from MTL files or any catalog)
down to the scenes worth masking: terrain-corrected products with all
four spectral bands, acceptable geometric accuracy and cloud cover,
within year / day-of-year windows and, optionally, an area of interest.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from msscvm.calibration import SENSOR_BAND_NUMBERS

logger = logging.getLogger(__name__)

# Landsat platform -> Worldwide Reference System
SPACECRAFT_WRS = {
    "LANDSAT_1": "WRS-1",
    "LANDSAT_2": "WRS-1",
    "LANDSAT_3": "WRS-1",
    "LANDSAT_4": "WRS-2",
    "LANDSAT_5": "WRS-2",
}

# Systematic-only products are not terrain corrected
EXCLUDED_DATA_TYPES = ("L1G",)

_CORNERS = ("UL", "UR", "LL", "LR")


def path_row(path: int, row: int) -> str:
    """Zero-padded WRS path/row identifier, e.g. (45, 29) -> '045029'."""
    return f"{int(path):03d}{int(row):03d}"


def wrs_system(properties: Mapping[str, Any]) -> Optional[str]:
    """WRS system of a scene from its ``wrs`` or ``SPACECRAFT_ID`` property."""
    wrs = properties.get("wrs")
    if wrs in SENSOR_BAND_NUMBERS:
        return wrs
    return SPACECRAFT_WRS.get(str(properties.get("SPACECRAFT_ID", "")).upper())


def _parse_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


@dataclass
class SceneRecord:
    """
    Selection-relevant metadata of one MSS scene.

    Attributes:
        scene_id: LANDSAT_SCENE_ID
        wrs: "WRS-1" or "WRS-2"
        path: WRS path
        row: WRS row
        acquired: Acquisition date
        cloud_cover: Scene cloud cover (percent)
        rmse_verify: GEOMETRIC_RMSE_VERIFY (pixels)
        data_type: Product level (L1TP, L1GS, L1G)
        bands_present: Sensor band numbers delivered with the scene
        footprint: (min_lon, min_lat, max_lon, max_lat) when known
        properties: Full property mapping
    """
    scene_id: str
    wrs: Optional[str]
    path: Optional[int]
    row: Optional[int]
    acquired: Optional[date]
    cloud_cover: Optional[float] = None
    rmse_verify: Optional[float] = None
    data_type: Optional[str] = None
    bands_present: Set[int] = field(default_factory=set)
    footprint: Optional[Tuple[float, float, float, float]] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def pr(self) -> Optional[str]:
        if self.path is None or self.row is None:
            return None
        return path_row(self.path, self.row)

    @property
    def year(self) -> Optional[int]:
        return self.acquired.year if self.acquired else None

    @property
    def doy(self) -> Optional[int]:
        """Day of year, 1-based (1 January is 1), the numbering doy_range uses."""
        return self.acquired.timetuple().tm_yday if self.acquired else None

    @property
    def has_all_bands(self) -> bool:
        if self.wrs not in SENSOR_BAND_NUMBERS:
            return False
        return set(SENSOR_BAND_NUMBERS[self.wrs]) <= self.bands_present

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "SceneRecord":
        """Build a record from scene properties (MTL keys)."""
        bands = set()
        for n in range(1, 8):
            if properties.get(f"FILE_NAME_BAND_{n}") or properties.get(f"PRESENT_BAND_{n}") == "Y":
                bands.add(n)

        footprint = None
        lats = [properties.get(f"CORNER_{c}_LAT_PRODUCT") for c in _CORNERS]
        lons = [properties.get(f"CORNER_{c}_LON_PRODUCT") for c in _CORNERS]
        if all(v is not None for v in lats + lons):
            footprint = (min(lons), min(lats), max(lons), max(lats))

        def _optional(key, cast):
            value = properties.get(key)
            return cast(value) if value is not None else None

        return cls(
            scene_id=str(properties.get("LANDSAT_SCENE_ID", "unknown")),
            wrs=wrs_system(properties),
            path=_optional("WRS_PATH", int),
            row=_optional("WRS_ROW", int),
            acquired=_parse_date(properties.get("DATE_ACQUIRED")),
            cloud_cover=_optional("CLOUD_COVER", float),
            rmse_verify=_optional("GEOMETRIC_RMSE_VERIFY", float),
            data_type=_optional("DATA_TYPE", str),
            bands_present=bands,
            footprint=footprint,
            properties=dict(properties),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene_id": self.scene_id,
            "wrs": self.wrs,
            "pr": self.pr,
            "acquired": self.acquired.isoformat() if self.acquired else None,
            "year": self.year,
            "doy": self.doy,
            "cloud_cover": self.cloud_cover,
            "rmse_verify": self.rmse_verify,
            "data_type": self.data_type,
        }


@dataclass
class CollectionFilter:
    """Scene selection criteria."""

    max_rmse_verify: float = 0.5  # Maximum geometric RMSE (pixels)
    max_cloud_cover: float = 50.0  # Maximum scene cloud cover (percent)
    wrs: str = "1&2"  # Reference systems to include: "1", "2" or "1&2"
    year_range: Tuple[int, int] = (1972, 2000)
    doy_range: Tuple[int, int] = (1, 365)  # Inclusive; wraps when start > end
    exclude_ids: List[str] = field(default_factory=list)
    aoi: Optional[Tuple[float, float, float, float]] = None  # (min_lon, min_lat, max_lon, max_lat)

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.max_rmse_verify < 0:
            raise ValueError(f"max_rmse_verify must be non-negative, got {self.max_rmse_verify}")
        if not 0.0 <= self.max_cloud_cover <= 100.0:
            raise ValueError(f"max_cloud_cover must be in [0, 100], got {self.max_cloud_cover}")
        if not self.systems:
            raise ValueError(f"wrs must contain '1' and/or '2', got {self.wrs!r}")
        if self.year_range[0] > self.year_range[1]:
            raise ValueError(f"year_range must be ascending, got {self.year_range}")
        if not all(1 <= day <= 366 for day in self.doy_range):
            raise ValueError(f"doy_range must lie within [1, 366], got {self.doy_range}")

    @property
    def systems(self) -> Set[str]:
        return {f"WRS-{n}" for n in ("1", "2") if n in self.wrs}

    def contains_doy(self, doy: int) -> bool:
        """Day-of-year test; a range with start > end wraps over the new year."""
        start, end = self.doy_range
        if start <= end:
            return start <= doy <= end
        return doy >= start or doy <= end

    def rejection_reason(self, record: SceneRecord) -> Optional[str]:
        """Why a record fails the filter, or None if it passes."""
        if record.wrs not in self.systems:
            return f"wrs {record.wrs} not selected"
        if record.data_type in EXCLUDED_DATA_TYPES:
            return f"data type {record.data_type}"
        if not record.has_all_bands:
            return "incomplete band set"
        if record.rmse_verify is None or record.rmse_verify > self.max_rmse_verify:
            return f"geometric RMSE {record.rmse_verify}"
        if record.cloud_cover is None or record.cloud_cover > self.max_cloud_cover:
            return f"cloud cover {record.cloud_cover}"
        if record.acquired is None:
            return "no acquisition date"
        if not self.year_range[0] <= record.year <= self.year_range[1]:
            return f"year {record.year}"
        if not self.contains_doy(record.doy):
            return f"day of year {record.doy}"
        if record.scene_id in self.exclude_ids:
            return "excluded id"
        if self.aoi is not None:
            if record.footprint is None or not _intersects(record.footprint, self.aoi):
                return "outside area of interest"
        return None


def _intersects(a: Tuple[float, ...], b: Tuple[float, ...]) -> bool:
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]


def filter_scenes(
    records: Iterable[SceneRecord],
    criteria: Optional[CollectionFilter] = None,
) -> List[SceneRecord]:
    """
    Apply selection criteria and sort by acquisition date.

    Args:
        records: Candidate scene records
        criteria: Selection criteria; defaults if None

    Returns:
        Passing records, oldest first
    """
    criteria = criteria or CollectionFilter()
    selected = []
    rejected = 0
    for record in records:
        reason = criteria.rejection_reason(record)
        if reason is None:
            selected.append(record)
        else:
            rejected += 1
            logger.debug(f"Rejected {record.scene_id}: {reason}")

    selected.sort(key=lambda r: r.acquired)
    logger.info(f"Selected {len(selected)} scenes ({rejected} rejected)")
    return selected
