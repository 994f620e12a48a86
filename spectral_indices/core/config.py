"""
Immutable processing configuration.

The YAML mapping loaded through shared_utils is converted once into a frozen
ProcessingConfig that is passed explicitly into every pipeline entry point.
Nothing downstream reads module-level settings or mutates the record.
"""

import calendar
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from shared_utils import load_config, validate_config

from .errors import ConfigurationError
from .indices import INDEX_NAMES
from .regions import SplitAxis

DEFAULT_REGIONS = (
    'Connecticut', 'Maine', 'Massachusetts', 'New Hampshire',
    'Rhode Island', 'Vermont', 'New York'
)
DEFAULT_SPLIT_REGIONS = {'New York': 'longitude', 'Maine': 'latitude'}
REQUIRED_SECTIONS = ['processing']

DEFAULT_ARCHIVE_BANDS = {
    'blue': 'blue',
    'green': 'green',
    'red': 'red',
    'nir': 'nir',
    'swir16': 'swir1',
    'swir22': 'swir2',
    'qa60': 'qa'
}


def _frozen(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class CatalogConfig:
    """Where region boundaries come from."""
    boundaries_file: Path = Path('data/raw/tiger_2018_states.shp')
    name_column: str = 'NAME'


@dataclass(frozen=True)
class ArchiveConfig:
    """STAC archive access and loading parameters."""
    stac_url: str = 'https://earth-search.aws.element84.com/v1'
    collection: str = 'sentinel-2-l1c'
    quality_band: str = 'qa'
    bands: Mapping[str, str] = field(default_factory=lambda: _frozen(DEFAULT_ARCHIVE_BANDS))
    crs: str = 'EPSG:32618'
    resolution: float = 10
    chunk_size: int = 2048
    groupby: str = 'solar_day'


@dataclass(frozen=True)
class ExportConfig:
    """Output naming and materialization constraints."""
    folder: str = 'Northeast_Spectral_Indices'
    output_root: Path = Path('data/exports')
    name_prefix: str = 'Indices_'
    resolution: float = 10
    max_pixels: float = 1e13
    crs: str = 'EPSG:32618'


@dataclass(frozen=True)
class ComputeConfig:
    """Dask LocalCluster sizing."""
    n_workers: int = 4
    threads_per_worker: int = 2
    memory_per_worker: str = '8GB'
    scheduler_address: Optional[str] = None


@dataclass(frozen=True)
class ProcessingConfig:
    """
    Complete, read-only configuration for one pipeline run.

    Attributes:
        regions: Region names to load from the boundary catalog
        split_regions: Region name -> axis along which the region is bisected
        split_tolerance: Boundary snapping tolerance for bisection (geometry units)
        years: Inclusive (start, end) processing years
        months: Inclusive (start, end) seasonal months
        cloud_percentage_ceiling: Scenes must be strictly below this cloud percentage
        smoothing_window_days: Full width of the temporal smoothing window
        indices: Spectral indices to composite and export, in export order
    """
    regions: Tuple[str, ...] = DEFAULT_REGIONS
    split_regions: Mapping[str, SplitAxis] = field(
        default_factory=lambda: _frozen({k: SplitAxis(v) for k, v in DEFAULT_SPLIT_REGIONS.items()})
    )
    split_tolerance: float = 1e-5
    years: Tuple[int, int] = (2016, 2024)
    months: Tuple[int, int] = (5, 10)
    cloud_percentage_ceiling: float = 30
    smoothing_window_days: float = 20
    indices: Tuple[str, ...] = INDEX_NAMES
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    compute: ComputeConfig = field(default_factory=ComputeConfig)
    log_level: str = 'INFO'
    log_file: Optional[Path] = None

    def __post_init__(self):
        self._validate()

    def _validate(self) -> None:
        if not self.regions:
            raise ConfigurationError("At least one region must be configured")

        start_year, end_year = self.years
        if start_year > end_year:
            raise ConfigurationError(f"Invalid year range: {start_year} > {end_year}")

        start_month, end_month = self.months
        if not (1 <= start_month <= end_month <= 12):
            raise ConfigurationError(f"Invalid month range: {start_month}-{end_month}")

        if not (0 < self.cloud_percentage_ceiling <= 100):
            raise ConfigurationError(
                f"cloud_percentage_ceiling must be in (0, 100], got {self.cloud_percentage_ceiling}"
            )

        if self.smoothing_window_days < 0:
            raise ConfigurationError(
                f"smoothing_window_days must be non-negative, got {self.smoothing_window_days}"
            )

        if self.split_tolerance < 0:
            raise ConfigurationError(f"split_tolerance must be non-negative, got {self.split_tolerance}")

        unknown = [name for name in self.indices if name not in INDEX_NAMES]
        if unknown:
            raise ConfigurationError(f"Unknown spectral indices: {unknown}")
        if len(set(self.indices)) != len(self.indices):
            raise ConfigurationError(f"Duplicate spectral indices: {list(self.indices)}")

        if self.archive.quality_band not in self.archive.bands.values():
            raise ConfigurationError(
                f"Quality band '{self.archive.quality_band}' is not produced by the archive band mapping"
            )

        if self.export.resolution <= 0 or self.export.max_pixels <= 0:
            raise ConfigurationError("Export resolution and max_pixels must be positive")

    @property
    def processing_years(self) -> List[int]:
        """Processing years in increasing order."""
        return list(range(self.years[0], self.years[1] + 1))

    def season_window(self, year: int) -> Tuple[date, date]:
        """
        Inclusive acquisition date range for one processing year.

        Args:
            year: Processing year

        Returns:
            (first day of the start month, last day of the end month)
        """
        start_month, end_month = self.months
        last_day = calendar.monthrange(year, end_month)[1]
        return date(year, start_month, 1), date(year, end_month, last_day)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'ProcessingConfig':
        """
        Build the configuration record from a loaded YAML mapping.

        Missing keys fall back to the defaults above.

        Args:
            config: Mapping as returned by shared_utils.load_config

        Returns:
            ProcessingConfig

        Raises:
            ConfigurationError: If a value has the wrong shape or is out of range
        """
        processing = config.get('processing') or {}
        catalog = config.get('catalog') or {}
        archive = config.get('archive') or {}
        export = config.get('export') or {}
        compute = config.get('compute') or {}
        logging_cfg = config.get('logging') or {}

        try:
            split_regions = {
                name: SplitAxis(str(axis).lower())
                for name, axis in (config.get('split_regions', DEFAULT_SPLIT_REGIONS) or {}).items()
            }
            years = tuple(int(y) for y in processing.get('years', (2016, 2024)))
            months = tuple(int(m) for m in processing.get('months', (5, 10)))
            if len(years) != 2 or len(months) != 2:
                raise ValueError("'years' and 'months' must be [start, end] pairs")

            log_file = logging_cfg.get('log_file')

            return cls(
                regions=tuple(config.get('regions', DEFAULT_REGIONS)),
                split_regions=_frozen(split_regions),
                split_tolerance=float(config.get('split_tolerance', 1e-5)),
                years=years,
                months=months,
                cloud_percentage_ceiling=float(processing.get('cloud_percentage_ceiling', 30)),
                smoothing_window_days=float(processing.get('smoothing_window_days', 20)),
                indices=tuple(processing.get('indices', INDEX_NAMES)),
                catalog=CatalogConfig(
                    boundaries_file=Path(catalog.get('boundaries_file', CatalogConfig.boundaries_file)),
                    name_column=catalog.get('name_column', CatalogConfig.name_column)
                ),
                archive=ArchiveConfig(
                    stac_url=archive.get('stac_url', ArchiveConfig.stac_url),
                    collection=archive.get('collection', ArchiveConfig.collection),
                    quality_band=archive.get('quality_band', ArchiveConfig.quality_band),
                    bands=_frozen(archive.get('bands', DEFAULT_ARCHIVE_BANDS)),
                    crs=archive.get('crs', ArchiveConfig.crs),
                    resolution=float(archive.get('resolution', ArchiveConfig.resolution)),
                    chunk_size=int(archive.get('chunk_size', ArchiveConfig.chunk_size)),
                    groupby=archive.get('groupby', ArchiveConfig.groupby)
                ),
                export=ExportConfig(
                    folder=export.get('folder', ExportConfig.folder),
                    output_root=Path(export.get('output_root', ExportConfig.output_root)),
                    name_prefix=export.get('name_prefix', ExportConfig.name_prefix),
                    resolution=float(export.get('resolution', ExportConfig.resolution)),
                    max_pixels=float(export.get('max_pixels', ExportConfig.max_pixels)),
                    crs=export.get('crs', ExportConfig.crs)
                ),
                compute=ComputeConfig(
                    n_workers=int(compute.get('n_workers', ComputeConfig.n_workers)),
                    threads_per_worker=int(compute.get('threads_per_worker', ComputeConfig.threads_per_worker)),
                    memory_per_worker=str(compute.get('memory_per_worker', ComputeConfig.memory_per_worker)),
                    scheduler_address=compute.get('scheduler_address')
                ),
                log_level=str(logging_cfg.get('level', 'INFO')),
                log_file=Path(log_file) if log_file else None
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def with_overrides(
        self,
        regions: Optional[List[str]] = None,
        years: Optional[Tuple[int, int]] = None,
        log_level: Optional[str] = None
    ) -> 'ProcessingConfig':
        """Return a new record with command-line overrides applied."""
        changes: Dict[str, Any] = {}
        if regions:
            changes['regions'] = tuple(regions)
        if years:
            changes['years'] = tuple(int(y) for y in years)
        if log_level:
            changes['log_level'] = log_level
        return replace(self, **changes)


def load_processing_config(config_path: Optional[Union[str, Path]] = None) -> ProcessingConfig:
    """
    Load the YAML configuration and convert it into a ProcessingConfig.

    Args:
        config_path: Explicit configuration path, packaged default if None

    Returns:
        ProcessingConfig
    """
    raw = load_config(config_path, component_name='spectral_indices')
    try:
        validate_config(raw, REQUIRED_SECTIONS)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    return ProcessingConfig.from_dict(raw)
