"""
Spectral Indices Export Pipeline

Class-based pipeline that derives yearly seasonal composites of eight spectral
indices for a set of regions and schedules one GeoTIFF export per
region, year and index on a dask cluster.

Per region-year the raster work is a lazy graph:
- archive query (STAC search, lazy odc-stac load)
- quality-bitmask cloud masking
- spectral index computation
- centred moving-window temporal smoothing
- median compositing, clipping and float32 cast

Planning every export unit is separated from submitting them, so the full set
of outputs can be inspected (dry run) before anything is sent to the cluster.
"""

import time
from itertools import groupby
from typing import Any, Dict, List, Optional, Tuple

import xarray as xr
from odc.stac import configure_rio

from shared_utils import get_logger, log_pipeline_end, log_pipeline_start, log_section

from .archive import SceneArchive
from .cloud_mask import mask_clouds
from .compositing import build_composite
from .config import ProcessingConfig
from .engine import setup_cluster
from .errors import InputError, NoScenesFoundError
from .export import ExportSubmitter, ExportUnit, check_unique_exports, plan_exports
from .indices import add_indices
from .regions import Region, load_regions, plan_region
from .smoothing import rolling_mean

ARCHIVE_GEOMETRY_CRS = 'EPSG:4326'


def composite_series(
    series: xr.Dataset,
    region: Region,
    year: int,
    config: ProcessingConfig
) -> xr.Dataset:
    """
    Turn a raw scene series into the yearly index composite.

    Args:
        series: Raw (time, y, x) scene series with the quality band
        region: Region to clip the composite to
        year: Processing year
        config: Processing configuration

    Returns:
        float32 composite with one variable per configured index

    Examples:
        >>> composite = composite_series(raw_series, region, 2021, config)
    """
    masked = mask_clouds(series, config.archive.quality_band)
    augmented = add_indices(masked, config.indices)
    smoothed = rolling_mean(augmented, config.smoothing_window_days)
    return build_composite(smoothed, region, year, config.indices)


class SpectralIndicesPipeline:
    """
    Pipeline for multi-year spectral index composites and their exports.

    Regions are independent of each other: an input error aborts only the
    region that raised it. A region-year without scenes is skipped.
    """

    def __init__(
        self,
        config: ProcessingConfig,
        archive: Optional[SceneArchive] = None,
        regions: Optional[List[Region]] = None
    ):
        """
        Initialize the pipeline.

        Args:
            config: Immutable processing configuration
            archive: Scene archive, a STAC-backed one is created if None
            regions: Pre-loaded catalog regions, read from the boundary file if None
        """
        self.config = config
        self.logger = get_logger('pipeline')

        self.archive = archive or SceneArchive(config.archive)
        self.regions = regions

        # Pipeline state
        self.start_time = None
        self.planned_count = 0
        self.submitted_count = 0
        self.skipped_count = 0
        self.error_count = 0

        self.logger.info("SpectralIndicesPipeline initialized")

    def load_catalog(self) -> List[Region]:
        """Load catalog regions once, skipping unknown or invalid names."""
        if self.regions is None:
            self.regions = load_regions(self.config, strict=False)
        return self.regions

    def plan_regions(self) -> List[Tuple[Region, str]]:
        """
        All processing regions after splitting oversized ones.

        A catalog region whose split fails is logged, counted as an error and
        left out.

        Returns:
            (region, label) pairs in catalog order, halves of one parent adjacent
        """
        planned = []
        for region in self.load_catalog():
            try:
                planned.extend(plan_region(region, self.config.split_tolerance))
            except InputError as e:
                self.logger.error(f"Region {region.name} aborted: {e}")
                self.error_count += 1
        return planned

    def build_composite(self, region: Region, year: int) -> xr.Dataset:
        """
        Build the lazy composite for one region-year.

        Args:
            region: Processing region
            year: Processing year

        Returns:
            Lazy float32 composite

        Raises:
            NoScenesFoundError: If the archive has no scenes for the window
        """
        start, end = self.config.season_window(year)
        series = self.archive.query(
            region.geometry_in(ARCHIVE_GEOMETRY_CRS),
            start,
            end,
            self.config.cloud_percentage_ceiling
        )
        self.logger.info(f"{region.name} {year}: {series.sizes['time']} scenes between {start} and {end}")
        return composite_series(series, region, year, self.config)

    def plan_region(self, region: Region) -> List[ExportUnit]:
        """
        Plan every export unit for one processing region, years ascending.

        Args:
            region: Processing region (already split if needed)

        Returns:
            Export units for all years with scenes
        """
        units = []
        for year in self.config.processing_years:
            try:
                composite = self.build_composite(region, year)
            except NoScenesFoundError as e:
                self.logger.warning(f"Skipping {region.name} {year}: {e}")
                self.skipped_count += 1
                continue

            units.extend(plan_exports(composite, region, year, self.config.export, self.config.indices))
        return units

    def plan(self) -> List[ExportUnit]:
        """
        Plan export units for every configured region.

        An input error in any half discards every unit of its catalog region.

        Returns:
            All export units, with globally unique labels
        """
        units = []
        for parent, planned in groupby(self.plan_regions(), key=lambda pair: pair[0].parent_state):
            log_section(self.logger, parent)
            region_units = []
            try:
                for sub_region, label in planned:
                    sub_units = self.plan_region(sub_region)
                    self.logger.info(f"Planned {len(sub_units)} exports for {label}")
                    region_units.extend(sub_units)
            except InputError as e:
                self.logger.error(f"Region {parent} aborted: {e}")
                self.error_count += 1
                continue
            units.extend(region_units)

        check_unique_exports(units)
        self.planned_count = len(units)
        return units

    def submit(self, units: List[ExportUnit]) -> List[str]:
        """
        Send planned units to the execution cluster.

        The returned labels mean "submitted", not "written".
        """
        with setup_cluster(self.config.compute) as client:
            configure_rio(cloud_defaults=True, client=client)
            submitted = ExportSubmitter(client).submit_all(units)
        self.submitted_count = len(submitted)
        return submitted

    def run(self, dry_run: bool = False) -> Dict[str, Any]:
        """
        Execute the complete pipeline.

        Args:
            dry_run: Plan and log export labels without submitting them

        Returns:
            dict: Processing summary with statistics

        Examples:
            >>> pipeline = SpectralIndicesPipeline(config)
            >>> summary = pipeline.run(dry_run=True)
            >>> print(summary['planned_count'])
        """
        self.start_time = time.time()
        log_pipeline_start(self.logger, 'spectral indices export', {
            'regions': list(self.config.regions),
            'years': self.config.processing_years,
            'months': list(self.config.months),
            'indices': list(self.config.indices),
            'smoothing_window_days': self.config.smoothing_window_days
        })

        success = False
        try:
            units = self.plan()

            if dry_run:
                for unit in units:
                    self.logger.info(f"[dry run] {unit.label}")
            else:
                self.submit(units)

            success = self.error_count == 0
            return self.get_processing_summary()
        finally:
            log_pipeline_end(self.logger, 'spectral indices export', success, time.time() - self.start_time)

    def get_processing_summary(self) -> Dict[str, Any]:
        """
        Get processing summary and statistics.

        Returns:
            dict: Counts and timing
        """
        end_time = time.time()
        duration = end_time - (self.start_time or end_time)

        return {
            'planned_count': self.planned_count,
            'submitted_count': self.submitted_count,
            'skipped_count': self.skipped_count,
            'error_count': self.error_count,
            'duration_seconds': duration,
            'duration_minutes': duration / 60,
            'config_summary': {
                'regions': list(self.config.regions),
                'years': list(self.config.years),
                'indices': list(self.config.indices),
                'export_folder': self.config.export.folder
            }
        }
