"""
Export planning and fire-and-forget submission.

Planning is pure: a composite becomes one ExportUnit per index, labelled
``<prefix><INDEX>_<region_name_with_underscores>_<year>``. Submission is a
one-way send of each unit's write task to the dask cluster. The pipeline's
contract ends at "submitted": failures raised while a unit materializes (for
example an extent above the pixel ceiling) happen on the cluster and are not
reported back, so a successful submission does not guarantee a written file.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import dask
import numpy as np
import rioxarray  # noqa: F401 - registers the rio accessor
import xarray as xr
from dask.distributed import fire_and_forget
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from shared_utils import ensure_directory, get_logger

from .config import ExportConfig
from .errors import ExportNameCollisionError, MissingBandError
from .indices import INDEX_NAMES
from .regions import Region, sanitize_name

logger = get_logger('export')


def export_label(index_name: str, region_name: str, year: int, prefix: str = 'Indices_') -> str:
    """
    Output label for one (region, year, index) export.

    Examples:
        >>> export_label('NDVI', 'New York', 2021)
        'Indices_NDVI_New_York_2021'
    """
    return f"{prefix}{index_name}_{sanitize_name(region_name)}_{year}"


@dataclass(frozen=True)
class ExportDestination:
    """Everything the execution engine needs besides the raster itself."""
    label: str
    folder: str
    output_root: Path
    resolution: float
    max_pixels: float
    crs: str
    region: BaseGeometry
    region_crs: Optional[str]

    @property
    def path(self) -> Path:
        return Path(self.output_root) / self.folder / f"{self.label}.tif"


@dataclass(frozen=True)
class ExportUnit:
    """
    The atomic (region, year, index) granule submitted for materialization.

    Attributes:
        region_name: Region the raster covers
        year: Processing year
        index_name: Spectral index held by the raster
        raster: Lazy single-band composite
        destination: Label, folder, resolution, ceiling, CRS and extent
    """
    region_name: str
    year: int
    index_name: str
    raster: xr.DataArray
    destination: ExportDestination

    @property
    def label(self) -> str:
        return self.destination.label


def plan_exports(
    composite: xr.Dataset,
    region: Region,
    year: int,
    export_config: ExportConfig,
    index_names: Optional[Sequence[str]] = None
) -> List[ExportUnit]:
    """
    Enumerate one export unit per index for a region-year composite.

    Args:
        composite: Yearly composite with one variable per index
        region: Region the composite was clipped to
        year: Processing year
        export_config: Export naming and materialization settings
        index_names: Indices to export, all eight if None

    Returns:
        Export units in index order

    Raises:
        MissingBandError: If the composite lacks a requested index

    Examples:
        >>> units = plan_exports(composite, region, 2021, config.export)
        >>> units[0].label
        'Indices_NDVI_New_York_2021'
    """
    names = list(index_names) if index_names is not None else list(INDEX_NAMES)

    units = []
    for index_name in names:
        if index_name not in composite.data_vars:
            raise MissingBandError(f"Composite for {region.name} {year} has no '{index_name}' band")

        destination = ExportDestination(
            label=export_label(index_name, region.name, year, export_config.name_prefix),
            folder=export_config.folder,
            output_root=Path(export_config.output_root),
            resolution=export_config.resolution,
            max_pixels=export_config.max_pixels,
            crs=export_config.crs,
            region=region.geometry,
            region_crs=region.crs
        )
        units.append(ExportUnit(
            region_name=region.name,
            year=year,
            index_name=index_name,
            raster=composite[index_name].rename(index_name),
            destination=destination
        ))
    return units


def check_unique_exports(units: Iterable[ExportUnit]) -> None:
    """
    Verify no two export units share an output label.

    Raises:
        ExportNameCollisionError: On the first duplicate label
    """
    seen = set()
    for unit in units:
        if unit.label in seen:
            raise ExportNameCollisionError(f"Duplicate export label '{unit.label}'")
        seen.add(unit.label)


def write_export_unit(raster: xr.DataArray, destination: ExportDestination) -> str:
    """
    Materialize one export unit as a float32 GeoTIFF.

    Runs on the execution cluster with the raster already computed.
    Reprojects to the export CRS and resolution, restricts the result to the
    region, enforces the pixel ceiling and writes the file.

    Args:
        raster: Computed single-band composite
        destination: Export destination

    Returns:
        str: Path of the written file

    Raises:
        ValueError: If the reprojected raster exceeds the pixel ceiling
    """
    raster = raster.rio.write_nodata(np.nan)
    reprojected = raster.rio.reproject(destination.crs, resolution=destination.resolution)

    n_pixels = reprojected.rio.width * reprojected.rio.height
    if n_pixels > destination.max_pixels:
        raise ValueError(
            f"{destination.label}: {n_pixels} pixels exceeds the ceiling of {destination.max_pixels:.0f}"
        )

    reprojected = reprojected.rio.clip([mapping(destination.region)], crs=destination.region_crs, drop=True)

    ensure_directory(destination.path.parent)
    reprojected.astype('float32').rio.to_raster(
        destination.path,
        compress='lzw',
        tiled=True
    )
    logger.info(f"Wrote {destination.path}")
    return str(destination.path)


class ExportSubmitter:
    """
    One-way sender of export units to a dask.distributed cluster.

    Each unit becomes a delayed write task that is computed on the cluster and
    released with fire_and_forget. No result or error is returned to the
    caller; job status must be followed on the cluster itself.
    """

    def __init__(self, client):
        """
        Initialize the submitter.

        Args:
            client: dask.distributed Client connected to the execution cluster
        """
        self.client = client
        self.submitted: List[str] = []

    def submit(self, unit: ExportUnit) -> str:
        """
        Send one export unit to the cluster without waiting for it.

        Args:
            unit: Export unit to materialize

        Returns:
            str: The submitted label
        """
        task = dask.delayed(write_export_unit, pure=False)(unit.raster, unit.destination)
        future = self.client.compute(task)
        fire_and_forget(future)

        self.submitted.append(unit.label)
        logger.info(f"Submitted export {unit.label} -> {unit.destination.folder}")
        return unit.label

    def submit_all(self, units: Sequence[ExportUnit]) -> List[str]:
        """
        Submit every unit after checking labels are unique.

        Units have no ordering or dependency between them.

        Args:
            units: Planned export units

        Returns:
            List of submitted labels

        Raises:
            ExportNameCollisionError: If two units share a label
        """
        check_unique_exports(units)
        return [self.submit(unit) for unit in units]
