"""
Per-year median compositing of smoothed index series.

The composite is the per-pixel median over time of each spectral index,
clipped to the region geometry and cast to float32. Median is order
independent, so the composite does not depend on scene order.
"""

from typing import Iterable, Optional

import rioxarray  # noqa: F401 - registers the rio accessor
import xarray as xr
from shapely.geometry import mapping

from shared_utils import get_logger

from .errors import MissingBandError
from .indices import INDEX_NAMES
from .regions import Region

logger = get_logger('compositing')

COMPOSITE_DTYPE = 'float32'


def median_composite(series: xr.Dataset, index_names: Iterable[str]) -> xr.Dataset:
    """
    Reduce a series to its per-pixel temporal median for the given indices.

    Args:
        series: Smoothed dataset with a 'time' dimension
        index_names: Index bands to keep

    Returns:
        Dataset without the time dimension, one variable per index
    """
    names = list(index_names)
    missing = [name for name in names if name not in series.data_vars]
    if missing:
        raise MissingBandError(f"Series lacks index bands {missing}; run add_indices first")

    selected = series[names]
    if selected.chunks:
        # Median needs the whole time axis in one chunk
        selected = selected.chunk({'time': -1})

    return selected.median(dim='time', skipna=True, keep_attrs=True)


def clip_to_region(raster: xr.Dataset, region: Region) -> xr.Dataset:
    """
    Set pixels outside the region geometry to NaN.

    The raster keeps its own grid; the region geometry is reprojected to it.

    Args:
        raster: Dataset with spatial dims and a CRS written by rioxarray
        region: Region to clip to

    Returns:
        Clipped dataset cropped to the region bounds
    """
    crs = raster.rio.crs
    geometry = region.geometry_in(crs.to_string()) if crs is not None else region.geometry
    return raster.rio.clip([mapping(geometry)], crs=crs, all_touched=False, drop=True)


def build_composite(
    series: xr.Dataset,
    region: Region,
    year: int,
    index_names: Optional[Iterable[str]] = None
) -> xr.Dataset:
    """
    Create the yearly index composite for one region.

    Args:
        series: Smoothed, index-augmented time series
        region: Region the composite is clipped to
        year: Processing year, stored as a 'year' attribute
        index_names: Indices to composite, all eight if None

    Returns:
        float32 dataset with one variable per index

    Examples:
        >>> composite = build_composite(smoothed, region, 2021)
        >>> composite.attrs['year']
        2021
    """
    names = list(index_names) if index_names is not None else list(INDEX_NAMES)
    logger.debug(f"Compositing {names} for {region.name} {year} over {series.sizes.get('time', 0)} scenes")

    composite = median_composite(series, names)
    composite = clip_to_region(composite, region).astype(COMPOSITE_DTYPE)

    composite.attrs['year'] = year
    composite.attrs['region'] = region.name
    return composite
