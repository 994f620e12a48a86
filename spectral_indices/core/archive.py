"""
Scene archive access over a STAC catalog.

Scenes are discovered with pystac-client and loaded lazily with odc-stac as a
dask-backed (time, y, x) dataset. Spatial, temporal and cloud-cover filtering
happen server side; band assets are renamed to the canonical band names used
by the cloud mask and index formulas.
"""

from datetime import date
from typing import Optional

import xarray as xr
from odc.stac import load
from pystac_client import Client
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from shared_utils import get_logger

from .config import ArchiveConfig
from .errors import MissingBandError, NoScenesFoundError

logger = get_logger('archive')


def format_time_range(start: date, end: date) -> str:
    """
    STAC datetime interval covering whole days from start to end inclusive.

    Examples:
        >>> format_time_range(date(2021, 5, 1), date(2021, 10, 31))
        '2021-05-01T00:00:00Z/2021-10-31T23:59:59Z'
    """
    return f"{start.isoformat()}T00:00:00Z/{end.isoformat()}T23:59:59Z"


class SceneArchive:
    """
    Archive collaborator backed by a STAC API.

    Searching blocks on the catalog; loading only builds a lazy dask graph.
    """

    def __init__(self, config: ArchiveConfig, client: Optional[Client] = None):
        """
        Initialize the archive.

        Args:
            config: Archive access configuration
            client: Pre-opened STAC client, opened from config.stac_url if None
        """
        self.config = config
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client.open(self.config.stac_url)
            logger.info(f"Connected to STAC catalog: {self.config.stac_url}")
        return self._client

    def search(self, geometry: BaseGeometry, start: date, end: date, cloud_ceiling: float):
        """
        Search the catalog for scenes intersecting a region.

        Args:
            geometry: Region geometry in EPSG:4326
            start: First acquisition date (inclusive)
            end: Last acquisition date (inclusive)
            cloud_ceiling: Keep scenes with cloud cover strictly below this percentage

        Returns:
            pystac ItemCollection
        """
        search = self.client.search(
            collections=[self.config.collection],
            intersects=mapping(geometry),
            datetime=format_time_range(start, end),
            query=[f'eo:cloud_cover<{cloud_ceiling}']
        )
        items = search.item_collection()
        logger.info(f"Found {len(items)} scenes between {start} and {end} (cloud < {cloud_ceiling}%)")
        return items

    def load_series(self, items, geometry: BaseGeometry) -> xr.Dataset:
        """
        Lazily load items as a time-ordered dataset with canonical band names.

        Args:
            items: STAC items returned by search
            geometry: Region geometry in EPSG:4326 bounding the load

        Returns:
            Dask-backed dataset with dims (time, y, x)

        Raises:
            NoScenesFoundError: If there are no items
            MissingBandError: If an item lacks a configured band asset
        """
        if len(items) == 0:
            raise NoScenesFoundError("No scenes to load for the requested window")

        assets = list(self.config.bands)
        for item in items:
            missing = [asset for asset in assets if asset not in item.assets]
            if missing:
                raise MissingBandError(f"Scene {item.id} lacks band assets {missing}")

        # Bitmask values must not be interpolated
        quality_assets = [asset for asset, band in self.config.bands.items() if band == self.config.quality_band]
        resampling = {'*': 'bilinear', **{asset: 'nearest' for asset in quality_assets}}

        dataset = load(
            items,
            bands=assets,
            crs=self.config.crs,
            resolution=self.config.resolution,
            geopolygon=mapping(geometry),
            chunks={'x': self.config.chunk_size, 'y': self.config.chunk_size},
            groupby=self.config.groupby,
            resampling=resampling
        )

        dataset = dataset.rename({asset: band for asset, band in self.config.bands.items() if asset != band})
        return dataset.sortby('time')

    def query(
        self,
        geometry: BaseGeometry,
        start: date,
        end: date,
        cloud_ceiling: float
    ) -> xr.Dataset:
        """
        Search and load the raw scene series for a region and window.

        Args:
            geometry: Region geometry in EPSG:4326
            start: First acquisition date (inclusive)
            end: Last acquisition date (inclusive)
            cloud_ceiling: Cloud percentage ceiling

        Returns:
            Raw time series dataset
        """
        items = self.search(geometry, start, end, cloud_ceiling)
        if len(items) == 0:
            raise NoScenesFoundError(f"No scenes between {start} and {end} with cloud cover < {cloud_ceiling}%")

        series = self.load_series(items, geometry)
        logger.debug(f"Loaded series with {series.sizes['time']} time steps, "
                     f"{series.sizes['y']}x{series.sizes['x']} pixels")
        return series
