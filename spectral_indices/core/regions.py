"""
Processing regions, boundary catalog loading and region splitting.

Regions are loaded once from a boundary file and carry a declarative split
policy resolved at load time. Oversized regions are bisected exactly once
along the midpoint of their bounding box so each processing and export unit
stays within platform size limits. Sub-regions are final: they carry a
no-split policy and are never split again.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple

import geopandas as gpd
import shapely
from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from shared_utils import get_logger

from .errors import ExportNameCollisionError, InvalidGeometryError, RegionNotFoundError

if TYPE_CHECKING:
    from .config import ProcessingConfig

logger = get_logger('regions')


class SplitAxis(Enum):
    """Axis whose midpoint bisects a region's bounding box."""
    LONGITUDE = "longitude"  # west / east halves
    LATITUDE = "latitude"    # south / north halves


class SplitRole(Enum):
    """Position of a region relative to the parent it was split from."""
    NONE = "none"
    WEST = "west"
    EAST = "east"
    SOUTH = "south"
    NORTH = "north"


@dataclass(frozen=True)
class SplitPolicy:
    """Whether a region must be decomposed and along which axis."""
    needs_split: bool = False
    axis: Optional[SplitAxis] = None

    def __post_init__(self):
        if self.needs_split and self.axis is None:
            raise ValueError("A split policy that needs a split must name an axis")


@dataclass(frozen=True)
class Region:
    """
    A named processing region.

    Attributes:
        name: Human-readable region name (may contain spaces)
        geometry: Polygon or MultiPolygon in the catalog CRS
        parent_state: Name of the catalog region this one derives from
        split_role: Which half of the parent this region is, NONE if unsplit
        policy: Split policy resolved at catalog-load time
        crs: CRS of the geometry
    """
    name: str
    geometry: BaseGeometry
    parent_state: str
    split_role: SplitRole = SplitRole.NONE
    policy: SplitPolicy = field(default_factory=SplitPolicy)
    crs: Optional[str] = 'EPSG:4326'

    @property
    def label(self) -> str:
        return sanitize_name(self.name)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(xmin, ymin, xmax, ymax) of the region geometry."""
        return self.geometry.bounds

    def geometry_in(self, crs: str) -> BaseGeometry:
        """Region geometry reprojected to another CRS."""
        if self.crs is None or crs == self.crs:
            return self.geometry
        return gpd.GeoSeries([self.geometry], crs=self.crs).to_crs(crs).iloc[0]


def sanitize_name(name: str) -> str:
    """
    Make a region name safe for output labels by replacing spaces with underscores.

    Examples:
        >>> sanitize_name("New York")
        'New_York'
    """
    return name.replace(' ', '_')


def _validate_geometry(name: str, geometry: BaseGeometry) -> None:
    if geometry is None or geometry.is_empty:
        raise InvalidGeometryError(f"Region '{name}' has an empty geometry")
    if geometry.geom_type not in ('Polygon', 'MultiPolygon'):
        raise InvalidGeometryError(f"Region '{name}' is a {geometry.geom_type}, expected a polygon")
    if not geometry.is_valid:
        raise InvalidGeometryError(f"Region '{name}' geometry is invalid: {shapely.is_valid_reason(geometry)}")


def _split_halves(region: Region) -> List[Tuple[SplitRole, BaseGeometry]]:
    xmin, ymin, xmax, ymax = region.bounds

    if region.policy.axis is SplitAxis.LONGITUDE:
        mid_lon = (xmin + xmax) / 2
        return [
            (SplitRole.WEST, box(xmin, ymin, mid_lon, ymax)),
            (SplitRole.EAST, box(mid_lon, ymin, xmax, ymax)),
        ]

    mid_lat = (ymin + ymax) / 2
    return [
        (SplitRole.SOUTH, box(xmin, ymin, xmax, mid_lat)),
        (SplitRole.NORTH, box(xmin, mid_lat, xmax, ymax)),
    ]


def _polygonal_parts(geometry: BaseGeometry, grid_size: Optional[float] = None) -> Optional[BaseGeometry]:
    """Drop the lines and points an overlay leaves where the parent only touches the cut."""
    polygons = [part for part in shapely.get_parts(geometry) if part.geom_type in ('Polygon', 'MultiPolygon')]
    if not polygons:
        return None
    if len(polygons) == 1:
        return polygons[0]
    return shapely.union_all(polygons, grid_size=grid_size)


def bisect_region(region: Region, tolerance: float = 0.0) -> List[Region]:
    """
    Split a region into two disjoint halves along its configured axis.

    Each half is the intersection of the region geometry with one half of its
    bounding box. With a positive tolerance the intersection is snapped to a
    grid of that size, so sibling boundaries agree within the tolerance.

    Args:
        region: Region whose policy requests a split
        tolerance: Snapping grid size in geometry units, 0 for full precision

    Returns:
        [west, east] or [south, north] sub-regions

    Raises:
        InvalidGeometryError: If a half has no area or is not a valid polygon
    """
    if region.split_role is not SplitRole.NONE:
        raise ValueError(f"Region '{region.name}' is already a split product and cannot be split again")

    grid_size = tolerance if tolerance > 0 else None
    children = []
    for role, half in _split_halves(region):
        name = f"{region.name} {role.value.title()}"
        geometry = _polygonal_parts(shapely.intersection(region.geometry, half, grid_size=grid_size), grid_size)
        if geometry is None or geometry.is_empty:
            raise InvalidGeometryError(f"Splitting '{region.name}' produced an empty {role.value} half")
        _validate_geometry(name, geometry)

        children.append(Region(
            name=name,
            geometry=geometry,
            parent_state=region.parent_state,
            split_role=role,
            crs=region.crs
        ))

    if logger.isEnabledFor(logging.DEBUG):
        overlap, gap = partition_error(region.geometry, [child.geometry for child in children])
        logger.debug(f"Split '{region.name}' into {[c.name for c in children]} (overlap={overlap:.3g}, gap={gap:.3g})")
    return children


def plan_region(region: Region, tolerance: float = 0.0) -> List[Tuple[Region, str]]:
    """
    Decide the processing units for one catalog region.

    Args:
        region: Region loaded from the catalog
        tolerance: Snapping tolerance passed to bisect_region

    Returns:
        [(region, label)] unchanged when no split is needed, otherwise one
        entry per half

    Examples:
        >>> [label for _, label in plan_region(new_york, 1e-5)]
        ['New_York_West', 'New_York_East']
    """
    if not region.policy.needs_split:
        return [(region, region.label)]

    children = bisect_region(region, tolerance)
    logger.info(f"Region '{region.name}' split along {region.policy.axis.value} into "
                f"{', '.join(child.label for child in children)}")
    return [(child, child.label) for child in children]


def partition_error(parent: BaseGeometry, parts: Sequence[BaseGeometry]) -> Tuple[float, float]:
    """
    Measure how far a set of parts is from an exact partition of the parent.

    Args:
        parent: Original geometry
        parts: Geometries that should tile the parent

    Returns:
        (overlap_area, gap_area): total pairwise overlap between parts and the
        symmetric difference between their union and the parent
    """
    overlap = 0.0
    for i, first in enumerate(parts):
        for second in parts[i + 1:]:
            overlap += first.intersection(second).area

    union = shapely.union_all(list(parts))
    gap = parent.symmetric_difference(union).area
    return overlap, gap


def check_unique_labels(regions: Iterable[Region]) -> None:
    """
    Verify that no two regions collapse to the same sanitized label.

    Raises:
        ExportNameCollisionError: On the first duplicate label
    """
    seen = {}
    for region in regions:
        label = region.label
        if label in seen:
            raise ExportNameCollisionError(
                f"Regions '{seen[label]}' and '{region.name}' both sanitize to '{label}'"
            )
        seen[label] = region.name


def regions_from_geodataframe(
    boundaries: gpd.GeoDataFrame,
    names: Sequence[str],
    name_column: str,
    split_regions=None
) -> List[Region]:
    """
    Build regions from a boundary GeoDataFrame.

    Rows sharing a name are dissolved into one geometry. The split policy of
    each region is resolved here, once.

    Args:
        boundaries: Boundary polygons with a name column
        names: Region names to select, in processing order
        name_column: Column holding region names
        split_regions: Mapping region name -> SplitAxis for oversized regions

    Returns:
        List of regions in the order of `names`

    Raises:
        RegionNotFoundError: If a name is absent from the boundaries
        InvalidGeometryError: If a selected geometry is empty or invalid
    """
    split_regions = split_regions or {}

    if name_column not in boundaries.columns:
        raise RegionNotFoundError(f"Boundary catalog has no '{name_column}' column")

    crs = boundaries.crs.to_string() if boundaries.crs is not None else None

    regions = []
    for name in names:
        rows = boundaries.loc[boundaries[name_column] == name]
        if rows.empty:
            raise RegionNotFoundError(f"Region '{name}' not found in boundary catalog")

        # Parts are validated before dissolving
        for part in rows.geometry:
            _validate_geometry(name, part)
        geometry = rows.geometry.iloc[0] if len(rows) == 1 else rows.geometry.union_all()
        _validate_geometry(name, geometry)

        axis = split_regions.get(name)
        policy = SplitPolicy(needs_split=True, axis=axis) if axis is not None else SplitPolicy()

        regions.append(Region(name=name, geometry=geometry, parent_state=name, policy=policy, crs=crs))

    check_unique_labels(regions)
    return regions


def load_regions(config: 'ProcessingConfig', strict: bool = True) -> List[Region]:
    """
    Load configured regions from the boundary catalog file.

    Args:
        config: Processing configuration
        strict: Raise on the first unknown or invalid region. When False the
            failing region is logged and skipped so its siblings still load.

    Returns:
        Regions with their split policies attached

    Raises:
        RegionNotFoundError: Unknown region name (strict mode)
        InvalidGeometryError: Empty or invalid geometry (strict mode)
        ExportNameCollisionError: Two regions share a sanitized label
    """
    path = config.catalog.boundaries_file
    logger.info(f"Loading region boundaries from {path}")

    boundaries = gpd.read_file(path)

    if strict:
        regions = regions_from_geodataframe(
            boundaries, config.regions, config.catalog.name_column, config.split_regions
        )
    else:
        regions = []
        for name in config.regions:
            try:
                regions.extend(regions_from_geodataframe(
                    boundaries, [name], config.catalog.name_column, config.split_regions
                ))
            except (RegionNotFoundError, InvalidGeometryError) as e:
                logger.error(f"Skipping region '{name}': {e}")
        check_unique_labels(regions)

    logger.info(f"Loaded {len(regions)} regions, {sum(r.policy.needs_split for r in regions)} flagged for splitting")
    return regions
