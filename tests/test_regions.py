import geopandas as gpd
import pytest
from shapely.geometry import MultiPolygon, Polygon, box

from spectral_indices.core.errors import (
    ExportNameCollisionError,
    InvalidGeometryError,
    RegionNotFoundError,
)
from spectral_indices.core.regions import (
    Region,
    SplitAxis,
    SplitPolicy,
    SplitRole,
    bisect_region,
    check_unique_labels,
    load_regions,
    partition_error,
    plan_region,
    regions_from_geodataframe,
    sanitize_name,
)


@pytest.fixture
def maine_region(l_shaped_polygon):
    return Region(
        name="Maine",
        geometry=l_shaped_polygon,
        parent_state="Maine",
        policy=SplitPolicy(needs_split=True, axis=SplitAxis.LATITUDE),
        crs=None
    )


def test_sanitize_replaces_every_space():
    assert sanitize_name("New York") == "New_York"
    assert sanitize_name("District of  Columbia") == "District_of__Columbia"
    assert sanitize_name("Vermont") == "Vermont"


def test_unflagged_region_is_returned_unchanged(grid_region):
    planned = plan_region(grid_region, 1e-5)

    assert len(planned) == 1
    region, label = planned[0]
    assert region is grid_region
    assert label == "Rhode_Island"


def test_longitude_split_labels_and_halves(new_york_region):
    """
    The L-shaped polygon (bbox 0..4 x 0..2) splits at x = 2 into areas 3 and 2.
    """
    planned = plan_region(new_york_region, 1e-5)

    assert [label for _, label in planned] == ["New_York_West", "New_York_East"]
    west, east = [region for region, _ in planned]

    assert west.name == "New York West"
    assert west.split_role is SplitRole.WEST
    assert east.split_role is SplitRole.EAST
    assert west.geometry.area == pytest.approx(3.0)
    assert east.geometry.area == pytest.approx(2.0)
    assert west.geometry.bounds[2] == pytest.approx(2.0)
    assert east.geometry.bounds[0] == pytest.approx(2.0)


def test_latitude_split_labels_and_halves(maine_region):
    planned = plan_region(maine_region, 1e-5)

    assert [label for _, label in planned] == ["Maine_South", "Maine_North"]
    south, north = [region for region, _ in planned]
    assert south.geometry.area == pytest.approx(4.0)
    assert north.geometry.area == pytest.approx(1.0)
    assert south.geometry.bounds[3] == pytest.approx(1.0)
    assert north.geometry.bounds[1] == pytest.approx(1.0)


def test_split_is_a_partition(new_york_region):
    west, east = bisect_region(new_york_region, 1e-5)

    overlap, gap = partition_error(new_york_region.geometry, [west.geometry, east.geometry])

    assert overlap == pytest.approx(0.0, abs=1e-9)
    assert gap == pytest.approx(0.0, abs=1e-9)


def test_split_of_irregular_polygon_within_tolerance():
    """
    Off-grid vertices are snapped to the tolerance, so the union of halves
    differs from the parent by at most a thin band along its boundary.
    """
    tolerance = 1e-6
    polygon = Polygon([(0.1234567, 0.0), (3.3333333, 0.7777777), (2.7182818, 2.1415926), (0.0, 1.4142135)])
    region = Region(
        name="Pennsylvania",
        geometry=polygon,
        parent_state="Pennsylvania",
        policy=SplitPolicy(needs_split=True, axis=SplitAxis.LONGITUDE),
        crs=None
    )

    halves = bisect_region(region, tolerance)
    overlap, gap = partition_error(polygon, [half.geometry for half in halves])

    bound = 2 * tolerance * polygon.length
    assert overlap <= bound
    assert gap <= bound


def test_multipolygon_region_splits():
    islands = MultiPolygon([box(0, 0, 1, 1), box(3, 0, 4, 1)])
    region = Region(
        name="Islands",
        geometry=islands,
        parent_state="Islands",
        policy=SplitPolicy(needs_split=True, axis=SplitAxis.LONGITUDE),
        crs=None
    )

    west, east = bisect_region(region)

    assert west.geometry.equals(box(0, 0, 1, 1))
    assert east.geometry.equals(box(3, 0, 4, 1))


def test_part_touching_the_cut_leaves_no_line_behind():
    """The west island ends on the midline, so the east overlay also yields a line."""
    islands = MultiPolygon([box(0, 0, 2, 1), box(3, 0, 4, 1)])
    region = Region(
        name="Islands",
        geometry=islands,
        parent_state="Islands",
        policy=SplitPolicy(needs_split=True, axis=SplitAxis.LONGITUDE),
        crs=None
    )

    west, east = bisect_region(region, 1e-5)

    assert west.geometry.geom_type == "Polygon"
    assert east.geometry.geom_type == "Polygon"
    assert west.geometry.equals(box(0, 0, 2, 1))
    assert east.geometry.equals(box(3, 0, 4, 1))


def test_sub_regions_are_never_split_again(new_york_region):
    west, _ = bisect_region(new_york_region, 1e-5)

    assert west.policy.needs_split is False
    assert west.parent_state == "New York"
    assert plan_region(west, 1e-5) == [(west, "New_York_West")]
    with pytest.raises(ValueError):
        bisect_region(west)


def test_split_policy_needs_an_axis():
    with pytest.raises(ValueError):
        SplitPolicy(needs_split=True)


def test_duplicate_labels_are_rejected(grid_polygon):
    regions = [
        Region(name="New York", geometry=grid_polygon, parent_state="New York"),
        Region(name="New_York", geometry=grid_polygon, parent_state="New_York"),
    ]

    with pytest.raises(ExportNameCollisionError):
        check_unique_labels(regions)


def test_regions_from_geodataframe_attaches_policies(grid_polygon):
    boundaries = gpd.GeoDataFrame(
        {"NAME": ["New York", "Vermont"], "geometry": [grid_polygon, box(0, 0, 1, 1)]},
        crs="EPSG:4326"
    )

    regions = regions_from_geodataframe(
        boundaries, ["Vermont", "New York"], "NAME", {"New York": SplitAxis.LONGITUDE}
    )

    assert [r.name for r in regions] == ["Vermont", "New York"]
    assert regions[0].policy == SplitPolicy()
    assert regions[1].policy == SplitPolicy(needs_split=True, axis=SplitAxis.LONGITUDE)
    assert regions[1].crs == "EPSG:4326"


def test_unknown_region_raises(grid_polygon):
    boundaries = gpd.GeoDataFrame({"NAME": ["Vermont"], "geometry": [grid_polygon]}, crs="EPSG:4326")

    with pytest.raises(RegionNotFoundError):
        regions_from_geodataframe(boundaries, ["Atlantis"], "NAME")
    with pytest.raises(RegionNotFoundError):
        regions_from_geodataframe(boundaries, ["Vermont"], "STATE_NAME")


def test_invalid_geometry_raises():
    bowtie = Polygon([(0, 0), (10, 10), (0, 10), (10, 0)])
    boundaries = gpd.GeoDataFrame({"NAME": ["Bowtie"], "geometry": [bowtie]}, crs="EPSG:4326")

    with pytest.raises(InvalidGeometryError):
        regions_from_geodataframe(boundaries, ["Bowtie"], "NAME")


def test_load_regions_from_file(catalog_config):
    regions = load_regions(catalog_config)

    by_name = {region.name: region for region in regions}
    assert list(by_name) == ["Rhode Island", "New York", "Maine"]
    assert by_name["Rhode Island"].policy.needs_split is False
    assert by_name["New York"].policy.axis is SplitAxis.LONGITUDE
    assert by_name["Maine"].policy.axis is SplitAxis.LATITUDE
    # Two Maine rows are dissolved into one 60 x 30 m rectangle
    assert by_name["Maine"].geometry.area == pytest.approx(1800.0)
    assert by_name["Maine"].crs == "EPSG:32618"


def test_load_regions_strict_and_lenient(catalog_config):
    config = catalog_config.with_overrides(regions=["Rhode Island", "Atlantis", "Maine"])

    with pytest.raises(RegionNotFoundError):
        load_regions(config, strict=True)

    regions = load_regions(config, strict=False)
    assert [region.name for region in regions] == ["Rhode Island", "Maine"]


def test_geometry_in_reprojects(grid_region):
    geographic = grid_region.geometry_in("EPSG:4326")

    lon, lat = geographic.centroid.x, geographic.centroid.y
    # Easting 500000 in UTM zone 18N lies on the -75 degree central meridian
    assert lon == pytest.approx(-75.0, abs=1e-3)
    assert 40.0 < lat < 41.0
    assert grid_region.geometry_in("EPSG:32618") is grid_region.geometry
