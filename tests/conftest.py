# tests/conftest.py

import numpy as np
import pandas as pd
import pytest
import rioxarray  # noqa: F401
import xarray as xr
import geopandas as gpd
from shapely.geometry import Polygon, box

from spectral_indices.core.config import CatalogConfig, ExportConfig, ProcessingConfig
from spectral_indices.core.regions import Region, SplitAxis, SplitPolicy

CRS = "EPSG:32618"

# 3x3 grid of 10 m pixels; centres at 500005..500025 / 4500005..4500025
X_COORDS = np.array([500005.0, 500015.0, 500025.0])
Y_COORDS = np.array([4500025.0, 4500015.0, 4500005.0])
GRID_BOUNDS = (500000.0, 4500000.0, 500030.0, 4500030.0)


def make_series(times, values, qa=None):
    """
    Build a synthetic (time, y, x) scene series on the 3x3 test grid.

    Args:
        times: Acquisition dates
        values: Mapping band -> list of per-scene constants or (time, 3, 3) arrays
        qa: Optional list of per-scene (3, 3) quality arrays, all clear if None

    Returns:
        xr.Dataset with the reflectance bands, a 'qa' band and a written CRS
    """
    times = pd.to_datetime(times)
    shape = (len(times), len(Y_COORDS), len(X_COORDS))

    data_vars = {}
    for band, band_values in values.items():
        array = np.asarray(band_values, dtype="float64")
        if array.ndim == 1:
            array = np.broadcast_to(array[:, None, None], shape).copy()
        data_vars[band] = (("time", "y", "x"), array)

    if qa is None:
        qa_array = np.zeros(shape, dtype="uint16")
    else:
        qa_array = np.asarray(qa, dtype="uint16")
    data_vars["qa"] = (("time", "y", "x"), qa_array)

    series = xr.Dataset(data_vars, coords={"time": times, "y": Y_COORDS, "x": X_COORDS})
    return series.rio.write_crs(CRS)


def uniform_bands(n_scenes, **overrides):
    """Per-scene constant reflectances for every band, with optional overrides."""
    defaults = {"blue": 0.05, "green": 0.08, "red": 0.06, "nir": 0.40, "swir1": 0.20, "swir2": 0.10}
    defaults.update(overrides)
    return {
        band: value if isinstance(value, (list, tuple, np.ndarray)) else [value] * n_scenes
        for band, value in defaults.items()
    }


@pytest.fixture
def grid_polygon():
    """Polygon covering the full 3x3 test grid."""
    return box(*GRID_BOUNDS)


@pytest.fixture
def grid_region(grid_polygon):
    """Unsplit region covering the test grid."""
    return Region(name="Rhode Island", geometry=grid_polygon, parent_state="Rhode Island", crs=CRS)


@pytest.fixture
def l_shaped_polygon():
    """Irregular polygon whose bounding box is 4 x 2 units."""
    return Polygon([(0, 0), (4, 0), (4, 1), (1, 1), (1, 2), (0, 2)])


@pytest.fixture
def new_york_region(l_shaped_polygon):
    """Region flagged for a longitude split."""
    return Region(
        name="New York",
        geometry=l_shaped_polygon,
        parent_state="New York",
        policy=SplitPolicy(needs_split=True, axis=SplitAxis.LONGITUDE),
        crs=None
    )


@pytest.fixture
def three_scene_series():
    """Three clear scenes from May and June 2021."""
    times = ["2021-05-01", "2021-05-08", "2021-06-15"]
    return make_series(times, uniform_bands(3, nir=[0.40, 0.50, 0.30], red=[0.10, 0.05, 0.10]))


@pytest.fixture
def export_config(tmp_path):
    """Export settings writing under a temporary directory."""
    return ExportConfig(output_root=tmp_path / "exports")


@pytest.fixture
def boundaries_file(tmp_path, grid_polygon):
    """GeoPackage boundary catalog with three named regions in the test CRS."""
    east = box(500030.0, 4500000.0, 500060.0, 4500030.0)
    # Two rows for the same name are dissolved on load
    north_a = box(500000.0, 4500030.0, 500030.0, 4500060.0)
    north_b = box(500030.0, 4500030.0, 500060.0, 4500060.0)

    boundaries = gpd.GeoDataFrame(
        {
            "NAME": ["Rhode Island", "New York", "Maine", "Maine"],
            "geometry": [grid_polygon, east, north_a, north_b]
        },
        crs=CRS
    )
    path = tmp_path / "states.gpkg"
    boundaries.to_file(path, driver="GPKG")
    return path


@pytest.fixture
def catalog_config(boundaries_file, export_config):
    """Processing configuration pointing at the temporary boundary catalog."""
    return ProcessingConfig(
        regions=("Rhode Island", "New York", "Maine"),
        years=(2021, 2021),
        catalog=CatalogConfig(boundaries_file=boundaries_file, name_column="NAME"),
        export=export_config
    )


@pytest.fixture
def series_factory():
    """Factory building synthetic scene series on the test grid."""
    return make_series


@pytest.fixture
def bands_factory():
    """Factory for per-scene constant band values."""
    return uniform_bands
