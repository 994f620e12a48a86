"""
Spectral index definitions and the index calculator.

Each index is a pure band-algebra formula over the canonical reflectance bands
(blue, green, red, nir, swir1, swir2). Division by zero resolves to NaN at the
affected pixel instead of raising, and the raw bands of the input dataset are
never modified: augmentation returns a new dataset with the derived bands
appended.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

import xarray as xr

from shared_utils import get_logger

from .errors import MissingBandError

logger = get_logger('indices')

INDEX_NAMES: Tuple[str, ...] = ('NDVI', 'EVI', 'SAVI', 'NDWI', 'BSI', 'NDBI', 'MNDWI', 'NBR')


def safe_divide(numerator, denominator):
    """
    Divide two rasters, yielding NaN wherever the denominator is zero.

    Args:
        numerator: Dividend raster
        denominator: Divisor raster

    Returns:
        Quotient raster with zero-denominator pixels as no-data
    """
    return numerator / denominator.where(denominator != 0)


def normalized_difference(a, b):
    """(a - b) / (a + b) with zero sums resolved to NaN."""
    return safe_divide(a - b, a + b)


def _evi(bands):
    nir, red, blue = bands['nir'], bands['red'], bands['blue']
    return 2.5 * safe_divide(nir - red, nir + 6 * red - 7.5 * blue + 1)


def _savi(bands):
    nir, red = bands['nir'], bands['red']
    return 1.5 * safe_divide(nir - red, nir + red + 0.5)


def _bsi(bands):
    soil = bands['swir1'] + bands['red']
    vegetation = bands['nir'] + bands['blue']
    return safe_divide(soil - vegetation, soil + vegetation)


@dataclass(frozen=True)
class IndexDefinition:
    """
    A named spectral index and the raw bands its formula reads.

    Attributes:
        name: Index name used for band naming and export labels
        bands: Canonical band names required by the formula
        formula: Pure function mapping a band lookup to one raster
    """
    name: str
    bands: Tuple[str, ...]
    formula: Callable

    def compute(self, scene: xr.Dataset) -> xr.DataArray:
        missing = [band for band in self.bands if band not in scene.data_vars]
        if missing:
            raise MissingBandError(f"{self.name} requires bands {missing} which are not in the scene")
        # Unsigned reflectance counts would wrap on subtraction
        bands = {
            band: scene[band] if scene[band].dtype.kind == 'f' else scene[band].astype('float32')
            for band in self.bands
        }
        return self.formula(bands).rename(self.name)


INDEX_DEFINITIONS: Dict[str, IndexDefinition] = {
    'NDVI': IndexDefinition('NDVI', ('nir', 'red'),
                            lambda b: normalized_difference(b['nir'], b['red'])),
    'EVI': IndexDefinition('EVI', ('nir', 'red', 'blue'), _evi),
    'SAVI': IndexDefinition('SAVI', ('nir', 'red'), _savi),
    'NDWI': IndexDefinition('NDWI', ('green', 'nir'),
                            lambda b: normalized_difference(b['green'], b['nir'])),
    'BSI': IndexDefinition('BSI', ('swir1', 'red', 'nir', 'blue'), _bsi),
    'NDBI': IndexDefinition('NDBI', ('swir1', 'nir'),
                            lambda b: normalized_difference(b['swir1'], b['nir'])),
    'MNDWI': IndexDefinition('MNDWI', ('green', 'swir1'),
                             lambda b: normalized_difference(b['green'], b['swir1'])),
    'NBR': IndexDefinition('NBR', ('nir', 'swir2'),
                           lambda b: normalized_difference(b['nir'], b['swir2'])),
}


def get_index(name: str) -> IndexDefinition:
    """Look up an index definition by name."""
    try:
        return INDEX_DEFINITIONS[name]
    except KeyError:
        raise KeyError(f"Unknown spectral index '{name}'. Available: {list(INDEX_NAMES)}")


def add_indices(scene: xr.Dataset, index_names: Optional[Iterable[str]] = None) -> xr.Dataset:
    """
    Append spectral index bands to a scene or time series.

    Works on a single scene or on a whole (time, y, x) series at once since
    every formula is per-pixel. Raw bands are carried over untouched.

    Args:
        scene: Dataset with the canonical reflectance bands
        index_names: Indices to compute, all eight if None

    Returns:
        New dataset with one additional band per index

    Raises:
        MissingBandError: If a formula needs a band the scene does not have

    Examples:
        >>> augmented = add_indices(masked_series)
        >>> augmented['NDVI']
    """
    names = tuple(index_names) if index_names is not None else INDEX_NAMES
    derived = {name: get_index(name).compute(scene) for name in names}
    logger.debug(f"Computed {len(derived)} spectral indices: {list(derived)}")
    return scene.assign(derived)
