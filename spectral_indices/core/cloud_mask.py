"""
Quality-bitmask cloud masking.

A pixel is valid when both the opaque cloud bit (10) and the cirrus bit (11)
of the quality band are unset. Invalid pixels become NaN in every band,
including the quality band itself.
"""

import xarray as xr

from shared_utils import get_logger

from .errors import MissingBandError

logger = get_logger('cloud_mask')

CLOUD_BIT = 10
CIRRUS_BIT = 11


def create_cloud_mask(qa: xr.DataArray) -> xr.DataArray:
    """
    Create validity mask from a quality bitmask band.

    Args:
        qa: Quality bitmask band (QA60-style)

    Returns:
        Boolean mask, True where the pixel is cloud and cirrus free

    Examples:
        >>> valid = create_cloud_mask(series['qa'])
    """
    bits = qa.fillna(0).astype('uint32')
    return ((bits & (1 << CLOUD_BIT)) == 0) & ((bits & (1 << CIRRUS_BIT)) == 0)


def mask_clouds(scene: xr.Dataset, quality_band: str = 'qa') -> xr.Dataset:
    """
    Apply the quality-band cloud mask to every band of a scene or series.

    Args:
        scene: Dataset holding the quality band and reflectance bands
        quality_band: Name of the quality bitmask variable

    Returns:
        Dataset with invalid pixels set to NaN in all bands

    Examples:
        >>> masked = mask_clouds(series, quality_band='qa')
    """
    if quality_band not in scene.data_vars:
        raise MissingBandError(f"Quality band '{quality_band}' is not in the scene")

    logger.debug(f"Masking cloud and cirrus pixels using '{quality_band}'")
    valid = create_cloud_mask(scene[quality_band])
    return scene.where(valid)
