"""
Temporal smoothing over irregularly sampled scene series.

Every scene is replaced by the per-pixel mean of all scenes acquired within a
symmetric window centred on its acquisition date. Window membership is
inclusive at both ends and uses exact fractional-day arithmetic. The output
keeps the input's cardinality and acquisition dates.

Masked (NaN) samples are skipped in the mean. A scene always belongs to its
own window, so the collected set is never empty; a pixel that is masked in
every member of its window stays NaN.
"""

from typing import List

import numpy as np
import pandas as pd
import xarray as xr

from shared_utils import get_logger

logger = get_logger('smoothing')


def window_members(times, window_days: float) -> List[np.ndarray]:
    """
    Find, for each acquisition date, the positions of scenes inside its window.

    Membership is O(n) per date and O(n^2) overall, which is fine for seasonal
    series of a few dozen scenes.

    Args:
        times: Acquisition timestamps in series order
        window_days: Full window width in days (fractional allowed)

    Returns:
        One integer index array per input date

    Examples:
        >>> window_members(pd.to_datetime(['2021-05-01', '2021-05-08', '2021-05-30']), 20)
        [array([0, 1]), array([0, 1]), array([2])]
    """
    if window_days < 0:
        raise ValueError(f"window_days must be non-negative, got {window_days}")

    stamps = pd.DatetimeIndex(times)
    half_window = pd.Timedelta(days=window_days / 2)

    members = []
    for date in stamps:
        inside = (stamps >= date - half_window) & (stamps <= date + half_window)
        members.append(np.flatnonzero(inside))
    return members


def rolling_mean(series: xr.Dataset, window_days: float) -> xr.Dataset:
    """
    Smooth a time series with a centred moving-window mean.

    Args:
        series: Dataset with a 'time' dimension
        window_days: Full window width in days

    Returns:
        Dataset with the same time coordinate where each step is the mean of
        all scenes within +/- window_days / 2 of it

    Examples:
        >>> smoothed = rolling_mean(augmented_series, 20)
    """
    n_scenes = series.sizes['time']
    if n_scenes == 0:
        logger.warning("Empty series passed to rolling_mean, nothing to smooth")
        return series

    members = window_members(series['time'].values, window_days)
    logger.debug(f"Smoothing {n_scenes} scenes with a {window_days}-day window, "
                 f"window sizes {[len(m) for m in members]}")

    # Reductions drop non-dimension coords; keep them from the original scene
    time_coords = [name for name, coord in series.coords.items() if coord.dims == ('time',)]

    smoothed = []
    for position, indices in enumerate(members):
        mean = series.isel(time=indices).mean(dim='time', skipna=True, keep_attrs=True)
        smoothed.append(mean.assign_coords({name: series[name].values[position] for name in time_coords}))

    result = xr.concat(smoothed, dim='time')
    result.attrs = dict(series.attrs)
    return result
