"""
Exception hierarchy for the spectral indices pipeline.

Input errors are raised where the failing operation is constructed and abort
the affected region only. Numeric edge cases are never raised: they resolve to
NaN no-data. Submission-time failures happen on the execution cluster and are
never observed by the pipeline.
"""


class SpectralIndicesError(Exception):
    """Base class for all pipeline errors."""


class InputError(SpectralIndicesError):
    """Invalid input detected while building the processing graph."""


class ConfigurationError(InputError):
    """Configuration values are missing or out of range."""


class RegionNotFoundError(InputError):
    """A configured region name does not exist in the boundary catalog."""


class InvalidGeometryError(InputError):
    """A region geometry is empty or not a valid polygon."""


class MissingBandError(InputError):
    """A scene lacks a band required by the mask or an index formula."""


class NoScenesFoundError(InputError):
    """The archive returned no scenes for a region and processing window."""


class ExportNameCollisionError(InputError):
    """Two export units or regions resolve to the same output label."""
