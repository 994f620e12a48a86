"""
Spectral Indices Core Modules

Core functionality for the seasonal spectral index composites: cloud masking,
index computation, temporal smoothing, compositing, region splitting, export
planning and the orchestrating pipeline.

Modules:
    config: Immutable processing configuration
    errors: Exception hierarchy
    cloud_mask: Quality-bitmask cloud masking
    indices: Spectral index definitions and calculator
    regions: Regions, boundary catalog loading and region splitting
    smoothing: Moving-window temporal smoothing
    compositing: Yearly median composites
    archive: STAC scene archive access
    export: Export planning and fire-and-forget submission
    engine: Dask cluster connection
    pipeline: End-to-end orchestration
"""

from .errors import (
    SpectralIndicesError,
    InputError,
    ConfigurationError,
    RegionNotFoundError,
    InvalidGeometryError,
    MissingBandError,
    NoScenesFoundError,
    ExportNameCollisionError
)
from .indices import (
    INDEX_NAMES,
    INDEX_DEFINITIONS,
    IndexDefinition,
    get_index,
    add_indices,
    normalized_difference,
    safe_divide
)
from .regions import (
    Region,
    SplitAxis,
    SplitPolicy,
    SplitRole,
    sanitize_name,
    bisect_region,
    plan_region,
    partition_error,
    check_unique_labels,
    regions_from_geodataframe,
    load_regions
)
from .config import (
    ProcessingConfig,
    CatalogConfig,
    ArchiveConfig,
    ExportConfig,
    ComputeConfig,
    load_processing_config
)
from .cloud_mask import create_cloud_mask, mask_clouds
from .smoothing import window_members, rolling_mean
from .compositing import median_composite, clip_to_region, build_composite
from .archive import SceneArchive, format_time_range
from .export import (
    ExportDestination,
    ExportUnit,
    ExportSubmitter,
    export_label,
    plan_exports,
    check_unique_exports,
    write_export_unit
)
from .engine import setup_cluster
from .pipeline import SpectralIndicesPipeline, composite_series

__all__ = [
    # Errors
    "SpectralIndicesError",
    "InputError",
    "ConfigurationError",
    "RegionNotFoundError",
    "InvalidGeometryError",
    "MissingBandError",
    "NoScenesFoundError",
    "ExportNameCollisionError",

    # Indices
    "INDEX_NAMES",
    "INDEX_DEFINITIONS",
    "IndexDefinition",
    "get_index",
    "add_indices",
    "normalized_difference",
    "safe_divide",

    # Regions
    "Region",
    "SplitAxis",
    "SplitPolicy",
    "SplitRole",
    "sanitize_name",
    "bisect_region",
    "plan_region",
    "partition_error",
    "check_unique_labels",
    "regions_from_geodataframe",
    "load_regions",

    # Configuration
    "ProcessingConfig",
    "CatalogConfig",
    "ArchiveConfig",
    "ExportConfig",
    "ComputeConfig",
    "load_processing_config",

    # Raster stages
    "create_cloud_mask",
    "mask_clouds",
    "window_members",
    "rolling_mean",
    "median_composite",
    "clip_to_region",
    "build_composite",

    # Collaborators
    "SceneArchive",
    "format_time_range",
    "setup_cluster",

    # Export
    "ExportDestination",
    "ExportUnit",
    "ExportSubmitter",
    "export_label",
    "plan_exports",
    "check_unique_exports",
    "write_export_unit",

    # Pipeline
    "SpectralIndicesPipeline",
    "composite_series"
]
