"""
Spectral Indices Component

Seasonal multi-year spectral index composites for irregularly shaped regions,
exported per region, year and index.

This component provides:
- Quality-bitmask (QA60) cloud masking
- NDVI, EVI, SAVI, NDWI, BSI, NDBI, MNDWI and NBR computation
- Centred moving-window temporal smoothing over irregular acquisition dates
- Yearly median composites clipped to each region
- Bisection of oversized regions along their bounding-box midpoint
- Export planning and fire-and-forget submission to a dask cluster
"""

from .core.pipeline import SpectralIndicesPipeline, composite_series
from .core.config import ProcessingConfig, load_processing_config
from .core.regions import Region, SplitAxis, SplitPolicy, SplitRole, plan_region
from .core.cloud_mask import mask_clouds
from .core.indices import INDEX_NAMES, add_indices
from .core.smoothing import rolling_mean
from .core.compositing import build_composite
from .core.export import ExportUnit, ExportSubmitter, plan_exports, export_label

from .scripts.run_indices_export import main as run_indices_export

__version__ = "1.0.0"
__component__ = "spectral_indices"

__all__ = [
    "SpectralIndicesPipeline",
    "composite_series",
    "ProcessingConfig",
    "load_processing_config",
    "Region",
    "SplitAxis",
    "SplitPolicy",
    "SplitRole",
    "plan_region",
    "mask_clouds",
    "INDEX_NAMES",
    "add_indices",
    "rolling_mean",
    "build_composite",
    "ExportUnit",
    "ExportSubmitter",
    "plan_exports",
    "export_label",
    "run_indices_export",
    "__version__",
    "__component__"
]
