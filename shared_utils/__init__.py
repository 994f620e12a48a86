"""
Shared utilities for the Northeast spectral indices pipeline.

This package provides common functionality used across components:
- Standardized logging configuration
- Configuration file loading utilities
- Directory handling utilities
"""

from .logging_utils import setup_logging, get_logger, log_pipeline_start, log_pipeline_end, log_section, log_summary
from .config_utils import load_config, validate_config
from .path_utils import ensure_directory

__version__ = "1.0.0"

__all__ = [
    "setup_logging",
    "get_logger",
    "log_pipeline_start",
    "log_pipeline_end",
    "log_section",
    "log_summary",
    "load_config",
    "validate_config",
    "ensure_directory"
]
