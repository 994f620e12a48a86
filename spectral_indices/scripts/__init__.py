"""
Spectral Indices Executable Scripts

Command-line entry point for the spectral indices export pipeline.

Scripts:
    run_indices_export.py: Plan and submit per region, year and index exports

Usage Examples:
    # Plan everything without submitting
    python -m spectral_indices.scripts.run_indices_export --dry-run

    # Process two regions for a shorter year range
    python -m spectral_indices.scripts.run_indices_export --regions Vermont "New York" --years 2020 2022
"""

from .run_indices_export import main as run_indices_export

__all__ = [
    "run_indices_export"
]
