#!/usr/bin/env python3
"""
Spectral Indices Export Script

Command-line interface for the spectral indices export pipeline. Builds the
yearly composites for every configured region and submits one export per
region, year and index to the dask cluster.

Submission is fire-and-forget: a zero exit code means every export was
submitted, not that every file was written.

Usage Examples:
    # Run with default configuration
    python -m spectral_indices.scripts.run_indices_export

    # Run with custom configuration, planning only
    python -m spectral_indices.scripts.run_indices_export --config custom_config.yaml --dry-run
"""

import argparse
import sys
from typing import List, Optional

from shared_utils import log_summary, setup_logging

from spectral_indices.core.config import load_processing_config
from spectral_indices.core.errors import SpectralIndicesError
from spectral_indices.core.pipeline import SpectralIndicesPipeline


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Spectral Indices Export Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        '--config',
        type=str,
        help='Path to configuration file (default: spectral_indices/config.yaml)'
    )
    parser.add_argument(
        '--regions',
        nargs='+',
        help='Region names to process (overrides configuration)'
    )
    parser.add_argument(
        '--years',
        nargs=2,
        type=int,
        metavar=('START', 'END'),
        help='Inclusive processing year range (overrides configuration)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Plan and list exports without submitting them'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (overrides configuration)'
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the export script.

    Returns:
        int: Exit code (0 for success, 1 for failure)
    """
    args = parse_arguments(argv)

    try:
        config = load_processing_config(args.config).with_overrides(
            regions=args.regions,
            years=args.years,
            log_level=args.log_level
        )
    except (FileNotFoundError, SpectralIndicesError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logger = setup_logging(level=config.log_level, component_name='export_script', log_file=config.log_file)

    pipeline = SpectralIndicesPipeline(config)
    try:
        summary = pipeline.run(dry_run=args.dry_run)
    except SpectralIndicesError as e:
        logger.error(f"Pipeline aborted: {e}")
        return 1

    log_summary(logger, summary)
    return 0 if summary['error_count'] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
