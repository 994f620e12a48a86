"""
Logging helpers for the Northeast spectral indices pipeline.

All component loggers live under the 'spectral_indices' namespace so a single
setup call controls them. Chatty third-party loggers (dask scheduler, GDAL
bindings, HTTP clients used by the STAC reader) are held at WARNING unless
the run is in DEBUG.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

LOGGER_NAMESPACE = 'spectral_indices'

LOG_FORMATS = {
    'standard': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'detailed': '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
    'simple': '%(levelname)s: %(message)s'
}

NOISY_LOGGERS = ('distributed', 'rasterio', 'botocore', 'urllib3', 'fiona', 'pyogrio')

BANNER_WIDTH = 80


def setup_logging(
    level: Union[str, int] = 'INFO',
    component_name: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    format_style: str = 'standard'
) -> logging.Logger:
    """
    Configure root logging for a pipeline run.

    Replaces any handlers already on the root logger with a stdout handler
    and, optionally, a file handler sharing the same format.

    Args:
        level: Logging level name or constant
        component_name: Component whose logger is returned
        log_file: Optional path of a log file, parent directories are created
        format_style: One of 'standard', 'detailed', 'simple'

    Returns:
        logging.Logger: The component logger, or the namespace logger

    Examples:
        >>> logger = setup_logging('INFO', 'export_script')
        >>> logger = setup_logging('DEBUG', 'export_script', 'logs/exports.log')
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    formatter = logging.Formatter(LOG_FORMATS.get(format_style, LOG_FORMATS['standard']),
                                  datefmt='%Y-%m-%d %H:%M:%S')

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    quiet_third_party(NOISY_LOGGERS, level)

    return get_logger(component_name) if component_name else logging.getLogger(LOGGER_NAMESPACE)


def quiet_third_party(names: Iterable[str], level: int) -> None:
    """Hold library loggers at WARNING unless the run itself is in DEBUG."""
    library_level = level if level <= logging.DEBUG else logging.WARNING
    for name in names:
        logging.getLogger(name).setLevel(library_level)


def get_logger(component_name: str) -> logging.Logger:
    """
    Get a logger for a specific component.

    Examples:
        >>> logger = get_logger('smoothing')
        >>> logger.name
        'spectral_indices.smoothing'
    """
    return logging.getLogger(f'{LOGGER_NAMESPACE}.{component_name}')


def log_pipeline_start(logger: logging.Logger, pipeline_name: str, parameters: Dict[str, Any] = None) -> None:
    """
    Log the run banner and the key run parameters.

    Args:
        logger: Logger instance
        pipeline_name: Name of the pipeline being started
        parameters: Flat mapping of parameters to list; keys starting with '_' are skipped
    """
    logger.info("=" * BANNER_WIDTH)
    logger.info(f"STARTING PIPELINE: {pipeline_name.upper()}")
    logger.info("=" * BANNER_WIDTH)

    for key, value in (parameters or {}).items():
        if key.startswith('_'):
            continue
        if isinstance(value, (list, tuple)) and len(value) > 8:
            value = f"{len(value)} items ({value[0]} ... {value[-1]})"
        logger.info(f"  {key}: {value}")


def log_pipeline_end(logger: logging.Logger, pipeline_name: str, success: bool = True, elapsed_time: float = None) -> None:
    """
    Log the completion banner with status and wall time.

    Args:
        logger: Logger instance
        pipeline_name: Name of the completed pipeline
        success: Whether the run finished without errors
        elapsed_time: Optional elapsed time in seconds
    """
    logger.info("=" * BANNER_WIDTH)

    if success:
        logger.info(f"✅ PIPELINE COMPLETED SUCCESSFULLY: {pipeline_name.upper()}")
    else:
        logger.info(f"❌ PIPELINE FINISHED WITH ERRORS: {pipeline_name.upper()}")

    if elapsed_time:
        hours, remainder = divmod(int(elapsed_time), 3600)
        logger.info(f"Total execution time: {hours:02d}:{time.strftime('%M:%S', time.gmtime(remainder))}")

    logger.info("=" * BANNER_WIDTH)


def log_section(logger: logging.Logger, section_name: str) -> None:
    """Log a section header, one per region."""
    logger.info(f"\n{'=' * 20} {section_name.upper()} {'=' * 20}")


def log_summary(logger: logging.Logger, summary: Dict[str, Any]) -> None:
    """
    Log a processing summary mapping, one line per scalar entry.

    Nested mappings are logged indented under their key.
    """
    logger.info("Processing summary:")
    for key, value in summary.items():
        if isinstance(value, dict):
            logger.info(f"  {key}:")
            for sub_key, sub_value in value.items():
                logger.info(f"    {sub_key}: {sub_value}")
        elif isinstance(value, float):
            logger.info(f"  {key}: {value:.2f}")
        else:
            logger.info(f"  {key}: {value}")
