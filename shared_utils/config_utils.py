"""
YAML configuration loading for the Northeast spectral indices pipeline.

Only the file lookup and structural checks live here. Components turn the
loaded mapping into their own typed, immutable configuration records.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml

CONFIG_ENV_VAR = 'SPECTRAL_INDICES_CONFIG'

PACKAGE_ROOT = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)


def _candidate_paths(component_name: Optional[str], config_name: str) -> List[Path]:
    """Default locations, in lookup order, used when no explicit path is given."""
    candidates = []
    if component_name:
        candidates.append(PACKAGE_ROOT / component_name / config_name)
        candidates.append(Path(component_name) / config_name)
    candidates.append(Path(config_name))

    env_config = os.environ.get(CONFIG_ENV_VAR)
    if env_config:
        candidates.append(Path(env_config))
    return candidates


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML in {config_file}: {e}")

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Top level of {config_file} must be a mapping, got {type(content).__name__}")
    return content


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    component_name: Optional[str] = None,
    default_config_name: str = "config.yaml"
) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    An explicit config_path must exist. Without one the first existing file
    among these is used:
    1. <package root>/<component_name>/<default_config_name>
    2. ./<component_name>/<default_config_name>
    3. ./<default_config_name>
    4. The file named by SPECTRAL_INDICES_CONFIG

    The returned mapping carries a '_meta' entry with the resolved file path.

    Args:
        config_path: Explicit path to configuration file
        component_name: Component whose packaged config should be found
        default_config_name: File name looked up in the default locations

    Returns:
        Dict[str, Any]: Configuration dictionary

    Raises:
        FileNotFoundError: If the explicit path or every default location is missing
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the top level of the file is not a mapping

    Examples:
        >>> config = load_config(component_name="spectral_indices")
        >>> config = load_config("custom_config.yaml")
    """
    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
    else:
        candidates = _candidate_paths(component_name, default_config_name)
        config_file = next((path for path in candidates if path.exists()), None)
        if config_file is None:
            raise FileNotFoundError(
                f"Configuration file not found. Searched paths: {[str(p) for p in candidates]}"
            )

    config = _read_yaml(config_file)
    config['_meta'] = {
        'config_file': str(config_file.absolute()),
        'component_name': component_name
    }

    logger.info(f"Loaded configuration from: {config_file}")
    return config


def validate_config(config: Dict[str, Any], required_sections: Sequence[str] = ()) -> bool:
    """
    Check that a loaded configuration has the required top-level sections.

    A required section must be present and hold a mapping.

    Raises:
        ValueError: If config is not a mapping or a section is missing or malformed

    Examples:
        >>> validate_config(config, ['processing'])
        True
    """
    if not isinstance(config, dict):
        raise ValueError("Configuration must be a dictionary")

    missing = [section for section in required_sections if section not in config]
    if missing:
        raise ValueError(f"Missing required configuration sections: {missing}")

    malformed = [section for section in required_sections if not isinstance(config[section], dict)]
    if malformed:
        raise ValueError(f"Configuration sections must be mappings: {malformed}")

    logger.debug("Configuration validation passed")
    return True
