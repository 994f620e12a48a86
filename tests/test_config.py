from dataclasses import FrozenInstanceError
from datetime import date
from pathlib import Path

import pytest
import yaml

from shared_utils import load_config
from spectral_indices.core.config import ProcessingConfig, load_processing_config
from spectral_indices.core.errors import ConfigurationError
from spectral_indices.core.indices import INDEX_NAMES
from spectral_indices.core.regions import SplitAxis


def test_defaults():
    config = ProcessingConfig()

    assert config.processing_years == list(range(2016, 2025))
    assert config.months == (5, 10)
    assert config.cloud_percentage_ceiling == 30
    assert config.smoothing_window_days == 20
    assert config.indices == INDEX_NAMES
    assert config.split_regions["New York"] is SplitAxis.LONGITUDE
    assert config.split_regions["Maine"] is SplitAxis.LATITUDE
    assert config.export.folder == "Northeast_Spectral_Indices"
    assert config.export.max_pixels == 1e13
    assert config.export.crs == "EPSG:32618"


def test_packaged_config_matches_defaults():
    config = load_processing_config()

    assert config.regions == ProcessingConfig().regions
    assert config.years == (2016, 2024)
    assert config.archive.bands["qa60"] == "qa"
    assert config.compute.scheduler_address is None
    assert config.log_file is None


def test_config_is_immutable():
    config = ProcessingConfig()

    with pytest.raises(FrozenInstanceError):
        config.years = (2020, 2020)
    with pytest.raises(TypeError):
        config.split_regions["Vermont"] = SplitAxis.LATITUDE


def test_from_dict_reads_yaml_values(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "regions": ["Vermont"],
        "split_regions": {"Vermont": "Latitude"},
        "processing": {
            "years": [2019, 2020],
            "months": [6, 8],
            "cloud_percentage_ceiling": 15,
            "smoothing_window_days": 10.5,
            "indices": ["NDVI", "NBR"]
        },
        "export": {"folder": "Test_Folder"},
        "logging": {"level": "DEBUG", "log_file": "logs/run.log"}
    }))

    config = ProcessingConfig.from_dict(load_config(path))

    assert config.regions == ("Vermont",)
    assert config.split_regions == {"Vermont": SplitAxis.LATITUDE}
    assert config.processing_years == [2019, 2020]
    assert config.smoothing_window_days == 10.5
    assert config.indices == ("NDVI", "NBR")
    assert config.export.folder == "Test_Folder"
    assert config.export.resolution == 10
    assert config.log_level == "DEBUG"
    assert config.log_file == Path("logs/run.log")


@pytest.mark.parametrize("overrides", [
    {"regions": ()},
    {"years": (2024, 2016)},
    {"months": (10, 5)},
    {"months": (0, 5)},
    {"cloud_percentage_ceiling": 0},
    {"cloud_percentage_ceiling": 101},
    {"smoothing_window_days": -1},
    {"split_tolerance": -1e-5},
    {"indices": ("NDVI", "GNDVI")},
    {"indices": ("NDVI", "NDVI")},
])
def test_invalid_values_raise(overrides):
    with pytest.raises(ConfigurationError):
        ProcessingConfig(**overrides)


@pytest.mark.parametrize("raw", [
    {"processing": {"years": [2020]}},
    {"processing": {"smoothing_window_days": "twenty"}},
    {"split_regions": {"New York": "diagonal"}},
])
def test_malformed_mapping_raises(raw):
    with pytest.raises(ConfigurationError):
        ProcessingConfig.from_dict(raw)


def test_season_window_covers_whole_months():
    config = ProcessingConfig(months=(5, 10))

    assert config.season_window(2021) == (date(2021, 5, 1), date(2021, 10, 31))
    assert ProcessingConfig(months=(1, 2)).season_window(2024) == (date(2024, 1, 1), date(2024, 2, 29))


def test_with_overrides_returns_new_record():
    config = ProcessingConfig()

    overridden = config.with_overrides(regions=["Vermont"], years=(2020, 2021), log_level="DEBUG")

    assert overridden.regions == ("Vermont",)
    assert overridden.years == (2020, 2021)
    assert overridden.log_level == "DEBUG"
    assert config.regions == ProcessingConfig().regions
    assert config.with_overrides() == config

    with pytest.raises(ConfigurationError):
        config.with_overrides(years=(2022, 2020))


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_processing_config(tmp_path / "missing.yaml")
