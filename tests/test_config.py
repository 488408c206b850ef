"""
===============================================================================
ASTRODYN - Configuration Test Suite
===============================================================================
"""

import dataclasses
from pathlib import Path

import pytest

from astrodyn.core.config import (
    DEFAULT_CONFIG,
    EngineConfig,
    InterceptSettings,
    SolverSettings,
    TransferSettings,
    config_from_dict,
    load_config,
)
from astrodyn.core.constants import ONE_DAY

SHIPPED_CONFIG = Path(__file__).resolve().parents[1] / 'config' / 'engine_config.yaml'


class TestConfigFromDict:

    @pytest.mark.parametrize("raw", [None, {}])
    def test_defaults(self, raw):
        assert config_from_dict(raw) == EngineConfig()

    def test_partial_override(self):
        config = config_from_dict({'intercept': {'num_workers': 8}})
        assert config.intercept.num_workers == 8
        assert config.intercept.delta_time == InterceptSettings().delta_time
        assert config.solver == SolverSettings()
        assert config.transfer == TransferSettings()

    def test_empty_section(self):
        assert config_from_dict({'solver': None}) == EngineConfig()

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="sections"):
            config_from_dict({'guidance': {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="kepler_tol"):
            config_from_dict({'solver': {'kepler_tol': 1e-6}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ValueError):
            config_from_dict({'solver': [1, 2]})

    def test_root_must_be_mapping(self):
        with pytest.raises(ValueError):
            config_from_dict(['solver'])


class TestValidation:

    @pytest.mark.parametrize("section, key, value", [
        ('solver', 'kepler_tolerance', 0.0),
        ('solver', 'lambert_max_iterations', -1),
        ('intercept', 'delta_time', -60.0),
        ('intercept', 'num_workers', 0),
        ('transfer', 'midcourse_allowed_delta_v', 0.0),
    ])
    def test_non_positive_values(self, section, key, value):
        with pytest.raises(ValueError, match=key):
            config_from_dict({section: {key: value}})

    def test_inverted_coast_window(self):
        with pytest.raises(ValueError):
            TransferSettings(heliocentric_min_coast_ratio=3.0, heliocentric_max_coast_ratio=2.0)

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_CONFIG.solver.kepler_tolerance = 1.0


class TestLoadConfig:

    def test_none_returns_defaults(self):
        assert load_config() is DEFAULT_CONFIG

    def test_yaml_file(self, tmp_path):
        path = tmp_path / 'engine.yaml'
        path.write_text(
            "solver:\n"
            "  kepler_tolerance: 1.0e-8\n"
            "transfer:\n"
            "  heliocentric_delta_time: 864000.0\n"
        )
        config = load_config(str(path))
        assert config.solver.kepler_tolerance == 1.0e-8
        assert config.transfer.heliocentric_delta_time == 10.0 * ONE_DAY
        assert config.intercept == InterceptSettings()

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text("")
        assert load_config(str(path)) == EngineConfig()

    def test_invalid_file(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("intercept:\n  workers: 2\n")
        with pytest.raises(ValueError):
            load_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / 'missing.yaml'))

    def test_shipped_config(self):
        config = load_config(str(SHIPPED_CONFIG))
        assert config.intercept.num_workers == 4
        assert config.transfer.heliocentric_delta_time == 5.0 * ONE_DAY
        assert config.transfer.midcourse_delta_time == 2.0 * ONE_DAY
        assert config.solver == SolverSettings()
