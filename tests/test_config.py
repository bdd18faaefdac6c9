# Copyright (c) Syntropy Systems
"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest
import yaml

from bandsweep.config import CampaignConfig, load_config
from bandsweep.errors import ConfigError


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, project):
        config = load_config()

        assert config.wait_time == 120.0
        assert config.retries == 2
        assert config.max_bands == 3
        assert config.output == Path("results/band-permutation-results.csv")
        assert config.progress_file == Path("results/test-progress.json")
        assert config.password is None

    def test_reads_project_file(self, project):
        config_dir = project / ".bandsweep"
        config_dir.mkdir()
        _ = (config_dir / "config.yaml").write_text(
            yaml.dump({"wait_time": 60, "bands": "1, 3", "retries": 4, "unknown": 1})
        )

        config = load_config()

        assert config.wait_time == 60.0
        assert config.bands == ["1", "3"]
        assert config.retries == 4

    def test_found_from_subdirectory(self, project):
        config_dir = project / ".bandsweep"
        config_dir.mkdir()
        _ = (config_dir / "config.yaml").write_text("max_bands: 2\n")
        sub = project / "a" / "b"
        sub.mkdir(parents=True)

        os.chdir(sub)

        config = load_config()

        assert config.max_bands == 2

    def test_password_from_environment(self, project, monkeypatch):
        monkeypatch.setenv("PASSWORD", "hunter2")

        assert load_config().password == "hunter2"

    def test_invalid_yaml(self, project):
        config_dir = project / ".bandsweep"
        config_dir.mkdir()
        _ = (config_dir / "config.yaml").write_text("wait_time: [unclosed\n")

        with pytest.raises(ConfigError):
            _ = load_config()

    def test_wrong_type(self, project):
        config_dir = project / ".bandsweep"
        config_dir.mkdir()
        _ = (config_dir / "config.yaml").write_text("retries: many\n")

        with pytest.raises(ConfigError):
            _ = load_config()


class TestValidate:
    """Tests for CampaignConfig.validate."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"retries": -1},
            {"max_bands": 0},
            {"limit": -5},
            {"wait_time": -1.0},
            {"include_bands": ["99"]},
        ],
    )
    def test_rejects(self, overrides):
        with pytest.raises(ConfigError):
            CampaignConfig().with_overrides(**overrides).validate()

    def test_overrides_skip_none(self):
        config = CampaignConfig().with_overrides(retries=None, max_bands=2)

        assert config.retries == 2
        assert config.max_bands == 2

