# Copyright (c) Syntropy Systems
"""Pytest fixtures for bandsweep tests."""

import os
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fakes import FakeRadio

from bandsweep.config import CampaignConfig

# Store original cwd at module load time
_original_cwd = Path.cwd()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def project(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Change into an empty project directory with no password in the environment."""
    monkeypatch.delenv("PASSWORD", raising=False)
    monkeypatch.delenv("BANDSWEEP_PASSWORD", raising=False)
    monkeypatch.setenv("HOME", str(temp_dir / "home"))
    os.chdir(temp_dir)

    yield temp_dir

    # Always return to original cwd
    os.chdir(_original_cwd)


@pytest.fixture
def radio() -> FakeRadio:
    """A fake radio where every band works."""
    return FakeRadio()


@pytest.fixture
def make_config(temp_dir: Path) -> Callable[..., CampaignConfig]:
    """Factory for configs with zero waits and files under temp_dir."""

    def _make(**overrides: object) -> CampaignConfig:
        config = CampaignConfig(
            output=temp_dir / "results" / "results.csv",
            progress_file=temp_dir / "results" / "progress.json",
            wait_time=0,
            settle_time=0,
            stabilize_time=0,
            bands=["1", "3", "20"],
        )
        return config.with_overrides(**overrides)

    return _make
