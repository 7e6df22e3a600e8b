"""
StreamKeeper Test Configuration

Shared fixtures and configuration for all tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import streamkeeper.config as config_module
from streamkeeper.channels import InMemoryChannelDirectory
from streamkeeper.config import StreamKeeperConfig
from streamkeeper.playback.controller import PlayerController
from streamkeeper.playback.presentation import PresentationCoordinator
from streamkeeper.playback.session import PlaybackSession
from streamkeeper.playback.targets import Target
from tests.fixtures import ManualClock, RecordingEngine, TargetFactory


# ============ Timer and Engine Fixtures ============


@pytest.fixture
def clock() -> ManualClock:
    """Manual clock; time moves only via clock.advance()."""
    return ManualClock()


@pytest.fixture
def engine() -> RecordingEngine:
    """Media engine double recording every command."""
    return RecordingEngine()


# ============ Target Fixtures ============


@pytest.fixture
def targets() -> list[Target]:
    """Three allow-listed channels, the second one default."""
    return [
        TargetFactory.create(id="ch0", name="Channel Zero"),
        TargetFactory.create(id="ch1", name="Channel One", is_default=True),
        TargetFactory.create(id="ch2", name="Channel Two"),
    ]


@pytest.fixture
def target(targets: list[Target]) -> Target:
    return targets[0]


@pytest.fixture
def directory(targets: list[Target]) -> InMemoryChannelDirectory:
    return InMemoryChannelDirectory(targets)


# ============ Core Fixtures ============


@pytest.fixture
def app_config() -> StreamKeeperConfig:
    """Default configuration, independent of any config.yaml on disk."""
    return StreamKeeperConfig()


@pytest.fixture
def session(engine: RecordingEngine, clock: ManualClock, app_config) -> Generator[PlaybackSession, None, None]:
    session = PlaybackSession.from_config(engine, clock, app_config)
    yield session
    session.release()


@pytest.fixture
def coordinator(clock: ManualClock) -> Generator[PresentationCoordinator, None, None]:
    coordinator = PresentationCoordinator(clock)
    yield coordinator
    coordinator.release()


@pytest.fixture
def controller(
    engine: RecordingEngine,
    directory: InMemoryChannelDirectory,
    clock: ManualClock,
    app_config: StreamKeeperConfig,
) -> Generator[PlayerController, None, None]:
    controller = PlayerController(engine, directory, clock, config=app_config)
    yield controller
    controller.release()


# ============ Temporary File Fixtures ============


@pytest.fixture(scope="function")
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="function")
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary config file."""
    config_file = temp_dir / "config.yaml"
    config_content = """
playback:
  max_retries: 3
  initial_delay_ms: 500
  max_delay_ms: 4000

overlay:
  banner_duration_ms: 2000

channels:
  - id: "alpha"
    name: "Alpha"
    stream_url: "https://cdn3.wowza.com/live/alpha/playlist.m3u8"
  - id: "beta"
    name: "Beta"
    stream_url: "https://live.nmtv.tv/beta/playlist.m3u8"
    is_default: true

logging:
  level: "DEBUG"
  format: "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
"""
    config_file.write_text(config_content)
    return config_file


# ============ Environment Fixtures ============


@pytest.fixture(autouse=True)
def clean_environment():
    """Clean environment variables and cached config for each test."""
    # Save current environment
    original_env = os.environ.copy()

    # Remove StreamKeeper-specific vars
    for key in list(os.environ.keys()):
        if key.startswith("STREAMKEEPER_"):
            del os.environ[key]

    config_module._config = None

    yield

    config_module._config = None

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_env_vars():
    """Set up mock environment variables."""
    env_vars = {
        "STREAMKEEPER_MAX_RETRIES": "3",
        "STREAMKEEPER_RESTART_ON_END": "false",
        "STREAMKEEPER_LOG_LEVEL": "DEBUG",
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


# ============ Markers ============


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
