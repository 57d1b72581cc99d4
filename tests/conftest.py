"""
tablo2plex Test Configuration

Shared fixtures and configuration for all tests.
"""

import os
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from tablo2plex import config as config_module
from tablo2plex.config import Tablo2PlexConfig, _ENV_MAP
from tablo2plex.context import GatewayContext
from tablo2plex.credentials import CredentialRecord
from tablo2plex.lineup import ChannelLineup, parse_lineup
from tablo2plex.main import create_app
from tablo2plex.streaming.session_manager import TunerPool

from tests.fixtures.fakes import FakeDevice, FakeTranscoderFactory
from tests.fixtures.sample_data import DEVICE_URL, sample_channels, sample_record_data


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
server:
  port: 9191
  base_url: "http://10.0.0.5:9191/"

device:
  friendly_name: "Basement Tablo"

guide:
  enabled: true
  days: 3

logging:
  level: "debug"
"""
    config_file.write_text(config_content)
    return config_file


# ============ Sample Data Fixtures ============


@pytest.fixture
def sample_record() -> CredentialRecord:
    """A complete credential record."""
    return CredentialRecord.model_validate(sample_record_data())


@pytest.fixture
def sample_lineup() -> ChannelLineup:
    """Lineup with two over-the-air channels and one streamed channel."""
    return ChannelLineup(parse_lineup(sample_channels(), DEVICE_URL))


# ============ Gateway Fixtures ============


@pytest.fixture
def test_config(temp_dir: Path) -> Tablo2PlexConfig:
    """Configuration writing everything under a temp directory."""
    return Tablo2PlexConfig(
        server={"base_url": "http://192.168.1.20:8181"},
        guide={"enabled": True},
        storage={"output_dir": str(temp_dir)},
    )


@pytest.fixture
def transcoder_factory() -> FakeTranscoderFactory:
    return FakeTranscoderFactory()


@pytest.fixture
def fake_device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def context(
    test_config: Tablo2PlexConfig,
    sample_lineup: ChannelLineup,
    sample_record: CredentialRecord,
    fake_device: FakeDevice,
    transcoder_factory: FakeTranscoderFactory,
) -> GatewayContext:
    """Gateway context with fake device and transcoders."""
    return GatewayContext(
        config=test_config,
        base_url=test_config.server.resolved_base_url,
        lineup=sample_lineup,
        tuner_pool=TunerPool(2),
        device=fake_device,
        record=sample_record,
        transcoder_factory=transcoder_factory,
    )


@pytest.fixture(scope="function")
def app(context: GatewayContext) -> FastAPI:
    """Create a test FastAPI application without background schedulers."""
    return create_app(context, with_lifespan=False)


@pytest.fixture(scope="function")
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Create a synchronous test client."""
    with TestClient(app) as client:
        yield client


# ============ Environment Fixtures ============


@pytest.fixture(autouse=True)
def clean_environment():
    """Clean environment variables and the cached config for each test."""
    # Save current environment
    original_env = os.environ.copy()

    for key in _ENV_MAP:
        os.environ.pop(key, None)
    config_module._config = None

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)
    config_module._config = None


@pytest.fixture
def mock_env_vars():
    """Set up mock environment variables."""
    env_vars = {
        "NAME": "Env Tablo",
        "PORT": "8282",
        "CREATE_XML": "true",
        "LOG_LEVEL": "info",
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


# ============ Markers ============


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests")
    config.addinivalue_line("markers", "slow: Slow tests")
