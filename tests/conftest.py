"""pytest configuration for relay tests."""

import os
import sys
from pathlib import Path

import pytest

# Add src directory to path so tests can import dispatch_relay
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Never pick up a real credential from the developer's shell
os.environ.pop("GITHUB_PAT", None)
os.environ.pop("GITHUB_TOKEN", None)
os.environ.pop("DISPATCH_LOG_PATH", None)

from dispatch_relay.api import create_app  # noqa: E402
from dispatch_relay.config import RelaySettings  # noqa: E402
from dispatch_relay.dispatch_logs import MemoryLogSink  # noqa: E402

GITHUB_API_URL = "https://api.github.com"
TEST_TOKEN = "ghp_testtoken1234567890"


@pytest.fixture
def settings() -> RelaySettings:
    """Settings with a test credential configured."""
    return RelaySettings(github_token=TEST_TOKEN, github_api_url=GITHUB_API_URL)


@pytest.fixture
def log_sink() -> MemoryLogSink:
    return MemoryLogSink(max_entries=50)


@pytest.fixture
def app(settings, log_sink):
    """Relay app with a credential and an in-memory log sink."""
    return create_app(settings, log_sink=log_sink)


@pytest.fixture
def client(app):
    """Create a test client."""
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def unconfigured_app(log_sink):
    """Relay app without any credential."""
    return create_app(RelaySettings(github_token=None), log_sink=log_sink)
