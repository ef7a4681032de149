"""
Shared pytest fixtures for ebdeploy tests.

This module provides:
- A source bundle on disk and a complete option mapping
- A fake monotonic clock driven by a recording sleep
- An AsyncMock control-plane facade with ready-made environment snapshots

Nothing here talks to AWS or the network.
"""

import sys
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
import structlog

# Ensure ebdeploy package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ebdeploy.core.settings import AwsEnvironmentCredentials
from ebdeploy.deploy.models import EnvironmentSnapshot

APPLICATION = "my-app"
CNAME = "my-app.us-east-1.elasticbeanstalk.com"


# =============================================================================
# Deterministic time
# =============================================================================


class FakeClock:
    """Monotonic clock advanced only by ``FakeSleep``."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested delays and advances the fake clock instead of waiting."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> FakeSleep:
    return FakeSleep(clock)


# =============================================================================
# Options
# =============================================================================


@pytest.fixture
def bundle(tmp_path: Path) -> Path:
    """A small source bundle named like a release artifact."""
    path = tmp_path / "my-app-1.2.0.zip"
    path.write_bytes(b"PK\x03\x04bundle-bytes")
    return path


@pytest.fixture
def options(bundle: Path) -> dict[str, Any]:
    """Complete in-place option mapping with explicit credentials."""
    return {
        "applicationName": APPLICATION,
        "environmentCNAME": CNAME,
        "region": "us-east-1",
        "sourceBundle": str(bundle),
        "healthPage": "/health",
        "accessKeyId": "AKIAEXAMPLE",
        "secretAccessKey": "secret",
    }


@pytest.fixture
def no_env_credentials() -> AwsEnvironmentCredentials:
    """Credential fallback with nothing set, independent of the test process."""
    return AwsEnvironmentCredentials(aws_access_key_id=None, aws_secret_access_key=None)


# =============================================================================
# Control plane
# =============================================================================


def make_env(
    name: str = "my-app-blue",
    *,
    environment_id: str = "e-blue",
    cname: str = CNAME,
    status: str = "Ready",
    health: str = "Green",
    version_label: str | None = "my-app-1.2.0",
) -> EnvironmentSnapshot:
    return EnvironmentSnapshot(
        environment_id=environment_id,
        name=name,
        cname=cname,
        application_name=APPLICATION,
        status=status,
        health=health,
        version_label=version_label,
    )


@pytest.fixture
def current_env() -> EnvironmentSnapshot:
    return make_env()


@pytest.fixture
def control_plane(current_env: EnvironmentSnapshot) -> AsyncMock:
    """AsyncMock ControlPlane where the application and environment exist
    and every environment query reports Ready/Green."""
    client = AsyncMock()
    client.describe_applications.return_value = [APPLICATION]
    client.describe_environments.return_value = [current_env]
    client.create_configuration_template.side_effect = (
        lambda app, env_id, template: template
    )
    client.create_environment.return_value = make_env(
        "my-app12345678901234",
        environment_id="e-green",
        cname="my-app-green.us-east-1.elasticbeanstalk.com",
        status="Launching",
        health="Grey",
    )
    return client


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Restore structlog defaults so a test's configure_logging() target
    stream does not leak into later tests."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
