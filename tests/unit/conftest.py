"""Pytest configuration and fixtures for smoker tests."""

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
import yaml
from moto import mock_aws

from smoker.core.base import BaseServiceClient

AWS_ENV_VARS = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SECURITY_TOKEN",
    "AWS_SESSION_TOKEN",
    "AWS_DEFAULT_REGION",
)


@pytest.fixture(autouse=True)
def cleanup_smoker_env() -> Generator[None, None, None]:
    """Ensure SMOKER_CONFIG and SMOKER_DEBUG are not set for unit tests.

    Yields
    ------
    None
        Control back to test after ensuring clean environment
    """
    saved = {name: os.environ.pop(name, None) for name in ("SMOKER_CONFIG", "SMOKER_DEBUG")}

    yield

    for name, value in saved.items():
        if value is not None:
            os.environ[name] = value
        else:
            os.environ.pop(name, None)


@pytest.fixture
def aws_credentials() -> Generator[None, None, None]:
    """Fixture to set AWS credentials for testing with proper cleanup.

    Sets mock AWS credentials in environment variables for the duration of the test,
    then restores the original environment state.

    Yields
    ------
    None
        Control back to test after setting credentials
    """
    saved = {name: os.environ.get(name) for name in AWS_ENV_VARS}

    for name in AWS_ENV_VARS:
        os.environ[name] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

    yield

    for name, value in saved.items():
        if value is not None:
            os.environ[name] = value
        else:
            os.environ.pop(name, None)


@pytest.fixture
def mocked_aws(aws_credentials: None) -> Generator[None, None, None]:
    """Run the test against moto's in-memory AWS backend."""
    with mock_aws():
        yield


@pytest.fixture
def write_config(tmp_path: Path):
    """Helper fixture to write a smoker.yaml and return its path.

    Returns
    -------
    Callable[[dict[str, Any]], Path]
        Function that dumps the given data as YAML
    """

    def _write(data: dict[str, Any]) -> Path:
        config_path = tmp_path / "smoker.yaml"
        config_path.write_text(yaml.dump(data))
        return config_path

    return _write


class RecordingClient(BaseServiceClient):
    """Client whose hooks record calls and fail on demand."""

    def __init__(self, name: str = "RecordingClient", config: Any = None) -> None:
        super().__init__(name, config)
        self.calls: list[str] = []
        self.setup_error: Exception | None = None
        self.cleanup_error: Exception | None = None

    async def initialize_client(self) -> None:
        self.calls.append("setup")
        if self.setup_error is not None:
            raise self.setup_error

    async def cleanup_client(self) -> None:
        self.calls.append("cleanup")
        if self.cleanup_error is not None:
            raise self.cleanup_error


@pytest.fixture
def recording_client() -> RecordingClient:
    return RecordingClient()
