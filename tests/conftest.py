"""Pytest configuration and fixtures."""

import os

import pytest

from fakes import FakeBackend, FakeSink


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ.pop("OPENAI_BASE_URL", None)
    os.environ.pop("SIMULATION_MODE", None)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def sink():
    return FakeSink()
