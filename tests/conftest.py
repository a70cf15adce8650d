"""
Shared pytest configuration for policygate tests.

This module configures pytest and imports all fixtures for use in tests.
"""

import os

import pytest
import yaml
from prometheus_client import CollectorRegistry

# Import all fixtures from policygate.testing
from policygate.testing import (
    mock_policy_engine,
    fake_provider,
    opa_authorizer,
    session,
    gateway_config,
)

# Re-export fixtures so they're available to all tests
__all__ = [
    "mock_policy_engine",
    "fake_provider",
    "opa_authorizer",
    "session",
    "gateway_config",
]


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "unit: mark test as unit test"
    )


@pytest.fixture
def metrics_registry():
    """
    Provides an isolated Prometheus registry.

    Returns:
        CollectorRegistry not shared with other tests
    """
    return CollectorRegistry()


@pytest.fixture
def temp_config_file(tmp_path, gateway_config):
    """
    Create a temporary config file for testing.

    Args:
        tmp_path: pytest temporary path fixture
        gateway_config: process configuration dict

    Returns:
        Path to temporary config file
    """
    config_file = tmp_path / "policygate.yaml"
    with open(config_file, "w") as f:
        yaml.dump(gateway_config, f)

    return config_file


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove POLICYGATE_ variables inherited from the environment."""
    for key in list(os.environ):
        if key.startswith("POLICYGATE_"):
            monkeypatch.delenv(key)
