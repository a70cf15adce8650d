"""
Pytest fixtures for policygate testing.

This module provides reusable pytest fixtures for testing authorizers.
Import these fixtures in your conftest.py or test files.
"""

import pytest
from typing import Dict, Any

from policygate.authz.opa import OPAAuthorizer
from policygate.session import AuthenticationSession
from .mocks import (
    DEFAULT_REMOTE,
    FakeConfigurationProvider,
    MockPolicyEngine,
)


@pytest.fixture
def mock_policy_engine():
    """
    Provides a mock remote policy engine that allows every request.

    Example:
        def test_deny(mock_policy_engine, opa_authorizer):
            mock_policy_engine.set_response(403)
    """
    return MockPolicyEngine(status_code=200)


@pytest.fixture
def fake_provider():
    """
    Provides a configuration provider with every built-in authorizer enabled.

    The OPA authorizer defaults to DEFAULT_REMOTE.
    """
    return FakeConfigurationProvider(
        enabled=["opa", "allow", "deny"],
        defaults={"opa": {"remote": DEFAULT_REMOTE}},
    )


@pytest.fixture
def opa_authorizer(fake_provider, mock_policy_engine):
    """
    Provides an OPA authorizer wired to the mock policy engine.

    Example:
        def test_allow(opa_authorizer, session):
            opa_authorizer.authorize(make_request(path="/widgets/1"), session)
    """
    client = mock_policy_engine.client()
    authorizer = OPAAuthorizer(fake_provider, client=client)
    yield authorizer
    client.close()


@pytest.fixture
def session():
    """Provides an authenticated session."""
    return AuthenticationSession(subject="alice", extra={"scope": "widgets:read"})


@pytest.fixture
def gateway_config() -> Dict[str, Any]:
    """
    Provides a valid process configuration.

    Example:
        def test_config(gateway_config):
            config = GatewayConfig(**gateway_config)
            assert config.authorizers["opa"].enabled
    """
    return {
        "service_name": "test-gateway",
        "authorizers": {
            "opa": {
                "enabled": True,
                "config": {"remote": DEFAULT_REMOTE},
            },
            "allow": {"enabled": True},
            "deny": {"enabled": False},
        },
        "transport": {
            "connect_timeout_seconds": 2.0,
            "read_timeout_seconds": 30.0,
            "retries": 0,
            "verify_tls": True,
            "follow_redirects": True,
        },
        "logging": {
            "level": "INFO",
            "format": "json",
        },
        "metrics": {
            "enabled": True,
        },
    }
