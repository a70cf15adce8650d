"""
policygate - Testing Utilities

This module provides testing utilities, mocks, and fixtures for testing
authorizers without a network or a real policy engine.

Export all public testing utilities for easy import:
    from policygate.testing import MockPolicyEngine, make_request

"""

from .mocks import (
    DEFAULT_REMOTE,
    FakeConfigurationProvider,
    MockPolicyEngine,
    RecordedCall,
    make_request,
)

from .fixtures import (
    mock_policy_engine,
    fake_provider,
    opa_authorizer,
    session,
    gateway_config,
)

__all__ = [
    # Mocks
    "DEFAULT_REMOTE",
    "FakeConfigurationProvider",
    "MockPolicyEngine",
    "RecordedCall",
    "make_request",

    # Fixtures
    "mock_policy_engine",
    "fake_provider",
    "opa_authorizer",
    "session",
    "gateway_config",
]
