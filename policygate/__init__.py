"""
policygate

Pluggable decision points for an HTTP request-authorization pipeline. The OPA
authorizer asks a remote policy engine whether a request may proceed and turns
the reply into allow, deny or error.

Design Principle: fail closed
- A request is allowed only on an explicit 200 from the policy engine
- An explicit denial is distinguishable from a failed decision
- No error is ever downgraded to allow

Example:
    from policygate import AuthorizerRegistry, GatewayConfig

    registry = AuthorizerRegistry.from_config(GatewayConfig.from_file("policygate.yaml"))
    registry.get("opa").authorize(request, session, rule_config)
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

from policygate.authz import (
    AllowAuthorizer,
    Authorizer,
    AuthorizerRegistry,
    DenyAuthorizer,
    OPAAuthorizer,
    OPAAuthorizerConfig,
)
from policygate.config import (
    ConfigurationProvider,
    GatewayConfig,
    StaticConfigurationProvider,
)
from policygate.exceptions import (
    AuthorizationError,
    AuthorizerMisconfiguredError,
    AuthorizerNotEnabledError,
    AuthorizerNotFoundError,
    ConfigurationError,
    ForbiddenError,
    PolicyGateError,
    UpstreamError,
)
from policygate.session import AuthenticationSession

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Authorizers
    "AllowAuthorizer",
    "Authorizer",
    "AuthorizerRegistry",
    "DenyAuthorizer",
    "OPAAuthorizer",
    "OPAAuthorizerConfig",
    # Configuration
    "ConfigurationProvider",
    "GatewayConfig",
    "StaticConfigurationProvider",
    # Session
    "AuthenticationSession",
    # Errors
    "AuthorizationError",
    "AuthorizerMisconfiguredError",
    "AuthorizerNotEnabledError",
    "AuthorizerNotFoundError",
    "ConfigurationError",
    "ForbiddenError",
    "PolicyGateError",
    "UpstreamError",
]
