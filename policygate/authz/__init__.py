"""
policygate - Authorization Layer

This module provides the decision points of the request-authorization pipeline.
"""

from policygate.authz.base import Authorizer
from policygate.authz.opa import OPAAuthorizer, OPAAuthorizerConfig
from policygate.authz.registry import AuthorizerRegistry
from policygate.authz.simple import AllowAuthorizer, DenyAuthorizer

__all__ = [
    "AllowAuthorizer",
    "Authorizer",
    "AuthorizerRegistry",
    "DenyAuthorizer",
    "OPAAuthorizer",
    "OPAAuthorizerConfig",
]
