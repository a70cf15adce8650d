"""
Base authorizer interface for policygate.
"""

from abc import ABC, abstractmethod
from typing import Any

from policygate.config import RawConfig
from policygate.session import AuthenticationSession


class Authorizer(ABC):
    """
    Abstract base class for decision points in the authorization pipeline.

    The pipeline looks authorizers up by identifier, validates rule
    configuration with validate() when rules are loaded, and calls authorize()
    for every matched request.

    Requests are duck-typed. Any object exposing ``method``, ``url.path`` and a
    case-insensitive ``headers.get`` works (httpx.Request, Starlette Request).
    """

    @abstractmethod
    def get_id(self) -> str:
        """
        Return the stable identifier used for registry lookup and enablement checks.
        """
        pass

    @abstractmethod
    def validate(self, config: RawConfig) -> None:
        """
        Check rule configuration without rendering a decision.

        Args:
            config: Per-rule configuration

        Raises:
            AuthorizerNotEnabledError: If the authorizer is globally disabled
            AuthorizerMisconfiguredError: If the configuration is invalid
        """
        pass

    @abstractmethod
    def authorize(
        self,
        request: Any,
        session: AuthenticationSession,
        config: RawConfig = None,
    ) -> None:
        """
        Decide whether the request may proceed.

        Returns normally when the request is allowed.

        Args:
            request: Inbound HTTP request
            session: Session established by the authentication subsystem
            config: Per-rule configuration

        Raises:
            ForbiddenError: If the request is denied
            AuthorizationError: If no decision could be obtained
            AuthorizerError: If the authorizer is disabled or misconfigured
        """
        pass

    def close(self) -> None:
        """Release resources held by the authorizer."""
        pass
