"""
Registry of decision points, dispatched by identifier.
"""

import logging
from typing import Optional

import httpx
from prometheus_client import CollectorRegistry

from policygate.authz.base import Authorizer
from policygate.authz.opa import OPAAuthorizer
from policygate.authz.simple import AllowAuthorizer, DenyAuthorizer
from policygate.config import ConfigurationProvider, GatewayConfig, StaticConfigurationProvider
from policygate.exceptions import AuthorizerNotFoundError
from policygate.observability.logging import DecisionAuditLogger
from policygate.observability.metrics import DecisionMetrics
from policygate.transport import new_latency_tolerant_client


logger = logging.getLogger(__name__)


class AuthorizerRegistry:
    """
    Holds every known authorizer under its identifier.

    Example:
        registry = AuthorizerRegistry.from_config(GatewayConfig.from_file("policygate.yaml"))
        authorizer = registry.get("opa")
        authorizer.validate(rule_config)
    """

    def __init__(
        self,
        provider: ConfigurationProvider,
        client: Optional[httpx.Client] = None,
        audit_logger: Optional[DecisionAuditLogger] = None,
        metrics: Optional[DecisionMetrics] = None,
    ):
        """
        Initialize the registry with the built-in authorizers.

        Args:
            provider: Read-only process configuration shared by all authorizers
            client: Shared HTTP client for remote authorizers
            audit_logger: Decision audit logger for remote authorizers
            metrics: Decision metrics for remote authorizers
        """
        self.provider = provider
        self._authorizers: dict[str, Authorizer] = {}
        # Set when the registry created the shared client itself.
        self._client: Optional[httpx.Client] = None

        self.register(AllowAuthorizer(provider))
        self.register(DenyAuthorizer(provider))
        self.register(
            OPAAuthorizer(
                provider,
                client=client,
                audit_logger=audit_logger,
                metrics=metrics,
            )
        )

    @classmethod
    def from_config(
        cls,
        config: GatewayConfig,
        transport: Optional[httpx.BaseTransport] = None,
        metrics_registry: Optional[CollectorRegistry] = None,
    ) -> "AuthorizerRegistry":
        """
        Build a registry, shared client, audit logger and metrics from process configuration.

        Args:
            config: Loaded process configuration
            transport: Transport override for the shared client
            metrics_registry: Prometheus registry (defaults to the global REGISTRY)
        """
        client = new_latency_tolerant_client(config.transport, transport=transport)
        registry = cls(
            StaticConfigurationProvider(config),
            client=client,
            audit_logger=DecisionAuditLogger(service_name=config.service_name),
            metrics=DecisionMetrics(
                registry=metrics_registry,
                enabled=config.metrics.enabled,
            ),
        )
        registry._client = client
        return registry

    def register(self, authorizer: Authorizer, replace: bool = False) -> None:
        """
        Register an authorizer under its identifier.

        Raises:
            ValueError: If the identifier is taken and replace is False
        """
        authorizer_id = authorizer.get_id()
        if authorizer_id in self._authorizers and not replace:
            raise ValueError(f"Authorizer already registered: {authorizer_id}")

        self._authorizers[authorizer_id] = authorizer
        logger.debug(f"Registered authorizer: {authorizer_id}")

    def get(self, authorizer_id: str) -> Authorizer:
        """
        Look up an authorizer.

        Raises:
            AuthorizerNotFoundError: If no authorizer has this identifier
        """
        try:
            return self._authorizers[authorizer_id]
        except KeyError:
            raise AuthorizerNotFoundError(authorizer_id) from None

    def ids(self) -> list[str]:
        """Return registered identifiers in sorted order."""
        return sorted(self._authorizers)

    def enabled_ids(self) -> list[str]:
        """Return identifiers of registered authorizers enabled in configuration."""
        return [i for i in self.ids() if self.provider.authorizer_is_enabled(i)]

    def __contains__(self, authorizer_id: object) -> bool:
        return authorizer_id in self._authorizers

    def close(self) -> None:
        """Close every authorizer and the shared client created by from_config."""
        for authorizer in self._authorizers.values():
            authorizer.close()

        if self._client is not None:
            self._client.close()
