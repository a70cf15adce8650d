"""
OPA (Open Policy Agent) authorizer implementation.

The authorizer posts a policy input document describing the request to a
remote policy engine and maps the HTTP status of the reply to a decision:

    200 -> allow
    403 -> deny (ForbiddenError)
    any other status or transport failure -> UpstreamError

The response body is never read.
"""

import hashlib
import json
import logging
import time
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from policygate.authz.base import Authorizer
from policygate.authz.templates import PolicyInputTemplate, TemplateCache
from policygate.config import ConfigurationProvider, RawConfig
from policygate.exceptions import (
    AuthorizationError,
    AuthorizerMisconfiguredError,
    AuthorizerNotEnabledError,
    ForbiddenError,
    PolicyGateError,
    UpstreamError,
)
from policygate.observability.logging import DecisionAuditLogger
from policygate.observability.metrics import DecisionMetrics
from policygate.session import AuthenticationSession
from policygate.transport import new_latency_tolerant_client


logger = logging.getLogger(__name__)


class OPAAuthorizerConfig(BaseModel):
    """Per-rule configuration of the OPA authorizer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    remote: str = Field(..., description="URL of the policy decision endpoint")

    @field_validator("remote")
    @classmethod
    def validate_remote(cls, v: str) -> str:
        """Validate remote endpoint format."""
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"remote must be a valid HTTP(S) URL: {e}") from e

        # httpx lower-cases the scheme while parsing
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError("remote must be a valid HTTP(S) URL")
        return v

    @property
    def payload_template_id(self) -> str:
        """Fingerprint used to associate the payload template with this configuration."""
        return hashlib.sha256(self.remote.encode("utf-8")).hexdigest()


def extract_token(authorization: Optional[str]) -> str:
    """
    Extract the bearer credential from an Authorization header value.

    Every occurrence of "Bearer " is removed, not just a leading prefix.
    Deployed policies depend on this exact behavior.
    """
    if not authorization:
        return ""
    return authorization.replace("Bearer ", "")


def build_policy_input(request: Any) -> dict:
    """
    Build the fixed-shape policy input document for a request.

    Only the first Authorization header is used when the request carries
    several.
    """
    authorization = request.headers.get_list("authorization")[:1]
    return {
        "path": request.url.path,
        "method": request.method,
        "token": extract_token(authorization[0] if authorization else None),
    }


class OPAAuthorizer(Authorizer):
    """
    Authorizer backed by a remote policy engine.

    Features:
    - Rule configuration merged over provider defaults
    - Fixed {path, method, token} policy input
    - Fail-closed status mapping, no retries in the authorizer
    - Optional decision audit logging and metrics
    """

    def __init__(
        self,
        provider: ConfigurationProvider,
        client: Optional[httpx.Client] = None,
        audit_logger: Optional[DecisionAuditLogger] = None,
        metrics: Optional[DecisionMetrics] = None,
    ):
        """
        Initialize OPA authorizer.

        Args:
            provider: Read-only process configuration
            client: Shared HTTP client (a latency tolerant client is created if omitted)
            audit_logger: Receives one event per decision
            metrics: Receives decision counts and durations
        """
        self._provider = provider
        self._owns_client = client is None
        self._client = client or new_latency_tolerant_client()
        self._audit_logger = audit_logger
        self._metrics = metrics
        self._templates: TemplateCache[PolicyInputTemplate] = TemplateCache()

    def get_id(self) -> str:
        return "opa"

    def config(self, raw: RawConfig) -> OPAAuthorizerConfig:
        """
        Merge rule configuration with the provider defaults and validate it.

        Raises:
            AuthorizerMisconfiguredError: If the resulting configuration is invalid
        """
        try:
            return self._provider.authorizer_config(self.get_id(), raw, OPAAuthorizerConfig)
        except ValueError as e:
            raise AuthorizerMisconfiguredError(self.get_id(), e) from e

    def validate(self, config: RawConfig) -> None:
        if not self._provider.authorizer_is_enabled(self.get_id()):
            raise AuthorizerNotEnabledError(self.get_id())

        self.config(config)

    def policy_input_template(self, config: OPAAuthorizerConfig) -> PolicyInputTemplate:
        """Return the policy input template cached for this configuration."""
        return self._templates.get_or_build(
            config.payload_template_id,
            lambda: build_policy_input,
        )

    def authorize(
        self,
        request: Any,
        session: AuthenticationSession,
        config: RawConfig = None,
    ) -> None:
        start_time = time.time()
        decision = "error"
        reason = ""

        try:
            self._decide(request, config)
            decision = "allow"
        except ForbiddenError as e:
            decision = "deny"
            reason = e.message
            raise
        except PolicyGateError as e:
            reason = str(e)
            if self._metrics is not None:
                self._metrics.record_error(self.get_id(), type(e).__name__)
            raise
        finally:
            self._record(request, session, decision, time.time() - start_time, reason)

    def _decide(self, request: Any, raw: RawConfig) -> None:
        if not self._provider.authorizer_is_enabled(self.get_id()):
            raise AuthorizerNotEnabledError(self.get_id())

        config = self.config(raw)
        template = self.policy_input_template(config)

        try:
            body = json.dumps({"input": template(request)})
        except (TypeError, ValueError) as e:
            raise AuthorizationError(
                "Failed to encode policy input",
                details={"error": str(e)},
            ) from e

        try:
            with self._client.stream(
                "POST",
                config.remote,
                content=body,
                headers={"Content-Type": "application/json"},
            ) as response:
                status_code = response.status_code
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise UpstreamError(
                f"Unable to reach remote policy engine: {e}",
                details={"remote": config.remote, "error_type": type(e).__name__},
            ) from e

        if status_code == httpx.codes.FORBIDDEN:
            raise ForbiddenError(details={"remote": config.remote})
        if status_code != httpx.codes.OK:
            raise UpstreamError(
                f"expected status code {httpx.codes.OK.value} but got {status_code}",
                details={"remote": config.remote},
                expected_status=httpx.codes.OK.value,
                actual_status=status_code,
            )

    def _record(
        self,
        request: Any,
        session: AuthenticationSession,
        decision: str,
        duration: float,
        reason: str,
    ) -> None:
        method = getattr(request, "method", "")
        path = request.url.path if hasattr(request, "url") else ""

        if decision == "error":
            logger.warning(f"OPA decision failed for {method} {path}: {reason}")
        else:
            logger.debug(f"OPA decision for {method} {path}: {decision} ({duration * 1000:.1f}ms)")

        if self._metrics is not None:
            self._metrics.record_decision(self.get_id(), decision)
            self._metrics.observe_duration(self.get_id(), duration)

        if self._audit_logger is not None:
            self._audit_logger.audit_decision(
                authorizer=self.get_id(),
                method=method,
                path=path,
                subject=session.subject if session is not None else "",
                decision=decision,
                duration=duration,
                reason=reason,
            )

    def close(self) -> None:
        """Close the HTTP client if this authorizer created it."""
        if self._owns_client:
            self._client.close()
