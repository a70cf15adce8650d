"""
Static decision points: allow every request or deny every request.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict

from policygate.authz.base import Authorizer
from policygate.config import ConfigurationProvider, RawConfig
from policygate.exceptions import (
    AuthorizerMisconfiguredError,
    AuthorizerNotEnabledError,
    ForbiddenError,
)
from policygate.session import AuthenticationSession


class EmptyConfig(BaseModel):
    """Configuration of authorizers that take no options."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class _StaticAuthorizer(Authorizer):
    authorizer_id = ""

    def __init__(self, provider: ConfigurationProvider):
        self._provider = provider

    def get_id(self) -> str:
        return self.authorizer_id

    def validate(self, config: RawConfig) -> None:
        if not self._provider.authorizer_is_enabled(self.get_id()):
            raise AuthorizerNotEnabledError(self.get_id())

        try:
            self._provider.authorizer_config(self.get_id(), config, EmptyConfig)
        except ValueError as e:
            raise AuthorizerMisconfiguredError(self.get_id(), e) from e


class AllowAuthorizer(_StaticAuthorizer):
    """Allows every request."""

    authorizer_id = "allow"

    def authorize(
        self,
        request: Any,
        session: AuthenticationSession,
        config: RawConfig = None,
    ) -> None:
        self.validate(config)


class DenyAuthorizer(_StaticAuthorizer):
    """Denies every request."""

    authorizer_id = "deny"

    def authorize(
        self,
        request: Any,
        session: AuthenticationSession,
        config: RawConfig = None,
    ) -> None:
        self.validate(config)
        raise ForbiddenError()
