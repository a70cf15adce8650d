"""
Custom exceptions for policygate.

All exceptions inherit from PolicyGateError for easy catching of package-specific
errors. The authorization pipeline relies on the concrete subclasses to tell an
explicit policy denial apart from a decision that could not be obtained.
"""

from typing import Optional


class PolicyGateError(Exception):
    """
    Base exception for all policygate errors.

    All package exceptions inherit from this class, allowing callers to catch
    any policygate error with a single exception handler.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(PolicyGateError):
    """
    Raised when the process configuration cannot be loaded.

    This includes:
    - Missing or unreadable configuration files
    - Invalid YAML
    - Values rejected by validation
    - Malformed environment overrides

    Note:
        Per-rule authorizer configuration problems are reported as
        AuthorizerMisconfiguredError instead.
    """

    pass


class AuthorizerError(PolicyGateError):
    """
    Raised for problems tied to a specific authorizer.

    Attributes:
        authorizer_id: Identifier of the authorizer that reported the error
    """

    def __init__(self, authorizer_id: str, message: str, details: Optional[dict] = None):
        details = {"authorizer": authorizer_id, **(details or {})}
        super().__init__(message, details)
        self.authorizer_id = authorizer_id


class AuthorizerNotEnabledError(AuthorizerError):
    """
    Raised when an authorizer is globally disabled.

    Reported at validation or authorization time, before any configuration is
    decoded. Never retried.
    """

    def __init__(self, authorizer_id: str):
        super().__init__(
            authorizer_id,
            f'Authorizer "{authorizer_id}" is disabled per configuration',
        )


class AuthorizerMisconfiguredError(AuthorizerError):
    """
    Raised when the merged authorizer configuration cannot be decoded.

    Examples:
        - Rule configuration is not valid JSON
        - Required field "remote" is missing
        - Unknown field present in the rule configuration

    The underlying cause is chained and also available in details["error"].
    """

    def __init__(self, authorizer_id: str, cause: Exception):
        super().__init__(
            authorizer_id,
            f'Configuration for authorizer "{authorizer_id}" could not be validated',
            details={"error": str(cause)},
        )
        self.cause = cause


class AuthorizerNotFoundError(AuthorizerError):
    """Raised when no authorizer is registered under the requested identifier."""

    def __init__(self, authorizer_id: str):
        super().__init__(
            authorizer_id,
            f'Authorizer "{authorizer_id}" is unknown',
        )


class AuthorizationError(PolicyGateError):
    """
    Raised when an authorization decision is negative or cannot be rendered.

    Callers must treat every AuthorizationError as "not allowed". Subclasses
    distinguish an explicit denial (ForbiddenError) from a failed decision
    (UpstreamError).
    """

    pass


class ForbiddenError(AuthorizationError):
    """
    Raised when the policy engine explicitly denied the request.

    This is a normal, expected outcome rather than a system fault. The pipeline
    renders it as a uniform access-denied response.
    """

    def __init__(self, message: str = "Access credentials are not sufficient to access this resource",
                 details: Optional[dict] = None):
        super().__init__(message, details)


class UpstreamError(AuthorizationError):
    """
    Raised when the remote policy engine could not be consulted.

    This includes:
    - DNS failures, refused connections, timeouts
    - Invalid remote URLs
    - Status codes other than 200 and 403

    Attributes:
        expected_status: Status code that signals an allow (when a response arrived)
        actual_status: Status code the remote engine returned (when a response arrived)
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        expected_status: Optional[int] = None,
        actual_status: Optional[int] = None,
    ):
        super().__init__(message, details)
        self.expected_status = expected_status
        self.actual_status = actual_status
