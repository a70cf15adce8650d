"""
Tests for the OPA authorizer.

Tests policy input construction, the outbound call, status code mapping,
transport failures, configuration resolution, and configuration identity.
"""

import json

import httpx
import pytest
from pydantic import ValidationError

from policygate.authz.opa import (
    OPAAuthorizer,
    OPAAuthorizerConfig,
    build_policy_input,
    extract_token,
)
from policygate.config import TransportConfig
from policygate.exceptions import (
    AuthorizationError,
    AuthorizerMisconfiguredError,
    AuthorizerNotEnabledError,
    ForbiddenError,
    UpstreamError,
)
from policygate.testing import DEFAULT_REMOTE, FakeConfigurationProvider, make_request
from policygate.transport import new_latency_tolerant_client


class TestPolicyInput:
    """Test the policy input document sent to the remote engine."""

    def test_bearer_request_body(self, opa_authorizer, mock_policy_engine, session):
        """Test the exact outbound body for a bearer-authenticated request."""
        request = make_request("GET", "/widgets/1", authorization="Bearer abc123")

        opa_authorizer.authorize(request, session)

        calls = mock_policy_engine.get_calls()
        assert len(calls) == 1
        assert calls[0].json() == {
            "input": {"path": "/widgets/1", "method": "GET", "token": "abc123"}
        }

    def test_missing_authorization_header(self, opa_authorizer, mock_policy_engine, session):
        """Test that token is the empty string without an Authorization header."""
        opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)

        assert mock_policy_engine.last_input["token"] == ""

    def test_non_bearer_header_passed_through(self, opa_authorizer, mock_policy_engine, session):
        """Test that a non-bearer credential is forwarded unchanged."""
        request = make_request("GET", "/", authorization="Basic dXNlcjpwYXNz")

        opa_authorizer.authorize(request, session)

        assert mock_policy_engine.last_input["token"] == "Basic dXNlcjpwYXNz"

    def test_method_as_received(self, opa_authorizer, mock_policy_engine, session):
        """Test that the HTTP method is forwarded as received."""
        opa_authorizer.authorize(make_request("PATCH", "/widgets/1"), session)

        assert mock_policy_engine.last_input["method"] == "PATCH"

    def test_path_not_normalized(self, opa_authorizer, mock_policy_engine, session):
        """Test that duplicate and trailing slashes are preserved."""
        opa_authorizer.authorize(make_request("GET", "/widgets//1/"), session)

        assert mock_policy_engine.last_input["path"] == "/widgets//1/"

    def test_query_string_excluded(self, opa_authorizer, mock_policy_engine, session):
        """Test that only the URL path is forwarded."""
        opa_authorizer.authorize(make_request("GET", "/widgets?limit=10"), session)

        assert mock_policy_engine.last_input["path"] == "/widgets"

    def test_session_not_included(self, opa_authorizer, mock_policy_engine, session):
        """Test that the authentication session does not leak into the input."""
        opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)

        assert set(mock_policy_engine.last_input) == {"path", "method", "token"}
        assert "alice" not in mock_policy_engine.get_calls()[0].body.decode()

    def test_build_policy_input_lowercase_header(self):
        """Test that the Authorization header is looked up case-insensitively."""
        request = make_request("DELETE", "/x", headers={"authorization": "Bearer t0k"})

        assert build_policy_input(request) == {
            "path": "/x",
            "method": "DELETE",
            "token": "t0k",
        }

    def test_first_authorization_header_used(self, opa_authorizer, mock_policy_engine, session):
        """Test that repeated Authorization headers are not joined."""
        request = httpx.Request(
            "GET",
            "http://gateway.test.local/widgets/1",
            headers=[("Authorization", "Bearer first"), ("Authorization", "Bearer second")],
        )

        opa_authorizer.authorize(request, session)

        assert mock_policy_engine.last_input["token"] == "first"


class TestExtractToken:
    """Test bearer credential extraction."""

    def test_prefix_removed(self):
        assert extract_token("Bearer abc123") == "abc123"

    def test_missing_header(self):
        assert extract_token(None) == ""
        assert extract_token("") == ""

    def test_every_occurrence_removed(self):
        """Test that the literal is removed everywhere, not only as a prefix."""
        assert extract_token("Bearer abcBearer def") == "abcdef"

    def test_case_sensitive(self):
        """Test that only the exact literal is removed."""
        assert extract_token("bearer abc123") == "bearer abc123"


class TestOutboundRequest:
    """Test the call made to the remote engine."""

    def test_post_json_to_remote(self, opa_authorizer, mock_policy_engine, session):
        """Test method, URL, and content type of the outbound call."""
        opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)

        call = mock_policy_engine.get_calls()[0]
        assert call.method == "POST"
        assert call.url == DEFAULT_REMOTE
        assert call.headers["content-type"] == "application/json"

    def test_rule_remote_overrides_default(self, opa_authorizer, mock_policy_engine, session):
        """Test that the rule configuration replaces the provider default."""
        rule = json.dumps({"remote": "https://policy.test.local/v1/data/widgets/allow"})

        opa_authorizer.authorize(make_request("GET", "/widgets/1"), session, rule)

        call = mock_policy_engine.get_calls()[0]
        assert call.url == "https://policy.test.local/v1/data/widgets/allow"

    def test_one_call_per_request(self, opa_authorizer, mock_policy_engine, session):
        """Test that every authorization maps to exactly one outbound call."""
        for _ in range(3):
            opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)

        assert len(mock_policy_engine.get_calls()) == 3


class TestStatusMapping:
    """Test how response status codes map to decisions."""

    def test_ok_allows(self, opa_authorizer, session):
        """Test that 200 with an empty body allows."""
        assert opa_authorizer.authorize(make_request("GET", "/widgets/1"), session) is None

    def test_ok_body_ignored(self, opa_authorizer, mock_policy_engine, session):
        """Test that the response body has no influence on the decision."""
        mock_policy_engine.set_response(200, b'{"result": false}')

        assert opa_authorizer.authorize(make_request("GET", "/widgets/1"), session) is None

    def test_forbidden_denies(self, opa_authorizer, mock_policy_engine, session):
        """Test that 403 raises the forbidden error specifically."""
        mock_policy_engine.set_response(403)

        with pytest.raises(ForbiddenError) as exc_info:
            opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)

        assert not isinstance(exc_info.value, UpstreamError)
        assert isinstance(exc_info.value, AuthorizationError)

    def test_server_error_is_upstream_failure(self, opa_authorizer, mock_policy_engine, session):
        """Test that 500 carries expected and actual status codes."""
        mock_policy_engine.set_response(500, b"internal error")

        with pytest.raises(UpstreamError) as exc_info:
            opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)

        assert not isinstance(exc_info.value, ForbiddenError)
        assert exc_info.value.expected_status == 200
        assert exc_info.value.actual_status == 500
        assert "expected status code 200 but got 500" in str(exc_info.value)

    @pytest.mark.parametrize("status_code", [201, 204, 401, 404, 502])
    def test_other_status_codes_fail(self, opa_authorizer, mock_policy_engine, session, status_code):
        """Test that any status other than 200 and 403 fails closed."""
        mock_policy_engine.set_response(status_code)

        with pytest.raises(UpstreamError) as exc_info:
            opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)

        assert exc_info.value.actual_status == status_code

    @pytest.mark.parametrize("status_code", [200, 403, 500])
    def test_response_released(self, opa_authorizer, mock_policy_engine, session, status_code):
        """Test that the response body is released on every branch."""
        mock_policy_engine.set_response(status_code, b"ignored")

        try:
            opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)
        except AuthorizationError:
            pass

        assert mock_policy_engine.responses_closed == 1


class TestTransportFailures:
    """Test failures reaching the remote engine."""

    def test_connection_refused(self, opa_authorizer, mock_policy_engine, session):
        """Test that a refused connection is an upstream failure."""
        mock_policy_engine.set_failure_mode("connection")

        with pytest.raises(UpstreamError) as exc_info:
            opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)

        assert exc_info.value.actual_status is None
        assert exc_info.value.details["error_type"] == "ConnectError"
        assert exc_info.value.__cause__ is not None

    def test_timeout(self, opa_authorizer, mock_policy_engine, session):
        """Test that a timeout is an upstream failure."""
        mock_policy_engine.set_failure_mode("timeout")

        with pytest.raises(UpstreamError) as exc_info:
            opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)

        assert exc_info.value.details["error_type"] == "ReadTimeout"

    def test_failure_not_retried(self, opa_authorizer, mock_policy_engine, session):
        """Test that the authorizer itself makes a single attempt."""
        mock_policy_engine.set_failure_mode("connection")

        with pytest.raises(UpstreamError):
            opa_authorizer.authorize(make_request("GET", "/widgets/1"), session)

        assert len(mock_policy_engine.get_calls()) == 1

    def test_real_connection_refused(self, session):
        """Test a refused TCP connection through the real transport."""
        provider = FakeConfigurationProvider(
            enabled=["opa"],
            defaults={"opa": {"remote": "http://127.0.0.1:1/v1/data/allow"}},
        )
        client = new_latency_tolerant_client(
            TransportConfig(retries=0, connect_timeout_seconds=2.0)
        )
        authorizer = OPAAuthorizer(provider, client=client)

        try:
            with pytest.raises(UpstreamError):
                authorizer.authorize(make_request("GET", "/widgets/1"), session)
        finally:
            client.close()


class TestConfiguration:
    """Test configuration resolution and validation."""

    def test_config_uses_default(self, opa_authorizer):
        config = opa_authorizer.config(None)

        assert isinstance(config, OPAAuthorizerConfig)
        assert config.remote == DEFAULT_REMOTE

    @pytest.mark.parametrize(
        "raw",
        [
            '{"remote": "http://opa:8181/allow"}',
            b'{"remote": "http://opa:8181/allow"}',
            {"remote": "http://opa:8181/allow"},
        ],
    )
    def test_config_accepts_raw_forms(self, opa_authorizer, raw):
        """Test JSON text, bytes, and decoded dictionaries."""
        assert opa_authorizer.config(raw).remote == "http://opa:8181/allow"

    @pytest.mark.parametrize(
        "remote",
        [
            "HTTP://opa:8181/allow",
            "Https://opa.example.com/v1/data/allow",
        ],
    )
    def test_scheme_case_insensitive(self, opa_authorizer, mock_policy_engine, session, remote):
        """Test that an upper-case scheme is accepted and used as configured."""
        rule = json.dumps({"remote": remote})

        opa_authorizer.validate(rule)
        opa_authorizer.authorize(make_request("GET", "/widgets/1"), session, rule)

        assert opa_authorizer.config(rule).remote == remote
        assert len(mock_policy_engine.get_calls()) == 1

    def test_validate_does_not_call_engine(self, opa_authorizer, mock_policy_engine):
        """Test that validation is a dry run."""
        opa_authorizer.validate('{"remote": "http://opa:8181/allow"}')

        assert mock_policy_engine.get_calls() == []

    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            "[1, 2]",
            '{"remote": "ftp://opa/allow"}',
            '{"remote": "http://"}',
            '{"remote": "opa:8181/allow"}',
            '{"remote": "http://opa/allow", "timeout": 5}',
        ],
    )
    def test_invalid_config(self, opa_authorizer, mock_policy_engine, session, raw):
        """Test that invalid rule configuration is reported as misconfiguration."""
        with pytest.raises(AuthorizerMisconfiguredError):
            opa_authorizer.validate(raw)

        with pytest.raises(AuthorizerMisconfiguredError):
            opa_authorizer.authorize(make_request("GET", "/widgets/1"), session, raw)

        assert mock_policy_engine.get_calls() == []

    def test_missing_remote(self, mock_policy_engine, session):
        """Test that remote is required when no default provides it."""
        provider = FakeConfigurationProvider(enabled=["opa"])
        client = mock_policy_engine.client()
        authorizer = OPAAuthorizer(provider, client=client)

        with pytest.raises(AuthorizerMisconfiguredError) as exc_info:
            authorizer.validate(None)
        assert isinstance(exc_info.value.__cause__, ValidationError)
        assert exc_info.value.authorizer_id == "opa"

        with pytest.raises(AuthorizerMisconfiguredError):
            authorizer.authorize(make_request("GET", "/widgets/1"), session, "{}")

        assert mock_policy_engine.get_calls() == []
        client.close()

    def test_invalid_json_cause_attached(self, opa_authorizer):
        with pytest.raises(AuthorizerMisconfiguredError) as exc_info:
            opa_authorizer.validate("{not json")

        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)
        assert "error" in exc_info.value.details

    def test_disabled(self, opa_authorizer, fake_provider, mock_policy_engine, session):
        """Test that a disabled authorizer fails before decoding configuration."""
        fake_provider.disable("opa")

        with pytest.raises(AuthorizerNotEnabledError):
            opa_authorizer.validate("{not json")

        with pytest.raises(AuthorizerNotEnabledError):
            opa_authorizer.authorize(make_request("GET", "/widgets/1"), session, "{not json")

        assert fake_provider.config_calls == 0
        assert mock_policy_engine.get_calls() == []

    def test_not_enabled_distinct_from_misconfigured(self):
        assert not issubclass(AuthorizerNotEnabledError, AuthorizerMisconfiguredError)
        assert not issubclass(AuthorizerMisconfiguredError, AuthorizerNotEnabledError)

    def test_get_id(self, opa_authorizer):
        assert opa_authorizer.get_id() == "opa"


class TestConfigIdentity:
    """Test the configuration fingerprint and template reuse."""

    def test_identical_config_same_id(self):
        first = OPAAuthorizerConfig(remote="http://opa:8181/allow")
        second = OPAAuthorizerConfig(remote="http://opa:8181/allow")

        assert first.payload_template_id == second.payload_template_id

    def test_different_remote_different_id(self):
        first = OPAAuthorizerConfig(remote="http://opa:8181/allow")
        second = OPAAuthorizerConfig(remote="http://opa:8181/deny")

        assert first.payload_template_id != second.payload_template_id

    def test_id_is_sha256_hex(self):
        template_id = OPAAuthorizerConfig(remote="http://opa:8181/allow").payload_template_id

        assert len(template_id) == 64
        int(template_id, 16)

    def test_template_reused_for_identical_config(self, opa_authorizer):
        first = opa_authorizer.policy_input_template(opa_authorizer.config(None))
        second = opa_authorizer.policy_input_template(opa_authorizer.config(None))

        assert first is second

    def test_config_immutable(self):
        config = OPAAuthorizerConfig(remote="http://opa:8181/allow")

        with pytest.raises(ValidationError):
            config.remote = "http://elsewhere/allow"
