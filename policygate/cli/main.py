"""
policygate - CLI Main Entry Point
"""

import sys
import time
from typing import Optional

import click
import httpx
from prometheus_client import CollectorRegistry

from policygate import __version__
from policygate.authz.opa import build_policy_input
from policygate.authz.registry import AuthorizerRegistry
from policygate.config import GatewayConfig
from policygate.exceptions import (
    AuthorizerError,
    ForbiddenError,
    PolicyGateError,
    UpstreamError,
)
from policygate.session import AuthenticationSession
from policygate.cli.utils import (
    load_config,
    parse_rule_config,
    success,
    error,
    warning,
    info,
    print_json,
    print_table,
    format_duration,
)


EXIT_ALLOWED = 0
EXIT_ERROR = 1
EXIT_DENIED = 2


def build_registry(config: GatewayConfig) -> AuthorizerRegistry:
    """Create the authorizer registry used by CLI commands."""
    # A private metrics registry keeps one-shot commands off the global one.
    return AuthorizerRegistry.from_config(config, metrics_registry=CollectorRegistry())


def _absolute_path(ctx, param, value):
    """Anchor a request path at the root so it never merges into the host."""
    if not value.startswith("/"):
        return f"/{value}"
    return value


@click.group()
@click.version_option(version=__version__, prog_name="policygate")
def cli():
    """
    policygate - Command Line Interface

    Validate authorizer rule configuration and ask remote policy
    engines for decisions.
    """
    pass


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def ids(config_file):
    """
    List registered authorizers and whether they are enabled.
    """
    config = load_config(config_file)
    registry = build_registry(config)

    try:
        enabled = set(registry.enabled_ids())
        rows = [
            {"authorizer": authorizer_id, "enabled": authorizer_id in enabled}
            for authorizer_id in registry.ids()
        ]
        print_table(rows, ["authorizer", "enabled"], title="Authorizers")
    finally:
        registry.close()


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option(
    "--authorizer",
    "-a",
    default="opa",
    show_default=True,
    help="Authorizer identifier",
)
@click.option(
    "--rule",
    "-r",
    default=None,
    help='Rule configuration as JSON, e.g. \'{"remote": "http://opa:8181/v1/data/allow"}\'',
)
def validate(config_file, authorizer, rule):
    """
    Validate rule configuration for an authorizer.

    Checks enablement and configuration without contacting
    the remote policy engine.
    """
    config = load_config(config_file)
    registry = build_registry(config)

    try:
        info(f"Validating rule configuration for authorizer: {authorizer}")
        registry.get(authorizer).validate(parse_rule_config(rule))
    except AuthorizerError as e:
        error(str(e))
        sys.exit(EXIT_ERROR)
    finally:
        registry.close()

    success(f"Rule configuration is valid for authorizer: {authorizer}")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option("--method", "-m", default="GET", show_default=True, help="HTTP method")
@click.option(
    "--path",
    "-p",
    "path",
    required=True,
    callback=_absolute_path,
    help="Request path, e.g. /widgets/1",
)
@click.option(
    "--authorization",
    default=None,
    help="Authorization header value, e.g. 'Bearer abc123'",
)
@click.option("--subject", default="", help="Authenticated subject for audit logs")
@click.option(
    "--authorizer",
    "-a",
    default="opa",
    show_default=True,
    help="Authorizer identifier",
)
@click.option("--rule", "-r", default=None, help="Rule configuration as JSON")
@click.option("--show-input", is_flag=True, help="Print the policy input (token redacted)")
def check(config_file, method, path, authorization, subject, authorizer, rule, show_input):
    """
    Ask an authorizer for a decision on a request.

    Exit codes: 0 allowed, 1 error, 2 denied.

    Example:
        policygate check policygate.yaml -m GET -p /widgets/1 --authorization "Bearer abc123"
    """
    config = load_config(config_file)
    registry = build_registry(config)

    headers = {}
    if authorization is not None:
        headers["Authorization"] = authorization
    request = httpx.Request(method, f"http://localhost{path}", headers=headers)

    if show_input:
        policy_input = build_policy_input(request)
        if policy_input["token"]:
            policy_input["token"] = "<redacted>"
        print_json({"input": policy_input}, title="Policy input")

    exit_code = _decide(registry, authorizer, request, AuthenticationSession(subject=subject), rule)
    sys.exit(exit_code)


def _decide(
    registry: AuthorizerRegistry,
    authorizer_id: str,
    request: httpx.Request,
    session: AuthenticationSession,
    rule: Optional[str],
) -> int:
    start_time = time.time()
    try:
        registry.get(authorizer_id).authorize(request, session, parse_rule_config(rule))
    except ForbiddenError:
        warning(f"Denied: {request.method} {request.url.path}")
        return EXIT_DENIED
    except UpstreamError as e:
        error(f"Decision could not be obtained: {e}")
        return EXIT_ERROR
    except PolicyGateError as e:
        error(str(e))
        return EXIT_ERROR
    finally:
        registry.close()

    duration = time.time() - start_time
    success(f"Allowed: {request.method} {request.url.path} ({format_duration(duration)})")
    return EXIT_ALLOWED


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
