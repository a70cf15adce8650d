"""
Shared HTTP transport for policygate.

Authorizers never build their own clients. They receive one from this module,
configured for high latency tolerance: long timeouts, connection attempts
retried by the transport, certificate verification and redirects as configured.
"""

import logging
from typing import Optional

import httpx

from policygate.config import TransportConfig


logger = logging.getLogger(__name__)


def build_timeout(config: TransportConfig) -> httpx.Timeout:
    """Translate transport settings into an httpx timeout."""
    return httpx.Timeout(
        connect=config.connect_timeout_seconds,
        read=config.read_timeout_seconds,
        write=config.write_timeout_seconds,
        pool=config.pool_timeout_seconds,
    )


def new_latency_tolerant_client(
    config: Optional[TransportConfig] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """
    Create the shared client used to reach remote policy engines.

    Args:
        config: Transport settings (defaults tolerate slow engines)
        transport: Transport override, e.g. httpx.MockTransport in tests

    Returns:
        Configured httpx.Client. The caller owns it and must close it.
    """
    config = config or TransportConfig()

    if transport is None:
        transport = httpx.HTTPTransport(
            verify=config.verify_tls,
            retries=config.retries,
            limits=httpx.Limits(max_connections=config.max_connections),
        )

    logger.debug(
        f"Creating latency tolerant client: read_timeout={config.read_timeout_seconds}s, "
        f"retries={config.retries}, verify_tls={config.verify_tls}"
    )

    return httpx.Client(
        transport=transport,
        timeout=build_timeout(config),
        follow_redirects=config.follow_redirects,
    )
