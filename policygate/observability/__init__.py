"""
policygate - Observability Layer

This module provides observability for authorizers:
- Structured JSON logging
- Authorization decision audit trail
- Prometheus decision metrics
"""

from policygate.observability.logging import (
    DecisionAuditLogger,
    JSONFormatter,
    setup_logging,
)
from policygate.observability.metrics import DecisionMetrics

__all__ = [
    "DecisionAuditLogger",
    "DecisionMetrics",
    "JSONFormatter",
    "setup_logging",
]
