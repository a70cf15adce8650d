"""
Prometheus metrics for policygate decisions.
"""

from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    CollectorRegistry,
    REGISTRY,
)


class DecisionMetrics:
    """
    Collects and exposes Prometheus metrics for authorizers.

    Metrics include:
    - Decision counters by authorizer and outcome
    - Error counters by authorizer and error type
    - Decision duration histogram (includes the remote round trip)
    """

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        enabled: bool = True,
    ):
        """
        Initialize metrics collector.

        Args:
            registry: Prometheus registry (defaults to global REGISTRY)
            enabled: Whether metrics collection is enabled
        """
        self.registry = registry or REGISTRY
        self.enabled = enabled

        if not self.enabled:
            return

        self.decisions_total = Counter(
            "policygate_decisions_total",
            "Total number of authorization decisions",
            ["authorizer", "decision"],
            registry=self.registry,
        )

        self.errors_total = Counter(
            "policygate_errors_total",
            "Total number of failed authorization attempts",
            ["authorizer", "error_type"],
            registry=self.registry,
        )

        self.decision_duration_seconds = Histogram(
            "policygate_decision_duration_seconds",
            "Authorization decision duration in seconds",
            ["authorizer"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self.registry,
        )

    def record_decision(self, authorizer: str, decision: str) -> None:
        """
        Record an authorization decision.

        Args:
            authorizer: Authorizer identifier
            decision: Decision result (allow, deny, error)
        """
        if not self.enabled:
            return

        self.decisions_total.labels(
            authorizer=authorizer,
            decision=decision,
        ).inc()

    def record_error(self, authorizer: str, error_type: str) -> None:
        """
        Record a failed authorization attempt.

        Args:
            authorizer: Authorizer identifier
            error_type: Exception class name
        """
        if not self.enabled:
            return

        self.errors_total.labels(
            authorizer=authorizer,
            error_type=error_type,
        ).inc()

    def observe_duration(self, authorizer: str, duration: float) -> None:
        """
        Record how long a decision took.

        Args:
            authorizer: Authorizer identifier
            duration: Duration in seconds
        """
        if not self.enabled:
            return

        self.decision_duration_seconds.labels(
            authorizer=authorizer,
        ).observe(duration)

