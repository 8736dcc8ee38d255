"""
Shared metrics configuration for the Post Access decision engine.
"""

from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, REGISTRY

from shared.circuit_breaker import CircuitBreakerState


_BREAKER_STATE_VALUES = {
    CircuitBreakerState.CLOSED: 0,
    CircuitBreakerState.HALF_OPEN: 1,
    CircuitBreakerState.OPEN: 2,
}


class DecisionMetrics:
    """Prometheus metrics recorded by the decision engine."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, namespace: str = "post_access"):
        self.registry = registry if registry is not None else REGISTRY
        self.namespace = namespace
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up decision metrics."""
        self._metrics["decisions_total"] = Counter(
            f"{self.namespace}_decisions_total",
            "Total access decisions",
            ["privilege", "decision", "rule"],
            registry=self.registry
        )

        self._metrics["undetermined_total"] = Counter(
            f"{self.namespace}_undetermined_total",
            "Decisions that could not be determined",
            ["error_code"],
            registry=self.registry
        )

        self._metrics["decision_duration_seconds"] = Histogram(
            f"{self.namespace}_decision_duration_seconds",
            "Access decision duration in seconds",
            ["privilege"],
            registry=self.registry
        )

        self._metrics["circuit_breaker_state"] = Gauge(
            f"{self.namespace}_circuit_breaker_state",
            "Collaborator circuit breaker state (0 closed, 1 half-open, 2 open)",
            ["name"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_decision(self, privilege: str, allowed: bool, rule: str, duration: float):
        """Record a completed decision."""
        self._metrics["decisions_total"].labels(
            privilege=privilege,
            decision="allow" if allowed else "deny",
            rule=rule
        ).inc()
        self._metrics["decision_duration_seconds"].labels(privilege=privilege).observe(duration)

    def record_undetermined(self, error_code: str):
        """Record a decision that failed closed."""
        self._metrics["undetermined_total"].labels(error_code=error_code).inc()

    def record_breaker_state(self, name: str, state: CircuitBreakerState):
        """Publish a circuit breaker state."""
        self._metrics["circuit_breaker_state"].labels(name=name).set(_BREAKER_STATE_VALUES[state])

