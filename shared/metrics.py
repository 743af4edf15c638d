"""
Shared metrics configuration for the client icons back office.
"""

from typing import Dict, Any, Optional
import threading

from prometheus_client import Counter, Histogram, Info, CollectorRegistry


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        self._setup_auto_assign_metrics()

    def _setup_auto_assign_metrics(self):
        """Set up auto-assignment metrics."""
        self._metrics["reconciliations_total"] = Counter(
            "icon_reconciliations_total",
            "Total icon reconciliation runs",
            ["trigger"],
            registry=self.registry
        )

        self._metrics["assignments_changed_total"] = Counter(
            "icon_assignments_changed_total",
            "Total auto-assignments added or removed",
            ["change"],
            registry=self.registry
        )

        self._metrics["reconcile_duration_seconds"] = Histogram(
            "icon_reconcile_duration_seconds",
            "Icon reconciliation duration in seconds",
            ["trigger"],
            registry=self.registry
        )

    def record_reconciliation(self, trigger: str, added: int, removed: int, duration: float):
        """Record a finished reconciliation run."""
        with self._lock:
            self._metrics["reconciliations_total"].labels(trigger=trigger).inc()
            if added:
                self._metrics["assignments_changed_total"].labels(change="added").inc(added)
            if removed:
                self._metrics["assignments_changed_total"].labels(change="removed").inc(removed)
            self._metrics["reconcile_duration_seconds"].labels(trigger=trigger).observe(duration)

    def record_error(self, error_type: str):
        """Record an error."""
        self._metrics["errors_total"].labels(
            error_type=error_type,
            service=self.service_name
        ).inc()


_collectors: Dict[str, MetricsCollector] = {}
_collectors_lock = threading.Lock()


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create the metrics collector for a service."""
    with _collectors_lock:
        if service_name not in _collectors:
            _collectors[service_name] = MetricsCollector(service_name)
        return _collectors[service_name]
