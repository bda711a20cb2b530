"""
In-process metrics for the checkout flow.
"""

import time
from typing import Dict, Any, Optional
from collections import defaultdict
from datetime import datetime
from monitoring.logger import get_logger

logger = get_logger(__name__)

# Histograms keep only the most recent values
HISTOGRAM_WINDOW = 1000


class MetricsCollector:
    """Collects and stores application metrics."""

    def __init__(self):
        self.counters: Dict[str, int] = defaultdict(int)
        self.gauges: Dict[str, float] = {}
        self.histograms: Dict[str, list] = defaultdict(list)
        self.timers: Dict[str, float] = {}

        logger.debug("Metrics collector initialized")

    def increment_counter(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name
            value: Amount to increment by
            labels: Optional metric labels
        """
        key = self._make_key(name, labels)
        self.counters[key] += value

    def set_gauge(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = self._make_key(name, labels)
        self.gauges[key] = value

    def record_histogram(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        """
        Record a value in a histogram.

        Args:
            name: Metric name
            value: Value to record
            labels: Optional metric labels
        """
        key = self._make_key(name, labels)
        self.histograms[key].append(value)

        if len(self.histograms[key]) > HISTOGRAM_WINDOW:
            self.histograms[key] = self.histograms[key][-HISTOGRAM_WINDOW:]

    def start_timer(self, name: str) -> None:
        """Start a named timer; concurrent requests must use distinct names."""
        self.timers[name] = time.monotonic()

    def stop_timer(self, name: str, metric: Optional[str] = None, labels: Optional[Dict[str, str]] = None) -> float:
        """
        Stop a timer and record the duration.

        Args:
            name: Timer name
            metric: Histogram to record into (defaults to the timer name)
            labels: Optional metric labels

        Returns:
            Duration in seconds
        """
        started = self.timers.pop(name, None)
        if started is None:
            logger.warning(f"Timer '{name}' was not started")
            return 0.0

        duration = time.monotonic() - started
        self.record_histogram(f"{metric or name}_duration", duration, labels)
        return duration

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get all metrics as a dictionary.

        Returns:
            Dictionary of all metrics
        """
        metrics = {
            "counters": dict(self.counters),
            "gauges": dict(self.gauges),
            "histograms": {},
            "timestamp": datetime.now().isoformat(),
        }

        for name, values in self.histograms.items():
            if values:
                metrics["histograms"][name] = {
                    "count": len(values),
                    "sum": sum(values),
                    "min": min(values),
                    "max": max(values),
                    "avg": sum(values) / len(values),
                }

        return metrics

    def reset(self) -> None:
        """Reset all metrics."""
        self.counters.clear()
        self.gauges.clear()
        self.histograms.clear()
        self.timers.clear()
        logger.info("Metrics reset")

    @staticmethod
    def _make_key(name: str, labels: Optional[Dict[str, str]]) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """
    Get or create the global metrics collector instance.

    Returns:
        Global MetricsCollector instance
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


class Metrics:
    """Metric name constants."""

    # Checkout metrics
    CHECKOUTS_TOTAL = "checkouts_total"
    CHECKOUTS_COMPLETED = "checkouts_completed"
    CHECKOUTS_FAILED = "checkouts_failed"
    CHECKOUT = "checkout"

    # Customer metrics
    CUSTOMERS_FOUND = "customers_found"
    CUSTOMERS_CREATED = "customers_created"

    # Payment intent metrics
    PAYMENT_INTENTS_CREATED = "payment_intents_created"
    PAYMENT_AMOUNT = "payment_amount"

    # Provider metrics
    PROVIDER_ERRORS = "provider_errors"
    PROVIDER_TIMEOUTS = "provider_timeouts"

    # Auth gate metrics
    AUTH_GATE_WAITERS = "auth_gate_waiters"
    AUTH_GATE_TIMEOUTS = "auth_gate_timeouts"
