"""
Monitoring and observability for the checkout service.
"""

from monitoring.logger import get_logger, setup_logging
from monitoring.metrics import Metrics, MetricsCollector, get_metrics_collector

__all__ = [
    "get_logger",
    "setup_logging",
    "Metrics",
    "MetricsCollector",
    "get_metrics_collector",
]
