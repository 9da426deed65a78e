"""
Metric backends. Each backend reduces a metric request to a single float.
"""

from scaling_backends.metrics.base import Metric, MetricBackend

__all__ = ['Metric', 'MetricBackend']
