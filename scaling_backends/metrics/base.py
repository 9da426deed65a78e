import abc
from enum import Enum
from typing import Dict

from scaling_backends.errors import ConfigurationError


class Metric(Enum):
    """Metrics every backend knows how to query."""
    CPU_PERCENT_UTILIZATION = 'cpu_percent_utilization'
    MEMORY_PERCENT_UTILIZATION = 'memory_percent_utilization'
    CUSTOM = 'custom'

    def __str__(self):
        return self.value


class MetricBackend(abc.ABC):
    """
    Capability shared by all metric backends.

    A backend is configured once at construction and is read-only afterwards,
    so a single instance may serve concurrent get_value calls.
    """

    def __init__(self, name: str):
        if not name:
            raise ConfigurationError("name must be provided")
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @abc.abstractmethod
    def get_value(self, metric: str, configuration: Dict[str, str], node_selector: Dict[str, str]) -> float:
        """
        Return the current value of a metric across the nodes matching node_selector.

        Args:
            metric: One of the Metric values, or a backend-specific metric name
            configuration: Per-call configuration, validated on every call
            node_selector: Label map restricting which hosts contribute

        Returns:
            float: The metric value

        Raises:
            BackendError: On any failure; no partial or default value is returned
        """
