"""
Metric backend for Prometheus scraping node-exporter.

Hosts are matched on the ``node`` label, which the usual node-exporter
scrape configs set from the Kubernetes node name. Custom queries may use
$host_filter, $aggregation and $range.
"""
import logging
import math
import re
from string import Template
from typing import Dict, NamedTuple, Optional
from urllib.parse import urlparse

import requests

from scaling_backends.common.logger import request_context
from scaling_backends.errors import (
    ConfigurationError, DataShapeError, InvalidInputError, MetricQueryError, QueryBuildError
)
from scaling_backends.metrics.base import Metric, MetricBackend

DEFAULT_AGGREGATION = 'avg'
DEFAULT_RANGE = '1m'
REQUEST_TIMEOUT_SECONDS = 30

VALID_AGGREGATIONS = frozenset({'avg', 'max', 'min', 'sum', 'count'})

RANGE_PATTERN = re.compile(r'^(\d+(ms|s|m|h|d|w|y))+$')

CPU_QUERY_TEMPLATE = Template(
    '100 - $aggregation(rate(node_cpu_seconds_total{mode="idle",$host_filter}[$range])) * 100'
)

MEMORY_QUERY_TEMPLATE = Template(
    '100 * (1 - $aggregation(node_memory_MemAvailable_bytes{$host_filter}) '
    '/ $aggregation(node_memory_MemTotal_bytes{$host_filter}))'
)


class PrometheusConfig(NamedTuple):
    """Connection configuration of a Prometheus metric backend."""
    address: str


class MetricConfiguration(NamedTuple):
    """Per-call configuration of a PromQL query."""
    aggregation: str
    time_range: str
    query: Optional[str]


def default_and_validate_prometheus_config(configuration: Dict[str, str]) -> PrometheusConfig:
    configuration = configuration or {}
    address = configuration.get('address')
    if not address:
        raise ConfigurationError("address must be provided")

    parsed = urlparse(address)
    if parsed.scheme not in ('http', 'https') or not parsed.hostname:
        raise ConfigurationError(f"address {address!r} must be of the form http://host:port")

    return PrometheusConfig(address=address.rstrip('/'))


def default_and_validate_metric_configuration(configuration: Optional[Dict[str, str]]) -> MetricConfiguration:
    configuration = configuration or {}

    aggregation = configuration.get('aggregation') or DEFAULT_AGGREGATION
    if aggregation not in VALID_AGGREGATIONS:
        supported = ', '.join(sorted(VALID_AGGREGATIONS))
        raise ConfigurationError(f"invalid aggregation {aggregation!r}, must be one of: {supported}")

    time_range = configuration.get('range') or DEFAULT_RANGE
    if not RANGE_PATTERN.match(time_range):
        raise ConfigurationError(f"invalid range {time_range!r}, must be a PromQL duration such as 5m")

    return MetricConfiguration(
        aggregation=aggregation,
        time_range=time_range,
        query=configuration.get('query') or None,
    )


def build_host_filter(hostnames):
    """
    Build a label matcher restricting a selector to the given hosts.

    The regex is written as a raw (backtick) string so escapes reach RE2 as-is.
    """
    if not hostnames:
        return "node=~`.+`"

    return "node=~`" + "|".join(re.escape(hostname) for hostname in hostnames) + "`"


def build_query(metric, hostnames, config):
    """
    Build the PromQL query for a metric.

    Raises:
        InvalidInputError: If the metric is unknown or a custom query is missing
        QueryBuildError: If a custom query template cannot be rendered
    """
    substitutions = {
        'host_filter': build_host_filter(hostnames),
        'aggregation': config.aggregation,
        'range': config.time_range,
    }

    metric = str(metric)
    if metric == Metric.CPU_PERCENT_UTILIZATION.value:
        return CPU_QUERY_TEMPLATE.substitute(substitutions)
    elif metric == Metric.MEMORY_PERCENT_UTILIZATION.value:
        return MEMORY_QUERY_TEMPLATE.substitute(substitutions)
    elif metric == Metric.CUSTOM.value:
        if config.query is None:
            raise InvalidInputError("single configuration key \"query\" must be provided for a custom query")
        try:
            return Template(config.query).substitute(substitutions)
        except KeyError as e:
            raise QueryBuildError(f"custom query template references unknown variable {e}") from e
        except ValueError as e:
            raise QueryBuildError(f"parsing custom query template: {e}") from e

    raise InvalidInputError(f"unknown metric {metric!r}")


def extract_value(body, query=None):
    """
    Reduce a Prometheus instant query response to a single float.

    Accepts vector results (first sample) and scalar results.
    """
    if not isinstance(body, dict):
        raise DataShapeError(f"unexpected response {body!r} for query {query!r}")

    if body.get('status') != 'success':
        raise MetricQueryError(f"querying Prometheus with string {query!r}: {body.get('error')}", query=query)

    data = body.get('data') or {}
    result_type = data.get('resultType')
    result = data.get('result')

    if result_type == 'vector':
        if not result:
            raise DataShapeError(f"empty vector for query {query!r}")
        sample = result[0].get('value')
    elif result_type == 'scalar':
        sample = result
    else:
        raise DataShapeError(f"unexpected result type {result_type!r} for query {query!r}")

    if not sample or len(sample) < 2:
        raise DataShapeError(f"malformed sample {sample!r} for query {query!r}")

    try:
        value = float(sample[1])
    except (TypeError, ValueError) as e:
        raise DataShapeError(f"value {sample[1]!r} is not a number") from e

    # Prometheus renders empty divisions as NaN
    if not math.isfinite(value):
        raise DataShapeError(f"value {sample[1]!r} is not a finite number")

    return value


class PrometheusBackend(MetricBackend):
    """
    Metric backend evaluating instant PromQL queries.
    """

    def __init__(self, name: str, configuration: Dict[str, str], node_lister):
        super().__init__(name)

        if node_lister is None:
            raise ConfigurationError("node lister must be provided")

        self._config = default_and_validate_prometheus_config(configuration)
        self._node_lister = node_lister
        self._session = requests.Session()

    @property
    def address(self) -> str:
        return self._config.address

    def get_value(self, metric, configuration, node_selector):
        hostnames = self._node_lister.list_hostnames(node_selector)
        config = default_and_validate_metric_configuration(configuration)
        query = build_query(metric, hostnames, config)
        return self._perform_query(query)

    def _perform_query(self, query):
        logging.debug(f"Performing Prometheus query: {query}",
                      extra=request_context(backend=self.name, query=query))

        try:
            response = self._session.get(
                f"{self._config.address}/api/v1/query",
                params={'query': query},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            body = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise MetricQueryError(f"querying Prometheus with string {query!r}: {e}", query=query) from e

        return extract_value(body, query)
