"""
InfluxQL query building for the InfluxDB metric backend.

Built-in metrics render fixed templates. Custom metrics render the raw
``query`` text supplied in the per-call configuration with the same
substitution variables:

    $host_list          host filter clause, e.g. ("host"='h0' OR "host"='h1')
    $aggregation        aggregation function name, e.g. mean
    $database           database name
    $retention_policy   retention policy name
    $range              time range duration literal, e.g. 5m

Custom query text is written by the cluster operator and is trusted. It is
rendered as-is, so it is never assembled from tenant input.
"""
import re
from string import Template
from typing import Dict, List, NamedTuple, Optional

from scaling_backends.errors import ConfigurationError, InvalidInputError, QueryBuildError
from scaling_backends.metrics.base import Metric

DEFAULT_AGGREGATION = 'mean'
DEFAULT_RANGE = '1m'
DEFAULT_DATABASE = 'telegraf'
DEFAULT_RETENTION_POLICY = 'autogen'

# InfluxQL aggregations and selectors that take a single field argument
VALID_AGGREGATIONS = frozenset({
    'count', 'first', 'last', 'max', 'mean', 'median',
    'min', 'mode', 'spread', 'stddev', 'sum',
})

# InfluxQL duration literal, e.g. 30s, 5m, 1h30m
RANGE_PATTERN = re.compile(r'^(\d+(ns|u|µ|ms|s|m|h|d|w))+$')

CPU_QUERY_TEMPLATE = Template(
    'SELECT 100 - $aggregation("usage_idle") AS "usage_percent" '
    'FROM "$database"."$retention_policy"."cpu" '
    'WHERE time > now() - $range AND "cpu"=\'cpu-total\' AND $host_list'
)

MEMORY_QUERY_TEMPLATE = Template(
    'SELECT $aggregation("used_percent") AS "used_percent" '
    'FROM "$database"."$retention_policy"."mem" '
    'WHERE time > now() - $range AND $host_list'
)


class MetricConfiguration(NamedTuple):
    """Per-call configuration of an InfluxDB metric query."""
    aggregation: str
    time_range: str
    database: str
    retention_policy: str
    query: Optional[str]


def default_and_validate_metric_configuration(configuration: Optional[Dict[str, str]]) -> MetricConfiguration:
    """
    Apply defaults to a per-call configuration map and validate it.

    Unknown keys are ignored. The caller's map is not modified.

    Raises:
        ConfigurationError: If any recognized key holds an invalid value
    """
    configuration = configuration or {}

    return MetricConfiguration(
        aggregation=_default_and_validate_aggregation(configuration.get('aggregation')),
        time_range=_default_and_validate_range(configuration.get('range')),
        database=_default_and_validate_identifier('database', configuration.get('database'), DEFAULT_DATABASE),
        retention_policy=_default_and_validate_identifier(
            'retentionPolicy', configuration.get('retentionPolicy'), DEFAULT_RETENTION_POLICY),
        query=configuration.get('query') or None,
    )


def _default_and_validate_aggregation(aggregation):
    if not aggregation:
        return DEFAULT_AGGREGATION

    if aggregation not in VALID_AGGREGATIONS:
        supported = ', '.join(sorted(VALID_AGGREGATIONS))
        raise ConfigurationError(f"invalid aggregation {aggregation!r}, must be one of: {supported}")

    return aggregation


def _default_and_validate_range(time_range):
    if not time_range:
        return DEFAULT_RANGE

    if not RANGE_PATTERN.match(time_range):
        raise ConfigurationError(f"invalid range {time_range!r}, must be an InfluxQL duration such as 5m")

    return time_range


def _default_and_validate_identifier(key, value, default):
    if not value:
        return default

    # Identifiers are rendered inside double quotes
    if '"' in value:
        raise ConfigurationError(f"{key} must not contain double quotes")

    return value


def build_host_list(hostnames: Optional[List[str]]) -> str:
    """
    Build the host filter clause for a list of hostnames.

    No hostnames means no filtering, so "(true)" is returned to match every
    host. This is the common case while a cluster has no matching nodes yet.
    """
    if not hostnames:
        return '(true)'

    return '(' + ' OR '.join(f"\"host\"='{hostname}'" for hostname in hostnames) + ')'


def _substitutions(hostnames, config):
    return {
        'host_list': build_host_list(hostnames),
        'aggregation': config.aggregation,
        'database': config.database,
        'retention_policy': config.retention_policy,
        'range': config.time_range,
    }


def build_cpu_query(hostnames, config):
    return CPU_QUERY_TEMPLATE.substitute(_substitutions(hostnames, config))


def build_memory_query(hostnames, config):
    return MEMORY_QUERY_TEMPLATE.substitute(_substitutions(hostnames, config))


def build_custom_query(hostnames, config):
    """
    Render the operator-supplied ``query`` template.

    The template is compiled on every call. Placeholders outside the fixed
    substitution set, or a malformed ``$``, fail the build; a literal dollar
    sign is written as ``$$``.
    """
    if config.query is None:
        raise InvalidInputError("single configuration key \"query\" must be provided for a custom query")

    try:
        return Template(config.query).substitute(_substitutions(hostnames, config))
    except KeyError as e:
        raise QueryBuildError(f"custom query template references unknown variable {e}") from e
    except ValueError as e:
        raise QueryBuildError(f"parsing custom query template: {e}") from e


QUERY_BUILDERS = {
    Metric.CPU_PERCENT_UTILIZATION.value: build_cpu_query,
    Metric.MEMORY_PERCENT_UTILIZATION.value: build_memory_query,
    Metric.CUSTOM.value: build_custom_query,
}


def build_query(metric: str, hostnames: Optional[List[str]], config: MetricConfiguration) -> str:
    """
    Build the InfluxQL query for a metric.

    Args:
        metric: Metric name
        hostnames: Hosts to restrict the query to; empty matches all hosts
        config: Validated per-call configuration

    Returns:
        str: The rendered query

    Raises:
        InvalidInputError: If the metric is unknown or a custom query is missing
        QueryBuildError: If a custom query template cannot be rendered
    """
    builder = QUERY_BUILDERS.get(str(metric))
    if builder is None:
        raise InvalidInputError(f"unknown metric {metric!r}")

    return builder(hostnames, config)
