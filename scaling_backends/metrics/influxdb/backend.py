import logging
from typing import Dict, NamedTuple
from urllib.parse import urlparse

import requests
from influxdb import InfluxDBClient
from influxdb.exceptions import InfluxDBClientError, InfluxDBServerError

from scaling_backends.common.logger import request_context
from scaling_backends.errors import ConfigurationError, MetricQueryError
from scaling_backends.metrics.base import MetricBackend
from scaling_backends.metrics.influxdb.query import build_query, default_and_validate_metric_configuration
from scaling_backends.metrics.influxdb.result import extract_value

DEFAULT_PORTS = {'http': 8086, 'https': 443}
REQUEST_TIMEOUT_SECONDS = 30


class InfluxDBConfig(NamedTuple):
    """Connection configuration of an InfluxDB metric backend."""
    address: str


def default_and_validate_influxdb_config(configuration: Dict[str, str]) -> InfluxDBConfig:
    configuration = configuration or {}
    return InfluxDBConfig(
        address=_default_and_validate_address(configuration.get('address')),
    )


def _default_and_validate_address(address):
    # There is no well-known InfluxDB endpoint to fall back on
    if not address:
        raise ConfigurationError("address must be provided")

    parsed = urlparse(address)
    if parsed.scheme not in ('http', 'https') or not parsed.hostname:
        raise ConfigurationError(f"address {address!r} must be of the form http://host:port")

    try:
        parsed.port
    except ValueError as e:
        raise ConfigurationError(f"address {address!r} has an invalid port") from e

    return address


def _new_influxdb_client(address):
    parsed = urlparse(address)
    return InfluxDBClient(
        host=parsed.hostname,
        port=parsed.port or DEFAULT_PORTS[parsed.scheme],
        ssl=parsed.scheme == 'https',
        verify_ssl=parsed.scheme == 'https',
        path=parsed.path.strip('/'),
        timeout=REQUEST_TIMEOUT_SECONDS,
        # A single attempt per query; the client treats 0 as "retry forever"
        retries=1,
    )


class InfluxDBBackend(MetricBackend):
    """
    Metric backend reading node metrics written by Telegraf into InfluxDB.
    """

    def __init__(self, name: str, configuration: Dict[str, str], node_lister):
        super().__init__(name)

        if node_lister is None:
            raise ConfigurationError("node lister must be provided")

        self._config = default_and_validate_influxdb_config(configuration)
        self._node_lister = node_lister
        self._influxdb = _new_influxdb_client(self._config.address)

    @property
    def address(self) -> str:
        return self._config.address

    def get_value(self, metric, configuration, node_selector):
        hostnames = self._node_lister.list_hostnames(node_selector)

        # Validate before building anything so a bad request never reaches InfluxDB
        config = default_and_validate_metric_configuration(configuration)

        query = build_query(metric, hostnames, config)

        return self._perform_query(config.database, query)

    def _perform_query(self, database, query):
        logging.debug(f"Performing InfluxDB query on {database}: {query}",
                      extra=request_context(backend=self.name, query=query))

        try:
            response = self._influxdb.query(query, database=database, raise_errors=False)
        except (InfluxDBClientError, InfluxDBServerError, requests.exceptions.RequestException) as e:
            raise MetricQueryError(f"querying InfluxDB with string {query!r}: {e}", query=query) from e

        if response is None:
            return extract_value(None, query)

        # Multi-statement queries return one ResultSet per statement
        result_sets = response if isinstance(response, list) else [response]
        return extract_value([result_set.raw for result_set in result_sets], query)
