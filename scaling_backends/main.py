import logging
from typing import Dict, Any

from scaling_backends.common.logger import error_context, request_context
from scaling_backends.config import load_config, Config
from scaling_backends.errors import ConfigurationError, InvalidInputError
from scaling_backends.kube.nodes import NodeLister
from scaling_backends.metrics.base import MetricBackend
from scaling_backends.metrics.influxdb import InfluxDBBackend
from scaling_backends.metrics.prometheus import PrometheusBackend
from scaling_backends.scaling.aws import AWSBackend
from scaling_backends.scaling.base import ScalingBackend
from scaling_backends.scaling.containership import ContainershipBackend

# Each metric backend class takes (name, configuration, node_lister)
METRIC_BACKENDS = {
    'influxdb': InfluxDBBackend,
    'prometheus': PrometheusBackend,
}

# Each scaling backend class takes (name, configuration)
SCALING_BACKENDS = {
    'containership': ContainershipBackend,
    'aws': AWSBackend,
}

ACTION_GET_VALUE = 'get_value'
ACTION_SET_TARGET_NODE_COUNT = 'set_target_node_count'


def build_metric_backend(config: Config, node_lister) -> MetricBackend:
    """
    Construct the configured metric backend.

    Raises:
        ConfigurationError: If the backend type is not supported or its configuration is invalid
    """
    backend_type = config.metric_backend_type
    if backend_type not in METRIC_BACKENDS:
        supported = ', '.join(METRIC_BACKENDS.keys())
        raise ConfigurationError(f"Unsupported metric backend type: {backend_type}. Supported types: {supported}")

    backend = METRIC_BACKENDS[backend_type](config.metric_backend_name, config.metric_backend_config, node_lister)
    logging.info(f"Created {backend_type} metric backend {backend.name}")
    return backend


def build_scaling_backend(config: Config) -> ScalingBackend:
    """
    Construct the configured scaling backend.

    Raises:
        ConfigurationError: If the backend type is not supported or its configuration is invalid
    """
    backend_type = config.scaling_backend_type
    if backend_type not in SCALING_BACKENDS:
        supported = ', '.join(SCALING_BACKENDS.keys())
        raise ConfigurationError(f"Unsupported scaling backend type: {backend_type}. Supported types: {supported}")

    backend = SCALING_BACKENDS[backend_type](config.scaling_backend_name, config.scaling_backend_config)
    logging.info(f"Created {backend_type} scaling backend {backend.name}")
    return backend


def get_value(metric_backend: MetricBackend, event: Dict[str, Any]) -> Dict[str, Any]:
    metric = event.get('metric')
    if not metric:
        raise InvalidInputError("metric must be provided")

    value = metric_backend.get_value(metric, event.get('configuration') or {}, event.get('node_selector') or {})

    logging.info(f"Metric {metric} from {metric_backend.name}: {value}",
                 extra=request_context(backend=metric_backend.name, metric=metric))
    return {'statusCode': 200, 'metric': metric, 'value': value}


def set_target_node_count(scaling_backend: ScalingBackend, event: Dict[str, Any]) -> Dict[str, Any]:
    if 'num_nodes' not in event:
        raise InvalidInputError("num_nodes must be provided")

    try:
        num_nodes = int(event['num_nodes'])
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"num_nodes must be an integer, got {event['num_nodes']!r}") from e

    scaled = scaling_backend.set_target_node_count(event.get('node_selector') or {}, num_nodes,
                                                   event.get('strategy') or '')
    return {'statusCode': 200, 'num_nodes': num_nodes, 'scaled': scaled}


def handle_request(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """
    Serve a single metric or scaling request.

    The event selects an action:
        {"action": "get_value", "metric": ..., "configuration": {...}, "node_selector": {...}}
        {"action": "set_target_node_count", "node_selector": {...}, "num_nodes": 3, "strategy": "random"}

    Backend configuration comes from environment variables, optionally
    overridden by the event's 'config' mapping.

    Args:
        event: Request payload
        context: Runtime context, unused

    Returns:
        dict: Result payload, or a statusCode/error payload on failure
    """
    event = event or {}
    action = event.get('action')

    try:
        config = load_config(event)

        if action == ACTION_GET_VALUE:
            node_lister = NodeLister.from_kubeconfig(config.kube_in_cluster, config.kubeconfig_path)
            return get_value(build_metric_backend(config, node_lister), event)
        elif action == ACTION_SET_TARGET_NODE_COUNT:
            return set_target_node_count(build_scaling_backend(config), event)

        raise InvalidInputError(
            f"Unsupported action: {action}. Supported actions: {ACTION_GET_VALUE}, {ACTION_SET_TARGET_NODE_COUNT}")

    except (ConfigurationError, InvalidInputError) as e:
        logging.error(f"Rejected {action} request: {e}", extra=error_context(e))
        return {"statusCode": 400, "error": str(e)}
    except Exception as e:
        logging.error(f"Error handling {action} request: {e}", exc_info=True, extra=error_context(e))
        return {"statusCode": 500, "error": str(e)}
