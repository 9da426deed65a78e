import os
from typing import Dict, Any, Optional, NamedTuple


class Config(NamedTuple):
    """Process configuration: which backends to build and how to reach Kubernetes."""
    # Metric backend
    metric_backend_type: str
    metric_backend_name: str
    metric_backend_config: Dict[str, str]

    # Scaling backend
    scaling_backend_type: str
    scaling_backend_name: str
    scaling_backend_config: Dict[str, str]

    # Kubernetes access for node listing
    kube_in_cluster: bool
    kubeconfig_path: Optional[str]


def load_config(event: Dict[str, Any] = None) -> Config:
    """
    Load configuration from environment variables and optional event payload.

    Event payload values override environment variables when present.

    Args:
        event: Optional event that may contain a 'config' mapping of overrides

    Returns:
        Config: Configuration object with all backend settings
    """
    event = event or {}
    config_from_event = event.get('config', {})

    metric_backend_type = (config_from_event.get('metric_backend_type') or
                           os.environ.get('METRIC_BACKEND_TYPE', 'influxdb')).lower()
    metric_backend_name = (config_from_event.get('metric_backend_name') or
                           os.environ.get('METRIC_BACKEND_NAME', metric_backend_type))

    metric_backend_config = config_from_event.get('metric_backend_config', {})
    if not metric_backend_config:
        if metric_backend_type == 'influxdb':
            metric_backend_config = {'address': os.environ.get('INFLUXDB_ADDRESS')}
        elif metric_backend_type == 'prometheus':
            metric_backend_config = {'address': os.environ.get('PROMETHEUS_ADDRESS')}

    scaling_backend_type = (config_from_event.get('scaling_backend_type') or
                            os.environ.get('SCALING_BACKEND_TYPE', 'containership')).lower()
    scaling_backend_name = (config_from_event.get('scaling_backend_name') or
                            os.environ.get('SCALING_BACKEND_NAME', scaling_backend_type))

    scaling_backend_config = config_from_event.get('scaling_backend_config', {})
    if not scaling_backend_config:
        if scaling_backend_type == 'containership':
            scaling_backend_config = {
                'address': os.environ.get('CONTAINERSHIP_ADDRESS'),
                'tokenEnvVarName': os.environ.get('CONTAINERSHIP_TOKEN_ENV_VAR_NAME'),
                'organizationID': os.environ.get('CONTAINERSHIP_ORGANIZATION_ID'),
                'clusterID': os.environ.get('CONTAINERSHIP_CLUSTER_ID')
            }
        elif scaling_backend_type == 'aws':
            scaling_backend_config = {
                'region': os.environ.get('AWS_REGION'),
                'ssoProfile': os.environ.get('SSO_PROFILE')
            }

    # Clean None values so backend defaults apply
    metric_backend_config = {k: v for k, v in metric_backend_config.items() if v is not None}
    scaling_backend_config = {k: v for k, v in scaling_backend_config.items() if v is not None}

    kube_in_cluster_str = str(config_from_event.get('kube_in_cluster') or
                              os.environ.get('KUBERNETES_IN_CLUSTER', 'False'))
    kube_in_cluster = kube_in_cluster_str.lower() in ('true', '1', 't', 'yes')
    kubeconfig_path = config_from_event.get('kubeconfig_path') or os.environ.get('KUBECONFIG_PATH')

    return Config(
        metric_backend_type=metric_backend_type,
        metric_backend_name=metric_backend_name,
        metric_backend_config=metric_backend_config,
        scaling_backend_type=scaling_backend_type,
        scaling_backend_name=scaling_backend_name,
        scaling_backend_config=scaling_backend_config,
        kube_in_cluster=kube_in_cluster,
        kubeconfig_path=kubeconfig_path
    )
