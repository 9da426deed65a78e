import os
from typing import Dict, NamedTuple

import requests

from scaling_backends.errors import ConfigurationError, ScalingError
from scaling_backends.scaling.base import ScalingBackend
from scaling_backends.scaling.containership_cloud import ContainershipCloudClient

NODE_POOL_ID_LABEL_KEY = 'containership.io/node-pool-id'

DEFAULT_ADDRESS = 'https://provision.containership.io'


class CloudConfig(NamedTuple):
    """Connection configuration of the Containership scaling backend."""
    address: str
    token_env_var_name: str
    organization_id: str
    cluster_id: str


def default_and_validate_cloud_config(configuration: Dict[str, str]) -> CloudConfig:
    """
    Apply defaults to a construction-time configuration map and validate it.

    Fields are processed in declaration order. Unknown keys are ignored.

    Raises:
        ConfigurationError: Naming the first missing or invalid field
    """
    configuration = configuration or {}

    return CloudConfig(
        address=_default_and_validate_address(configuration.get('address')),
        token_env_var_name=_default_and_validate_token_env_var_name(configuration.get('tokenEnvVarName')),
        organization_id=_default_and_validate_organization_id(configuration.get('organizationID')),
        cluster_id=_default_and_validate_cluster_id(configuration.get('clusterID')),
    )


def _default_and_validate_address(address):
    return address or DEFAULT_ADDRESS


def _default_and_validate_token_env_var_name(token_env_var_name):
    if not token_env_var_name:
        raise ConfigurationError("tokenEnvVarName must be provided")

    # Fail at construction rather than on the first scaling request
    if not os.environ.get(token_env_var_name):
        raise ConfigurationError(
            f"unable to get Containership Cloud API cluster token from environment variable {token_env_var_name}")

    return token_env_var_name


def _default_and_validate_organization_id(organization_id):
    if not organization_id:
        raise ConfigurationError("organizationID must be provided")

    return organization_id


def _default_and_validate_cluster_id(cluster_id):
    if not cluster_id:
        raise ConfigurationError("clusterID must be provided")

    return cluster_id


class ContainershipBackend(ScalingBackend):
    """
    Scaling backend for node pools managed by Containership Cloud.

    The configuration names an environment variable holding the API token
    rather than the token itself. The token is read once here, so the
    variable is expected to stay set for the life of the process.
    """

    node_pool_id_label_key = NODE_POOL_ID_LABEL_KEY

    def __init__(self, name: str, configuration: Dict[str, str]):
        super().__init__(name)

        self._config = default_and_validate_cloud_config(configuration)

        try:
            self._cloud = ContainershipCloudClient(
                token=os.environ.get(self._config.token_env_var_name),
                provision_base_url=self._config.address,
            )
        except ValueError as e:
            raise ConfigurationError(f"unable to create Containership Cloud client: {e}") from e

    @property
    def config(self) -> CloudConfig:
        return self._config

    def scale_strategy_random(self, node_pool_id, num_nodes):
        try:
            self._cloud.scale_node_pool(
                self._config.organization_id,
                self._config.cluster_id,
                node_pool_id,
                num_nodes,
            )
        except requests.exceptions.RequestException as e:
            raise ScalingError(f"error scaling node pool {node_pool_id}: {e}", node_pool_id=node_pool_id) from e

        return True
