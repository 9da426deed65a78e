import logging
from typing import Dict, List, Optional

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from scaling_backends.errors import NodeListingError

HOSTNAME_LABEL_KEY = 'kubernetes.io/hostname'


def get_nodes_label_selector(node_selector: Optional[Dict[str, str]]) -> str:
    """
    Render a node selector map as a Kubernetes label selector string.

    An empty or missing selector renders as an empty string, which selects
    every node.
    """
    if not node_selector:
        return ''

    return ','.join(f"{key}={value}" for key, value in sorted(node_selector.items()))


class NodeLister:
    """
    Lists cluster nodes by label and resolves their hostnames.
    """

    def __init__(self, core_v1_api: client.CoreV1Api):
        if core_v1_api is None:
            raise ValueError("core_v1_api must be provided")
        self._core_v1_api = core_v1_api

    @classmethod
    def from_kubeconfig(cls, in_cluster: bool = False, kubeconfig_path: str = None) -> 'NodeLister':
        """
        Build a lister from in-cluster service account credentials or a kubeconfig file.

        Args:
            in_cluster: Use the pod's service account instead of a kubeconfig
            kubeconfig_path: Optional kubeconfig path (defaults to the client's lookup rules)

        Returns:
            NodeLister: Lister backed by a new CoreV1Api client
        """
        if in_cluster:
            logging.info("Loading in-cluster Kubernetes config")
            k8s_config.load_incluster_config()
        else:
            logging.info(f"Loading kubeconfig from: {kubeconfig_path or 'default location'}")
            k8s_config.load_kube_config(config_file=kubeconfig_path)

        return cls(client.CoreV1Api())

    def list_hostnames(self, node_selector: Optional[Dict[str, str]]) -> List[str]:
        """
        Return the hostnames of all nodes matching a node selector, in listing order.

        Args:
            node_selector: Label map; empty or None matches every node

        Returns:
            list: Hostnames, possibly empty

        Raises:
            NodeListingError: If the Kubernetes API call fails
        """
        selector = get_nodes_label_selector(node_selector)

        try:
            node_list = self._core_v1_api.list_node(label_selector=selector)
        except (ApiException, HTTPError) as e:
            raise NodeListingError(f"listing nodes with selector {selector!r}: {e}") from e

        hostnames = []
        for node in node_list.items:
            labels = node.metadata.labels or {}
            hostnames.append(labels.get(HOSTNAME_LABEL_KEY) or node.metadata.name)

        logging.debug(f"Resolved hostnames for selector {selector!r}: {hostnames}")
        return hostnames
