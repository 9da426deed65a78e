import logging

import requests

REQUEST_TIMEOUT_SECONDS = 30


class ContainershipCloudClient:
    """
    Minimal client for the Containership Cloud provisioning API.
    """

    def __init__(self, token: str, provision_base_url: str):
        if not token:
            raise ValueError("token must be provided")
        if not provision_base_url:
            raise ValueError("provision base URL must be provided")

        self._base_url = provision_base_url.rstrip('/')
        self._session = requests.Session()
        self._session.headers.update({
            'Authorization': f"JWT {token}",
            'Content-Type': 'application/json',
        })

    def node_pool_url(self, organization_id: str, cluster_id: str, node_pool_id: str) -> str:
        return (f"{self._base_url}/v3/organizations/{organization_id}"
                f"/clusters/{cluster_id}/node-pools/{node_pool_id}")

    def scale_node_pool(self, organization_id: str, cluster_id: str, node_pool_id: str, count: int) -> dict:
        """
        Set the desired node count of a node pool.

        Args:
            organization_id: Containership organization ID
            cluster_id: Containership cluster ID
            node_pool_id: ID of the node pool to scale
            count: Desired node count

        Returns:
            dict: The updated node pool as returned by the API

        Raises:
            requests.exceptions.RequestException: On transport errors or non-2xx responses
        """
        url = self.node_pool_url(organization_id, cluster_id, node_pool_id)
        logging.debug(f"PATCH {url} count={count}")

        response = self._session.patch(url, json={'count': count}, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()

        return response.json() if response.content else {}
