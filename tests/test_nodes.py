import unittest
from unittest import mock

from kubernetes.client.rest import ApiException

from scaling_backends.errors import NodeListingError
from scaling_backends.kube.nodes import NodeLister, get_nodes_label_selector


def node(name, labels=None):
    n = mock.MagicMock()
    n.metadata.name = name
    n.metadata.labels = labels
    return n


class TestNodeLister(unittest.TestCase):
    """Tests for resolving hostnames from node selectors."""

    def setUp(self):
        self.core_v1_api = mock.MagicMock()
        self.lister = NodeLister(self.core_v1_api)

    def test_label_selector(self):
        self.assertEqual(get_nodes_label_selector(None), '')
        self.assertEqual(get_nodes_label_selector({}), '')
        self.assertEqual(get_nodes_label_selector({'b': '2', 'a': '1'}), 'a=1,b=2')

    def test_list_hostnames(self):
        self.core_v1_api.list_node.return_value.items = [
            node('node-0', {'kubernetes.io/hostname': 'hostname-0'}),
            node('node-1', {'kubernetes.io/hostname': 'hostname-1'}),
        ]

        hostnames = self.lister.list_hostnames({'containership.io/node-pool-id': 'pool'})

        self.assertEqual(hostnames, ['hostname-0', 'hostname-1'])
        self.core_v1_api.list_node.assert_called_once_with(label_selector='containership.io/node-pool-id=pool')

    def test_list_hostnames_falls_back_to_node_name(self):
        self.core_v1_api.list_node.return_value.items = [node('node-0', None)]
        self.assertEqual(self.lister.list_hostnames({}), ['node-0'])

    def test_no_matching_nodes(self):
        self.core_v1_api.list_node.return_value.items = []
        self.assertEqual(self.lister.list_hostnames({'role': 'none'}), [])

    def test_listing_error(self):
        self.core_v1_api.list_node.side_effect = ApiException(status=500, reason='Internal Server Error')

        with self.assertRaises(NodeListingError):
            self.lister.list_hostnames({})

    def test_requires_api(self):
        with self.assertRaises(ValueError):
            NodeLister(None)

    @mock.patch('scaling_backends.kube.nodes.client.CoreV1Api')
    @mock.patch('scaling_backends.kube.nodes.k8s_config')
    def test_from_kubeconfig(self, mock_k8s_config, mock_core_v1_api):
        NodeLister.from_kubeconfig(in_cluster=True)
        mock_k8s_config.load_incluster_config.assert_called_once()

        NodeLister.from_kubeconfig(kubeconfig_path='/tmp/kubeconfig')
        mock_k8s_config.load_kube_config.assert_called_once_with(config_file='/tmp/kubeconfig')


if __name__ == '__main__':
    unittest.main()
