import os
import unittest
from unittest import mock

from scaling_backends.config import load_config


class TestLoadConfig(unittest.TestCase):
    """Tests for loading process configuration from the environment and events."""

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        config = load_config()

        self.assertEqual(config.metric_backend_type, 'influxdb')
        self.assertEqual(config.metric_backend_name, 'influxdb')
        self.assertEqual(config.metric_backend_config, {})
        self.assertEqual(config.scaling_backend_type, 'containership')
        self.assertEqual(config.scaling_backend_config, {})
        self.assertFalse(config.kube_in_cluster)
        self.assertIsNone(config.kubeconfig_path)

    @mock.patch.dict(os.environ, {
        'METRIC_BACKEND_TYPE': 'Prometheus',
        'PROMETHEUS_ADDRESS': 'http://prometheus:9090',
        'SCALING_BACKEND_TYPE': 'containership',
        'SCALING_BACKEND_NAME': 'cs-engine',
        'CONTAINERSHIP_TOKEN_ENV_VAR_NAME': 'CS_TOKEN',
        'CONTAINERSHIP_ORGANIZATION_ID': 'org',
        'CONTAINERSHIP_CLUSTER_ID': 'cluster',
        'KUBERNETES_IN_CLUSTER': 'true',
    }, clear=True)
    def test_from_environment(self):
        config = load_config()

        self.assertEqual(config.metric_backend_type, 'prometheus')
        self.assertEqual(config.metric_backend_config, {'address': 'http://prometheus:9090'})
        self.assertEqual(config.scaling_backend_name, 'cs-engine')
        self.assertEqual(config.scaling_backend_config, {
            'tokenEnvVarName': 'CS_TOKEN',
            'organizationID': 'org',
            'clusterID': 'cluster',
        })
        self.assertTrue(config.kube_in_cluster)

    @mock.patch.dict(os.environ, {'INFLUXDB_ADDRESS': 'http://influxdb:8086', 'AWS_REGION': 'eu-west-1'}, clear=True)
    def test_event_overrides_environment(self):
        config = load_config({'config': {
            'metric_backend_config': {'address': 'http://other:8086'},
            'scaling_backend_type': 'aws',
        }})

        self.assertEqual(config.metric_backend_config, {'address': 'http://other:8086'})
        self.assertEqual(config.scaling_backend_type, 'aws')
        self.assertEqual(config.scaling_backend_config, {'region': 'eu-west-1'})


if __name__ == '__main__':
    unittest.main()
