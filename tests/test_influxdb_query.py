import unittest

from scaling_backends.errors import ConfigurationError, InvalidInputError, QueryBuildError
from scaling_backends.metrics.influxdb.query import (
    build_custom_query,
    build_cpu_query,
    build_host_list,
    build_memory_query,
    build_query,
    default_and_validate_metric_configuration,
)

ONE_HOSTNAME = ['hostname-0']
MULTIPLE_HOSTNAMES = ['hostname-0', 'hostname-1', 'hostname-2']

CUSTOM_QUERY = ('SELECT mean("free") AS "mean_free" FROM "telegraf"."rp_90d"."disk" '
                'WHERE time > now() - 1m AND $host_list')


class TestMetricConfiguration(unittest.TestCase):
    """Tests for defaulting and validating per-call configuration."""

    def test_empty_configuration_uses_defaults(self):
        config = default_and_validate_metric_configuration({})

        self.assertEqual(config.aggregation, 'mean')
        self.assertEqual(config.time_range, '1m')
        self.assertEqual(config.database, 'telegraf')
        self.assertEqual(config.retention_policy, 'autogen')
        self.assertIsNone(config.query)

    def test_none_configuration_uses_defaults(self):
        self.assertEqual(default_and_validate_metric_configuration(None),
                         default_and_validate_metric_configuration({}))

    def test_explicit_values(self):
        config = default_and_validate_metric_configuration({
            'aggregation': 'max',
            'range': '1h30m',
            'database': 'metrics',
            'retentionPolicy': 'rp_90d',
        })

        self.assertEqual(config.aggregation, 'max')
        self.assertEqual(config.time_range, '1h30m')
        self.assertEqual(config.database, 'metrics')
        self.assertEqual(config.retention_policy, 'rp_90d')

    def test_unknown_keys_are_ignored(self):
        config = default_and_validate_metric_configuration({'unknown': 'value'})
        self.assertEqual(config.aggregation, 'mean')

    def test_invalid_aggregation(self):
        with self.assertRaises(ConfigurationError) as cm:
            default_and_validate_metric_configuration({'aggregation': 'invalid-aggregation'})
        self.assertIn('invalid-aggregation', str(cm.exception))

    def test_invalid_range(self):
        for time_range in ('5 minutes', 'now()', '5', 'm5'):
            with self.subTest(time_range=time_range):
                with self.assertRaises(ConfigurationError):
                    default_and_validate_metric_configuration({'range': time_range})

    def test_quoted_database_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            default_and_validate_metric_configuration({'database': 'tele"graf'})

    def test_caller_configuration_is_not_modified(self):
        configuration = {'aggregation': 'max'}
        default_and_validate_metric_configuration(configuration)
        self.assertEqual(configuration, {'aggregation': 'max'})


class TestBuildHostList(unittest.TestCase):
    """Tests for the host filter clause."""

    def test_no_hostnames_matches_everything(self):
        self.assertEqual(build_host_list(None), '(true)')
        self.assertEqual(build_host_list([]), '(true)')

    def test_single_hostname(self):
        self.assertEqual(build_host_list(ONE_HOSTNAME), "(\"host\"='hostname-0')")

    def test_multiple_hostnames(self):
        self.assertEqual(
            build_host_list(MULTIPLE_HOSTNAMES),
            "(\"host\"='hostname-0' OR \"host\"='hostname-1' OR \"host\"='hostname-2')"
        )


class TestBuildQuery(unittest.TestCase):
    """Tests for rendering built-in and custom queries."""

    def setUp(self):
        self.defaults = default_and_validate_metric_configuration({})

    def test_cpu_query(self):
        config = default_and_validate_metric_configuration({'aggregation': 'max', 'range': '5m'})
        query = build_cpu_query(ONE_HOSTNAME, config)

        self.assertIn('max("usage_idle")', query)
        self.assertIn('FROM "telegraf"."autogen"."cpu"', query)
        self.assertIn('now() - 5m', query)
        self.assertTrue(query.endswith("(\"host\"='hostname-0')"))

    def test_memory_query(self):
        query = build_memory_query(MULTIPLE_HOSTNAMES, self.defaults)

        self.assertIn('mean("used_percent")', query)
        self.assertIn('FROM "telegraf"."autogen"."mem"', query)
        self.assertIn(build_host_list(MULTIPLE_HOSTNAMES), query)

    def test_query_without_hostnames_matches_all_hosts(self):
        query = build_memory_query([], self.defaults)
        self.assertTrue(query.endswith('AND (true)'))

    def test_custom_query_substitutes_host_list(self):
        config = default_and_validate_metric_configuration({'query': CUSTOM_QUERY})
        query = build_custom_query(MULTIPLE_HOSTNAMES, config)

        self.assertTrue(query.startswith('SELECT mean("free")'))
        self.assertIn(build_host_list(MULTIPLE_HOSTNAMES), query)
        self.assertNotIn('$host_list', query)

    def test_custom_query_without_query_key(self):
        with self.assertRaises(InvalidInputError):
            build_custom_query(ONE_HOSTNAME, self.defaults)

    def test_custom_query_with_unknown_variable(self):
        config = default_and_validate_metric_configuration({'query': 'SELECT $nope FROM "cpu"'})
        with self.assertRaises(QueryBuildError):
            build_custom_query(ONE_HOSTNAME, config)

    def test_custom_query_with_malformed_placeholder(self):
        config = default_and_validate_metric_configuration({'query': 'SELECT $1 FROM "cpu"'})
        with self.assertRaises(QueryBuildError):
            build_custom_query(ONE_HOSTNAME, config)

    def test_build_query_dispatches_on_metric(self):
        self.assertEqual(build_query('cpu_percent_utilization', ONE_HOSTNAME, self.defaults),
                         build_cpu_query(ONE_HOSTNAME, self.defaults))
        self.assertEqual(build_query('memory_percent_utilization', ONE_HOSTNAME, self.defaults),
                         build_memory_query(ONE_HOSTNAME, self.defaults))

    def test_build_query_unknown_metric(self):
        with self.assertRaises(InvalidInputError) as cm:
            build_query('disk_percent_utilization', ONE_HOSTNAME, self.defaults)
        self.assertIn('disk_percent_utilization', str(cm.exception))


if __name__ == '__main__':
    unittest.main()
