from scaling_backends.metrics.influxdb.backend import InfluxDBBackend

__all__ = ['InfluxDBBackend']
