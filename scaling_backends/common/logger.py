import os
import logging
import json

# Request context that backends attach to their log records through `extra=`
CONTEXT_FIELDS = ('backend', 'metric', 'query', 'node_pool_id', 'num_nodes')

# Client libraries that log every HTTP round trip to the store or cloud API
CLIENT_LOGGERS = ('influxdb', 'requests', 'urllib3', 'kubernetes', 'boto3', 'botocore')

TEXT_FORMAT = '%(asctime)s [%(levelname)s] %(name)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level=None, json_output=None):
    """
    Set up logging for a process serving backend requests.

    Args:
        level: Optional log level override (default: uses LOG_LEVEL env var or INFO)
        json_output: Emit one JSON object per line (default: only inside a Kubernetes pod)
    """
    if level is None:
        level = os.environ.get('LOG_LEVEL', 'INFO').upper()

    if json_output is None:
        json_output = os.environ.get('KUBERNETES_SERVICE_HOST') is not None

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if json_output else ContextFormatter(TEXT_FORMAT, DATE_FORMAT))

    logging.basicConfig(level=getattr(logging, level, logging.INFO), handlers=[handler])

    for name in CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def request_context(**fields):
    """Build an `extra=` mapping from request context, dropping unset fields."""
    return {key: value for key, value in fields.items() if value is not None}


def error_context(error):
    """Request context carried by a backend error, e.g. the failed query or pool."""
    return request_context(query=getattr(error, 'query', None),
                           node_pool_id=getattr(error, 'node_pool_id', None))


def _context(record):
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


class ContextFormatter(logging.Formatter):
    """
    Plain text format with the request context appended as key=value pairs.
    """

    def formatMessage(self, record):
        message = super().formatMessage(record)
        context = _context(record)
        if not context:
            return message

        return message + ' ' + ' '.join(f"{key}={value!r}" for key, value in context.items())


class JsonFormatter(logging.Formatter):
    """
    Format log records as single-line JSON documents for in-cluster log collectors.
    """

    def format(self, record):
        log_record = {
            'timestamp': self.formatTime(record, DATE_FORMAT),
            'level': record.levelname,
            'name': record.name,
            'message': record.getMessage(),
        }
        log_record.update(_context(record))

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)
