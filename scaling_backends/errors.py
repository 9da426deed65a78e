class BackendError(Exception):
    """Base class for every error raised by a metric or scaling backend."""


class ConfigurationError(BackendError, ValueError):
    """Construction-time or per-call configuration is missing or invalid."""


class InvalidInputError(BackendError, ValueError):
    """A call argument is invalid. Never worth retrying."""


class UnsupportedStrategyError(InvalidInputError):
    """The requested scaling strategy is not implemented by the backend."""


class QueryBuildError(InvalidInputError):
    """A query template could not be rendered."""


class NodeListingError(BackendError):
    """Listing the nodes matching a node selector failed."""


class MetricQueryError(BackendError):
    """The remote metrics store rejected or failed to answer a query."""

    def __init__(self, message, query=None):
        super().__init__(message)
        self.query = query


class DataShapeError(BackendError):
    """The metrics store answered with an empty or malformed response."""


class ScalingError(BackendError):
    """The remote provisioning API failed to apply a scaling request."""

    def __init__(self, message, node_pool_id=None):
        super().__init__(message)
        self.node_pool_id = node_pool_id
