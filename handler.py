"""
Entry point for function runtimes serving metric and scaling requests.
"""

# Configure logging first
from scaling_backends.common.logger import setup_logging

setup_logging()

from scaling_backends.main import handle_request


# The handler is specified in the runtime configuration as "handler.handler"
def handler(event, context=None):
    """
    Function handler that delegates to the main handle_request.

    Args:
        event: Request payload
        context: Runtime context object

    Returns:
        Response from handle_request
    """
    return handle_request(event, context)
