import abc
import logging
from typing import Dict

from scaling_backends.common.logger import request_context
from scaling_backends.errors import ConfigurationError, InvalidInputError, UnsupportedStrategyError

STRATEGY_RANDOM = 'random'


class ScalingBackend(abc.ABC):
    """
    Capability shared by all scaling backends.

    Subclasses name the node label holding the pool identifier and implement
    one method per supported strategy. Validation and strategy dispatch happen
    here, before any remote call is made.
    """

    #: Node label whose value identifies the pool to scale
    node_pool_id_label_key: str = None

    #: Strategy used when the caller passes an empty strategy
    default_strategy = STRATEGY_RANDOM

    def __init__(self, name: str):
        if not name:
            raise ConfigurationError("name must be provided")
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def strategies(self):
        """Map of supported strategy names to the methods implementing them."""
        return {
            STRATEGY_RANDOM: self.scale_strategy_random,
        }

    def set_target_node_count(self, node_selector: Dict[str, str], num_nodes: int, strategy: str = '') -> bool:
        """
        Scale the node pool identified by node_selector to num_nodes nodes.

        Args:
            node_selector: Node labels; must contain the backend's pool id label
            num_nodes: Desired node count, at least 0
            strategy: Scaling strategy name; empty selects the default

        Returns:
            bool: True once the remote API accepted the request

        Raises:
            InvalidInputError: If num_nodes is negative or the pool cannot be determined
            UnsupportedStrategyError: If the strategy is not implemented
            ScalingError: If the remote API call fails
        """
        if num_nodes < 0:
            raise InvalidInputError("cannot scale below 0")

        node_pool_id = (node_selector or {}).get(self.node_pool_id_label_key)
        if not node_pool_id:
            raise InvalidInputError(
                f"could not determine node pool to scale: label {self.node_pool_id_label_key!r} not in node selector")

        scale = self.strategies().get(strategy or self.default_strategy)
        if scale is None:
            raise UnsupportedStrategyError(f"unable to scale node pool using strategy {strategy!r}")

        logging.info(f"{type(self).__name__} {self.name} is requesting to set target nodes "
                     f"{node_selector} to {num_nodes}",
                     extra=request_context(backend=self.name, node_pool_id=node_pool_id, num_nodes=num_nodes))

        return scale(node_pool_id, num_nodes)

    @abc.abstractmethod
    def scale_strategy_random(self, node_pool_id: str, num_nodes: int) -> bool:
        """
        Set the pool's desired count directly and let the provider choose
        which nodes to add or remove.
        """
