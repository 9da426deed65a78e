"""
Scaling backends. Each backend sets the desired node count of a node pool.
"""

from scaling_backends.scaling.base import STRATEGY_RANDOM, ScalingBackend

__all__ = ['STRATEGY_RANDOM', 'ScalingBackend']
