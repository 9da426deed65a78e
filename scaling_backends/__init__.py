"""
Pluggable metric and scaling backends for a cluster autoscaler.

Metric backends read a single load value for a set of nodes from a metrics
store. Scaling backends set the desired node count of a node pool through a
cloud provisioning API.
"""

__version__ = "0.1.0"
