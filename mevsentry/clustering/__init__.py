"""Time-windowed clustering of transactions."""

from mevsentry.clustering.store import Cluster, ClusterStore

__all__ = [
    "Cluster",
    "ClusterStore",
]
