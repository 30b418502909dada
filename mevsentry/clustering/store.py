"""Time-windowed transaction clustering with retention-based eviction.

Transactions are grouped into fixed-width windows keyed by
``timestamp // window_seconds``. Every insert prunes buckets whose first
arrival is older than the retention horizon, so memory stays bounded no
matter how long a session runs.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from mevsentry.config import DEFAULT_SETTINGS, DetectorSettings, EvictionReference
from mevsentry.models.transaction import Transaction

logger = logging.getLogger(__name__)


@dataclass
class Cluster:
    """Transactions that fall into one clustering window.

    Attributes:
        window_id: ``timestamp // window_seconds`` shared by every member.
        representative_timestamp: Timestamp of the first transaction ever
            inserted into the bucket. Never updated; retention compares
            against it.
    """

    window_id: int
    representative_timestamp: int
    _transactions: list[Transaction] = field(default_factory=list, repr=False)

    def __len__(self) -> int:
        return len(self._transactions)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        """Members in insertion order."""
        return tuple(self._transactions)

    def append(self, tx: Transaction) -> None:
        self._transactions.append(tx)

    def sorted_by_timestamp(self) -> list[Transaction]:
        """Return a copy of the members ordered by timestamp.

        ``sorted`` is stable, so equal timestamps keep insertion order.
        """
        return sorted(self._transactions, key=lambda tx: tx.timestamp)


class ClusterStore:
    """Window-keyed buckets of transactions owned by a single session.

    The store is not synchronized. Callers sharing it between threads must
    guard every operation with one lock, since ``insert`` mutates the bucket
    map while evicting.

    Example:
        >>> store = ClusterStore(clock=lambda: 1_000)
        >>> store.insert(tx)
        >>> store.bucket_count()
        1
    """

    def __init__(
        self,
        settings: DetectorSettings = DEFAULT_SETTINGS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self._clock = clock
        self._clusters: dict[int, Cluster] = {}
        self._latest_timestamp: int | None = None

    def __len__(self) -> int:
        return len(self._clusters)

    def window_id_for(self, timestamp: int) -> int:
        return timestamp // self.settings.window_seconds

    def insert(self, tx: Transaction, now: float | None = None) -> Cluster:
        """Add a transaction to its window bucket, then prune stale buckets.

        Args:
            tx: Transaction to insert. Duplicate hashes are kept as separate
                entries.
            now: Reference time for eviction. Defaults to the configured
                eviction reference (wall clock or newest ingested timestamp).

        Returns:
            The bucket the transaction was appended to. It may already have
            been evicted if its representative timestamp is past retention.
        """
        window_id = self.window_id_for(tx.timestamp)
        cluster = self._clusters.get(window_id)
        if cluster is None:
            cluster = Cluster(window_id=window_id, representative_timestamp=tx.timestamp)
            self._clusters[window_id] = cluster
            logger.debug("Opened window %s at timestamp %s", window_id, tx.timestamp)
        cluster.append(tx)

        if self._latest_timestamp is None or tx.timestamp > self._latest_timestamp:
            self._latest_timestamp = tx.timestamp

        self.evict(self._reference_time(now))
        return cluster

    def evict(self, now: float) -> int:
        """Drop every bucket whose representative timestamp precedes ``now - retention``.

        Returns:
            Number of buckets removed.
        """
        cutoff = now - self.settings.retention_seconds
        stale = [
            window_id
            for window_id, cluster in self._clusters.items()
            if cluster.representative_timestamp < cutoff
        ]
        for window_id in stale:
            del self._clusters[window_id]
        if stale:
            logger.debug("Evicted %d window(s) older than %s", len(stale), cutoff)
        return len(stale)

    def bucket_count(self) -> int:
        return len(self._clusters)

    def buckets(self) -> tuple[Cluster, ...]:
        """Live buckets ordered by window id ascending."""
        return tuple(self._clusters[window_id] for window_id in sorted(self._clusters))

    def get(self, window_id: int) -> Cluster | None:
        return self._clusters.get(window_id)

    @property
    def transaction_count(self) -> int:
        """Total number of transactions across live buckets."""
        return sum(len(cluster) for cluster in self._clusters.values())

    @property
    def latest_timestamp(self) -> int | None:
        """Newest transaction timestamp inserted into this store, if any."""
        return self._latest_timestamp

    def _reference_time(self, now: float | None) -> float:
        if now is not None:
            return now
        if (
            self.settings.eviction_reference is EvictionReference.LATEST_TIMESTAMP
            and self._latest_timestamp is not None
        ):
            return self._latest_timestamp
        return self._clock()


__all__ = [
    "Cluster",
    "ClusterStore",
]
