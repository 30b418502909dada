"""Scan clustered transactions for sandwich and front-running attacks.

Detection Logic:
1. Walk live buckets in window-id order
2. Sort each bucket's transactions by timestamp (stable)
3. Run sandwich detection on buckets with at least three transactions
4. Independently run front-running detection on buckets with at least two

Each pattern yields at most one record per bucket, so a bucket contributes
zero, one or two records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import pandas as pd

from mevsentry.clustering.store import ClusterStore
from mevsentry.config import DEFAULT_SETTINGS, DetectorSettings
from mevsentry.detection.frontrunning import detect_frontrunning
from mevsentry.detection.sandwich import detect_sandwich
from mevsentry.models.attack import AttackRecord, AttackType

logger = logging.getLogger(__name__)

ATTACK_COLUMNS = [
    "victim",
    "attacker",
    "profit_eth",
    "timestamp",
    "attack_type",
    "frontrun_tx",
    "backrun_tx",
]


@dataclass(frozen=True)
class DetectionResult:
    """Result of scanning a cluster store.

    Attributes:
        attacks: Detected attacks, ordered by window id then pattern.
        buckets_scanned: Number of live buckets inspected.
        transactions_analyzed: Number of transactions across those buckets.
    """

    attacks: tuple[AttackRecord, ...]
    buckets_scanned: int
    transactions_analyzed: int

    @property
    def total_attacks(self) -> int:
        return len(self.attacks)

    @property
    def unique_attackers(self) -> set[str]:
        """Return set of unique attacker addresses."""
        return {a.attacker for a in self.attacks}

    @property
    def sandwiches(self) -> list[AttackRecord]:
        return [a for a in self.attacks if a.attack_type is AttackType.SANDWICH]

    @property
    def frontruns(self) -> list[AttackRecord]:
        return [a for a in self.attacks if a.attack_type is AttackType.FRONTRUNNING]

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for reporting."""
        return {
            "total_attacks": self.total_attacks,
            "sandwich_count": len(self.sandwiches),
            "frontrunning_count": len(self.frontruns),
            "unique_attackers": len(self.unique_attackers),
            "buckets_scanned": self.buckets_scanned,
            "transactions_analyzed": self.transactions_analyzed,
        }


class AttackDetector:
    """Applies the sandwich and front-running heuristics to every live bucket.

    The detector is stateless apart from its settings; results are a pure
    function of the store contents at call time.

    Example:
        >>> detector = AttackDetector()
        >>> attacks = detector.scan(store)
    """

    def __init__(self, settings: DetectorSettings = DEFAULT_SETTINGS) -> None:
        self.settings = settings

    def scan(self, store: ClusterStore) -> list[AttackRecord]:
        """Return all attacks found in the store's live buckets."""
        return list(self.analyze(store).attacks)

    def analyze(self, store: ClusterStore) -> DetectionResult:
        """Scan the store and return attacks together with scan statistics."""
        attacks: list[AttackRecord] = []
        transactions_analyzed = 0
        buckets = store.buckets()

        for cluster in buckets:
            ordered = cluster.sorted_by_timestamp()
            transactions_analyzed += len(ordered)

            sandwich = detect_sandwich(ordered, self.settings)
            if sandwich is not None:
                attacks.append(sandwich)

            frontrun = detect_frontrunning(ordered, self.settings)
            if frontrun is not None:
                attacks.append(frontrun)

        logger.debug(
            "Scanned %d bucket(s) / %d transaction(s), found %d attack(s)",
            len(buckets),
            transactions_analyzed,
            len(attacks),
        )
        return DetectionResult(
            attacks=tuple(attacks),
            buckets_scanned=len(buckets),
            transactions_analyzed=transactions_analyzed,
        )


def attacks_to_dataframe(attacks: list[AttackRecord]) -> pd.DataFrame:
    """Convert attack records to a DataFrame, one row per attack.

    Profit stays a decimal string so no precision is lost on export.
    """
    if not attacks:
        return pd.DataFrame(columns=ATTACK_COLUMNS)

    records = [a.to_dict() for a in attacks]
    return pd.DataFrame(records, columns=ATTACK_COLUMNS)


__all__ = [
    "ATTACK_COLUMNS",
    "AttackDetector",
    "DetectionResult",
    "attacks_to_dataframe",
]
