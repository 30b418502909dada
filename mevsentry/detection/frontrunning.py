"""Front-running detection over one clustering window.

A front-run is an attacker's contract call placed directly ahead of a
victim's contract call, paying a higher gas price, within a short gap.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from mevsentry.config import DEFAULT_SETTINGS, DetectorSettings
from mevsentry.detection.profit import frontrun_profit, gas_price_of
from mevsentry.models.attack import AttackRecord, AttackType
from mevsentry.models.transaction import Transaction

logger = logging.getLogger(__name__)

MIN_FRONTRUN_TRANSACTIONS = 2


def is_frontrunning_pattern(
    frontrun: Transaction,
    victim: Transaction,
    settings: DetectorSettings = DEFAULT_SETTINGS,
) -> bool:
    """Check whether two adjacent transactions look like a front-run."""
    if frontrun.from_address == victim.from_address:
        return False

    gap = victim.timestamp - frontrun.timestamp
    if gap < 0 or gap > settings.frontrun_max_gap_seconds:
        return False

    if (
        frontrun.calldata_length < settings.min_calldata_length
        or victim.calldata_length < settings.min_calldata_length
    ):
        return False

    return gas_price_of(frontrun) > gas_price_of(victim)


def detect_frontrunning(
    transactions: Sequence[Transaction],
    settings: DetectorSettings = DEFAULT_SETTINGS,
) -> AttackRecord | None:
    """Return the first front-run in a timestamp-sorted window, if any.

    Args:
        transactions: Window members sorted by timestamp ascending.
        settings: Detection thresholds.

    Returns:
        An AttackRecord for the first matching ``(i, i+1)`` pair, or None.
    """
    if len(transactions) < MIN_FRONTRUN_TRANSACTIONS:
        return None

    for i in range(len(transactions) - 1):
        frontrun = transactions[i]
        victim = transactions[i + 1]

        if not is_frontrunning_pattern(frontrun, victim, settings):
            continue

        logger.debug("Front-run by %s ahead of %s", frontrun.from_address, victim.hash)
        return AttackRecord(
            victim=victim.from_address,
            attacker=frontrun.from_address,
            profit_eth=frontrun_profit(victim, settings.frontrun_profit_rate),
            timestamp=victim.timestamp,
            attack_type=AttackType.FRONTRUNNING,
            frontrun_tx=frontrun.hash,
            backrun_tx="",
        )

    return None


__all__ = [
    "MIN_FRONTRUN_TRANSACTIONS",
    "detect_frontrunning",
    "is_frontrunning_pattern",
]
