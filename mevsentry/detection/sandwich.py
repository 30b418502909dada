"""Sandwich attack detection over one clustering window.

This module flags sandwich attacks in a timestamp-ordered run of
transactions. A sandwich occurs when an attacker places one transaction
immediately before and one immediately after a victim's contract call.

Pattern (adjacent triple):
1. Attacker front-runs the victim, outbidding it on gas
2. Victim's contract call executes at the worse price
3. Attacker back-runs the victim, again outbidding it on gas

Only the first qualifying triple in a window is reported.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from mevsentry.config import DEFAULT_SETTINGS, DetectorSettings
from mevsentry.detection.profit import gas_price_of, sandwich_profit
from mevsentry.models.attack import AttackRecord, AttackType
from mevsentry.models.transaction import Transaction

logger = logging.getLogger(__name__)

MIN_SANDWICH_TRANSACTIONS = 3


def is_sandwich_pattern(
    frontrun: Transaction,
    victim: Transaction,
    backrun: Transaction,
    settings: DetectorSettings = DEFAULT_SETTINGS,
) -> bool:
    """Check whether three adjacent transactions look like a sandwich.

    Args:
        frontrun: Transaction directly before the victim.
        victim: Candidate victim transaction.
        backrun: Transaction directly after the victim.
        settings: Thresholds for span and calldata length.

    Returns:
        True if the same attacker surrounds a different victim within the
        span limit, the victim is a contract call and both attacker legs
        pay more gas than the victim.
    """
    if frontrun.from_address != backrun.from_address:
        return False

    if victim.from_address == frontrun.from_address:
        return False

    # Out-of-order legs are a non-match rather than a negative span
    span = backrun.timestamp - frontrun.timestamp
    if span < 0 or span > settings.sandwich_max_span_seconds:
        return False

    if victim.calldata_length < settings.min_calldata_length:
        return False

    victim_gas = gas_price_of(victim)
    return gas_price_of(frontrun) > victim_gas and gas_price_of(backrun) > victim_gas


def detect_sandwich(
    transactions: Sequence[Transaction],
    settings: DetectorSettings = DEFAULT_SETTINGS,
) -> AttackRecord | None:
    """Return the first sandwich in a timestamp-sorted window, if any.

    Args:
        transactions: Window members sorted by timestamp ascending.
        settings: Detection thresholds.

    Returns:
        An AttackRecord for the first matching ``(i-1, i, i+1)`` triple, or
        None when the window is too small or nothing matches.
    """
    if len(transactions) < MIN_SANDWICH_TRANSACTIONS:
        return None

    for i in range(1, len(transactions) - 1):
        frontrun = transactions[i - 1]
        victim = transactions[i]
        backrun = transactions[i + 1]

        if not is_sandwich_pattern(frontrun, victim, backrun, settings):
            continue

        logger.debug(
            "Sandwich by %s around %s (front=%s back=%s)",
            frontrun.from_address,
            victim.hash,
            frontrun.hash,
            backrun.hash,
        )
        return AttackRecord(
            victim=victim.from_address,
            attacker=frontrun.from_address,
            profit_eth=sandwich_profit(frontrun, backrun),
            timestamp=victim.timestamp,
            attack_type=AttackType.SANDWICH,
            frontrun_tx=frontrun.hash,
            backrun_tx=backrun.hash,
        )

    return None


__all__ = [
    "MIN_SANDWICH_TRANSACTIONS",
    "detect_sandwich",
    "is_sandwich_pattern",
]
