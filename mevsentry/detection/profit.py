"""Coarse profit proxies and decimal-string parsing for detection heuristics.

None of these helpers decode swap economics. They turn the raw ``value`` and
``gas_price`` strings of a transaction into numbers and apply fixed formulas.
Anything that is not a plain string of ASCII digits parses as zero; this is
part of the observable behaviour (a zero victim gas price is trivially
outbid) and never raises.
"""

from __future__ import annotations

import re
from decimal import Context, Decimal
from typing import Any

from mevsentry.models.transaction import Transaction

WEI_PER_ETH = 10**18
# 2**256 has 78 digits; leave headroom so wei -> ETH division is exact.
_ETH_CONTEXT = Context(prec=100)
_DIGITS_PATTERN = re.compile(r"[0-9]+")
_ZERO = Decimal(0)


def parse_wei(text: Any) -> int:
    """Parse an unsigned decimal-digit string of any width.

    Args:
        text: Raw field value, normally a string such as ``"30000000000"``.

    Returns:
        The integer value, or 0 for anything else (signs, whitespace,
        fractions, exponents, hex, empty strings, non-strings).

    Example:
        >>> parse_wei("2000000000000000000")
        2000000000000000000
        >>> parse_wei("not_a_number")
        0
    """
    if not isinstance(text, str) or not _DIGITS_PATTERN.fullmatch(text):
        return 0
    try:
        return int(text)
    except ValueError:
        # Exceeds the interpreter's integer string conversion limit.
        return 0


def wei_to_eth(wei: int) -> Decimal:
    """Convert an amount in wei to whole ETH without rounding."""
    return _ETH_CONTEXT.divide(Decimal(wei), Decimal(WEI_PER_ETH))


def gas_price_of(tx: Transaction) -> int:
    return parse_wei(tx.gas_price)


def value_in_eth(tx: Transaction) -> Decimal:
    return wei_to_eth(parse_wei(tx.value))


def sandwich_profit(frontrun: Transaction, backrun: Transaction) -> Decimal:
    """Back-run value minus front-run value in ETH, floored at zero."""
    profit = _ETH_CONTEXT.subtract(value_in_eth(backrun), value_in_eth(frontrun))
    return max(_ZERO, profit)


def frontrun_profit(victim: Transaction, rate: Decimal = Decimal("0.01")) -> Decimal:
    """A fixed share of the victim's value in ETH, floored at zero."""
    return max(_ZERO, _ETH_CONTEXT.multiply(value_in_eth(victim), rate))


__all__ = [
    "WEI_PER_ETH",
    "frontrun_profit",
    "gas_price_of",
    "parse_wei",
    "sandwich_profit",
    "value_in_eth",
    "wei_to_eth",
]
