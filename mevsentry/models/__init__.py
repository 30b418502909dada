"""Data models for transactions and detected attacks."""

from mevsentry.models.attack import AttackRecord, AttackType
from mevsentry.models.transaction import Transaction

__all__ = [
    "AttackRecord",
    "AttackType",
    "Transaction",
]
