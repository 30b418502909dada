"""Heuristic detection of sandwich attacks and front-running in transaction streams."""

from mevsentry.config import DetectorSettings, EvictionReference
from mevsentry.engine import MEVEngine, TransactionParseError, detect_mev
from mevsentry.models import AttackRecord, AttackType, Transaction

__version__ = "0.1.0"

__all__ = [
    "AttackRecord",
    "AttackType",
    "DetectorSettings",
    "EvictionReference",
    "MEVEngine",
    "Transaction",
    "TransactionParseError",
    "detect_mev",
]
