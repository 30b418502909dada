"""Detection algorithms for MEV transaction-ordering patterns.

This module provides heuristics for identifying sandwich attacks and
front-running inside time-windowed transaction clusters, plus the coarse
profit proxies attached to each match.
"""

from mevsentry.detection.detector import (
    AttackDetector,
    DetectionResult,
    attacks_to_dataframe,
)
from mevsentry.detection.frontrunning import detect_frontrunning, is_frontrunning_pattern
from mevsentry.detection.profit import (
    frontrun_profit,
    parse_wei,
    sandwich_profit,
    wei_to_eth,
)
from mevsentry.detection.sandwich import detect_sandwich, is_sandwich_pattern

__all__ = [
    "AttackDetector",
    "DetectionResult",
    "attacks_to_dataframe",
    "detect_frontrunning",
    "detect_sandwich",
    "frontrun_profit",
    "is_frontrunning_pattern",
    "is_sandwich_pattern",
    "parse_wei",
    "sandwich_profit",
    "wei_to_eth",
]
