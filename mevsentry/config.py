"""Tunable thresholds for clustering and MEV pattern detection.

All detector constants live on a single frozen settings object so a session
can be configured once and passed explicitly to the store and detector.
Values can be overridden from ``MEVSENTRY_*`` environment variables.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "MEVSENTRY_"


class EvictionReference(StrEnum):
    """Reference time that bucket retention is measured against.

    Attributes:
        WALLCLOCK: The real current time at the moment of each insert.
        LATEST_TIMESTAMP: The newest transaction timestamp ingested so far,
            for replaying historical data.
    """

    WALLCLOCK = "wallclock"
    LATEST_TIMESTAMP = "latest_timestamp"


class DetectorSettings(BaseModel):
    """Thresholds shared by the cluster store and attack detectors.

    Attributes:
        window_seconds: Width of a clustering window.
        retention_seconds: Age after which a bucket is evicted.
        sandwich_max_span_seconds: Maximum front-run to back-run distance.
        frontrun_max_gap_seconds: Maximum front-run to victim distance.
        min_calldata_length: Minimum ``data`` length treated as a contract call.
        frontrun_profit_rate: Share of the victim's value booked as
            front-running profit.
        eviction_reference: Which clock retention compares against.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    window_seconds: int = Field(default=120, gt=0, description="Clustering window width")
    retention_seconds: int = Field(default=600, ge=0, description="Bucket retention horizon")
    sandwich_max_span_seconds: int = Field(
        default=120,
        ge=0,
        description="Maximum seconds between front-run and back-run",
    )
    frontrun_max_gap_seconds: int = Field(
        default=30,
        ge=0,
        description="Maximum seconds between front-run and victim",
    )
    min_calldata_length: int = Field(
        default=10,
        ge=0,
        description="Minimum calldata length for a transaction to count as a contract call",
    )
    frontrun_profit_rate: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Fraction of victim value estimated as front-running profit",
    )
    eviction_reference: EvictionReference = Field(
        default=EvictionReference.WALLCLOCK,
        description="Clock used when pruning stale buckets",
    )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DetectorSettings:
        """Build settings from ``MEVSENTRY_*`` variables, falling back to defaults.

        ``MEVSENTRY_WINDOW_SECONDS`` maps to ``window_seconds`` and so on.
        Invalid values raise ``pydantic.ValidationError``.
        """
        source = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = source.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw.strip():
                overrides[name] = raw.strip()
        return cls.model_validate(overrides)


DEFAULT_SETTINGS = DetectorSettings()

__all__ = [
    "DEFAULT_SETTINGS",
    "DetectorSettings",
    "EvictionReference",
]
