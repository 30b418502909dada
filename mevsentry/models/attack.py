"""Pydantic models for detected MEV attacks."""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AttackType(StrEnum):
    """Kind of MEV pattern matched.

    Attributes:
        SANDWICH: Attacker transactions directly before and after the victim.
        FRONTRUNNING: Attacker transaction directly before the victim.
    """

    SANDWICH = "sandwich"
    FRONTRUNNING = "frontrunning"


class AttackRecord(BaseModel):
    """A suspected MEV attack found in one clustering window.

    Attributes:
        victim: Sender address of the victim transaction.
        attacker: Sender address of the front-running transaction.
        profit_eth: Coarse profit proxy in whole native units (ETH).
        timestamp: Timestamp of the victim transaction.
        attack_type: Pattern that matched.
        frontrun_tx: Hash of the front-running transaction.
        backrun_tx: Hash of the back-running transaction, empty for
            front-running matches.

    Example:
        >>> record = AttackRecord(
        ...     victim="0x51c7...",
        ...     attacker="0x66a9...",
        ...     profit_eth=Decimal("1"),
        ...     timestamp=110,
        ...     attack_type=AttackType.SANDWICH,
        ...     frontrun_tx="0xaa01",
        ...     backrun_tx="0xaa03",
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    victim: str = Field(..., description="Victim sender address")
    attacker: str = Field(..., description="Attacker sender address")
    profit_eth: Decimal = Field(
        ...,
        ge=0,
        description="Estimated attacker profit in ETH",
        examples=[Decimal("1.0")],
    )
    timestamp: int = Field(..., ge=0, description="Victim transaction timestamp")
    attack_type: AttackType = Field(..., description="Matched pattern")
    frontrun_tx: str = Field(..., description="Front-running transaction hash")
    backrun_tx: str = Field(
        default="",
        description="Back-running transaction hash (sandwich only)",
    )

    @model_validator(mode="after")
    def check_backrun_matches_type(self) -> AttackRecord:
        """Front-running records carry no back-run.

        Sandwich back-run hashes are copied from the input as-is and may be
        empty, since transaction hashes are opaque strings.
        """
        if self.attack_type is AttackType.FRONTRUNNING and self.backrun_tx:
            raise ValueError("Front-running records must not reference a back-run transaction")
        return self

    @property
    def is_sandwich(self) -> bool:
        return self.attack_type is AttackType.SANDWICH

    def to_dict(self) -> dict[str, Any]:
        """Convert record to a flat dictionary with the profit as a decimal string."""
        return {
            "victim": self.victim,
            "attacker": self.attacker,
            "profit_eth": str(self.profit_eth),
            "timestamp": self.timestamp,
            "attack_type": str(self.attack_type),
            "frontrun_tx": self.frontrun_tx,
            "backrun_tx": self.backrun_tx,
        }


__all__ = [
    "AttackRecord",
    "AttackType",
]
