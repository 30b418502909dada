"""Pydantic model for raw blockchain transaction records.

Transactions are the only input to the detector. Monetary and gas fields are
kept as the decimal strings they arrive as so that 256-bit values never pass
through floating point; they are parsed lazily by the profit heuristics.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Transaction(BaseModel):
    """Represents a single pending or mined transaction.

    The record is validated structurally (field presence and JSON types) but
    the contents of ``value``, ``gas_price`` and ``gas_limit`` are not checked:
    an unparsable amount is a legal record that degrades to zero during
    detection.

    Attributes:
        hash: Opaque unique transaction id.
        from_address: Sender address (``from`` on the wire).
        to: Recipient address.
        value: Transferred value in wei, as a decimal string.
        gas_price: Gas price in wei, as a decimal string.
        gas_limit: Gas limit, as a decimal string.
        nonce: Sender nonce.
        data: Calldata as a hex or opaque string; only its length is used.
        timestamp: Unix seconds supplied by the producer of the record.
        block_number: Block the transaction was mined in, or None if pending.

    Example:
        >>> tx = Transaction.model_validate({
        ...     "hash": "0xaa01",
        ...     "from": "0x66a9893cc07d91d95644aedd05d03f95e1dba8af",
        ...     "to": "0x7a250d5630b4cf539739df2c5dacb4c659f2488d",
        ...     "value": "1000000000000000000",
        ...     "gas_price": "30000000000",
        ...     "gas_limit": "21000",
        ...     "nonce": 7,
        ...     "data": "0x7ff36ab5",
        ...     "timestamp": 1769263223,
        ... })
    """

    model_config = ConfigDict(
        frozen=True,
        strict=True,
        extra="forbid",
        populate_by_name=True,
    )

    hash: str = Field(
        ...,
        description="Opaque unique transaction id",
        examples=["0x0c8d16bd4bbe310078b6c12dab184a5ffe0088c4cd7f36371680cc855014e832"],
    )
    from_address: str = Field(
        ...,
        alias="from",
        description="Sender address",
        examples=["0x66a9893cc07d91d95644aedd05d03f95e1dba8af"],
    )
    to: str = Field(
        ...,
        description="Recipient address",
        examples=["0x7a250d5630b4cf539739df2c5dacb4c659f2488d"],
    )
    value: str = Field(
        ...,
        description="Transferred value in wei as a decimal string",
        examples=["1000000000000000000"],
    )
    gas_price: str = Field(
        ...,
        description="Gas price in wei as a decimal string",
        examples=["30000000000"],
    )
    gas_limit: str = Field(
        ...,
        description="Gas limit as a decimal string",
        examples=["21000"],
    )
    nonce: int = Field(..., ge=0, description="Sender nonce", examples=[7])
    data: str = Field(
        ...,
        description="Calldata (hex or opaque string)",
        examples=["0x7ff36ab5"],
    )
    timestamp: int = Field(
        ...,
        ge=0,
        description="Unix timestamp in seconds",
        examples=[1769263223],
    )
    block_number: int | None = Field(
        default=None,
        ge=0,
        description="Block number, or None while pending",
        examples=[24305113, None],
    )

    @property
    def is_pending(self) -> bool:
        """Return True if the transaction has not been mined yet."""
        return self.block_number is None

    @property
    def calldata_length(self) -> int:
        """Length of the raw ``data`` string, used as a contract-call proxy."""
        return len(self.data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a wire-shaped dictionary (``from`` rather than ``from_address``)."""
        return self.model_dump(by_alias=True)


__all__ = ["Transaction"]
