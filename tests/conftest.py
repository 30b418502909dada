"""Shared fixtures for MEV detection tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from mevsentry.models.transaction import Transaction
from tests.helpers import ATTACKER, FIXED_NOW, ROUTER, SWAP_CALLDATA


@pytest.fixture
def make_tx() -> Callable[..., Transaction]:
    """Factory fixture building transactions with overridable fields."""
    counter = {"n": 0}

    def _make(
        sender: str = ATTACKER,
        timestamp: int = 100,
        gas_price: str = "20",
        value: str = "0",
        data: str = SWAP_CALLDATA,
        tx_hash: str | None = None,
        block_number: int | None = None,
    ) -> Transaction:
        counter["n"] += 1
        return Transaction.model_validate({
            "hash": tx_hash or f"0x{counter['n']:064x}",
            "from": sender,
            "to": ROUTER,
            "value": value,
            "gas_price": gas_price,
            "gas_limit": "210000",
            "nonce": counter["n"],
            "data": data,
            "timestamp": timestamp,
            "block_number": block_number,
        })

    return _make


@pytest.fixture
def fixed_clock() -> Callable[[], float]:
    return lambda: FIXED_NOW


@pytest.fixture
def tx_record() -> dict:
    """Return a valid wire-shaped transaction record."""
    return {
        "hash": "0x0c8d16bd4bbe310078b6c12dab184a5ffe0088c4cd7f36371680cc855014e832",
        "from": ATTACKER,
        "to": ROUTER,
        "value": "1000000000000000000",
        "gas_price": "30000000000",
        "gas_limit": "21000",
        "nonce": 7,
        "data": "0x7ff36ab500",
        "timestamp": 150,
        "block_number": None,
    }
