"""Utilities for turning JSON-RPC blocks into transaction records."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .rpc_client import RpcClient

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20


def fetch_block_transactions(client: RpcClient, block_number: int) -> List[Dict[str, Any]]:
    """Return wire-shaped transaction records for every transaction in a block.

    Each record takes the block's timestamp and number. Missing blocks yield
    an empty list.
    """
    return _block_records(client.get_block(block_number, full_transactions=True), block_number)


def fetch_block_range(
    client: RpcClient,
    start_block: int,
    end_block: int,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> List[Dict[str, Any]]:
    """Return records for blocks ``start_block`` through ``end_block`` inclusive.

    Blocks are requested ``batch_size`` at a time as JSON-RPC batches.
    """
    if start_block > end_block:
        raise ValueError("start_block must be <= end_block")
    if batch_size < 1:
        raise ValueError("batch_size must be positive")

    records: List[Dict[str, Any]] = []
    for first in range(start_block, end_block + 1, batch_size):
        numbers = list(range(first, min(first + batch_size, end_block + 1)))
        logger.info("Fetching blocks %s-%s (%s -> %s)", numbers[0], numbers[-1], start_block, end_block)
        for number, block in zip(numbers, client.get_blocks(numbers, full_transactions=True)):
            records.extend(_block_records(block, number))
    return records


def _block_records(block: Optional[Dict[str, Any]], block_number: int) -> List[Dict[str, Any]]:
    if not block:
        logger.warning("Block %s not available from node", block_number)
        return []

    timestamp = _hex_to_int(block.get("timestamp")) or 0
    number = _hex_to_int(block.get("number"))
    transactions = block.get("transactions") or []
    logger.debug("Block %s carries %s transaction(s)", block_number, len(transactions))
    return [
        _normalise_transaction(raw, timestamp, number)
        for raw in transactions
        # Blocks fetched without full transactions only list hashes.
        if isinstance(raw, dict)
    ]


def _normalise_transaction(raw: Dict[str, Any], timestamp: int, block_number: int | None) -> Dict[str, Any]:
    """Flatten a raw JSON-RPC transaction into a Transaction-shaped dict."""
    # EIP-1559 transactions may omit gasPrice in some node responses.
    gas_price = raw.get("gasPrice") or raw.get("maxFeePerGas")

    return {
        "hash": _safe_str(raw.get("hash")),
        "from": _safe_str(raw.get("from")),
        # Contract creations have no recipient.
        "to": _safe_str(raw.get("to")) or "",
        "value": _hex_to_decimal_str(raw.get("value")),
        "gas_price": _hex_to_decimal_str(gas_price),
        "gas_limit": _hex_to_decimal_str(raw.get("gas")),
        "nonce": _hex_to_int(raw.get("nonce")) or 0,
        "data": _safe_str(raw.get("input") or raw.get("data")) or "0x",
        "timestamp": timestamp,
        "block_number": block_number,
    }


def _hex_to_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        if isinstance(value, str):
            return int(value, 16) if value.startswith("0x") else int(value)
        return int(value)
    except (TypeError, ValueError):
        return None


def _hex_to_decimal_str(value: Any) -> str:
    parsed = _hex_to_int(value)
    return str(parsed) if parsed is not None else "0"


def _safe_str(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None
