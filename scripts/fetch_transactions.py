#!/usr/bin/env python
"""Fetch transactions for a block range over JSON-RPC and persist them."""
from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from mevsentry.ingest.blocks import fetch_block_range
from mevsentry.ingest.rpc_client import RpcClient
from mevsentry.processing.frames import transactions_to_frame, write_frame

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("scripts.fetch_transactions")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch block transactions from an Ethereum node")
    parser.add_argument("--blocks", type=int, default=10, help="Number of most recent blocks to fetch")
    parser.add_argument("--start", type=int, default=None, help="First block (overrides --blocks)")
    parser.add_argument("--end", type=int, default=None, help="Last block (default: latest)")
    parser.add_argument("--batch-size", type=int, default=20, help="Blocks per JSON-RPC batch request")
    parser.add_argument(
        "--out",
        default="data/raw/transactions.parquet",
        help="Output path (.parquet, .csv, .json or .jsonl)",
    )
    return parser.parse_args()


def _build_headers() -> dict[str, str]:
    headers: dict[str, str] = {}
    api_key = os.getenv("ETH_RPC_API_KEY")
    if api_key:
        key = api_key.strip()
        if key.lower().startswith("bearer "):
            headers["Authorization"] = key
        else:
            headers["Authorization"] = f"Bearer {key}"
    return headers


def main() -> None:
    load_dotenv()
    args = parse_args()

    endpoint = os.getenv("ETH_RPC_URL")
    if not endpoint:
        raise SystemExit("ETH_RPC_URL env var required")

    client = RpcClient(endpoint, headers=_build_headers())
    end_block = args.end if args.end is not None else client.block_number()
    start_block = args.start if args.start is not None else max(0, end_block - args.blocks + 1)

    records = fetch_block_range(client, start_block, end_block, batch_size=args.batch_size)

    output_path = Path(args.out)
    write_frame(transactions_to_frame(records), output_path)

    logger.info(
        "Fetched %s transactions for blocks %s -> %s -> %s",
        len(records),
        start_block,
        end_block,
        output_path,
    )


if __name__ == "__main__":
    main()
