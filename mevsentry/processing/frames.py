"""Tabular helpers for moving transactions and attacks through pandas."""
from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Dict, Iterable, List

import numpy as np
import pandas as pd

TRANSACTION_COLUMNS = [
    "hash",
    "from",
    "to",
    "value",
    "gas_price",
    "gas_limit",
    "nonce",
    "data",
    "timestamp",
    "block_number",
]
STRING_COLUMNS = ("hash", "from", "to", "value", "gas_price", "gas_limit", "data")
INTEGER_COLUMNS = ("nonce", "timestamp", "block_number")


def transactions_from_frame(frame: pd.DataFrame, text_cells: bool = False) -> List[Dict[str, Any]]:
    """Return wire-shaped transaction records for each row of ``frame``.

    Missing cells become None and numpy scalars become Python scalars. Cell
    types are otherwise passed through, so a numeric ``gas_price`` read from
    JSON or parquet is rejected by the strict Transaction model just as it
    would be at ``MEVEngine.ingest``. Rows keep their frame order.

    Args:
        frame: Transaction rows.
        text_cells: Set for CSV input, where every cell arrives as text.
            Integer columns are then parsed from their digits.
    """
    missing = [col for col in TRANSACTION_COLUMNS if col != "block_number" and col not in frame.columns]
    if missing:
        raise ValueError(f"Input frame is missing required columns: {missing}")

    columns = _existing_columns(frame, TRANSACTION_COLUMNS)
    return [_normalise_row(row, text_cells) for row in frame[columns].to_dict("records")]


def transactions_to_frame(records: Iterable[Dict[str, Any]]) -> pd.DataFrame:
    """Build a frame with the canonical transaction columns."""
    frame = pd.DataFrame.from_records(list(records), columns=TRANSACTION_COLUMNS)
    # Keep block numbers integral even when some are pending.
    frame["block_number"] = frame["block_number"].astype("Int64")
    return frame


def read_frame(path: Path) -> pd.DataFrame:
    """Load a parquet, CSV, JSON array or JSON-lines file."""
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(path)
    if suffix == ".csv":
        # Read everything as text so wide integers never pass through float.
        return pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[""])
    if suffix in (".jsonl", ".ndjson"):
        return pd.read_json(path, lines=True, dtype=False, convert_dates=False)
    if suffix == ".json":
        return pd.read_json(path, orient="records", dtype=False, convert_dates=False)
    raise ValueError(f"Unsupported file type: {path.suffix or path.name}")


def load_transactions(path: Path) -> List[Dict[str, Any]]:
    """Read a transaction file into wire-shaped records, parsing CSV cells as text."""
    return transactions_from_frame(read_frame(path), text_cells=path.suffix.lower() == ".csv")


def write_frame(frame: pd.DataFrame, path: Path) -> None:
    """Write ``frame`` using the format implied by the file suffix."""
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".parquet":
        frame.to_parquet(path, index=False)
    elif suffix == ".csv":
        frame.to_csv(path, index=False)
    elif suffix in (".jsonl", ".ndjson"):
        frame.to_json(path, orient="records", lines=True)
    elif suffix == ".json":
        frame.to_json(path, orient="records")
    else:
        raise ValueError(f"Unsupported file type: {path.suffix or path.name}")


def _normalise_row(row: Dict[str, Any], text_cells: bool) -> Dict[str, Any]:
    record: Dict[str, Any] = {}
    for key, value in row.items():
        if _is_missing(value):
            # An empty CSV cell in a text column is an empty string.
            record[key] = "" if text_cells and key in STRING_COLUMNS else None
        elif key in INTEGER_COLUMNS:
            record[key] = _integer_cell(_native(value), text_cells)
        else:
            record[key] = _native(value)
    return record


def _integer_cell(value: Any, text_cells: bool) -> Any:
    if text_cells and isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    # Integer columns with gaps are upcast to float64 by pandas.
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _native(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NA:
        return True
    return isinstance(value, float) and math.isnan(value)


def _existing_columns(frame: pd.DataFrame, columns: Iterable[str]) -> List[str]:
    return [col for col in columns if col in frame.columns]
