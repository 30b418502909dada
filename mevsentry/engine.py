"""Session facade over the cluster store and attack detector.

An ``MEVEngine`` owns one ``ClusterStore``. Records enter through
``ingest`` (decoded and validated before anything is mutated) and attacks
are computed on demand by ``detect``. ``detect_mev`` runs a whole batch
through a fresh session.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from mevsentry.clustering.store import ClusterStore
from mevsentry.config import DEFAULT_SETTINGS, DetectorSettings
from mevsentry.detection.detector import AttackDetector, DetectionResult
from mevsentry.models.attack import AttackRecord
from mevsentry.models.transaction import Transaction

logger = logging.getLogger(__name__)

TransactionInput = Transaction | Mapping[str, Any] | str | bytes


class TransactionParseError(ValueError):
    """Raised when an input record cannot be decoded into a Transaction."""


def parse_transaction(record: TransactionInput) -> Transaction:
    """Decode a mapping or JSON document into a validated Transaction.

    Raises:
        TransactionParseError: If the record is not valid JSON, is missing a
            field, has a field of the wrong type or carries unknown fields.
    """
    if isinstance(record, Transaction):
        return record
    try:
        if isinstance(record, (str, bytes, bytearray)):
            return Transaction.model_validate_json(record)
        if isinstance(record, Mapping):
            record = dict(record)
        return Transaction.model_validate(record)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "record"
        raise TransactionParseError(
            f"Failed to parse transaction: {location}: {first['msg']}"
        ) from exc


class MEVEngine:
    """One analysis session: ingest transactions, then detect attacks.

    The engine is single-threaded. Share it between threads only behind a
    single lock covering ``ingest``, ``detect`` and ``cluster_count``.

    Example:
        >>> engine = MEVEngine()
        >>> engine.ingest({"hash": "0xaa01", "from": "0x66a9...", ...})
        >>> attacks = engine.detect()
    """

    def __init__(
        self,
        settings: DetectorSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.store = ClusterStore(self.settings, clock=clock)
        self.detector = AttackDetector(self.settings)
        self._ingested = 0

    @property
    def ingested_count(self) -> int:
        """Number of records accepted by this session."""
        return self._ingested

    def ingest(self, record: TransactionInput, now: float | None = None) -> Transaction:
        """Validate a record and insert it into the cluster store.

        Args:
            record: A Transaction, a mapping in wire shape, or a JSON document.
            now: Optional eviction reference time overriding the clock.

        Returns:
            The validated Transaction.

        Raises:
            TransactionParseError: If the record is malformed. The store is
                left untouched.
        """
        tx = parse_transaction(record)
        self.store.insert(tx, now=now)
        self._ingested += 1
        return tx

    def detect(self) -> list[AttackRecord]:
        return self.detector.scan(self.store)

    def analyze(self) -> DetectionResult:
        return self.detector.analyze(self.store)

    def detect_json(self) -> str:
        """Detected attacks as a JSON array, profits as decimal strings."""
        return json.dumps([attack.to_dict() for attack in self.detect()])

    def cluster_count(self) -> int:
        return self.store.bucket_count()


def detect_mev(
    records: Iterable[TransactionInput] | str | bytes,
    settings: DetectorSettings | None = None,
    clock: Callable[[], float] = time.time,
) -> list[AttackRecord]:
    """Run a batch of records through a fresh session and return its attacks.

    Records are ingested in order. The first malformed record aborts the
    batch with ``TransactionParseError``; nothing is rolled back, but the
    session is discarded with the error.

    Args:
        records: Transaction inputs, or a JSON array of transaction objects.
        settings: Detection thresholds for the session.
        clock: Wall-clock source used for retention.

    Returns:
        Attacks detected after the last record was ingested.
    """
    if isinstance(records, (str, bytes, bytearray)):
        try:
            batch = json.loads(records)
        except json.JSONDecodeError as exc:
            raise TransactionParseError(f"Failed to parse transaction batch: {exc}") from exc
        if not isinstance(batch, list):
            raise TransactionParseError("Failed to parse transaction batch: expected a JSON array")
        records = batch

    engine = MEVEngine(settings=settings, clock=clock)
    for index, record in enumerate(records):
        try:
            engine.ingest(record)
        except TransactionParseError:
            logger.error("Aborting batch at record %d", index)
            raise

    attacks = engine.detect()
    logger.info(
        "Batch of %d transaction(s) across %d window(s) produced %d attack(s)",
        engine.ingested_count,
        engine.cluster_count(),
        len(attacks),
    )
    return attacks


__all__ = [
    "MEVEngine",
    "TransactionParseError",
    "detect_mev",
    "parse_transaction",
]
