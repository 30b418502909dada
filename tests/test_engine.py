"""Tests for the MEVEngine session and the batch entry point."""

from __future__ import annotations

import json
from decimal import Decimal

import pytest

from mevsentry import MEVEngine, TransactionParseError, detect_mev
from mevsentry.config import DetectorSettings, EvictionReference
from mevsentry.engine import parse_transaction
from mevsentry.models.attack import AttackType
from tests.helpers import ATTACKER, FIXED_NOW, ROUTER, VICTIM


def _record(tx_hash: str, sender: str, timestamp: int, gas_price: str, value: str, data: str) -> dict:
    return {
        "hash": tx_hash,
        "from": sender,
        "to": ROUTER,
        "value": value,
        "gas_price": gas_price,
        "gas_limit": "210000",
        "nonce": 0,
        "data": data,
        "timestamp": timestamp,
        "block_number": None,
    }


@pytest.fixture
def sandwich_batch() -> list[dict]:
    return [
        _record("0xa", ATTACKER, 100, "50", "2000000000000000000", "0x1234567890"),
        _record("0xb", VICTIM, 110, "10", "0", "0x1234567890"),
        _record("0xc", ATTACKER, 115, "60", "3000000000000000000", "0x"),
    ]


@pytest.fixture
def frontrun_batch() -> list[dict]:
    return [
        _record("0xd", ATTACKER, 200, "40", "0", "0xdeadbeef00"),
        _record("0xe", VICTIM, 210, "5", "1000000000000000000", "0xdeadbeef00"),
    ]


@pytest.fixture
def engine() -> MEVEngine:
    return MEVEngine(clock=lambda: FIXED_NOW)


class TestIngest:
    """Test suite for record decoding at the session boundary."""

    def test_ingest_mapping(self, engine: MEVEngine, tx_record: dict) -> None:
        tx = engine.ingest(tx_record)
        assert tx.hash == tx_record["hash"]
        assert engine.cluster_count() == 1
        assert engine.ingested_count == 1

    def test_ingest_json(self, engine: MEVEngine, tx_record: dict) -> None:
        engine.ingest(json.dumps(tx_record))
        assert engine.cluster_count() == 1

    def test_ingest_transaction_instance(self, engine: MEVEngine, tx_record: dict) -> None:
        tx = parse_transaction(tx_record)
        assert engine.ingest(tx) is tx

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda r: r.pop("hash"),
            lambda r: r.update(nonce="7"),
            lambda r: r.update(timestamp=-1),
            lambda r: r.update(gas_price=30),
            lambda r: r.update(extra=True),
        ],
    )
    def test_malformed_record_rejected_without_mutation(self, engine: MEVEngine, tx_record: dict, mutate) -> None:
        engine.ingest(tx_record)
        bad = dict(tx_record)
        mutate(bad)
        with pytest.raises(TransactionParseError):
            engine.ingest(bad)
        assert engine.cluster_count() == 1
        assert engine.store.transaction_count == 1
        assert engine.ingested_count == 1

    def test_invalid_json_rejected(self, engine: MEVEngine) -> None:
        with pytest.raises(TransactionParseError):
            engine.ingest('{"hash": ')
        assert engine.cluster_count() == 0

    def test_parse_error_is_value_error(self) -> None:
        with pytest.raises(ValueError, match="Failed to parse transaction"):
            parse_transaction({"hash": "0x1"})

    def test_wall_clock_prunes_historical_records(self, sandwich_batch: list[dict]) -> None:
        """With the real clock, timestamps from 1970 are evicted on insert."""
        engine = MEVEngine()
        for record in sandwich_batch:
            engine.ingest(record)
        assert engine.cluster_count() == 0
        assert engine.detect() == []

    def test_explicit_now(self, sandwich_batch: list[dict]) -> None:
        engine = MEVEngine(clock=lambda: 10**10)
        for record in sandwich_batch:
            engine.ingest(record, now=FIXED_NOW)
        assert engine.cluster_count() == 1


class TestDetect:
    """Test suite for on-demand detection."""

    def test_sandwich_scenario(self, engine: MEVEngine, sandwich_batch: list[dict]) -> None:
        for record in sandwich_batch:
            engine.ingest(record)

        sandwiches = [a for a in engine.detect() if a.attack_type is AttackType.SANDWICH]
        assert len(sandwiches) == 1
        attack = sandwiches[0]
        assert attack.attacker == ATTACKER
        assert attack.victim == VICTIM
        assert attack.frontrun_tx == "0xa"
        assert attack.backrun_tx == "0xc"
        assert attack.profit_eth == Decimal("1")

    def test_sandwich_with_empty_backrun_hash(self, engine: MEVEngine, sandwich_batch: list[dict]) -> None:
        """An empty hash is a valid string and must not break detection."""
        sandwich_batch[2]["hash"] = ""
        for record in sandwich_batch:
            engine.ingest(record)

        sandwiches = [a for a in engine.detect() if a.attack_type is AttackType.SANDWICH]
        assert len(sandwiches) == 1
        assert sandwiches[0].frontrun_tx == "0xa"
        assert sandwiches[0].backrun_tx == ""
        assert json.loads(engine.detect_json())[0]["backrun_tx"] == ""

    def test_frontrunning_only_scenario(self, engine: MEVEngine, frontrun_batch: list[dict]) -> None:
        for record in frontrun_batch:
            engine.ingest(record)

        attacks = engine.detect()
        assert len(attacks) == 1
        assert attacks[0].attack_type is AttackType.FRONTRUNNING
        assert attacks[0].attacker == ATTACKER
        assert attacks[0].victim == VICTIM
        assert attacks[0].backrun_tx == ""
        assert attacks[0].profit_eth == Decimal("0.01")

    def test_repeated_detect_is_identical(self, engine: MEVEngine, sandwich_batch, frontrun_batch) -> None:
        for record in sandwich_batch + frontrun_batch:
            engine.ingest(record)
        assert engine.detect() == engine.detect()
        assert engine.detect_json() == engine.detect_json()

    def test_detect_json_shape(self, engine: MEVEngine, frontrun_batch: list[dict]) -> None:
        for record in frontrun_batch:
            engine.ingest(record)
        payload = json.loads(engine.detect_json())
        assert payload == [{
            "victim": VICTIM,
            "attacker": ATTACKER,
            "profit_eth": "0.01",
            "timestamp": 210,
            "attack_type": "frontrunning",
            "frontrun_tx": "0xd",
            "backrun_tx": "",
        }]

    def test_analyze(self, engine: MEVEngine, sandwich_batch: list[dict]) -> None:
        for record in sandwich_batch:
            engine.ingest(record)
        result = engine.analyze()
        assert result.transactions_analyzed == 3
        assert len(result.sandwiches) == 1

    def test_sessions_are_isolated(self, sandwich_batch: list[dict]) -> None:
        first = MEVEngine(clock=lambda: FIXED_NOW)
        second = MEVEngine(clock=lambda: FIXED_NOW)
        for record in sandwich_batch:
            first.ingest(record)
        assert first.cluster_count() == 1
        assert second.cluster_count() == 0
        assert second.detect() == []


class TestDetectMev:
    """Test suite for the batch entry point."""

    def test_batch_matches_session(self, sandwich_batch: list[dict]) -> None:
        attacks = detect_mev(sandwich_batch, clock=lambda: FIXED_NOW)
        assert [a.attack_type for a in attacks] == [AttackType.SANDWICH, AttackType.FRONTRUNNING]

    def test_batch_from_json_array(self, frontrun_batch: list[dict]) -> None:
        attacks = detect_mev(json.dumps(frontrun_batch), clock=lambda: FIXED_NOW)
        assert len(attacks) == 1
        assert attacks[0].profit_eth == Decimal("0.01")

    def test_batch_with_replay_settings(self, sandwich_batch: list[dict]) -> None:
        """Historical replay keeps old windows alive without a fake clock."""
        settings = DetectorSettings(eviction_reference=EvictionReference.LATEST_TIMESTAMP)
        attacks = detect_mev(sandwich_batch, settings=settings)
        assert any(a.attack_type is AttackType.SANDWICH for a in attacks)

    def test_first_malformed_record_aborts(self, sandwich_batch: list[dict]) -> None:
        broken = dict(sandwich_batch[1])
        del broken["timestamp"]
        batch = [sandwich_batch[0], broken, sandwich_batch[2]]
        with pytest.raises(TransactionParseError):
            detect_mev(batch, clock=lambda: FIXED_NOW)

    @pytest.mark.parametrize("payload", ["[", '{"hash": "0x1"}', "[1]"])
    def test_malformed_json_batch(self, payload: str) -> None:
        with pytest.raises(TransactionParseError):
            detect_mev(payload, clock=lambda: FIXED_NOW)

    def test_empty_batch(self) -> None:
        assert detect_mev([]) == []
