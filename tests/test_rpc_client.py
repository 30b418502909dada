import json

import pytest
import requests

from mevsentry.ingest.blocks import fetch_block_range, fetch_block_transactions
from mevsentry.ingest.rpc_client import RpcClient, RpcClientError, RpcResponseError


class _DummyResponse:
    def __init__(self, payload=None, status_code: int = 200, invalid_json: bool = False) -> None:
        self._payload = payload
        self.status_code = status_code
        self._invalid_json = invalid_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)

    def json(self):
        if self._invalid_json:
            raise json.JSONDecodeError("Expecting value", "", 0)
        return self._payload


class _DummySession:
    """Replays queued replies and records each post.

    A queued item is an exception to raise, a ready response, or a callable
    that builds the reply body from the posted JSON-RPC body.
    """

    def __init__(self, replies) -> None:
        self.replies = list(replies)
        self.calls = []

    def post(self, *_args, **kwargs):  # type: ignore[no-untyped-def]
        self.calls.append(kwargs)
        item = self.replies.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return _DummyResponse(item(kwargs["json"]))
        return item


def _result(value):
    return lambda request: {"jsonrpc": "2.0", "id": request["id"], "result": value}


def _error(code: int, message: str):
    return lambda request: {"jsonrpc": "2.0", "id": request["id"], "error": {"code": code, "message": message}}


@pytest.fixture
def install_session(monkeypatch: pytest.MonkeyPatch):
    sleeps = []
    monkeypatch.setattr("mevsentry.ingest.rpc_client.time.sleep", sleeps.append)

    def _install(replies) -> _DummySession:
        session = _DummySession(replies)
        monkeypatch.setattr("mevsentry.ingest.rpc_client.requests.Session", lambda: session)
        session.sleeps = sleeps
        return session

    return _install


def test_client_requires_endpoint() -> None:
    with pytest.raises(ValueError):
        RpcClient("")


def test_client_rejects_empty_method(install_session) -> None:
    install_session([])
    with pytest.raises(ValueError):
        RpcClient("https://example.com").call("")


def test_client_applies_headers_and_payload(install_session) -> None:
    session = install_session([_result("0x10")])

    client = RpcClient("https://example.com", headers={"Authorization": "Bearer x"})
    assert client.block_number() == 16

    sent = session.calls[0]
    assert sent["headers"]["Authorization"] == "Bearer x"
    assert sent["headers"]["Content-Type"] == "application/json"
    assert sent["json"] == {"jsonrpc": "2.0", "id": 1, "method": "eth_blockNumber", "params": []}


def test_get_block_sends_hex_number(install_session) -> None:
    session = install_session([_result(None)])

    assert RpcClient("https://example.com").get_block(255) is None
    assert session.calls[0]["json"]["params"] == ["0xff", True]


def test_request_ids_increase(install_session) -> None:
    session = install_session([_result("0x1"), _result("0x2")])

    client = RpcClient("https://example.com")
    client.call("eth_blockNumber")
    client.call("eth_blockNumber")
    assert [call["json"]["id"] for call in session.calls] == [1, 2]


def test_mismatched_response_id_rejected(install_session) -> None:
    install_session([_DummyResponse({"jsonrpc": "2.0", "id": 99, "result": "0x1"})])

    with pytest.raises(RpcClientError, match="does not match request id 1"):
        RpcClient("https://example.com").call("eth_blockNumber")


def test_client_retries_network_errors(install_session) -> None:
    session = install_session([
        requests.ConnectionError("boom"),
        requests.Timeout("slow"),
        _result("0x1"),
    ])

    client = RpcClient("https://example.com", backoff=0.5)
    assert client.call("eth_blockNumber") == "0x1"
    assert session.sleeps == [0.5, 1.0]
    assert [call["json"]["id"] for call in session.calls] == [1, 2, 3]


def test_client_gives_up_after_retries(install_session) -> None:
    install_session([requests.ConnectionError("down")] * 3)

    client = RpcClient("https://example.com", max_retries=2)
    with pytest.raises(RpcClientError, match="Failed to reach RPC endpoint"):
        client.call("eth_blockNumber")


def test_rate_limited_http_is_retried(install_session) -> None:
    session = install_session([_DummyResponse(status_code=429), _result("0x5")])

    assert RpcClient("https://example.com").call("eth_blockNumber") == "0x5"
    assert len(session.sleeps) == 1


def test_client_error_http_is_not_retried(install_session) -> None:
    session = install_session([_DummyResponse(status_code=401)])

    with pytest.raises(RpcClientError, match="HTTP 401"):
        RpcClient("https://example.com").call("eth_blockNumber")
    assert session.sleeps == []


def test_transient_node_error_is_retried(install_session) -> None:
    session = install_session([_error(-32000, "header not found"), _result({"number": "0x1"})])

    assert RpcClient("https://example.com").get_block(1) == {"number": "0x1"}
    assert len(session.sleeps) == 1


def test_transient_node_error_exhausts_retries(install_session) -> None:
    install_session([_error(-32000, "header not found")] * 2)

    client = RpcClient("https://example.com", max_retries=1)
    with pytest.raises(RpcResponseError, match="header not found") as excinfo:
        client.call("eth_getBlockByNumber", ["0x1", True])
    assert excinfo.value.code == -32000
    assert excinfo.value.method == "eth_getBlockByNumber"


def test_permanent_node_error_fails_fast(install_session) -> None:
    session = install_session([_error(-32601, "the method eth_foo does not exist")])

    with pytest.raises(RpcResponseError) as excinfo:
        RpcClient("https://example.com").call("eth_foo")
    assert not excinfo.value.transient
    assert session.sleeps == []


def test_client_rejects_invalid_json(install_session) -> None:
    install_session([_DummyResponse(invalid_json=True)])

    with pytest.raises(RpcClientError, match="not valid JSON"):
        RpcClient("https://example.com").call("eth_blockNumber")


def test_client_requires_result_field(install_session) -> None:
    install_session([_DummyResponse({"jsonrpc": "2.0", "id": 1})])

    with pytest.raises(RpcClientError, match="missing 'result'"):
        RpcClient("https://example.com").call("eth_blockNumber")


def test_batch_reorders_replies_by_id(install_session) -> None:
    def reversed_replies(body):
        return [{"jsonrpc": "2.0", "id": req["id"], "result": req["params"][0]} for req in reversed(body)]

    session = install_session([reversed_replies])

    blocks = RpcClient("https://example.com").get_blocks([1, 2, 3])

    assert blocks == ["0x1", "0x2", "0x3"]
    assert [req["id"] for req in session.calls[0]["json"]] == [1, 2, 3]


def test_batch_missing_reply_rejected(install_session) -> None:
    install_session([lambda body: [{"jsonrpc": "2.0", "id": body[0]["id"], "result": None}]])

    with pytest.raises(RpcClientError, match="no reply for id 2"):
        RpcClient("https://example.com").batch([("eth_blockNumber", None), ("eth_chainId", None)])


def test_batch_rejected_as_a_whole(install_session) -> None:
    install_session([_DummyResponse({"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "batch too large"}})])

    with pytest.raises(RpcResponseError, match="batch too large"):
        RpcClient("https://example.com").get_blocks([1, 2])


def test_empty_batch_sends_nothing(install_session) -> None:
    session = install_session([])

    assert RpcClient("https://example.com").batch([]) == []
    assert session.calls == []


class _FakeClient:
    def __init__(self, blocks) -> None:
        self.blocks = blocks
        self.requested = []

    def get_block(self, number: int, full_transactions: bool = True):
        self.requested.append([number])
        return self.blocks.get(number)

    def get_blocks(self, numbers, full_transactions: bool = True):
        self.requested.append(list(numbers))
        return [self.blocks.get(number) for number in numbers]


RAW_BLOCK = {
    "number": "0x172e0d9",
    "timestamp": "0x65a0c4f0",
    "transactions": [
        {
            "hash": "0xaa01",
            "from": "0x66a9893cc07d91d95644aedd05d03f95e1dba8af",
            "to": "0x7a250d5630b4cf539739df2c5dacb4c659f2488d",
            "value": "0x1bc16d674ec80000",
            "gasPrice": "0x6fc23ac00",
            "gas": "0x33450",
            "nonce": "0x2a",
            "input": "0x7ff36ab5000000",
        },
        {
            "hash": "0xaa02",
            "from": "0x51c72848c68a965f66fa7a88855f9f7784502a7f",
            "to": None,
            "value": "0x0",
            "maxFeePerGas": "0x3b9aca00",
            "gas": "0x5208",
            "nonce": "0x0",
            "input": "0x",
        },
        "0xhash-only",
    ],
}


def test_fetch_block_transactions_normalises_records() -> None:
    records = fetch_block_transactions(_FakeClient({24305881: RAW_BLOCK}), 24305881)

    assert len(records) == 2
    first, second = records
    assert first == {
        "hash": "0xaa01",
        "from": "0x66a9893cc07d91d95644aedd05d03f95e1dba8af",
        "to": "0x7a250d5630b4cf539739df2c5dacb4c659f2488d",
        "value": "2000000000000000000",
        "gas_price": "30000000000",
        "gas_limit": "210000",
        "nonce": 42,
        "data": "0x7ff36ab5000000",
        "timestamp": 0x65A0C4F0,
        "block_number": 0x172E0D9,
    }
    assert second["to"] == ""
    assert second["gas_price"] == "1000000000"
    assert second["data"] == "0x"


def test_fetch_block_transactions_missing_block() -> None:
    assert fetch_block_transactions(_FakeClient({}), 1) == []


def test_fetch_block_range_batches_inclusive_range() -> None:
    client = _FakeClient({1: RAW_BLOCK, 3: RAW_BLOCK, 5: RAW_BLOCK})

    records = fetch_block_range(client, 1, 5, batch_size=2)

    assert client.requested == [[1, 2], [3, 4], [5]]
    assert len(records) == 6


@pytest.mark.parametrize(("start", "end", "batch_size"), [(5, 4, 20), (1, 2, 0)])
def test_fetch_block_range_validates_arguments(start: int, end: int, batch_size: int) -> None:
    with pytest.raises(ValueError):
        fetch_block_range(_FakeClient({}), start, end, batch_size=batch_size)
