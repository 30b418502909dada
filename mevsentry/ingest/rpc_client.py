"""JSON-RPC 2.0 client for Ethereum execution nodes.

Every reply is matched to its request by ``id``. Batches may come back in
any order and are reassembled in request order. Transport failures, HTTP 429
and 5xx responses, and node errors with a transient JSON-RPC code are retried
with exponential backoff. Anything else fails immediately.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import requests


logger = logging.getLogger(__name__)

# -32000 covers "header not found" from lagging nodes, -32005 is a rate
# limit and -32603 an internal error.
TRANSIENT_ERROR_CODES = frozenset({-32000, -32005, -32603})

RpcCall = Tuple[str, Optional[Sequence[Any]]]


class RpcClientError(RuntimeError):
    """Raised when the node cannot be reached or replies with a malformed envelope."""


class RpcResponseError(RpcClientError):
    """Raised when the node answers a request with a JSON-RPC error object."""

    def __init__(self, method: str, error: Any) -> None:
        if not isinstance(error, Mapping):
            error = {"message": str(error)}
        self.method = method
        self.code: Optional[int] = error.get("code")
        self.message: str = str(error.get("message", ""))
        self.data = error.get("data")
        super().__init__(f"{method} failed with JSON-RPC error {self.code}: {self.message}")

    @property
    def transient(self) -> bool:
        return self.code in TRANSIENT_ERROR_CODES


class RpcClient:
    """Issues single and batched JSON-RPC calls over one HTTP session."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff: float = 1.0,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        if not endpoint:
            raise ValueError("RPC endpoint is required")
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._session = requests.Session()
        self._request_id = 0

    def call(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Send one request and return its ``result``.

        Raises:
            RpcResponseError: The node returned an error object.
            RpcClientError: The node was unreachable or the reply was malformed.
        """

        def send() -> Any:
            request = self._envelope(method, params)
            return self._unwrap(request, self._post(request))

        return self._with_retries(method, send)

    def batch(self, calls: Sequence[RpcCall]) -> List[Any]:
        """Send several requests in one HTTP round trip.

        Args:
            calls: ``(method, params)`` pairs.

        Returns:
            Results in the order of ``calls``. A failed member fails the
            whole batch, and a transient failure retries the whole batch.
        """
        if not calls:
            return []

        def send() -> List[Any]:
            requests_out = [self._envelope(method, params) for method, params in calls]
            replies = self._post(requests_out)
            if not isinstance(replies, list):
                # Nodes reject a whole batch (too large, unsupported) with one error object.
                if isinstance(replies, Mapping) and replies.get("error") is not None:
                    raise RpcResponseError("batch", replies["error"])
                raise RpcClientError("RPC batch response was not a JSON array")

            by_id: Dict[Any, Mapping[str, Any]] = {
                reply.get("id"): reply for reply in replies if isinstance(reply, Mapping)
            }
            results = []
            for request in requests_out:
                reply = by_id.get(request["id"])
                if reply is None:
                    raise RpcClientError(f"RPC batch response has no reply for id {request['id']}")
                results.append(self._unwrap(request, reply))
            return results

        return self._with_retries(f"batch of {len(calls)}", send)

    def block_number(self) -> int:
        """Return the latest block number known to the node."""
        return int(self.call("eth_blockNumber"), 16)

    def get_block(self, number: int, full_transactions: bool = True) -> Optional[dict]:
        """Fetch a block by number; None if the node does not have it."""
        return self.call("eth_getBlockByNumber", [hex(number), full_transactions])

    def get_blocks(self, numbers: Sequence[int], full_transactions: bool = True) -> List[Optional[dict]]:
        """Fetch several blocks in one batch, in the order given."""
        return self.batch([("eth_getBlockByNumber", [hex(n), full_transactions]) for n in numbers])

    def _envelope(self, method: str, params: Optional[Sequence[Any]]) -> Dict[str, Any]:
        if not method:
            raise ValueError("method must not be empty")
        self._request_id += 1
        return {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": list(params or []),
        }

    def _post(self, body: Any) -> Any:
        response = self._session.post(
            self.endpoint,
            json=body,
            timeout=self.timeout,
            headers=self._headers,
        )
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise RpcClientError("RPC response was not valid JSON") from exc

    @staticmethod
    def _unwrap(request: Mapping[str, Any], reply: Any) -> Any:
        if not isinstance(reply, Mapping):
            raise RpcClientError("RPC response was not a JSON object")
        if reply.get("id") != request["id"]:
            raise RpcClientError(
                f"RPC response id {reply.get('id')!r} does not match request id {request['id']}"
            )
        if reply.get("error") is not None:
            raise RpcResponseError(request["method"], reply["error"])
        if "result" not in reply:
            raise RpcClientError("RPC response missing 'result' field")
        return reply["result"]

    def _with_retries(self, label: str, send: Callable[[], Any]) -> Any:
        attempt = 0
        wait = self.backoff
        while True:
            try:
                result = send()
            except RpcResponseError as exc:
                if not exc.transient or attempt >= self.max_retries:
                    raise
                failure = exc
            except requests.HTTPError as exc:
                status = exc.response.status_code if exc.response is not None else None
                if status is not None and 400 <= status < 500 and status != 429:
                    raise RpcClientError(f"RPC endpoint rejected {label} with HTTP {status}") from exc
                if attempt >= self.max_retries:
                    raise RpcClientError(f"Failed to reach RPC endpoint for {label}") from exc
                failure = exc
            except requests.RequestException as exc:
                if attempt >= self.max_retries:
                    raise RpcClientError(f"Failed to reach RPC endpoint for {label}") from exc
                failure = exc
            else:
                logger.debug("RPC %s succeeded in %s attempt(s)", label, attempt + 1)
                return result

            logger.warning(
                "RPC %s failed (%s/%s): %s",
                label,
                attempt + 1,
                self.max_retries + 1,
                failure,
            )
            time.sleep(wait)
            wait *= 2
            attempt += 1
