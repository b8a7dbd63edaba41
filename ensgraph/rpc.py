"""JSON-RPC transport for an Ethereum node endpoint."""

import itertools
from typing import Any, List

import requests

from .logger import get_logger

logger = get_logger()


class RpcError(ValueError):
    """Raised on any HTTP, timeout, transport or JSON-RPC level failure."""

    def __init__(self, message: str, code: int | None = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class JsonRpcClient:
    """Stateless JSON-RPC 2.0 client: every call is a fresh POST, nothing is retried."""

    def __init__(self, endpoint_url: str, timeout: float = 15.0):
        if not endpoint_url:
            raise ValueError("An RPC endpoint URL is required")
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self._ids = itertools.count(1)

    def request(self, method: str, params: List[Any]) -> Any:
        """Send one request and return its ``result``.

        Raises:
            RpcError: On HTTP errors, timeouts, malformed replies or an
                ``error`` object in the reply.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.record_rpc_call()
        try:
            resp = requests.post(self.endpoint_url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "HTTPError"
            logger.error("RPC request failed", method=method, status=status)
            raise RpcError(f"RPC request failed ({status}): {method}")
        except requests.exceptions.Timeout:
            logger.warning("RPC request timed out", method=method)
            raise RpcError("RPC request timed out. Try again later.")
        except requests.exceptions.RequestException as e:
            logger.error("RPC request error", method=method, error=str(e))
            raise RpcError(f"RPC request error: {e}")

        try:
            body = resp.json()
        except ValueError:
            raise RpcError(f"RPC endpoint returned a non-JSON reply for {method}")
        if not isinstance(body, dict):
            raise RpcError(f"RPC endpoint returned an unexpected reply for {method}")

        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(
                    f"RPC error: {error.get('message', 'unknown error')}",
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise RpcError(f"RPC error: {error}")
        if "result" not in body:
            raise RpcError(f"RPC reply for {method} has no result")
        return body["result"]

    def eth_call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        """Execute a read-only contract call and return the raw return data."""
        result = self.request("eth_call", [{"to": to, "data": "0x" + data.hex()}, block])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RpcError(f"eth_call returned an unexpected value: {result!r}")
        try:
            return bytes.fromhex(result[2:])
        except ValueError:
            raise RpcError(f"eth_call returned invalid hex: {result!r}")
