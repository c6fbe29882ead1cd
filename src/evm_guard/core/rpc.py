"""
EvmRpc: read-only JSON-RPC client for EVM nodes.

Only the three queries the firewall needs are exposed: ``eth_call``,
``eth_estimateGas`` and ``eth_gasPrice``.

Docs: https://ethereum.org/en/developers/docs/apis/json-rpc/
"""

from __future__ import annotations

import itertools
from typing import Any

import httpx

# Public endpoints, keyed by network name: (chain id, RPC URL)
PUBLIC_RPC_ENDPOINTS: dict[str, tuple[int, str]] = {
    "base": (8453, "https://mainnet.base.org"),
    "mainnet": (1, "https://eth.llamarpc.com"),
}


class RpcError(Exception):
    """Raised when a JSON-RPC request fails."""
    pass


class RpcTransportError(RpcError):
    """Network, timeout or HTTP-level failure. Usually transient."""
    pass


class RpcRemoteError(RpcError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, code: int | None, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        detail = f"RPC error {code}: {message}"
        if data:
            detail += f" (data: {data})"
        super().__init__(detail)


def to_quantity(value: int) -> str:
    """Encode an int as a JSON-RPC QUANTITY."""
    return hex(value)


def from_quantity(value: str) -> int:
    """Decode a JSON-RPC QUANTITY (``0x``-prefixed hex)."""
    return int(value, 16)


class EvmRpc:
    """
    Synchronous JSON-RPC client for an EVM chain.

    Usage:
        rpc = EvmRpc()                      # Base public endpoint
        rpc = EvmRpc(chain="mainnet")
        rpc = EvmRpc(rpc_url="http://localhost:8545")
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        chain: str = "base",
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if rpc_url is None:
            if chain not in PUBLIC_RPC_ENDPOINTS:
                raise ValueError(f"Unknown chain '{chain}'. Known: {sorted(PUBLIC_RPC_ENDPOINTS)}")
            rpc_url = PUBLIC_RPC_ENDPOINTS[chain][1]
        self.rpc_url = rpc_url
        self.chain = chain
        self._ids = itertools.count(1)
        self._client = httpx.Client(
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def call(
        self,
        to: str | None,
        data: str = "0x",
        value: int = 0,
        gas: int | None = None,
        from_address: str | None = None,
    ) -> bytes:
        """
        Execute ``eth_call`` against the latest block.

        Returns:
            bytes: raw return data of the call
        """
        tx = self._tx_object(to, data, value, from_address)
        if gas is not None:
            tx["gas"] = to_quantity(gas)
        result = self._request("eth_call", [tx, "latest"])
        return bytes.fromhex(result[2:] if result.startswith("0x") else result)

    def estimate_gas(
        self,
        to: str | None,
        data: str = "0x",
        value: int = 0,
        from_address: str | None = None,
    ) -> int:
        """Return the node's gas estimate for the transaction."""
        tx = self._tx_object(to, data, value, from_address)
        return from_quantity(self._request("eth_estimateGas", [tx]))

    def get_gas_price(self) -> int:
        """Return the current gas price in wei."""
        return from_quantity(self._request("eth_gasPrice", []))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _tx_object(
        to: str | None, data: str, value: int, from_address: str | None
    ) -> dict[str, str]:
        tx: dict[str, str] = {}
        if to is not None:
            tx["to"] = to
        if from_address is not None:
            tx["from"] = from_address
        if data and data != "0x":
            tx["data"] = data
        if value:
            tx["value"] = to_quantity(value)
        return tx

    def _request(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = self._client.post(self.rpc_url, json=payload)
        except httpx.TimeoutException as e:
            raise RpcTransportError(f"{method} timed out: {e}") from e
        except httpx.TransportError as e:
            raise RpcTransportError(f"{method} transport error: {e}") from e

        if response.status_code != 200:
            raise RpcTransportError(
                f"HTTP {response.status_code} for {method}: {response.text[:200]}"
            )
        body = response.json()
        error = body.get("error")
        if error:
            raise RpcRemoteError(error.get("code"), error.get("message", ""), error.get("data"))
        if "result" not in body:
            raise RpcRemoteError(None, f"Malformed response for {method}: {body}")
        return body["result"]

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> EvmRpc:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()
