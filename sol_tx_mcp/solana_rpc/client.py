"""
Thin JSON-RPC client for the Solana endpoints this server needs.

One client is bound to one resolved cluster endpoint and lives for a single
tool call. Transport failures map to ``NetworkUnavailableError``, JSON-RPC
error objects to ``RpcError``, and "nothing found" to ``None``.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import base58
import httpx
from solders.hash import Hash

from sol_tx_mcp.clusters import ClusterEndpoint
from sol_tx_mcp.config import SolTxConfig, default_config
from sol_tx_mcp.errors import NetworkUnavailableError, RpcError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_request_ids = itertools.count(1)


@dataclass(frozen=True, slots=True)
class LatestBlockhash:
    """Recent blockhash plus the last block height at which it is still valid."""

    blockhash: str
    last_valid_block_height: int

    def to_hash(self) -> Hash:
        return Hash.from_string(self.blockhash)


class SolanaRpcClient:
    """Async client for the limited Solana JSON-RPC surface."""

    def __init__(
        self,
        endpoint: ClusterEndpoint,
        config: SolTxConfig | None = None,
        *,
        async_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.endpoint = endpoint
        self.config = config or default_config
        self._client: Optional[httpx.AsyncClient] = async_client
        self._owns_client = async_client is None

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *_exc_info: Any) -> None:
        await self.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _process_response(self, method: str, response: httpx.Response) -> Any:
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            error = data["error"]
            code = error.get("code")
            message = error.get("message")
            raise RpcError(
                message if isinstance(message, str) and message else "RPC request failed.",
                code=code if isinstance(code, int) else None,
                data=error.get("data"),
            )

        if response.status_code >= 400:
            logger.warning(
                "Solana RPC %s on %s returned HTTP %s", method, self.endpoint.name, response.status_code
            )
            raise NetworkUnavailableError(
                f"RPC endpoint for {self.endpoint.name} returned HTTP {response.status_code}."
            )

        if not isinstance(data, dict) or "result" not in data:
            raise NetworkUnavailableError("Unexpected response from RPC endpoint.")
        return data["result"]

    async def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        client = await self._get_client()
        payload = {
            "jsonrpc": "2.0",
            "id": next(_request_ids),
            "method": method,
            "params": params or [],
        }
        try:
            response = await client.post(
                self.endpoint.url, json=payload, headers={"Content-Type": "application/json"}
            )
        except httpx.RequestError as exc:
            logger.warning("Solana RPC %s unreachable on %s", method, self.endpoint.name)
            raise NetworkUnavailableError(f"RPC endpoint for {self.endpoint.name} is unreachable.") from exc
        return self._process_response(method, response)

    async def _with_retry(self, method: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Retry ``operation`` on NetworkUnavailableError only, with exponential backoff."""
        attempts = max(1, self.config.rpc_max_attempts)
        attempt = 1
        while True:
            try:
                return await operation()
            except NetworkUnavailableError:
                if attempt >= attempts:
                    raise
                delay = self.config.rpc_backoff_seconds * (2 ** (attempt - 1))
                attempt += 1
                logger.info(
                    "Retrying %s on %s in %.2fs (attempt %d/%d)",
                    method,
                    self.endpoint.name,
                    delay,
                    attempt,
                    attempts,
                )
                await asyncio.sleep(delay)

    def _commitment(self) -> Dict[str, Any]:
        return {"commitment": self.config.commitment}

    async def get_latest_blockhash(self) -> LatestBlockhash:
        """Fetch a fresh blockhash (the transaction's freshness token)."""

        async def _fetch() -> Any:
            return await self._call("getLatestBlockhash", [self._commitment()])

        result = await self._with_retry("getLatestBlockhash", _fetch)
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, dict):
            raise NetworkUnavailableError("Unexpected response from RPC endpoint.")
        blockhash = value.get("blockhash")
        last_valid = value.get("lastValidBlockHeight")
        if not isinstance(blockhash, str) or not isinstance(last_valid, int):
            raise NetworkUnavailableError("Unexpected response from RPC endpoint.")
        try:
            if len(base58.b58decode(blockhash)) != 32:
                raise ValueError(blockhash)
        except ValueError as exc:
            raise NetworkUnavailableError("RPC endpoint returned an invalid blockhash.") from exc
        return LatestBlockhash(blockhash=blockhash, last_valid_block_height=last_valid)

    async def send_raw_transaction(self, raw: str) -> str:
        """Submit a base64 transaction; return its signature without waiting for confirmation."""

        async def _send() -> Any:
            return await self._call(
                "sendTransaction",
                [
                    raw,
                    {
                        "encoding": "base64",
                        "skipPreflight": False,
                        "preflightCommitment": self.config.commitment,
                    },
                ],
            )

        result = await self._with_retry("sendTransaction", _send)
        if not isinstance(result, str):
            raise NetworkUnavailableError("Unexpected response from RPC endpoint.")
        return result

    async def get_account_info(self, address: str) -> Optional[Dict[str, Any]]:
        result = await self._call(
            "getAccountInfo", [address, {"encoding": "jsonParsed", **self._commitment()}]
        )
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            return None
        if not isinstance(value, dict):
            raise NetworkUnavailableError("Unexpected response from RPC endpoint.")
        return value

    async def get_balance(self, address: str) -> int:
        result = await self._call("getBalance", [address, self._commitment()])
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, int):
            raise NetworkUnavailableError("Unexpected response from RPC endpoint.")
        return value

    async def get_minimum_balance_for_rent_exemption(self, data_size: int) -> int:
        result = await self._call("getMinimumBalanceForRentExemption", [data_size, self._commitment()])
        if not isinstance(result, int):
            raise NetworkUnavailableError("Unexpected response from RPC endpoint.")
        return result

    async def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                    **self._commitment(),
                },
            ],
        )
        if result is None:
            return None
        if not isinstance(result, dict):
            raise NetworkUnavailableError("Unexpected response from RPC endpoint.")
        return result
