"""Helpers shared by the tool implementations."""

from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, Iterable, Optional

from sol_tx_mcp.clusters import ClusterEndpoint
from sol_tx_mcp.config import SolTxConfig
from sol_tx_mcp.errors import SolTxError
from sol_tx_mcp.solana_rpc import SolanaRpcClient
from sol_tx_mcp.transaction import LAMPORTS_PER_SOL

REDACTED = "[REDACTED]"


@asynccontextmanager
async def rpc_session(
    endpoint: ClusterEndpoint, client: Optional[Any], config: SolTxConfig
) -> AsyncIterator[Any]:
    """Yield the injected client, or a fresh one for ``endpoint`` closed on exit."""
    if client is not None:
        yield client
        return
    async with SolanaRpcClient(endpoint, config) as session:
        yield session


def redact(text: str, secrets: Iterable[Optional[str]] = ()) -> str:
    for secret in secrets:
        if isinstance(secret, str) and secret:
            text = text.replace(secret, REDACTED)
    return text


def error_payload(exc: SolTxError, *, secrets: Iterable[Optional[str]] = ()) -> Dict[str, str]:
    """Render a pipeline error as a tool error payload, scrubbing any secret inputs."""
    return {"error": redact(str(exc), secrets)}


def format_lamports(lamports: int) -> str:
    """Render ``<sol> SOL (<lamports> lamports)`` without float rounding."""
    sol = (Decimal(lamports) / LAMPORTS_PER_SOL).normalize()
    return f"{sol:f} SOL ({lamports} lamports)"
