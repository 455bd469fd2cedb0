"""JSON-RPC client wrappers for Solana clusters."""

from .client import LatestBlockhash, SolanaRpcClient

__all__ = [
    "LatestBlockhash",
    "SolanaRpcClient",
]
