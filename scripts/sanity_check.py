"""Minimal read-only sanity checks for the Solana MCP tools against a live cluster."""

from __future__ import annotations

import asyncio
import os
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from sol_tx_mcp.tools import (  # noqa: E402
    get_account_info,
    get_balance,
    get_minimum_balance_for_rent_exemption,
    get_transaction,
    validate_address,
)

CLUSTER = os.getenv("SOLANA_SANITY_CLUSTER", "devnet")
# System program account exists on every cluster; override via env.
SAMPLE_ADDRESS = os.getenv("SOLANA_SAMPLE_ADDRESS", "11111111111111111111111111111111")
# Optional signature for transaction lookup.
SAMPLE_SIGNATURE = os.getenv("SOLANA_SAMPLE_SIGNATURE")


async def main() -> None:
    print("Validate address:", validate_address(SAMPLE_ADDRESS))
    print("Account info:", await get_account_info(SAMPLE_ADDRESS, CLUSTER))
    print("Balance:", await get_balance(SAMPLE_ADDRESS, CLUSTER))
    print("Rent exemption (0 bytes):", await get_minimum_balance_for_rent_exemption(0, CLUSTER))
    if SAMPLE_SIGNATURE:
        print("Transaction:", await get_transaction(SAMPLE_SIGNATURE, CLUSTER))


if __name__ == "__main__":
    asyncio.run(main())
