"""Account and rent query tools."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sol_tx_mcp.clusters import resolve_cluster
from sol_tx_mcp.config import SolTxConfig, default_config
from sol_tx_mcp.errors import SolTxError
from sol_tx_mcp.keys import is_valid_address, parse_pubkey
from sol_tx_mcp.tools.common import error_payload, format_lamports, rpc_session

logger = logging.getLogger(__name__)


def _query_cluster(cluster: Optional[str], config: SolTxConfig) -> str:
    return config.default_query_cluster if cluster is None else cluster


async def get_account_info(
    public_key: str,
    cluster: Optional[str] = None,
    *,
    client=None,
    config: SolTxConfig = default_config,
) -> Optional[Dict[str, Any]] | Dict[str, str]:
    """
    Look up an account by address.

    Returns:
        The account (lamports, owner, data, executable, rentEpoch, space),
        ``None`` for an address that has never been funded, or an error dict.
    """
    try:
        endpoint = resolve_cluster(_query_cluster(cluster, config), config)
        address = parse_pubkey(public_key, field_name="publicKey")
        async with rpc_session(endpoint, client, config) as rpc:
            return await rpc.get_account_info(str(address))
    except SolTxError as exc:
        return error_payload(exc)
    except Exception:
        logger.exception("Unexpected error fetching account info")
        return {"error": "Unexpected error while retrieving account info."}


async def get_balance(
    public_key: str,
    cluster: Optional[str] = None,
    *,
    client=None,
    config: SolTxConfig = default_config,
) -> str | Dict[str, str]:
    """Return ``"<sol> SOL (<lamports> lamports)"`` for an address."""
    try:
        endpoint = resolve_cluster(_query_cluster(cluster, config), config)
        address = parse_pubkey(public_key, field_name="publicKey")
        async with rpc_session(endpoint, client, config) as rpc:
            lamports = await rpc.get_balance(str(address))
    except SolTxError as exc:
        return error_payload(exc)
    except Exception:
        logger.exception("Unexpected error fetching balance")
        return {"error": "Unexpected error while retrieving balance."}
    return format_lamports(lamports)


async def get_minimum_balance_for_rent_exemption(
    data_size: Any,
    cluster: Optional[str] = None,
    *,
    client=None,
    config: SolTxConfig = default_config,
) -> str | Dict[str, str]:
    """Return the rent-exempt minimum for ``data_size`` bytes of account data."""
    if isinstance(data_size, bool) or not isinstance(data_size, int):
        return {"error": "Invalid data size: expected a non-negative integer."}
    if data_size < 0 or data_size > config.max_rent_data_size:
        return {"error": f"Invalid data size: must be between 0 and {config.max_rent_data_size} bytes."}

    try:
        endpoint = resolve_cluster(_query_cluster(cluster, config), config)
        async with rpc_session(endpoint, client, config) as rpc:
            lamports = await rpc.get_minimum_balance_for_rent_exemption(data_size)
    except SolTxError as exc:
        return error_payload(exc)
    except Exception:
        logger.exception("Unexpected error fetching rent exemption minimum")
        return {"error": "Unexpected error while retrieving rent exemption minimum."}
    return format_lamports(lamports)


def validate_address(public_key: str) -> Dict[str, Any]:
    """Utility to validate address format without calling the cluster."""
    return {"isValid": is_valid_address(public_key)}
