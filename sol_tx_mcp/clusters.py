"""Cluster name resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sol_tx_mcp.config import CLUSTER_NAMES, SolTxConfig, default_config
from sol_tx_mcp.errors import InvalidClusterError


@dataclass(frozen=True, slots=True)
class ClusterEndpoint:
    name: str
    url: str


def resolve_cluster(name: Optional[str], config: SolTxConfig = default_config) -> ClusterEndpoint:
    """
    Map a symbolic cluster name to its RPC endpoint.

    Only ``mainnet-beta``, ``testnet`` and ``devnet`` are accepted. Matching is
    exact: no trimming, no case folding, no URLs.
    """
    if not isinstance(name, str) or name not in CLUSTER_NAMES:
        raise InvalidClusterError("Invalid cluster. Expected one of: " + ", ".join(CLUSTER_NAMES) + ".")
    return ClusterEndpoint(name=name, url=config.cluster_urls[name])
