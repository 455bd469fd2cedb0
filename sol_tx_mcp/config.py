"""
Configuration helpers for the Solana transaction builder MCP server.

This module centralizes cluster URL selection, RPC timeouts, commitment, retry
bounds, and safety limits. Secret keys are never part of configuration: they
arrive per call and are discarded when the call returns.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict

CLUSTER_NAMES = ("mainnet-beta", "testnet", "devnet")


def _default_cluster_url(name: str) -> str:
    return f"https://api.{name}.solana.com"


def _env_key_for_cluster(name: str) -> str:
    return "SOLANA_MCP_RPC_URL_" + name.upper().replace("-", "_")


def _load_cluster_urls() -> Dict[str, str]:
    """Return the URL for every known cluster, honouring operator overrides."""
    urls: Dict[str, str] = {}
    for name in CLUSTER_NAMES:
        override = os.getenv(_env_key_for_cluster(name))
        urls[name] = override.strip() if override and override.strip() else _default_cluster_url(name)
    return urls


def _load_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw:
        try:
            return float(raw)
        except ValueError:
            return default
    return default


def _load_int(env_var: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(env_var)
    if raw:
        try:
            value = int(raw)
        except ValueError:
            return default
        return value if value >= minimum else default
    return default


def _parse_per_tool_limits(raw: str | None) -> Dict[str, float]:
    """Parse ``tool=qps`` pairs separated by commas; malformed pairs are ignored."""
    limits: Dict[str, float] = {}
    if not raw:
        return limits
    for chunk in raw.split(","):
        name, sep, value = chunk.partition("=")
        if not sep or not name.strip():
            continue
        try:
            limits[name.strip()] = float(value)
        except ValueError:
            continue
    return limits


DEFAULT_TIMEOUT = _load_float("SOLANA_MCP_HTTP_TIMEOUT", 10.0)
DEFAULT_COMMITMENT = os.getenv("SOLANA_MCP_COMMITMENT", "confirmed")
DEFAULT_QUERY_CLUSTER = "mainnet-beta"

# Bounded retry for blockhash fetch and submission only
RPC_MAX_ATTEMPTS = _load_int("SOLANA_MCP_RPC_MAX_ATTEMPTS", 3, minimum=1)
RPC_BACKOFF_SECONDS = _load_float("SOLANA_MCP_RPC_BACKOFF", 0.25)

# Safety limits
MAX_INSTRUCTIONS = 32
MAX_RENT_DATA_SIZE = 10 * 1024 * 1024
DEFAULT_RATE_LIMIT_QPS = 5
DOCS_BASE_URL = os.getenv(
    "SOLANA_MCP_DOCS_BASE_URL",
    "https://raw.githubusercontent.com/solana-foundation/solana-com/main/content/docs",
)
LOG_LEVEL = os.getenv("SOLANA_MCP_LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("SOLANA_MCP_LOG_FORMAT", "json")  # json or plain


@dataclass(slots=True)
class SolTxConfig:
    """Runtime configuration for Solana RPC access."""

    cluster_urls: Dict[str, str] = field(default_factory=_load_cluster_urls)
    timeout: float = DEFAULT_TIMEOUT
    commitment: str = DEFAULT_COMMITMENT
    default_query_cluster: str = DEFAULT_QUERY_CLUSTER
    rpc_max_attempts: int = RPC_MAX_ATTEMPTS
    rpc_backoff_seconds: float = RPC_BACKOFF_SECONDS
    max_instructions: int = MAX_INSTRUCTIONS
    max_rent_data_size: int = MAX_RENT_DATA_SIZE
    docs_base_url: str = DOCS_BASE_URL
    rate_limit_qps: float = DEFAULT_RATE_LIMIT_QPS
    log_level: str = LOG_LEVEL
    log_format: str = LOG_FORMAT
    per_tool_rate_limits: Dict[str, float] = field(
        default_factory=lambda: _parse_per_tool_limits(os.getenv("SOLANA_MCP_TOOL_RATE_LIMITS"))
    )


default_config = SolTxConfig()
