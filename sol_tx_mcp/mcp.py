"""
Lightweight JSON-RPC surface for MCP-style tooling.

Tool names and argument names follow the camelCase the agent sees; each
definition maps them onto the Python implementation's keyword arguments. The
dispatcher is stateless: every call resolves its own cluster and opens its
own RPC session.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sol_tx_mcp.config import CLUSTER_NAMES, default_config
from sol_tx_mcp.tools import (
    build_transaction,
    get_account_info,
    get_balance,
    get_minimum_balance_for_rent_exemption,
    get_transaction,
    sign_and_send_transaction,
    validate_address,
)

logger = logging.getLogger(__name__)

BASE58_PATTERN = r"^[1-9A-HJ-NP-Za-km-z]+$"
BASE64_PATTERN = r"^[A-Za-z0-9+/]+={0,2}$"

# Arguments whose values must never be echoed in logs or errors.
SECRET_ARGUMENTS = frozenset({"signerSecretKey", "secretKey"})


def _address_schema(description: str) -> Dict[str, Any]:
    return {
        "type": "string",
        "description": description,
        "pattern": BASE58_PATTERN,
        "minLength": 32,
        "maxLength": 44,
    }


def _cluster_schema(*, optional: bool) -> Dict[str, Any]:
    description = "Cluster name"
    if optional:
        description += f" (default {default_config.default_query_cluster})"
    return {"type": "string", "enum": list(CLUSTER_NAMES), "description": description}


def _secret_schema() -> Dict[str, Any]:
    return {
        "type": "string",
        "description": "Base64-encoded 64-byte secret key. Used for this call only; never stored.",
        "pattern": BASE64_PATTERN,
    }


ToolCallable = Callable[..., Awaitable[Any]] | Callable[..., Any]


@dataclass(slots=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: Dict[str, Any]
    callable: ToolCallable
    # external argument name -> Python keyword
    arguments: Dict[str, str] = field(default_factory=dict)


def _missing_arguments(tool: ToolDefinition, kwargs: Dict[str, Any]) -> List[str]:
    """External names of required tool arguments absent from ``kwargs``."""
    external = {keyword: name for name, keyword in tool.arguments.items()}
    missing = []
    for parameter in inspect.signature(tool.callable).parameters.values():
        if parameter.kind is not inspect.Parameter.POSITIONAL_OR_KEYWORD:
            continue
        if parameter.default is inspect.Parameter.empty and parameter.name not in kwargs:
            missing.append(external.get(parameter.name, parameter.name))
    return missing


TOOL_REGISTRY: Dict[str, ToolDefinition] = {
    "buildTransaction": ToolDefinition(
        name="buildTransaction",
        description="Build a Solana transaction from transfer instructions and sign it.",
        input_schema={
            "type": "object",
            "properties": {
                "instructions": {
                    "type": "array",
                    "minItems": 1,
                    "maxItems": default_config.max_instructions,
                    "items": {
                        "type": "object",
                        "properties": {
                            "type": {"type": "string", "enum": ["transfer"]},
                            "params": {
                                "type": "object",
                                "properties": {
                                    "from": _address_schema("Sender address"),
                                    "to": _address_schema("Recipient address"),
                                    "amount": {"type": "number", "minimum": 0, "description": "Amount in SOL"},
                                },
                                "required": ["from", "to", "amount"],
                            },
                        },
                        "required": ["type", "params"],
                    },
                },
                "cluster": _cluster_schema(optional=False),
                "feePayer": _address_schema("Fee payer address"),
                "signerSecretKey": _secret_schema(),
            },
            "required": ["instructions", "cluster", "feePayer", "signerSecretKey"],
            "additionalProperties": False,
        },
        callable=build_transaction,
        arguments={
            "instructions": "instructions",
            "cluster": "cluster",
            "feePayer": "fee_payer",
            "signerSecretKey": "signer_secret_key",
        },
    ),
    "signAndSendTransaction": ToolDefinition(
        name="signAndSendTransaction",
        description="Sign a base64 Solana transaction and submit it to the cluster.",
        input_schema={
            "type": "object",
            "properties": {
                "transactionBase64": {
                    "type": "string",
                    "description": "Base64-encoded serialized transaction",
                    "pattern": BASE64_PATTERN,
                },
                "secretKey": _secret_schema(),
                "cluster": _cluster_schema(optional=False),
            },
            "required": ["transactionBase64", "secretKey", "cluster"],
            "additionalProperties": False,
        },
        callable=sign_and_send_transaction,
        arguments={
            "transactionBase64": "transaction_base64",
            "secretKey": "secret_key",
            "cluster": "cluster",
        },
    ),
    "getAccountInfo": ToolDefinition(
        name="getAccountInfo",
        description="Used to look up account info by public key (32 byte base58 encoded address)",
        input_schema={
            "type": "object",
            "properties": {
                "publicKey": _address_schema("Account address"),
                "cluster": _cluster_schema(optional=True),
            },
            "required": ["publicKey"],
            "additionalProperties": False,
        },
        callable=get_account_info,
        arguments={"publicKey": "public_key", "cluster": "cluster"},
    ),
    "getBalance": ToolDefinition(
        name="getBalance",
        description="Used to look up balance by public key (32 byte base58 encoded address)",
        input_schema={
            "type": "object",
            "properties": {
                "publicKey": _address_schema("Account address"),
                "cluster": _cluster_schema(optional=True),
            },
            "required": ["publicKey"],
            "additionalProperties": False,
        },
        callable=get_balance,
        arguments={"publicKey": "public_key", "cluster": "cluster"},
    ),
    "getMinimumBalanceForRentExemption": ToolDefinition(
        name="getMinimumBalanceForRentExemption",
        description="Used to look up minimum balance required for rent exemption by data size",
        input_schema={
            "type": "object",
            "properties": {
                "dataSize": {
                    "type": "integer",
                    "minimum": 0,
                    "maximum": default_config.max_rent_data_size,
                    "description": "Account data size in bytes",
                },
                "cluster": _cluster_schema(optional=True),
            },
            "required": ["dataSize"],
            "additionalProperties": False,
        },
        callable=get_minimum_balance_for_rent_exemption,
        arguments={"dataSize": "data_size", "cluster": "cluster"},
    ),
    "getTransaction": ToolDefinition(
        name="getTransaction",
        description="Used to look up transaction by signature (64 byte base58 encoded string)",
        input_schema={
            "type": "object",
            "properties": {
                "signature": {
                    "type": "string",
                    "description": "Transaction signature (base58)",
                    "pattern": BASE58_PATTERN,
                    "minLength": 64,
                    "maxLength": 88,
                },
                "cluster": _cluster_schema(optional=True),
            },
            "required": ["signature"],
            "additionalProperties": False,
        },
        callable=get_transaction,
        arguments={"signature": "signature", "cluster": "cluster"},
    ),
    "validateAddress": ToolDefinition(
        name="validateAddress",
        description="Validate Solana address format without calling the cluster.",
        input_schema={
            "type": "object",
            "properties": {"publicKey": {"type": "string", "description": "Address to check"}},
            "required": ["publicKey"],
            "additionalProperties": False,
        },
        callable=validate_address,
        arguments={"publicKey": "public_key"},
    ),
}


def list_tools() -> List[Dict[str, Any]]:
    """Return a simple list of available tools."""
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "inputSchema": tool.input_schema,
        }
        for tool in TOOL_REGISTRY.values()
    ]


def loggable_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``params`` with secret arguments masked."""
    return {key: ("[REDACTED]" if key in SECRET_ARGUMENTS else value) for key, value in params.items()}


async def call_tool(tool_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """Dispatch to a tool by name. Failures come back as ``{"error": ...}``, never as exceptions."""
    params = params or {}
    tool = TOOL_REGISTRY.get(tool_name)
    if tool is None:
        return {"error": f"Unknown tool: {tool_name}"}

    unknown = sorted(key for key in params if key not in tool.arguments)
    if unknown:
        return {"error": "Invalid parameters: unexpected " + ", ".join(unknown) + "."}
    kwargs = {tool.arguments[key]: value for key, value in params.items()}
    missing = _missing_arguments(tool, kwargs)
    if missing:
        return {"error": "Invalid parameters: missing " + ", ".join(missing) + "."}

    try:
        result = tool.callable(**kwargs)
        if inspect.isawaitable(result):
            return await result
        return result
    except TypeError:
        return {"error": "Invalid parameters."}
    except Exception:
        logger.exception("Unexpected error while calling tool %s", tool_name)
        return {"error": "Unexpected error while calling tool."}
