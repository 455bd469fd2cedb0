"""Transaction tools: build, sign-and-send, and lookup."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sol_tx_mcp.clusters import resolve_cluster
from sol_tx_mcp.config import SolTxConfig, default_config
from sol_tx_mcp.errors import SignerMismatchError, SolTxError, UnsupportedInstructionError
from sol_tx_mcp.keys import parse_pubkey, parse_secret_key, parse_signature
from sol_tx_mcp.tools.common import error_payload, rpc_session
from sol_tx_mcp.transaction import (
    assemble_transaction,
    decode_transaction,
    encode_transaction,
    parse_instructions,
    sign_envelope,
)

logger = logging.getLogger(__name__)


async def build_transaction(
    instructions: List[Dict[str, Any]],
    cluster: str,
    fee_payer: str,
    signer_secret_key: str,
    *,
    client=None,
    config: SolTxConfig = default_config,
) -> Dict[str, Any]:
    """
    Build a transaction from transfer instructions and sign it with one key.

    Every argument is validated before the blockhash request, so malformed
    input never reaches the network.

    Args:
        instructions: ``[{"type": "transfer", "params": {"from", "to", "amount"}}]``
            in execution order; ``amount`` is in SOL.
        cluster: ``mainnet-beta``, ``testnet`` or ``devnet``.
        fee_payer: Base58 address paying the fee.
        signer_secret_key: Base64 64-byte secret key of one required signer.
        client: RPC client (override for testing).
        config: Configuration providing limits and endpoints.

    Returns:
        ``{"transactionBase64": ...}`` or an error dict.
    """
    secrets = (signer_secret_key,)
    try:
        endpoint = resolve_cluster(cluster, config)
        payer = parse_pubkey(fee_payer, field_name="feePayer")
        if isinstance(instructions, list) and len(instructions) > config.max_instructions:
            raise UnsupportedInstructionError(
                f"Too many instructions: at most {config.max_instructions} are allowed."
            )
        descriptors = parse_instructions(instructions)
        keypair = parse_secret_key(signer_secret_key)

        required = {payer, *(signer for descriptor in descriptors for signer in descriptor.signers)}
        if keypair.pubkey not in required:
            raise SignerMismatchError(
                f"Signer {keypair.pubkey} is not a required signer of this transaction."
            )

        async with rpc_session(endpoint, client, config) as rpc:
            envelope = await assemble_transaction(descriptors, payer, rpc)
        signed = sign_envelope(envelope, keypair)
    except SolTxError as exc:
        return error_payload(exc, secrets=secrets)
    except Exception:
        logger.exception("Unexpected error while building transaction")
        return {"error": "Unexpected error while building transaction."}

    missing = signed.missing_signers
    if missing:
        logger.info(
            "Built partially signed transaction on %s; %d signature(s) outstanding",
            endpoint.name,
            len(missing),
        )
    return {"transactionBase64": encode_transaction(signed)}


async def sign_and_send_transaction(
    transaction_base64: str,
    secret_key: str,
    cluster: str,
    *,
    client=None,
    config: SolTxConfig = default_config,
) -> Dict[str, Any]:
    """
    Add (or refresh) one signature on an encoded transaction and submit it.

    The embedded blockhash is not checked locally; submission runs with
    preflight enabled so an expired blockhash comes back as an RPC error.
    """
    secrets = (secret_key,)
    try:
        endpoint = resolve_cluster(cluster, config)
        keypair = parse_secret_key(secret_key)
        envelope = decode_transaction(transaction_base64)
        signed = sign_envelope(envelope, keypair)
        missing = signed.missing_signers
        if missing:
            raise SignerMismatchError(
                "Transaction still requires signatures from: "
                + ", ".join(str(signer) for signer in missing)
                + "."
            )
        async with rpc_session(endpoint, client, config) as rpc:
            signature = await rpc.send_raw_transaction(encode_transaction(signed))
    except SolTxError as exc:
        return error_payload(exc, secrets=secrets)
    except Exception:
        logger.exception("Unexpected error while sending transaction")
        return {"error": "Unexpected error while sending transaction."}

    logger.info("Submitted transaction to %s", endpoint.name)
    return {"signature": signature}


async def get_transaction(
    signature: str,
    cluster: Optional[str] = None,
    *,
    client=None,
    config: SolTxConfig = default_config,
) -> Optional[Dict[str, Any]] | Dict[str, str]:
    """Look up a transaction by signature; ``None`` when the cluster has no record of it."""
    try:
        endpoint = resolve_cluster(config.default_query_cluster if cluster is None else cluster, config)
        parse_signature(signature)
        async with rpc_session(endpoint, client, config) as rpc:
            return await rpc.get_transaction(signature)
    except SolTxError as exc:
        return error_payload(exc)
    except Exception:
        logger.exception("Unexpected error fetching transaction")
        return {"error": "Unexpected error while retrieving transaction."}
