"""Assemble unsigned transaction envelopes from instruction descriptors."""

from __future__ import annotations

import logging
from typing import Sequence

from solders.pubkey import Pubkey

from sol_tx_mcp.errors import TransactionTooLargeError, UnsupportedInstructionError
from sol_tx_mcp.transaction.codec import PACKET_DATA_SIZE, serialize_envelope
from sol_tx_mcp.transaction.envelope import TransactionEnvelope, compile_message
from sol_tx_mcp.transaction.instructions import InstructionDescriptor

logger = logging.getLogger(__name__)


async def assemble_transaction(
    descriptors: Sequence[InstructionDescriptor],
    fee_payer: Pubkey,
    client,
) -> TransactionEnvelope:
    """
    Build an unsigned envelope for ``descriptors`` paid for by ``fee_payer``.

    Descriptors must already be parsed (addresses decoded, amounts converted)
    so that every input error surfaces before the blockhash request, which is
    the only network round-trip.

    Args:
        descriptors: Parsed instruction descriptors in caller order.
        fee_payer: Account that pays fees; becomes the first required signer.
        client: RPC client exposing ``get_latest_blockhash``.

    Returns:
        An envelope with every signature slot empty.
    """
    if not descriptors:
        raise UnsupportedInstructionError("At least one instruction is required.")

    instructions = [descriptor.to_instruction() for descriptor in descriptors]
    latest = await client.get_latest_blockhash()
    message = compile_message(instructions, fee_payer, latest.to_hash())
    envelope = TransactionEnvelope(message=message)

    wire_size = len(serialize_envelope(envelope))
    if wire_size > PACKET_DATA_SIZE:
        raise TransactionTooLargeError(
            f"Transaction is {wire_size} bytes; the network limit is {PACKET_DATA_SIZE} bytes."
        )

    logger.debug(
        "Assembled transaction with %d instruction(s), %d account key(s), %d required signer(s)",
        len(message.instructions),
        len(message.account_keys),
        message.header.num_required_signatures,
    )
    return envelope
