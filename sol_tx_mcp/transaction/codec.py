"""
Wire codec for transaction envelopes.

A transaction on the wire is the ``solders`` legacy ``Transaction``
serialisation: ``compact-u16 signature count || signatures || message``, with
unsigned slots as 64 zero bytes. The transport form is standard base64 of
those bytes, the same encoding ``sendTransaction`` accepts.
"""

from __future__ import annotations

import base64
import binascii

from solders.transaction import Transaction

from sol_tx_mcp.errors import MalformedTransactionError
from sol_tx_mcp.transaction.envelope import TransactionEnvelope, validate_message

PACKET_DATA_SIZE = 1232


def serialize_envelope(envelope: TransactionEnvelope) -> bytes:
    return bytes(envelope.to_transaction())


def deserialize_envelope(data: bytes) -> TransactionEnvelope:
    try:
        transaction = Transaction.from_bytes(data)
    except Exception as exc:
        # solders raises its own error types for bincode failures
        raise MalformedTransactionError("Malformed transaction: byte layout could not be parsed.") from exc

    validate_message(transaction.message)
    if len(bytes(transaction)) != len(data):
        raise MalformedTransactionError("Malformed transaction: trailing bytes after message.")
    signature_count = len(transaction.signatures)
    required = transaction.message.header.num_required_signatures
    if signature_count != required:
        raise MalformedTransactionError(
            "Malformed transaction: signature count does not match required signers "
            f"({signature_count} != {required})."
        )
    return TransactionEnvelope.from_transaction(transaction)


def encode_transaction(envelope: TransactionEnvelope) -> str:
    """Serialize an envelope (signed, partially signed or unsigned) to base64."""
    return base64.b64encode(serialize_envelope(envelope)).decode("ascii")


def decode_transaction(encoded: str) -> TransactionEnvelope:
    """Parse a base64 transaction, raising ``MalformedTransactionError`` on any defect."""
    if not isinstance(encoded, str) or not encoded.strip():
        raise MalformedTransactionError("Malformed transaction: expected a base64 string.")
    try:
        raw = base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedTransactionError("Malformed transaction: not valid base64.") from exc
    if len(raw) > PACKET_DATA_SIZE:
        raise MalformedTransactionError(
            f"Malformed transaction: {len(raw)} bytes exceeds the {PACKET_DATA_SIZE}-byte packet limit."
        )
    return deserialize_envelope(raw)
