"""Signature application for transaction envelopes."""

from __future__ import annotations

import logging
from dataclasses import replace

from sol_tx_mcp.errors import SignerMismatchError
from sol_tx_mcp.keys import Keypair
from sol_tx_mcp.transaction.envelope import TransactionEnvelope

logger = logging.getLogger(__name__)


def sign_envelope(envelope: TransactionEnvelope, keypair: Keypair) -> TransactionEnvelope:
    """
    Sign the envelope's message with ``keypair`` and return a new envelope.

    The signature lands in the slot belonging to the keypair's public key and
    replaces any signature already there, so signing twice with the same key
    leaves exactly one entry. Other signers' slots are untouched.

    Raises:
        SignerMismatchError: if the key is not one of the required signers.
    """
    signers = envelope.required_signers
    if keypair.pubkey not in signers:
        raise SignerMismatchError(
            f"Signer {keypair.pubkey} is not a required signer of this transaction."
        )
    slot = signers.index(keypair.pubkey)

    signature = keypair.sign(envelope.message_bytes())
    signatures = list(envelope.signatures)
    signatures[slot] = signature
    logger.debug("Applied signature for signer slot %d of %d", slot, len(signers))
    return replace(envelope, signatures=tuple(signatures))
