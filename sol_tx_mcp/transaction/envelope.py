"""
Transaction envelope: a compiled legacy message plus one signature slot per
required signer.

Message compilation and byte layout come from ``solders``; the envelope adds
explicit empty slots (``None``) and the structural checks applied to
transactions received from callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from sol_tx_mcp.errors import MalformedTransactionError, TransactionTooLargeError

VERSION_PREFIX_MASK = 0x80
MAX_ACCOUNT_KEYS = 256


def compile_message(instructions: Iterable[Instruction], fee_payer: Pubkey, recent_blockhash: Hash) -> Message:
    """
    Compile instructions into a legacy message.

    Account keys: fee payer first, then writable signers, read-only signers,
    writable non-signers, read-only non-signers, each group sorted by key.
    Duplicate keys merge their signer/writable flags.
    """
    instructions = list(instructions)
    distinct = {fee_payer}
    for instruction in instructions:
        distinct.add(instruction.program_id)
        distinct.update(meta.pubkey for meta in instruction.accounts)
    # account indexes are single bytes
    if len(distinct) > MAX_ACCOUNT_KEYS:
        raise TransactionTooLargeError(
            f"Transaction references {len(distinct)} accounts; at most {MAX_ACCOUNT_KEYS} are allowed."
        )
    return Message.new_with_blockhash(instructions, fee_payer, recent_blockhash)


def validate_message(message: Message) -> None:
    """Reject header and index combinations a node would refuse."""
    header = message.header
    key_count = len(message.account_keys)
    required = header.num_required_signatures
    if required & VERSION_PREFIX_MASK:
        raise MalformedTransactionError("Malformed transaction: versioned messages are not supported.")
    if required == 0:
        raise MalformedTransactionError("Malformed transaction: no required signers.")
    if required > key_count:
        raise MalformedTransactionError("Malformed transaction: more required signers than account keys.")
    if header.num_readonly_signed_accounts >= required:
        raise MalformedTransactionError("Malformed transaction: fee payer must be writable.")
    if header.num_readonly_unsigned_accounts > key_count - required:
        raise MalformedTransactionError("Malformed transaction: inconsistent read-only account count.")
    for instruction in message.instructions:
        if instruction.program_id_index >= key_count:
            raise MalformedTransactionError("Malformed transaction: program id index out of range.")
        if any(index >= key_count for index in bytes(instruction.accounts)):
            raise MalformedTransactionError("Malformed transaction: account index out of range.")


@dataclass(frozen=True, slots=True)
class TransactionEnvelope:
    message: Message
    # Aligned with required_signers; None marks an unsigned slot.
    signatures: Tuple[Optional[Signature], ...] = field(default=())

    def __post_init__(self) -> None:
        expected = self.message.header.num_required_signatures
        if not self.signatures:
            object.__setattr__(self, "signatures", (None,) * expected)
        elif len(self.signatures) != expected:
            raise ValueError(f"expected {expected} signature slots, got {len(self.signatures)}")

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionEnvelope":
        empty = Signature.default()
        return cls(
            message=transaction.message,
            signatures=tuple(None if signature == empty else signature for signature in transaction.signatures),
        )

    def to_transaction(self) -> Transaction:
        empty = Signature.default()
        slots = [empty if signature is None else signature for signature in self.signatures]
        return Transaction.populate(self.message, slots)

    @property
    def fee_payer(self) -> Pubkey:
        return self.message.account_keys[0]

    @property
    def required_signers(self) -> Tuple[Pubkey, ...]:
        return tuple(self.message.account_keys[: self.message.header.num_required_signatures])

    @property
    def signer_entries(self) -> List[Tuple[Pubkey, Signature]]:
        """(signer, signature) pairs for every filled slot, in signer order."""
        return [
            (signer, signature)
            for signer, signature in zip(self.required_signers, self.signatures)
            if signature is not None
        ]

    @property
    def missing_signers(self) -> List[Pubkey]:
        return [
            signer for signer, signature in zip(self.required_signers, self.signatures) if signature is None
        ]

    @property
    def is_fully_signed(self) -> bool:
        return not self.missing_signers

    def message_bytes(self) -> bytes:
        return bytes(self.message)
