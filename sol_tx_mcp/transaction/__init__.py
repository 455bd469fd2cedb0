"""Transaction assembly, signing and wire encoding."""

from .assembler import assemble_transaction
from .codec import decode_transaction, encode_transaction
from .envelope import TransactionEnvelope, compile_message, validate_message
from .instructions import LAMPORTS_PER_SOL, parse_instructions, sol_to_lamports
from .signing import sign_envelope

__all__ = [
    "LAMPORTS_PER_SOL",
    "TransactionEnvelope",
    "assemble_transaction",
    "compile_message",
    "decode_transaction",
    "encode_transaction",
    "parse_instructions",
    "sign_envelope",
    "sol_to_lamports",
    "validate_message",
]
