"""
Error kinds raised by the transaction pipeline and the RPC gateway.

Tools catch ``SolTxError`` and turn it into a ``{"error": ...}`` payload; the
message of every subclass is safe to show to callers and never contains key
material.
"""

from __future__ import annotations

from typing import Any, Optional


class SolTxError(Exception):
    """Base exception for all pipeline errors."""

    kind = "error"

    def __init__(self, message: str, *, code: Optional[str | int] = None) -> None:
        super().__init__(message)
        self.code = code


class InvalidClusterError(SolTxError):
    """Raised when a cluster name is not one of the supported clusters."""

    kind = "invalid_cluster"


class InvalidAddressError(SolTxError):
    """Raised when a string does not decode to a 32-byte account address."""

    kind = "invalid_address"


class InvalidKeyMaterialError(SolTxError):
    """Raised when a secret key blob is malformed or internally inconsistent."""

    kind = "invalid_key_material"


class InvalidAmountError(SolTxError):
    """Raised when a transfer amount cannot be expressed in whole lamports."""

    kind = "invalid_amount"


class UnsupportedInstructionError(SolTxError):
    """Raised for instruction descriptors with an unknown type tag."""

    kind = "unsupported_instruction"


class SignerMismatchError(SolTxError):
    """Raised when a key is not among the transaction's required signers."""

    kind = "signer_mismatch"


class MalformedTransactionError(SolTxError):
    """Raised when an encoded transaction has an inconsistent byte layout."""

    kind = "malformed_transaction"


class NetworkUnavailableError(SolTxError):
    """Raised when the RPC endpoint cannot be reached or answers garbage."""

    kind = "network_unavailable"


class RpcError(SolTxError):
    """Raised when the RPC endpoint returns a well-formed JSON-RPC error."""

    kind = "rpc_error"

    def __init__(self, message: str, *, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message, code=code)
        self.data = data

    def __str__(self) -> str:
        base = super().__str__()
        if self.code is None:
            return base
        return f"RPC error {self.code}: {base}"


class InvalidSignatureError(SolTxError):
    """Raised when a transaction signature string is not 64 base58 bytes."""

    kind = "invalid_signature"


class TransactionTooLargeError(SolTxError):
    """Raised when a transaction would not fit in a single network packet."""

    kind = "transaction_too_large"
