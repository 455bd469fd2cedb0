"""
Address and key material codecs.

Addresses travel as base58 strings and are ``solders`` ``Pubkey`` values
internally. Secret keys travel as base64 blobs of 64 bytes: the Ed25519 seed
followed by the public key, the layout every Solana wallet exports.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any

import base58
from solders.keypair import Keypair as SoldersKeypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from sol_tx_mcp.errors import InvalidAddressError, InvalidKeyMaterialError, InvalidSignatureError

PUBKEY_LENGTH = 32
SECRET_KEY_LENGTH = 64
SEED_LENGTH = 32
SIGNATURE_LENGTH = 64


def parse_pubkey(value: Any, *, field_name: str = "address") -> Pubkey:
    """Decode a base58 address, raising ``InvalidAddressError`` on any defect."""
    if not isinstance(value, str) or not value:
        raise InvalidAddressError(f"Invalid {field_name}: expected a base58 string.")
    try:
        raw = base58.b58decode(value)
    except ValueError as exc:
        raise InvalidAddressError(f"Invalid {field_name}: not valid base58.") from exc
    if len(raw) != PUBKEY_LENGTH:
        raise InvalidAddressError(f"Invalid {field_name}: expected 32 bytes, got {len(raw)}.")
    return Pubkey.from_bytes(raw)


def is_valid_address(value: Any) -> bool:
    try:
        parse_pubkey(value)
    except InvalidAddressError:
        return False
    return True


def encode_signature(signature: Signature) -> str:
    return str(signature)


@dataclass(frozen=True, slots=True)
class Keypair:
    """
    Signing key plus its public key.

    Wraps the ``solders`` keypair so that neither ``repr`` nor ``str`` can
    render the secret half.
    """

    pubkey: Pubkey
    _inner: SoldersKeypair = field(repr=False, compare=False)

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        if len(seed) != SEED_LENGTH:
            raise InvalidKeyMaterialError("Invalid secret key: seed must be 32 bytes.")
        inner = SoldersKeypair.from_seed(bytes(seed))
        return cls(pubkey=inner.pubkey(), _inner=inner)

    def sign(self, message: bytes) -> Signature:
        return self._inner.sign_message(message)

    def secret_bytes(self) -> bytes:
        """Return the 64-byte wallet export form (seed || public key)."""
        return bytes(self._inner)


def parse_secret_key(value: Any) -> Keypair:
    """
    Decode a base64 secret key blob into a ``Keypair``.

    Raises:
        InvalidKeyMaterialError: if the value is not base64, is not 64 bytes,
            or its embedded public key does not match the seed.
    """
    if not isinstance(value, str) or not value:
        raise InvalidKeyMaterialError("Invalid secret key: expected a base64 string.")
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidKeyMaterialError("Invalid secret key: not valid base64.") from exc
    if len(raw) != SECRET_KEY_LENGTH:
        raise InvalidKeyMaterialError(
            f"Invalid secret key: expected {SECRET_KEY_LENGTH} bytes, got {len(raw)}."
        )
    # stored public half must equal the seed-derived key
    keypair = Keypair.from_seed(raw[:SEED_LENGTH])
    if bytes(keypair.pubkey) != raw[SEED_LENGTH:]:
        raise InvalidKeyMaterialError("Invalid secret key: embedded public key does not match.")
    return keypair


def parse_signature(value: Any) -> str:
    """Validate a base58 transaction signature and return it unchanged."""
    if not isinstance(value, str) or not value:
        raise InvalidSignatureError("Invalid signature: expected a base58 string.")
    try:
        raw = base58.b58decode(value)
    except ValueError as exc:
        raise InvalidSignatureError("Invalid signature: not valid base58.") from exc
    if len(raw) != SIGNATURE_LENGTH:
        raise InvalidSignatureError(f"Invalid signature: expected 64 bytes, got {len(raw)}.")
    return value
