"""
Instruction descriptors accepted by ``buildTransaction``.

Descriptors form a closed set keyed by their ``type`` tag. Each descriptor
knows how to lower itself to a ``solders`` program ``Instruction``. Unknown
tags are rejected instead of being dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from typing import Any, Callable, Dict, List, Mapping, Tuple

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import TransferParams, transfer

from sol_tx_mcp.errors import InvalidAmountError, UnsupportedInstructionError
from sol_tx_mcp.keys import parse_pubkey

LAMPORTS_PER_SOL = 1_000_000_000
MAX_LAMPORTS = 2**64 - 1


def sol_to_lamports(amount: Any) -> int:
    """Convert a SOL amount to lamports exactly, rejecting fractional lamports."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float, str, Decimal)):
        raise InvalidAmountError("Invalid amount: expected a number of SOL.")
    try:
        # str() keeps 0.001 as Decimal("0.001") instead of its binary expansion
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise InvalidAmountError("Invalid amount: expected a number of SOL.") from exc
    if not value.is_finite() or value < 0:
        raise InvalidAmountError("Invalid amount: must be a finite, non-negative number of SOL.")
    with localcontext() as ctx:
        ctx.traps[Inexact] = True
        try:
            lamports = value * LAMPORTS_PER_SOL
        except Inexact as exc:
            raise InvalidAmountError("Invalid amount: not representable in whole lamports.") from exc
    if lamports != lamports.to_integral_value():
        raise InvalidAmountError("Invalid amount: precision finer than one lamport.")
    lamports_int = int(lamports)
    if lamports_int > MAX_LAMPORTS:
        raise InvalidAmountError("Invalid amount: exceeds the maximum lamport value.")
    return lamports_int


@dataclass(frozen=True, slots=True)
class TransferDescriptor:
    """System program transfer of ``lamports`` from ``source`` to ``destination``."""

    source: Pubkey
    destination: Pubkey
    lamports: int

    type_tag = "transfer"

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "TransferDescriptor":
        return cls(
            source=parse_pubkey(params.get("from"), field_name="transfer 'from' address"),
            destination=parse_pubkey(params.get("to"), field_name="transfer 'to' address"),
            lamports=sol_to_lamports(params.get("amount")),
        )

    @property
    def signers(self) -> Tuple[Pubkey, ...]:
        return (self.source,)

    def to_instruction(self) -> Instruction:
        return transfer(
            TransferParams(from_pubkey=self.source, to_pubkey=self.destination, lamports=self.lamports)
        )


InstructionDescriptor = TransferDescriptor

DESCRIPTOR_TYPES: Dict[str, Callable[[Mapping[str, Any]], InstructionDescriptor]] = {
    TransferDescriptor.type_tag: TransferDescriptor.from_params,
}


def parse_instruction(raw: Any, *, position: int = 0) -> InstructionDescriptor:
    """Parse one ``{type, params}`` mapping into a descriptor."""
    if not isinstance(raw, Mapping):
        raise UnsupportedInstructionError(f"Instruction {position}: expected an object with 'type' and 'params'.")
    type_tag = raw.get("type")
    factory = DESCRIPTOR_TYPES.get(type_tag) if isinstance(type_tag, str) else None
    if factory is None:
        raise UnsupportedInstructionError(
            f"Instruction {position}: unsupported type {type_tag!r}. Supported: "
            + ", ".join(sorted(DESCRIPTOR_TYPES))
            + "."
        )
    params = raw.get("params")
    if not isinstance(params, Mapping):
        raise UnsupportedInstructionError(f"Instruction {position}: 'params' must be an object.")
    return factory(params)


def parse_instructions(raw_list: Any) -> List[InstructionDescriptor]:
    """Parse a caller-supplied instruction list, preserving order."""
    if not isinstance(raw_list, list):
        raise UnsupportedInstructionError("Instructions must be a list.")
    return [parse_instruction(item, position=index) for index, item in enumerate(raw_list)]

