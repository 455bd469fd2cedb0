import base64
import struct

import base58
import pytest
from solders.hash import Hash
from solders.keypair import Keypair as SoldersKeypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from conftest import BLOCKHASH, StubRpcClient, address, make_keypair
from sol_tx_mcp.errors import (
    InvalidAddressError,
    InvalidAmountError,
    MalformedTransactionError,
    SignerMismatchError,
    TransactionTooLargeError,
    UnsupportedInstructionError,
)
from sol_tx_mcp.keys import parse_pubkey
from sol_tx_mcp.transaction import (
    TransactionEnvelope,
    assemble_transaction,
    compile_message,
    decode_transaction,
    encode_transaction,
    parse_instructions,
    sign_envelope,
    sol_to_lamports,
)
from sol_tx_mcp.transaction.codec import serialize_envelope
from sol_tx_mcp.transaction.instructions import SYSTEM_PROGRAM_ID

BLOCKHASH_BYTES = base58.b58decode(BLOCKHASH)


def _transfer(source, destination, amount):
    return {"type": "transfer", "params": {"from": str(source), "to": str(destination), "amount": amount}}


def _envelope(fee_payer, *raw_instructions):
    descriptors = parse_instructions(list(raw_instructions))
    message = compile_message(
        [descriptor.to_instruction() for descriptor in descriptors], fee_payer, Hash.from_string(BLOCKHASH)
    )
    return TransactionEnvelope(message=message)


def _verify(pubkey, signature, message_bytes):
    assert signature.verify(pubkey, message_bytes)


@pytest.mark.parametrize(
    "amount,lamports",
    [(0.001, 1_000_000), (1, 1_000_000_000), (0, 0), ("2.5", 2_500_000_000), (0.000000001, 1)],
)
def test_sol_to_lamports(amount, lamports):
    assert sol_to_lamports(amount) == lamports


@pytest.mark.parametrize(
    "amount",
    [-1, 0.0000000001, float("nan"), float("inf"), True, None, "abc", 2e10, "1.0000000000000000000000000000001"],
)
def test_sol_to_lamports_rejects(amount):
    with pytest.raises(InvalidAmountError):
        sol_to_lamports(amount)


def test_unknown_instruction_type_is_rejected():
    with pytest.raises(UnsupportedInstructionError):
        parse_instructions([{"type": "createAccount", "params": {}}])


def test_instruction_with_bad_address_is_rejected():
    with pytest.raises(InvalidAddressError):
        parse_instructions([_transfer("short", address(2), 1)])


def test_transfer_instruction_layout(alice):
    [descriptor] = parse_instructions([_transfer(alice.pubkey, address(2), 0.001)])
    instruction = descriptor.to_instruction()
    assert instruction.program_id == SYSTEM_PROGRAM_ID
    assert bytes(instruction.data) == struct.pack("<IQ", 2, 1_000_000)
    assert [(m.is_signer, m.is_writable) for m in instruction.accounts] == [(True, True), (False, True)]


def test_self_transfer_compiles_to_two_keys(alice):
    envelope = _envelope(alice.pubkey, _transfer(alice.pubkey, alice.pubkey, 0.001))
    message = envelope.message
    assert list(message.account_keys) == [alice.pubkey, SYSTEM_PROGRAM_ID]
    header = message.header
    assert (header.num_required_signatures, header.num_readonly_signed_accounts, header.num_readonly_unsigned_accounts) == (1, 0, 1)
    assert message.instructions[0].program_id_index == 1
    assert bytes(message.instructions[0].accounts) == bytes([0, 0])


def test_account_ordering_sorts_keys_within_each_group(alice, bob):
    payer = make_keypair(3).pubkey
    recipient = parse_pubkey(address(9))
    envelope = _envelope(
        payer,
        _transfer(bob.pubkey, recipient, 1),
        _transfer(alice.pubkey, bob.pubkey, 2),
    )
    message = envelope.message
    signers = sorted([alice.pubkey, bob.pubkey], key=bytes)
    keys = list(message.account_keys)
    assert keys == [payer, *signers, recipient, SYSTEM_PROGRAM_ID]
    assert envelope.required_signers == (payer, *signers)
    assert message.header.num_readonly_signed_accounts == 0
    assert message.header.num_readonly_unsigned_accounts == 1
    # instruction order is caller order
    index_of = {key: index for index, key in enumerate(keys)}
    assert [bytes(ix.accounts) for ix in message.instructions] == [
        bytes([index_of[bob.pubkey], index_of[recipient]]),
        bytes([index_of[alice.pubkey], index_of[bob.pubkey]]),
    ]


def test_encoding_matches_solders_for_multi_signer_transfer(alice, bob):
    carol = make_keypair(5)
    recipient = parse_pubkey(address(9))
    envelope = _envelope(
        alice.pubkey,
        _transfer(carol.pubkey, recipient, 1),
        _transfer(bob.pubkey, alice.pubkey, "0.5"),
    )

    instructions = [
        transfer(TransferParams(from_pubkey=carol.pubkey, to_pubkey=recipient, lamports=1_000_000_000)),
        transfer(TransferParams(from_pubkey=bob.pubkey, to_pubkey=alice.pubkey, lamports=500_000_000)),
    ]
    blockhash = Hash.from_string(BLOCKHASH)
    message = Message.new_with_blockhash(instructions, alice.pubkey, blockhash)
    unsigned = Transaction.populate(message, [Signature.default()] * 3)
    assert encode_transaction(envelope) == base64.b64encode(bytes(unsigned)).decode()

    signed = envelope
    for keypair in (carol, alice, bob):
        signed = sign_envelope(signed, keypair)
    reference = Transaction(
        [SoldersKeypair.from_seed(bytes([fill]) * 32) for fill in (1, 2, 5)], message, blockhash
    )
    assert encode_transaction(signed) == base64.b64encode(bytes(reference)).decode()


def test_compile_rejects_more_than_256_accounts(alice):
    recipients = [Pubkey.from_bytes(index.to_bytes(32, "big")) for index in range(1, 300)]
    instructions = [
        transfer(TransferParams(from_pubkey=alice.pubkey, to_pubkey=recipient, lamports=1))
        for recipient in recipients
    ]
    with pytest.raises(TransactionTooLargeError):
        compile_message(instructions, alice.pubkey, Hash.from_string(BLOCKHASH))


@pytest.mark.asyncio
async def test_assemble_rejects_transaction_over_packet_limit(alice):
    descriptors = parse_instructions([_transfer(alice.pubkey, address(fill), 0.001) for fill in range(10, 50)])
    with pytest.raises(TransactionTooLargeError):
        await assemble_transaction(descriptors, alice.pubkey, StubRpcClient())


def test_roundtrip_with_zero_one_and_all_signatures(alice, bob):
    envelope = _envelope(alice.pubkey, _transfer(alice.pubkey, address(4), 1), _transfer(bob.pubkey, address(5), 1))
    assert envelope.signatures == (None, None)

    one = sign_envelope(envelope, bob)
    both = sign_envelope(one, alice)
    for candidate in (envelope, one, both):
        assert decode_transaction(encode_transaction(candidate)) == candidate

    assert [signer for signer, _ in one.signer_entries] == [bob.pubkey]
    assert one.missing_signers == [alice.pubkey]
    assert both.is_fully_signed


def test_signing_is_idempotent_and_keeps_message_stable(alice):
    envelope = _envelope(alice.pubkey, _transfer(alice.pubkey, alice.pubkey, 0.001))
    before = envelope.message_bytes()
    once = sign_envelope(envelope, alice)
    twice = sign_envelope(once, alice)

    assert once.message_bytes() == before
    assert twice.message_bytes() == before
    assert twice == once
    assert len(twice.signer_entries) == 1
    signer, signature = twice.signer_entries[0]
    assert signer == alice.pubkey
    _verify(alice.pubkey, signature, before)


def test_adding_second_signature_keeps_first_valid(alice, bob):
    envelope = _envelope(alice.pubkey, _transfer(bob.pubkey, alice.pubkey, 1))
    first = sign_envelope(envelope, alice)
    second = sign_envelope(first, bob)
    assert second.signatures[0] == first.signatures[0]
    _verify(alice.pubkey, second.signatures[0], second.message_bytes())
    _verify(bob.pubkey, second.signatures[1], second.message_bytes())


def test_signing_with_non_member_key_fails(alice, bob):
    envelope = _envelope(alice.pubkey, _transfer(alice.pubkey, bob.pubkey, 1))
    with pytest.raises(SignerMismatchError):
        sign_envelope(envelope, bob)


def test_encoded_transaction_layout(alice):
    envelope = sign_envelope(_envelope(alice.pubkey, _transfer(alice.pubkey, alice.pubkey, 0.001)), alice)
    raw = base64.b64decode(encode_transaction(envelope))
    assert raw[0] == 1
    assert raw[1:65] == bytes(envelope.signatures[0])
    assert raw[65:] == envelope.message_bytes()
    # header, 2 keys, blockhash
    assert raw[65:69] == bytes([1, 0, 1, 2])
    assert raw[69:101] == bytes(alice.pubkey)
    assert raw[133:165] == BLOCKHASH_BYTES


def test_decode_rejects_malformed(alice):
    envelope = sign_envelope(_envelope(alice.pubkey, _transfer(alice.pubkey, alice.pubkey, 0.001)), alice)
    raw = serialize_envelope(envelope)
    message_bytes = envelope.message_bytes()

    bad_inputs = [
        "",
        "not base64!!",
        base64.b64encode(raw[:-1]).decode(),
        base64.b64encode(raw + b"\x00").decode(),
        base64.b64encode(b"\x00" + message_bytes).decode(),
        base64.b64encode(raw[:40]).decode(),
        base64.b64encode(b"\x01" + bytes(64) + bytes([0x80]) + message_bytes).decode(),
        base64.b64encode(bytes(1300)).decode(),
    ]
    for encoded in bad_inputs:
        with pytest.raises(MalformedTransactionError):
            decode_transaction(encoded)


def test_decode_rejects_out_of_range_index(alice):
    envelope = _envelope(alice.pubkey, _transfer(alice.pubkey, alice.pubkey, 0.001))
    raw = bytearray(serialize_envelope(envelope))
    # program id index sits right after the instruction count
    program_index_offset = 1 + 64 + 3 + 1 + 64 + 32 + 1
    assert raw[program_index_offset] == 1
    raw[program_index_offset] = 9
    with pytest.raises(MalformedTransactionError):
        decode_transaction(base64.b64encode(bytes(raw)).decode())
