import base64
import os
import sys
from typing import Any, Dict, List, Optional

import base58
import pytest

# Ensure repository root is on sys.path before importing project modules.
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from sol_tx_mcp.keys import Keypair, encode_signature  # noqa: E402
from sol_tx_mcp.metrics import default_metrics  # noqa: E402
from sol_tx_mcp.solana_rpc import LatestBlockhash  # noqa: E402
from sol_tx_mcp.transaction import decode_transaction  # noqa: E402

BLOCKHASH = base58.b58encode(bytes([7]) * 32).decode("ascii")


def make_keypair(fill: int) -> Keypair:
    return Keypair.from_seed(bytes([fill]) * 32)


def secret_b64(keypair: Keypair) -> str:
    return base64.b64encode(keypair.secret_bytes()).decode("ascii")


def address(fill: int) -> str:
    """A syntactically valid address that nobody holds a key for."""
    return base58.b58encode(bytes([fill]) * 32).decode("ascii")


class StubRpcClient:
    """In-memory stand-in for SolanaRpcClient that records every call."""

    def __init__(
        self,
        *,
        balance: int = 0,
        account: Optional[Dict[str, Any]] = None,
        rent: int = 890880,
        transaction: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.balance = balance
        self.account = account
        self.rent = rent
        self.transaction = transaction
        self.error = error
        self.calls: List[tuple] = []
        self.sent: List[str] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *_exc):
        return None

    def _record(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    async def get_latest_blockhash(self):
        self._record("getLatestBlockhash")
        return LatestBlockhash(blockhash=BLOCKHASH, last_valid_block_height=1000)

    async def send_raw_transaction(self, raw: str) -> str:
        self._record("sendTransaction", raw)
        self.sent.append(raw)
        envelope = decode_transaction(raw)
        return encode_signature(envelope.signatures[0])

    async def get_account_info(self, addr: str):
        self._record("getAccountInfo", addr)
        return self.account

    async def get_balance(self, addr: str) -> int:
        self._record("getBalance", addr)
        return self.balance

    async def get_minimum_balance_for_rent_exemption(self, data_size: int) -> int:
        self._record("getMinimumBalanceForRentExemption", data_size)
        return self.rent

    async def get_transaction(self, signature: str):
        self._record("getTransaction", signature)
        return self.transaction


@pytest.fixture(autouse=True)
def reset_metrics():
    default_metrics.reset()
    yield
    default_metrics.reset()


@pytest.fixture
def alice() -> Keypair:
    return make_keypair(1)


@pytest.fixture
def bob() -> Keypair:
    return make_keypair(2)


@pytest.fixture
def stub_rpc() -> StubRpcClient:
    return StubRpcClient()
