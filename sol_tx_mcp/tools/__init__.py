"""LLM-facing tool implementations."""

from .account import (
    get_account_info,
    get_balance,
    get_minimum_balance_for_rent_exemption,
    validate_address,
)
from .transactions import build_transaction, get_transaction, sign_and_send_transaction

__all__ = [
    "build_transaction",
    "sign_and_send_transaction",
    "get_account_info",
    "get_balance",
    "get_minimum_balance_for_rent_exemption",
    "get_transaction",
    "validate_address",
]
