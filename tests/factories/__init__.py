"""Test data factories using factory_boy.

These factories generate realistic raw token accounts for holder tests.
"""

from tests.factories.account import (
    AccountRecordFactory,
    rpc_account_item,
    token_account_data,
)

__all__ = [
    "AccountRecordFactory",
    "rpc_account_item",
    "token_account_data",
]
