"""
Token ledger - fungible balances held in owned accounts.

This is the transfer collaborator the release engine calls. Any object with a
compatible `transfer(from_account, to_account, authority, amount)` method that
raises `TransferFailed` on refusal can stand in for it.
"""

import hashlib
import threading
from dataclasses import dataclass
from typing import Any, Dict, List

from .config import MAX_AMOUNT
from .errors import TransferFailed


@dataclass
class TokenAccount:
    """Balance held by one account"""
    account_id: str
    owner: str  # identity allowed to move funds out
    balance: int = 0


class TokenLedger:
    """Single-asset token ledger with owner-authorized transfers"""

    def __init__(self, symbol: str = "USDC", decimals: int = 6):
        self.symbol = symbol
        self.decimals = decimals
        self._accounts: Dict[str, TokenAccount] = {}
        self._transfer_history: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def open_account(self, account_id: str, owner: str) -> TokenAccount:
        """Create an empty account; reopening an existing one returns it unchanged"""
        with self._lock:
            account = self._accounts.get(account_id)
            if account is not None:
                if account.owner != owner:
                    raise ValueError(f"Account {account_id} already exists with a different owner")
                return account

            account = TokenAccount(account_id=account_id, owner=owner)
            self._accounts[account_id] = account
            return account

    def mint(self, account_id: str, amount: int) -> int:
        """Credit new tokens to an account (funding outside the escrow)"""
        if amount < 0:
            raise ValueError("Mint amount must be non-negative")

        with self._lock:
            account = self._require_account(account_id)
            if account.balance + amount > MAX_AMOUNT:
                raise ValueError("Mint would overflow account balance")
            account.balance += amount
            return account.balance

    def balance_of(self, account_id: str) -> int:
        """Get token balance for account"""
        account = self._accounts.get(account_id)
        return account.balance if account is not None else 0

    def owner_of(self, account_id: str) -> str:
        account = self._accounts.get(account_id)
        return account.owner if account is not None else None

    def has_account(self, account_id: str) -> bool:
        return account_id in self._accounts

    def transfer(self, from_account: str, to_account: str, authority: str, amount: int) -> Dict[str, Any]:
        """Move `amount` between accounts, authorized by the source's owner.

        Either both balances change or neither does.
        """
        if not isinstance(amount, int) or amount < 0:
            raise TransferFailed(f"Invalid transfer amount {amount!r}")

        with self._lock:
            if from_account not in self._accounts:
                raise TransferFailed(f"Unknown source account {from_account}")
            if to_account not in self._accounts:
                raise TransferFailed(f"Unknown destination account {to_account}")

            source = self._accounts[from_account]
            destination = self._accounts[to_account]

            if source.owner != authority:
                raise TransferFailed("Transfer authority does not own the source account")

            if source.balance < amount:
                raise TransferFailed(
                    f"Insufficient funds: need {amount}, have {source.balance}"
                )

            if destination.balance + amount > MAX_AMOUNT:
                raise TransferFailed("Destination balance would overflow")

            source.balance -= amount
            destination.balance += amount

            record = {
                'transaction_id': self._transaction_id(from_account, to_account, amount),
                'from': from_account,
                'to': to_account,
                'authority': authority,
                'amount': amount,
            }
            self._transfer_history.append(record)

        return record

    def _transaction_id(self, from_account: str, to_account: str, amount: int) -> str:
        hasher = hashlib.sha256()
        hasher.update(f"{from_account}|{to_account}|{amount}|{len(self._transfer_history)}".encode())
        return "tx_" + hasher.hexdigest()[:16]

    def get_transfer_history(self) -> List[Dict[str, Any]]:
        """Get token transfer history"""
        return self._transfer_history.copy()

    def _require_account(self, account_id: str) -> TokenAccount:
        account = self._accounts.get(account_id)
        if account is None:
            raise ValueError(f"Unknown account {account_id}")
        return account
