"""
In-memory ledger substrate.

Stores vault and milestone records under opaque addresses and runs each
state transition as one transaction: the records it touches are locked for its
whole duration (single writer per record), writes are staged, and they are
committed together only if the transaction body completes. An exception
anywhere in the body discards every staged write.
"""

import hashlib
import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, List, Optional

from .errors import StaleRecord

logger = logging.getLogger(__name__)


def milestone_address(vault_id: str, index: int) -> str:
    """Derive the storage address binding a milestone to its vault"""
    hasher = hashlib.sha256()
    hasher.update(b"MILESTONE_V1")
    hasher.update(vault_id.encode())
    hasher.update(b":")
    hasher.update(str(index).encode())
    return hasher.hexdigest()


def vault_address(vault_id: str) -> str:
    return vault_id


class Transaction:
    """Staged reads and writes over a fixed set of locked addresses"""

    def __init__(self, ledger: 'Ledger', addresses):
        self._ledger = ledger
        self._addresses = frozenset(addresses)
        self._writes: Dict[str, Any] = {}
        self._after_commit: List[Callable[[], None]] = []

    def read(self, address: str) -> Optional[Any]:
        if address in self._writes:
            return self._writes[address]
        self._require_locked(address)
        return self._ledger.get(address)

    def write(self, address: str, record: Any) -> None:
        self._require_locked(address)
        self._writes[address] = record

    def validate(self) -> None:
        """Raise StaleRecord now if any staged write would be refused at commit.

        Locks are held until commit, so a transaction that validates here
        commits the same writes. Side effects outside the ledger (token
        transfers) run after this check.
        """
        self._ledger._validate(self)

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run `callback` once the writes are durable"""
        self._after_commit.append(callback)

    def _require_locked(self, address: str) -> None:
        if address not in self._addresses:
            raise KeyError(f"Address {address[:16]}... is not part of this transaction")


class Ledger:
    """Record store with per-record serialization and atomic commits"""

    def __init__(self):
        self._records: Dict[str, Any] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self._commit_count = 0

    def get(self, address: str) -> Optional[Any]:
        return self._records.get(address)

    def __contains__(self, address: str) -> bool:
        return address in self._records

    @property
    def commit_count(self) -> int:
        return self._commit_count

    def _lock_for(self, address: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(address)
            if lock is None:
                lock = threading.RLock()
                self._locks[address] = lock
            return lock

    @contextmanager
    def transaction(self, *addresses: str) -> Iterator[Transaction]:
        """Lock `addresses`, yield a transaction, commit on clean exit"""

        # Sorted acquisition keeps two multi-record transactions from deadlocking
        locks = [self._lock_for(address) for address in sorted(set(addresses))]
        for lock in locks:
            lock.acquire()

        try:
            txn = Transaction(self, addresses)
            yield txn
            self._commit(txn)
        finally:
            for lock in reversed(locks):
                lock.release()

        for callback in txn._after_commit:
            callback()

    def _commit(self, txn: Transaction) -> None:
        if not txn._writes:
            return

        self._validate(txn)

        for address, record in txn._writes.items():
            self._records[address] = replace(record, version=record.version + 1)

        self._commit_count += 1
        logger.debug("Committed %d record(s)", len(txn._writes))

    def _validate(self, txn: Transaction) -> None:
        for address, record in txn._writes.items():
            stored = self._records.get(address)
            stored_version = stored.version if stored is not None else 0
            if record.version != stored_version:
                raise StaleRecord(
                    f"Record {address[:16]}... is at version {stored_version}, write based on {record.version}"
                )
