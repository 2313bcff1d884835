"""
Observational events announced after committed transitions.

Subscribers receive events in emission order. A subscriber that raises is
logged and skipped; it never affects vault state or other subscribers.
"""

import logging
import threading
from dataclasses import dataclass, asdict
from typing import Callable, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VaultInitialized:
    vault_id: str
    authority: str
    total_amount: int
    milestone_count: int
    name: str


@dataclass(frozen=True)
class VaultFunded:
    vault_id: str
    amount: int


@dataclass(frozen=True)
class ProofSubmitted:
    vault_id: str
    milestone_index: int
    proof_reference: str
    submitter: str


@dataclass(frozen=True)
class MilestoneApproved:
    vault_id: str
    milestone_index: int
    validator: str
    approval_count: int


@dataclass(frozen=True)
class MilestoneReleased:
    vault_id: str
    milestone_index: int
    amount: int
    recipient_account: str = None
    transaction_id: str = None


def event_to_dict(event) -> dict:
    data = asdict(event)
    data['event'] = type(event).__name__
    return data


class EventEmitter:
    """Append-only event log with subscriber fan-out"""

    def __init__(self):
        self._history = []
        self._subscribers: List[Callable] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable) -> Callable[[], None]:
        """Register `callback(event)`; returns a function that unsubscribes it"""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event) -> None:
        with self._lock:
            self._history.append(event)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed on %s", type(event).__name__)

    def history(self, event_type=None) -> list:
        with self._lock:
            if event_type is None:
                return list(self._history)
            return [e for e in self._history if isinstance(e, event_type)]
