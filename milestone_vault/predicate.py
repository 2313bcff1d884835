from dataclasses import dataclass
from typing import Optional, Tuple, Type

from .errors import (
    AccountingOverflow,
    AlreadyReleased,
    BudgetExceeded,
    EscrowError,
    InsufficientApprovals,
    InvalidAmount,
    InvalidMilestoneIndex,
    Unauthorized,
)


@dataclass(frozen=True)
class ReleaseRequest:
    """Request to release one milestone's allotment"""
    milestone_index: int
    amount: int
    caller: str
    recipient_account: str


class ReleasePredicate:
    """Release preconditions for one vault/milestone pair, checked in order"""

    def __init__(self, vault, milestone, rules, release_request: ReleaseRequest):
        self.vault = vault
        self.milestone = milestone
        self.rules = rules
        self.release_request = release_request

    def _evaluate(self) -> Tuple[Optional[Type[EscrowError]], str]:
        vault = self.vault
        milestone = self.milestone
        req = self.release_request

        # Both records must belong together
        if milestone.vault_id != vault.vault_id:
            return InvalidMilestoneIndex, "Milestone does not belong to this vault"

        if milestone.index != req.milestone_index or not vault.is_valid_index(milestone.index):
            return InvalidMilestoneIndex, (
                f"Milestone index {milestone.index} does not match request {req.milestone_index} "
                f"or is outside [0, {vault.milestone_count})"
            )

        if not self.rules.is_valid_amount(req.amount):
            return InvalidAmount, f"Release amount must be an integer in [0, {self.rules.max_amount}], got {req.amount!r}"

        if vault.recipient is not None and req.recipient_account != vault.recipient:
            return Unauthorized, "Recipient does not match the vault's bound recipient"

        # 1. Quorum
        if not milestone.has_quorum(self.rules.quorum_threshold):
            missing = self.rules.approvals_missing(milestone.approval_count)
            return InsufficientApprovals, (
                f"Minimum of {self.rules.quorum_threshold} approvals required, "
                f"have {milestone.approval_count} ({missing} missing)"
            )

        # 2. Single release
        if milestone.released:
            return AlreadyReleased, f"Milestone {milestone.index} already released"

        # 3. Accounting
        new_total = vault.released_amount + req.amount
        if new_total > self.rules.max_amount:
            return AccountingOverflow, f"Released total {new_total} overflows accounting limit"

        is_valid, reason = self.rules.validate_accounting(vault.released_amount, req.amount, vault.total_amount)
        if not is_valid:
            return BudgetExceeded, reason

        return None, "Release approved"

    def verify(self) -> tuple[bool, str]:
        """Returns (is_valid, reason)"""
        error, reason = self._evaluate()
        return error is None, reason

    def check(self) -> None:
        """Raise the typed error for the first failed precondition"""
        error, reason = self._evaluate()
        if error is not None:
            raise error(reason)

    def to_dict(self) -> dict:
        req = self.release_request
        return {
            'vault_commitment': self.vault.commitment_hash(),
            'milestone_index': req.milestone_index,
            'amount': req.amount,
            'caller': req.caller,
            'recipient_account': req.recipient_account,
            'approvals': list(self.milestone.approvals),
        }
