"""
Milestone records and the approval ledger embedded in them.

Records are immutable; each transition returns a new record that the caller
commits through a ledger transaction.
"""

from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Optional, Tuple

from .errors import AlreadyReleased


class MilestoneStatus(Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    RELEASED = "released"


@dataclass(frozen=True)
class MilestoneRecord:
    """One phase of a vault, gated by proof and validator quorum"""
    vault_id: str
    index: int
    proof_reference: Optional[str] = None
    approvals: Tuple[str, ...] = ()  # distinct validator identities, in arrival order
    released: bool = False
    description: str = ""
    planned_amount: Optional[int] = None  # advisory allotment from the vault plan
    confidence_score: Optional[float] = None  # submitter-reported, 0..100
    version: int = 0

    @classmethod
    def empty(cls, vault_id: str, index: int, description: str = "",
              planned_amount: Optional[int] = None) -> 'MilestoneRecord':
        return cls(vault_id=vault_id, index=index, description=description, planned_amount=planned_amount)

    @property
    def approval_count(self) -> int:
        return len(self.approvals)

    def has_approved(self, identity: str) -> bool:
        return identity in self.approvals

    def has_quorum(self, threshold: int) -> bool:
        return self.approval_count >= threshold

    def status(self, threshold: int) -> MilestoneStatus:
        if self.released:
            return MilestoneStatus.RELEASED
        if self.has_quorum(threshold):
            return MilestoneStatus.APPROVED
        if self.proof_reference:
            return MilestoneStatus.SUBMITTED
        return MilestoneStatus.PENDING

    def with_proof(self, index: int, proof_reference: str,
                   confidence_score: Optional[float] = None) -> 'MilestoneRecord':
        """Attach or overwrite the proof; last write wins until release"""
        if self.released:
            raise AlreadyReleased("Cannot submit proof for a released milestone")
        return replace(self, index=index, proof_reference=proof_reference, confidence_score=confidence_score)

    def with_approval(self, identity: str, max_approvals: int) -> 'MilestoneRecord':
        """Add one unit of quorum weight for `identity`.

        Re-approving is a no-op, and once `max_approvals` distinct identities
        are recorded later approvers are ignored. Either way `self` is returned
        unchanged, so callers can detect the no-op by identity.
        """
        if identity in self.approvals:
            return self
        if len(self.approvals) >= max_approvals:
            return self
        return replace(self, approvals=self.approvals + (identity,))

    def merge_approvals(self, other: 'MilestoneRecord', max_approvals: int) -> 'MilestoneRecord':
        """Union of two approval sets, independent of order below the cap"""
        merged = self
        for identity in other.approvals:
            merged = merged.with_approval(identity, max_approvals)
        return merged

    def mark_released(self) -> 'MilestoneRecord':
        if self.released:
            raise AlreadyReleased()
        return replace(self, released=True)

    def to_dict(self) -> dict:
        data = asdict(self)
        data['approvals'] = list(self.approvals)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'MilestoneRecord':
        fields = dict(data)
        fields['approvals'] = tuple(fields.get('approvals', ()))
        return cls(**fields)
