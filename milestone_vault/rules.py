from dataclasses import dataclass

from .config import MAX_AMOUNT, MAX_APPROVALS, QUORUM_THRESHOLD, STRICT_APPROVALS


@dataclass(frozen=True)
class ReleaseRules:
    """Policy applied to approvals and milestone releases"""

    # Quorum
    quorum_threshold: int
    max_approvals: int  # only the first N distinct approvers are recorded

    # Accounting
    enforce_budget_cap: bool
    max_amount: int  # largest representable running total

    # Approvals on milestones whose funds already moved
    allow_approval_after_release: bool

    def __post_init__(self):
        if self.quorum_threshold < 1:
            raise ValueError("Quorum threshold must be at least 1")
        if self.max_approvals < self.quorum_threshold:
            raise ValueError(
                f"Approval cap {self.max_approvals} is below quorum threshold {self.quorum_threshold}"
            )

    @classmethod
    def default(cls) -> 'ReleaseRules':
        """3-of-N quorum, budget cap enforced, approvals after release tolerated"""
        return cls(
            quorum_threshold=3,
            max_approvals=16,
            enforce_budget_cap=True,
            max_amount=MAX_AMOUNT,
            allow_approval_after_release=True
        )

    @classmethod
    def strict(cls) -> 'ReleaseRules':
        """Same quorum, but released milestones accept no further approvals"""
        return cls(
            quorum_threshold=3,
            max_approvals=16,
            enforce_budget_cap=True,
            max_amount=MAX_AMOUNT,
            allow_approval_after_release=False
        )

    @classmethod
    def from_config(cls) -> 'ReleaseRules':
        """Create rules from environment configuration"""
        return cls(
            quorum_threshold=QUORUM_THRESHOLD,
            max_approvals=MAX_APPROVALS,
            enforce_budget_cap=True,
            max_amount=MAX_AMOUNT,
            allow_approval_after_release=not STRICT_APPROVALS
        )

    def has_quorum(self, approval_count: int) -> bool:
        """Check if the number of distinct approvals meets the threshold"""
        return approval_count >= self.quorum_threshold

    def approvals_missing(self, approval_count: int) -> int:
        return max(0, self.quorum_threshold - approval_count)

    def is_valid_amount(self, amount) -> bool:
        """Amounts are unsigned integers within the accounting range"""
        return isinstance(amount, int) and not isinstance(amount, bool) and 0 <= amount <= self.max_amount

    def validate_accounting(self, released_amount: int, amount: int, total_amount: int) -> tuple[bool, str]:
        """Validate a release amount against the running total and the budget"""

        new_total = released_amount + amount
        if new_total > self.max_amount:
            return False, f"Released total {new_total} overflows accounting limit {self.max_amount}"

        if self.enforce_budget_cap and new_total > total_amount:
            remaining = total_amount - released_amount
            return False, f"Release of {amount} exceeds remaining budget {remaining}"

        return True, "Accounting valid"
