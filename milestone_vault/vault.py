import hashlib
import time
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Optional, Tuple

from .config import MAX_AMOUNT, MAX_DESCRIPTION_LENGTH, MAX_MILESTONES, MAX_NAME_LENGTH
from .errors import InvalidVaultConfig


class VaultCategory(Enum):
    EDUCATION = "Education"
    HEALTHCARE = "Healthcare"
    AGRICULTURE = "Agriculture"
    INFRASTRUCTURE = "Infrastructure"


@dataclass(frozen=True)
class MilestonePlan:
    """Planned scope and allotment of one milestone, advisory only"""
    description: str
    amount: int


@dataclass(frozen=True)
class VaultRecord:
    """Aggregate funding state of one escrow vault"""
    vault_id: str
    authority: str  # funder identity (hex public key)
    total_amount: int  # escrowed budget, fixed at creation
    released_amount: int  # running total authorized for release
    milestone_count: int  # valid indices are [0, milestone_count)
    approved_milestones: int  # milestones whose funds were released
    name: str
    custodial_account: str
    recipient: Optional[str] = None  # bound recipient account, any if None
    validators: Tuple[str, ...] = ()  # allowed approvers, any if empty
    proposers: Tuple[str, ...] = ()  # allowed proof submitters, any if empty
    description: str = ""
    category: Optional[str] = None  # VaultCategory value
    location: str = ""
    created_at: Optional[int] = None  # unix seconds
    milestone_plans: Tuple[MilestonePlan, ...] = ()
    funded: bool = False
    version: int = 0

    @classmethod
    def initialize(cls, authority: str, total_amount: int, milestone_count: int, name: str,
                   recipient: Optional[str] = None, validators=(), proposers=(),
                   nonce: Optional[str] = None, description: str = "",
                   category: Optional[str] = None, location: str = "",
                   milestones=None, created_at: Optional[int] = None) -> 'VaultRecord':
        """Create a fresh vault with nothing released"""

        if not authority:
            raise InvalidVaultConfig("Vault authority is required")

        if not _is_uint(total_amount) or total_amount > MAX_AMOUNT:
            raise InvalidVaultConfig(f"Total amount must be an integer in [0, {MAX_AMOUNT}], got {total_amount!r}")

        if not _is_uint(milestone_count) or not (1 <= milestone_count <= MAX_MILESTONES):
            raise InvalidVaultConfig(f"Milestone count must be between 1 and {MAX_MILESTONES}, got {milestone_count!r}")

        if not isinstance(name, str) or len(name) > MAX_NAME_LENGTH:
            raise InvalidVaultConfig(f"Vault name must be a string of at most {MAX_NAME_LENGTH} characters")

        for label, text in (("description", description), ("location", location)):
            if not isinstance(text, str) or len(text) > MAX_DESCRIPTION_LENGTH:
                raise InvalidVaultConfig(f"Vault {label} must be a string of at most {MAX_DESCRIPTION_LENGTH} characters")

        if category is not None:
            try:
                category = VaultCategory(category).value
            except ValueError:
                allowed = ", ".join(c.value for c in VaultCategory)
                raise InvalidVaultConfig(f"Unknown category {category!r}, expected one of {allowed}")

        vault_id = cls.derive_vault_id(authority, name, nonce)

        return cls(
            vault_id=vault_id,
            authority=authority,
            total_amount=total_amount,
            released_amount=0,
            milestone_count=milestone_count,
            approved_milestones=0,
            name=name,
            custodial_account=cls.derive_custodial_account(vault_id),
            recipient=recipient,
            validators=_unique(validators),
            proposers=_unique(proposers),
            description=description,
            category=category,
            location=location,
            created_at=int(time.time()) if created_at is None else created_at,
            milestone_plans=_milestone_plans(milestones, total_amount, milestone_count, name),
        )

    @staticmethod
    def derive_vault_id(authority: str, name: str, nonce: Optional[str] = None) -> str:
        """Generate deterministic vault ID from its creator and label"""
        hasher = hashlib.sha256()
        hasher.update(b"MILESTONE_VAULT_V1")
        hasher.update(authority.encode())
        hasher.update(b"\x00")
        hasher.update(name.encode())
        hasher.update(b"\x00")
        hasher.update((nonce or "").encode())
        return hasher.hexdigest()

    @staticmethod
    def derive_custodial_account(vault_id: str) -> str:
        return "custody:" + vault_id

    @property
    def remaining_amount(self) -> int:
        return self.total_amount - self.released_amount

    def commitment_hash(self) -> str:
        """Hash over the accounting state, changes with every release"""
        hasher = hashlib.sha256()
        hasher.update(bytes.fromhex(self.vault_id))
        hasher.update(self.authority.encode())
        hasher.update(self.total_amount.to_bytes(8, 'little'))
        hasher.update(self.released_amount.to_bytes(8, 'little'))
        hasher.update(self.milestone_count.to_bytes(1, 'little'))
        hasher.update(self.approved_milestones.to_bytes(1, 'little'))
        hasher.update(self.version.to_bytes(8, 'little'))
        return hasher.hexdigest()

    def is_valid_index(self, index: int) -> bool:
        return _is_uint(index) and index < self.milestone_count

    def plan_for(self, index: int) -> Optional[MilestonePlan]:
        if self.is_valid_index(index) and index < len(self.milestone_plans):
            return self.milestone_plans[index]
        return None

    def may_approve(self, identity: str) -> bool:
        return not self.validators or identity in self.validators

    def may_submit_proof(self, identity: str) -> bool:
        return not self.proposers or identity in self.proposers

    def with_release(self, amount: int) -> 'VaultRecord':
        """Accounting state after one milestone released `amount`"""
        return replace(
            self,
            released_amount=self.released_amount + amount,
            approved_milestones=self.approved_milestones + 1,
        )

    def with_funding(self) -> 'VaultRecord':
        return replace(self, funded=True)

    def to_dict(self) -> dict:
        """Serialize vault to dictionary"""
        data = asdict(self)
        data['validators'] = list(self.validators)
        data['proposers'] = list(self.proposers)
        data['milestone_plans'] = [asdict(plan) for plan in self.milestone_plans]
        data['remaining_amount'] = self.remaining_amount
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'VaultRecord':
        """Deserialize vault from dictionary"""
        fields = {k: v for k, v in data.items() if k != 'remaining_amount'}
        fields['validators'] = tuple(fields.get('validators', ()))
        fields['proposers'] = tuple(fields.get('proposers', ()))
        fields['milestone_plans'] = tuple(MilestonePlan(**p) for p in fields.get('milestone_plans', ()))
        return cls(**fields)


def _milestone_plans(milestones, total_amount: int, milestone_count: int, name: str) -> Tuple[MilestonePlan, ...]:
    """Validate planned milestones, or split the budget evenly when none are given"""
    if milestones is None:
        share, remainder = divmod(total_amount, milestone_count)
        return tuple(
            MilestonePlan(
                description=f"Milestone #{i + 1} for {name}",
                amount=share + (remainder if i == milestone_count - 1 else 0)
            )
            for i in range(milestone_count)
        )

    try:
        plans = tuple(p if isinstance(p, MilestonePlan) else MilestonePlan(**p) for p in milestones)
    except TypeError as e:
        raise InvalidVaultConfig(f"Malformed milestone plan: {e}") from e
    if len(plans) != milestone_count:
        raise InvalidVaultConfig(f"Expected {milestone_count} milestone plans, got {len(plans)}")

    for plan in plans:
        if not isinstance(plan.description, str) or len(plan.description) > MAX_DESCRIPTION_LENGTH:
            raise InvalidVaultConfig(f"Milestone description must be at most {MAX_DESCRIPTION_LENGTH} characters")
        if not _is_uint(plan.amount):
            raise InvalidVaultConfig(f"Milestone allotment must be a non-negative integer, got {plan.amount!r}")

    planned = sum(plan.amount for plan in plans)
    if planned > total_amount:
        raise InvalidVaultConfig(f"Planned allotments {planned} exceed total amount {total_amount}")

    return plans


def _is_uint(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _unique(identities) -> Tuple[str, ...]:
    seen = []
    for identity in identities or ():
        if identity not in seen:
            seen.append(identity)
    return tuple(seen)
