"""
Milestone Vault - phased, quorum-gated escrow disbursement
Funds are released one milestone at a time, after proof and validator approval
"""

from .vault import MilestonePlan, VaultCategory, VaultRecord
from .milestone import MilestoneRecord, MilestoneStatus
from .rules import ReleaseRules
from .predicate import ReleasePredicate, ReleaseRequest
from .ledger import Ledger
from .token import TokenLedger
from .events import EventEmitter, MilestoneReleased
from .engine import ReleaseEngine
from .program import MilestoneVaultProgram
from .identity import Keypair, RequestAuthenticator
from .evidence import ProofArtifact, compute_proof_reference
from .errors import (
    EscrowError,
    AlreadyReleased,
    InsufficientApprovals,
    AccountingOverflow,
    BudgetExceeded,
    TransferFailed,
)

__version__ = "0.1.0"
__all__ = [
    "VaultRecord",
    "VaultCategory",
    "MilestonePlan",
    "MilestoneRecord",
    "MilestoneStatus",
    "ReleaseRules",
    "ReleasePredicate",
    "ReleaseRequest",
    "Ledger",
    "TokenLedger",
    "EventEmitter",
    "MilestoneReleased",
    "ReleaseEngine",
    "MilestoneVaultProgram",
    "Keypair",
    "RequestAuthenticator",
    "ProofArtifact",
    "compute_proof_reference",
    "EscrowError",
    "AlreadyReleased",
    "InsufficientApprovals",
    "AccountingOverflow",
    "BudgetExceeded",
    "TransferFailed",
]
