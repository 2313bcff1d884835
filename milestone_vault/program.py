"""
Caller-facing operations of the milestone vault.

Every method takes the already-authenticated caller identity first and runs
as one all-or-nothing ledger transaction.
"""

from typing import Any, Dict, List, Optional

from .config import MAX_PROOF_LENGTH
from .engine import ReleaseEngine
from .errors import (
    AlreadyReleased,
    EscrowError,
    InvalidMilestoneIndex,
    InvalidProof,
    InvalidVaultConfig,
    MilestoneNotFound,
    Unauthorized,
    VaultNotFound,
)
from .events import (
    EventEmitter,
    MilestoneApproved,
    MilestoneReleased,
    ProofSubmitted,
    VaultFunded,
    VaultInitialized,
)
from .ledger import Ledger, milestone_address, vault_address
from .log import logger
from .milestone import MilestoneRecord, MilestoneStatus
from .rules import ReleaseRules
from .token import TokenLedger
from .vault import VaultRecord


class MilestoneVaultProgram:
    """High-level interface for phased escrow operations"""

    def __init__(self, ledger: Ledger = None, token_ledger: TokenLedger = None,
                 emitter: EventEmitter = None, rules: ReleaseRules = None):
        self.ledger = ledger or Ledger()
        self.token_ledger = token_ledger or TokenLedger()
        self.emitter = emitter or EventEmitter()
        self.rules = rules or ReleaseRules.from_config()
        self.engine = ReleaseEngine(self.ledger, self.token_ledger, self.emitter, self.rules)

    # -- vault lifecycle ------------------------------------------------

    def initialize_vault(self, caller: str, total_amount: int, milestone_count: int, name: str,
                         recipient: Optional[str] = None, validators=(), proposers=(),
                         nonce: Optional[str] = None, description: str = "",
                         category: Optional[str] = None, location: str = "",
                         milestones=None) -> VaultRecord:
        """Create a vault controlled by `caller`"""
        try:
            vault = VaultRecord.initialize(
                authority=caller,
                total_amount=total_amount,
                milestone_count=milestone_count,
                name=name,
                recipient=recipient,
                validators=validators,
                proposers=proposers,
                nonce=nonce,
                description=description,
                category=category,
                location=location,
                milestones=milestones
            )
            if vault.validators and len(vault.validators) < self.rules.quorum_threshold:
                raise InvalidVaultConfig(
                    f"{len(vault.validators)} validators can never reach a quorum of {self.rules.quorum_threshold}"
                )

            address = vault_address(vault.vault_id)
            with self.ledger.transaction(address) as txn:
                if txn.read(address) is not None:
                    raise InvalidVaultConfig(f"Vault {vault.vault_id[:16]}... already exists")

                self.token_ledger.open_account(vault.custodial_account, vault.vault_id)
                txn.write(address, vault)
                txn.after_commit(lambda: self.emitter.emit(VaultInitialized(
                    vault_id=vault.vault_id,
                    authority=vault.authority,
                    total_amount=vault.total_amount,
                    milestone_count=vault.milestone_count,
                    name=vault.name
                )))
        except EscrowError as e:
            logger.log_error("vault.initialize", e, {"name": name})
            raise

        logger.log_vault_operation("initialize", vault.vault_id, details={
            "total_amount": total_amount, "milestone_count": milestone_count
        })
        return self.ledger.get(address)

    def fund_vault(self, caller: str, vault_id: str, funding_account: str) -> Dict[str, Any]:
        """Deposit the vault's whole budget from the funder's token account"""
        address = vault_address(vault_id)
        try:
            with self.ledger.transaction(address) as txn:
                vault = self._read_vault(txn, vault_id)

                if caller != vault.authority:
                    raise Unauthorized("Only the vault authority can fund the vault")
                if vault.funded:
                    raise InvalidVaultConfig("Vault is already funded")

                txn.write(address, vault.with_funding())
                txn.validate()
                receipt = self.engine.transfer_funds(
                    funding_account, vault.custodial_account, caller, vault.total_amount
                )
                txn.after_commit(lambda: self.emitter.emit(VaultFunded(vault_id, vault.total_amount)))
        except EscrowError as e:
            logger.log_error("vault.fund", e, {"vault_id": vault_id[:16]})
            raise

        logger.log_vault_operation("fund", vault_id, details={"amount": vault.total_amount})
        return receipt

    # -- milestone transitions ------------------------------------------

    def submit_proof(self, caller: str, vault_id: str, milestone_index: int,
                     proof_reference: str, confidence_score: Optional[float] = None) -> MilestoneRecord:
        """Attach evidence to a milestone; resubmission overwrites until release"""
        try:
            if confidence_score is not None and (
                    isinstance(confidence_score, bool)
                    or not isinstance(confidence_score, (int, float))
                    or not 0 <= confidence_score <= 100):
                raise InvalidProof(f"Confidence score must be between 0 and 100, got {confidence_score!r}")
            if not isinstance(proof_reference, str) or not proof_reference.strip():
                raise InvalidProof()
            if len(proof_reference) > MAX_PROOF_LENGTH:
                raise InvalidProof(f"Proof reference exceeds {MAX_PROOF_LENGTH} characters")

            vault = self._require_vault(vault_id)
            self._require_index(vault, milestone_index)
            if not vault.may_submit_proof(caller):
                raise Unauthorized("Caller is not a designated proof submitter")

            address = milestone_address(vault_id, milestone_index)
            with self.ledger.transaction(address) as txn:
                milestone = txn.read(address) or self._empty_milestone(vault, milestone_index)
                txn.write(address, milestone.with_proof(milestone_index, proof_reference, confidence_score))
                txn.after_commit(lambda: self.emitter.emit(ProofSubmitted(
                    vault_id, milestone_index, proof_reference, caller
                )))
        except EscrowError as e:
            logger.log_error("milestone.submit_proof", e, {"vault_id": vault_id[:16], "index": milestone_index})
            raise

        logger.log_milestone_operation("submit_proof", vault_id, milestone_index, caller, details={
            "proof_reference": proof_reference[:24]
        })
        return self.ledger.get(address)

    def approve_milestone(self, caller: str, vault_id: str, milestone_index: int) -> MilestoneRecord:
        """Record the caller's approval; repeated approvals count once"""
        try:
            vault = self._require_vault(vault_id)
            self._require_index(vault, milestone_index)
            if not vault.may_approve(caller):
                raise Unauthorized("Caller is not a validator of this vault")

            address = milestone_address(vault_id, milestone_index)
            with self.ledger.transaction(address) as txn:
                milestone = txn.read(address)
                if milestone is None:
                    raise MilestoneNotFound(f"Milestone {milestone_index} has no proof yet")
                if milestone.released and not self.rules.allow_approval_after_release:
                    raise AlreadyReleased("Cannot approve a released milestone")

                updated = milestone.with_approval(caller, self.rules.max_approvals)
                if updated is not milestone:
                    txn.write(address, updated)
                    txn.after_commit(lambda: self.emitter.emit(MilestoneApproved(
                        vault_id, milestone_index, caller, updated.approval_count
                    )))
        except EscrowError as e:
            logger.log_error("milestone.approve", e, {"vault_id": vault_id[:16], "index": milestone_index})
            raise

        if updated is milestone:
            reason = "duplicate" if milestone.has_approved(caller) else "approval cap reached"
            logger.log_milestone_operation("approve", vault_id, milestone_index, caller,
                                           status="ignored", details={"reason": reason})
        else:
            logger.log_milestone_operation("approve", vault_id, milestone_index, caller, details={
                "approvals": updated.approval_count
            })
        return self.ledger.get(address)

    def release_funds(self, caller: str, vault_id: str, milestone_index: int, milestone_amount: int,
                      recipient_account: Optional[str] = None) -> MilestoneReleased:
        """Release one milestone's allotment to the recipient"""
        vault = self._require_vault(vault_id)
        recipient = recipient_account or vault.recipient
        if recipient is None:
            raise InvalidVaultConfig("No recipient account given and none bound to the vault")

        return self.engine.release(vault_id, milestone_index, milestone_amount, caller, recipient)

    # -- reads ----------------------------------------------------------

    def get_vault(self, vault_id: str) -> Optional[VaultRecord]:
        return self.ledger.get(vault_address(vault_id))

    def get_milestone(self, vault_id: str, milestone_index: int) -> Optional[MilestoneRecord]:
        return self.ledger.get(milestone_address(vault_id, milestone_index))

    def list_milestones(self, vault_id: str) -> List[Optional[MilestoneRecord]]:
        """Records for every index, None where nothing was submitted yet"""
        vault = self._require_vault(vault_id)
        return [self.get_milestone(vault_id, i) for i in range(vault.milestone_count)]

    def milestone_status(self, vault_id: str, milestone_index: int) -> MilestoneStatus:
        vault = self._require_vault(vault_id)
        self._require_index(vault, milestone_index)
        milestone = self.get_milestone(vault_id, milestone_index)
        if milestone is None:
            return MilestoneStatus.PENDING
        return milestone.status(self.rules.quorum_threshold)

    def vault_summary(self, vault_id: str) -> Dict[str, Any]:
        """Vault state with per-milestone progress"""
        vault = self._require_vault(vault_id)
        milestones = []
        for index, milestone in enumerate(self.list_milestones(vault_id)):
            if milestone is None:
                milestone = self._empty_milestone(vault, index)
            data = milestone.to_dict()
            data['status'] = milestone.status(self.rules.quorum_threshold).value
            milestones.append(data)

        summary = vault.to_dict()
        summary['commitment_hash'] = vault.commitment_hash()
        summary['custodial_balance'] = self.token_ledger.balance_of(vault.custodial_account)
        summary['quorum_threshold'] = self.rules.quorum_threshold
        summary['milestones'] = milestones
        return summary

    # -- helpers --------------------------------------------------------

    def _require_vault(self, vault_id: str) -> VaultRecord:
        vault = self.get_vault(vault_id)
        if vault is None:
            raise VaultNotFound(f"Vault {str(vault_id)[:16]}... not found")
        return vault

    def _read_vault(self, txn, vault_id: str) -> VaultRecord:
        vault = txn.read(vault_address(vault_id))
        if vault is None:
            raise VaultNotFound(f"Vault {str(vault_id)[:16]}... not found")
        return vault

    @staticmethod
    def _empty_milestone(vault: VaultRecord, milestone_index: int) -> MilestoneRecord:
        plan = vault.plan_for(milestone_index)
        if plan is None:
            return MilestoneRecord.empty(vault.vault_id, milestone_index)
        return MilestoneRecord.empty(vault.vault_id, milestone_index, plan.description, plan.amount)

    @staticmethod
    def _require_index(vault: VaultRecord, milestone_index: int) -> None:
        if not vault.is_valid_index(milestone_index):
            raise InvalidMilestoneIndex(
                f"Milestone index {milestone_index!r} outside [0, {vault.milestone_count})"
            )
