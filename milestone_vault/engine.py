"""
Release engine - the one transition that moves escrowed funds.

A release reads the vault and milestone under a single ledger transaction,
re-checks every precondition, stages the released flag and the new running
totals, and confirms the staged writes will commit before asking the token
ledger to transfer the allotment (signed by the vault itself, never by the
caller). The transfer is the last step that can fail; if any step raises,
nothing is written and no event is emitted.
"""

from .errors import EscrowError, MilestoneNotFound, TransferFailed, VaultNotFound
from .events import MilestoneReleased
from .ledger import milestone_address, vault_address
from .log import logger
from .predicate import ReleasePredicate, ReleaseRequest
from .rules import ReleaseRules


class ReleaseEngine:
    """Validates and commits milestone releases"""

    def __init__(self, ledger, token_ledger, emitter, rules: ReleaseRules = None):
        self.ledger = ledger
        self.token_ledger = token_ledger
        self.emitter = emitter
        self.rules = rules or ReleaseRules.default()

    def release(self, vault_id: str, milestone_index: int, amount: int,
                caller: str, recipient_account: str) -> MilestoneReleased:
        """Release `amount` for one milestone, exactly once"""
        request = ReleaseRequest(
            milestone_index=milestone_index,
            amount=amount,
            caller=caller,
            recipient_account=recipient_account
        )

        try:
            event = self._release(vault_id, request)
        except EscrowError as e:
            logger.log_error("milestone.release", e, {
                "vault_id": vault_id[:16], "index": milestone_index, "amount": amount
            })
            raise

        logger.log_milestone_operation("release", vault_id, milestone_index, caller, details={
            "amount": amount, "transaction_id": event.transaction_id
        })
        return event

    def _release(self, vault_id: str, request: ReleaseRequest) -> MilestoneReleased:
        v_addr = vault_address(vault_id)
        m_addr = milestone_address(vault_id, request.milestone_index)

        with self.ledger.transaction(v_addr, m_addr) as txn:
            vault = txn.read(v_addr)
            if vault is None:
                raise VaultNotFound(f"Vault {vault_id[:16]}... not found")

            milestone = txn.read(m_addr)
            if milestone is None:
                raise MilestoneNotFound(f"Milestone {request.milestone_index} has no record yet")

            ReleasePredicate(vault, milestone, self.rules, request).check()

            txn.write(m_addr, milestone.mark_released())
            txn.write(v_addr, vault.with_release(request.amount))
            txn.validate()

            receipt = self._transfer(vault, request)

            event = MilestoneReleased(
                vault_id=vault.vault_id,
                milestone_index=milestone.index,
                amount=request.amount,
                recipient_account=request.recipient_account,
                transaction_id=receipt.get('transaction_id') if isinstance(receipt, dict) else None
            )
            txn.after_commit(lambda: self.emitter.emit(event))

        return event

    def _transfer(self, vault, request: ReleaseRequest):
        return self.transfer_funds(
            vault.custodial_account,
            request.recipient_account,
            vault.vault_id,
            request.amount
        )

    def transfer_funds(self, from_account: str, to_account: str, authority: str, amount: int):
        """Call the token ledger, reporting any refusal as TransferFailed"""
        try:
            return self.token_ledger.transfer(from_account, to_account, authority, amount)
        except TransferFailed:
            raise
        except Exception as e:
            raise TransferFailed(f"Token transfer errored: {e}") from e
