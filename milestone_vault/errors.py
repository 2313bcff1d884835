"""
Error taxonomy for milestone vault operations.

Every failure aborts the current transition and reaches the caller unchanged.
Nothing here is retried.
"""


class EscrowError(ValueError):
    """Base class for all vault rule violations"""

    code = "escrow_error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    default_message = "Escrow operation rejected"


class AlreadyReleased(EscrowError):
    code = "already_released"
    default_message = "Milestone already released."


class InsufficientApprovals(EscrowError):
    code = "insufficient_approvals"
    default_message = "Minimum number of approvals not reached."


class AccountingOverflow(EscrowError):
    code = "accounting_overflow"
    default_message = "Released amount would overflow the accounting range."


class BudgetExceeded(EscrowError):
    code = "budget_exceeded"
    default_message = "Release would exceed the vault's total budget."


class TransferFailed(EscrowError):
    code = "transfer_failed"
    default_message = "Token transfer was declined."


class InvalidVaultConfig(EscrowError):
    code = "invalid_vault_config"
    default_message = "Invalid vault configuration."


class InvalidAmount(EscrowError):
    code = "invalid_amount"
    default_message = "Amount must be an unsigned 64-bit integer."


class InvalidProof(EscrowError):
    code = "invalid_proof"
    default_message = "Proof reference must be a non-empty string."


class InvalidMilestoneIndex(EscrowError):
    code = "invalid_milestone_index"
    default_message = "Milestone index is out of range or inconsistent."


class MilestoneNotFound(EscrowError):
    code = "milestone_not_found"
    default_message = "Milestone not found."


class VaultNotFound(EscrowError):
    code = "vault_not_found"
    default_message = "Vault not found."


class Unauthorized(EscrowError):
    code = "unauthorized"
    default_message = "Caller is not allowed to perform this operation."


class StaleRecord(EscrowError):
    code = "stale_record"
    default_message = "Record changed since it was read."
