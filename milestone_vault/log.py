"""
Structured operation logging for vault transitions.
"""

import logging
from typing import Any, Dict

from .config import LOG_LEVEL


class StructuredLogger:
    """Logs vault operations as `Operation: ..., Status: ..., Details: ...` lines."""

    def __init__(self, name: str = "milestone_vault"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status == "failed":
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_vault_operation(self, operation: str, vault_id: str, status: str = "success", details: Dict[str, Any] = None):
        """Log an operation against a vault record."""
        log_details = {"vault_id": _short(vault_id)}
        if details:
            log_details.update(details)

        self.log_operation(f"vault.{operation}", status, log_details)

    def log_milestone_operation(self, operation: str, vault_id: str, index: int,
                                caller: str = None, status: str = "success",
                                details: Dict[str, Any] = None):
        """Log an operation against a milestone record."""
        log_details = {"vault_id": _short(vault_id), "index": index}
        if caller is not None:
            log_details["caller"] = _short(caller)
        if details:
            log_details.update(details)

        self.log_operation(f"milestone.{operation}", status, log_details)

    def log_error(self, operation: str, error: Exception, details: Dict[str, Any] = None):
        """Log a rejected operation with its error code."""
        log_details = {"error": str(error), "code": getattr(error, "code", type(error).__name__)}
        if details:
            log_details.update(details)

        self.log_operation(operation, "failed", log_details)


def _short(identity: str) -> str:
    if identity and len(identity) > 16:
        return identity[:16] + "..."
    return identity


logger = StructuredLogger()
