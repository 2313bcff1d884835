"""
Runtime configuration, read once from the environment.
"""

import os

# Release policy
QUORUM_THRESHOLD = int(os.getenv("MILESTONE_VAULT_QUORUM_THRESHOLD", "3"))
MAX_APPROVALS = int(os.getenv("MILESTONE_VAULT_MAX_APPROVALS", "16"))
STRICT_APPROVALS = os.getenv("MILESTONE_VAULT_STRICT_APPROVALS", "false").lower() == "true"

# Accounting limits (u64 amounts, u8 milestone counts)
MAX_AMOUNT = 2 ** 64 - 1
MAX_MILESTONES = 255
MAX_NAME_LENGTH = 64
MAX_PROOF_LENGTH = 128
MAX_DESCRIPTION_LENGTH = 256

# Logging
LOG_LEVEL = os.getenv("MILESTONE_VAULT_LOG_LEVEL", "INFO").upper()

# Web interface
AUTH_MAX_SKEW_SEC = int(os.getenv("MILESTONE_VAULT_AUTH_MAX_SKEW_SEC", "300"))
PORT = int(os.getenv("PORT", "10000"))
WEB_DEBUG = os.getenv("MILESTONE_VAULT_WEB_DEBUG", "false").lower() == "true"
