"""
Proof artifacts and the content-hash references stored on milestones
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict

from cryptography.hazmat.primitives import hashes

PROOF_REFERENCE_PREFIX = "sha256:"


def compute_proof_reference(content: bytes) -> str:
    """SHA-256 content hash of an evidence artifact"""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(content)
    return PROOF_REFERENCE_PREFIX + digest.finalize().hex()


@dataclass
class ProofArtifact:
    """Evidence of milestone completion kept outside the vault"""
    content: bytes
    media_type: str = "application/octet-stream"
    metadata: Dict[str, Any] = field(default_factory=dict)  # e.g. gps, timestamp

    @property
    def reference(self) -> str:
        """Reference covering the content and its metadata"""
        digest = hashes.Hash(hashes.SHA256())
        digest.update(self.content)
        digest.update(self.media_type.encode())
        digest.update(json.dumps(self.metadata, sort_keys=True).encode())
        return PROOF_REFERENCE_PREFIX + digest.finalize().hex()

    def matches(self, proof_reference: str) -> bool:
        return proof_reference == self.reference
