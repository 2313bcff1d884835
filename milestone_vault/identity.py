"""
Caller identities - secp256k1 key pairs and request signatures

An HTTP request is signed over its method, path, timestamp, nonce and body,
so a captured signature is only good for that one request, once.
"""

import hashlib
import secrets
import threading
import time
from typing import Dict, Optional, Tuple

from ecdsa import BadSignatureError, SECP256k1, SigningKey, VerifyingKey
from ecdsa.keys import MalformedPointError

from .config import AUTH_MAX_SKEW_SEC
from .errors import Unauthorized


def request_message(method: str, path: str, timestamp, nonce: str, body: bytes) -> bytes:
    """Canonical bytes a caller signs for one request"""
    return b"\n".join([
        method.upper().encode(),
        path.encode(),
        str(timestamp).encode(),
        nonce.encode(),
        body or b"",
    ])


class Keypair:
    """Key pair whose compressed public key is the caller identity"""

    def __init__(self, private_key: bytes = None):
        if private_key:
            self.private_key = SigningKey.from_string(private_key, curve=SECP256k1)
        else:
            self.private_key = SigningKey.generate(curve=SECP256k1)

        self.public_key = self.private_key.get_verifying_key()

    @property
    def identity(self) -> str:
        """Compressed public key in hex format"""
        return self.public_key.to_string("compressed").hex()

    def sign(self, message: bytes) -> str:
        """Sign message and return signature in hex"""
        signature = self.private_key.sign(message, hashfunc=hashlib.sha256)
        return signature.hex()

    def sign_request(self, method: str, path: str, body: bytes = b"",
                     timestamp: Optional[int] = None, nonce: Optional[str] = None) -> Dict[str, str]:
        """Authentication headers for one HTTP request"""
        timestamp = int(time.time()) if timestamp is None else timestamp
        nonce = nonce or secrets.token_hex(16)
        return {
            'X-Identity': self.identity,
            'X-Timestamp': str(timestamp),
            'X-Nonce': nonce,
            'X-Signature': self.sign(request_message(method, path, timestamp, nonce, body)),
        }

    @classmethod
    def from_hex(cls, private_hex: str) -> 'Keypair':
        return cls(bytes.fromhex(private_hex))

    @staticmethod
    def generate_key_pair() -> Tuple[str, str]:
        """Generate new key pair and return (private_key_hex, identity_hex)"""
        key = Keypair()
        return key.private_key.to_string().hex(), key.identity


def verify_signature(message: bytes, signature_hex: str, identity: str) -> bool:
    """Verify a hex signature over `message` against a hex public key"""
    try:
        vk = VerifyingKey.from_string(bytes.fromhex(identity), curve=SECP256k1)
        return vk.verify(bytes.fromhex(signature_hex), message, hashfunc=hashlib.sha256)
    except (BadSignatureError, MalformedPointError, ValueError):
        return False


def authenticate(message: bytes, signature_hex: str, identity: str) -> str:
    """Turn a signed message into a verified caller identity"""
    if not identity or not signature_hex:
        raise Unauthorized("Missing identity or signature")

    if not verify_signature(message, signature_hex, identity):
        raise Unauthorized("Signature does not match identity")

    return identity


class RequestAuthenticator:
    """Verifies signed requests and refuses stale or repeated ones.

    A request is accepted only if its timestamp is within `max_skew` seconds
    of the clock and its (identity, nonce) pair has not been seen inside that
    window. Nonces older than the window are forgotten, since their
    timestamps would be refused anyway.
    """

    def __init__(self, max_skew: int = AUTH_MAX_SKEW_SEC, clock=time.time):
        self.max_skew = max_skew
        self.clock = clock
        self._seen: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def authenticate(self, method: str, path: str, body: bytes, identity: str,
                     signature_hex: str, timestamp: str, nonce: str) -> str:
        if not timestamp or not nonce:
            raise Unauthorized("Missing timestamp or nonce")

        try:
            issued_at = int(timestamp)
        except (TypeError, ValueError):
            raise Unauthorized(f"Malformed timestamp {timestamp!r}")

        now = int(self.clock())
        if abs(now - issued_at) > self.max_skew:
            raise Unauthorized("Request timestamp outside the accepted window")

        message = request_message(method, path, issued_at, nonce, body)
        caller = authenticate(message, signature_hex, identity)

        with self._lock:
            self._prune(now)
            key = (caller, nonce)
            if key in self._seen:
                raise Unauthorized("Request nonce already used")
            self._seen[key] = issued_at

        return caller

    def _prune(self, now: int) -> None:
        expired = [key for key, issued_at in self._seen.items() if now - issued_at > self.max_skew]
        for key in expired:
            del self._seen[key]
