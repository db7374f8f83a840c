"""
PIN Credential Module

Salted SHA-256 hashing of account PINs. Only the salt and the hex digest
are ever stored; the plaintext PIN never leaves the call that hashes it.
"""

from dataclasses import dataclass
from typing import Any, Dict
import base64
import hashlib
import hmac
import secrets

MIN_SALT_BYTES = 16


def _hash_pin(plain_pin: str, salt: bytes) -> str:
    """SHA-256 over salt followed by the UTF-8 PIN bytes, hex encoded"""
    digest = hashlib.sha256()
    digest.update(salt)
    digest.update(plain_pin.encode('utf-8'))
    return digest.hexdigest()


@dataclass(frozen=True)
class PinCredential:
    """
    Immutable salted PIN hash.

    Rotation produces a new credential with a fresh salt; the previous one
    is simply dropped, so no PIN history is kept.
    """
    salt: bytes
    pin_hash: str

    def __repr__(self) -> str:
        return "PinCredential(salt=<hidden>, pin_hash=<hidden>)"

    @classmethod
    def create(cls, plain_pin: str, salt_bytes: int = MIN_SALT_BYTES) -> 'PinCredential':
        """
        Hash a PIN under a freshly generated salt

        Args:
            plain_pin: PIN as entered by the holder
            salt_bytes: Salt length, never less than 16 bytes

        Raises:
            ValueError: If the PIN is empty or the salt too short
        """
        if not isinstance(plain_pin, str) or not plain_pin:
            raise ValueError("PIN must be a non-empty string")
        if salt_bytes < MIN_SALT_BYTES:
            raise ValueError(f"Salt must be at least {MIN_SALT_BYTES} bytes")

        salt = secrets.token_bytes(salt_bytes)
        return cls(salt=salt, pin_hash=_hash_pin(plain_pin, salt))

    def verify(self, plain_pin: str) -> bool:
        """Check a candidate PIN against the stored hash"""
        if not isinstance(plain_pin, str) or not plain_pin:
            return False
        candidate = _hash_pin(plain_pin, self.salt)
        return hmac.compare_digest(candidate, self.pin_hash)

    def rotate(self, new_pin: str) -> 'PinCredential':
        """Return a credential for a new PIN with its own fresh salt"""
        return PinCredential.create(new_pin, salt_bytes=max(len(self.salt), MIN_SALT_BYTES))

    def to_dict(self) -> Dict[str, str]:
        return {
            'salt': base64.b64encode(self.salt).decode('ascii'),
            'pin_hash': self.pin_hash
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PinCredential':
        salt = base64.b64decode(data['salt'], validate=True)
        pin_hash = data['pin_hash']
        if len(salt) < MIN_SALT_BYTES or not isinstance(pin_hash, str):
            raise ValueError("Malformed PIN credential")
        return cls(salt=salt, pin_hash=pin_hash)
