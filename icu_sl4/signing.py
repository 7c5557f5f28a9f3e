"""
ICU SL4 Cryptographic Signing

Uses Ed25519 (RFC 8032) for proof-pack signing. Key material is a 32-byte
secret seed, hex-encoded; generating and storing it is the operator's job.
"""

import binascii
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from nacl.exceptions import BadSignatureError, ValueError as NaclValueError
from nacl.signing import SigningKey, VerifyKey

from .errors import KeyFormatError, SignatureVerificationError


SIGNATURE_ALGORITHM = "Ed25519"
SECRET_KEY_BYTES = 32
PUBLIC_KEY_BYTES = 32
SIGNATURE_BYTES = 64


def _decode_hex(value: str, what: str, expected_len: int, error_cls):
    if not isinstance(value, str):
        raise error_cls(f"{what} must be a hex string")
    try:
        raw = binascii.unhexlify(value)
    except (binascii.Error, ValueError) as e:
        raise error_cls(f"{what} is not valid hex") from e
    if len(raw) != expected_len:
        raise error_cls(
            f"{what} must be {expected_len} bytes",
            {"expected": expected_len, "observed": len(raw)}
        )
    return raw


@dataclass(frozen=True)
class KeyPair:
    """Ed25519 signing key and its public verification key."""
    signing_key: SigningKey

    @property
    def verify_key(self) -> VerifyKey:
        return self.signing_key.verify_key

    @property
    def public_key_hex(self) -> str:
        return bytes(self.verify_key).hex()

    def sign(self, data: bytes) -> bytes:
        """Sign data, returning the 64-byte detached signature."""
        return self.signing_key.sign(data).signature

    @classmethod
    def from_secret_hex(cls, secret_hex: str) -> 'KeyPair':
        """
        Derive a key pair from a hex-encoded 32-byte secret.

        Raises:
            KeyFormatError: wrong encoding or length
        """
        if isinstance(secret_hex, str):
            secret_hex = secret_hex.strip()
        seed = _decode_hex(secret_hex, "secret key", SECRET_KEY_BYTES, KeyFormatError)
        return cls(signing_key=SigningKey(seed))

    @classmethod
    def from_key_file(cls, path: Union[str, Path]) -> 'KeyPair':
        """Load a key file of the form {"secret_hex": "<64 hex chars>"}."""
        with open(path, "r", encoding="utf-8") as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as e:
                raise KeyFormatError(f"key file is not valid JSON: {e}") from e
        if not isinstance(raw, dict) or "secret_hex" not in raw:
            raise KeyFormatError("key file must contain secret_hex")
        return cls.from_secret_hex(raw["secret_hex"])


def generate_secret_hex() -> str:
    """Generate a random Ed25519 secret seed. Used by the CLI only."""
    return bytes(SigningKey.generate()).hex()


def verify_signature(message: bytes, signature_hex: str, public_key_hex: str) -> None:
    """
    Verify an Ed25519 signature.

    Raises:
        SignatureVerificationError: malformed hex, wrong-length key or
            signature, or a signature that does not verify
    """
    public_key = _decode_hex(public_key_hex, "public key", PUBLIC_KEY_BYTES,
                             SignatureVerificationError)
    signature = _decode_hex(signature_hex, "signature", SIGNATURE_BYTES,
                            SignatureVerificationError)
    try:
        VerifyKey(public_key).verify(message, signature)
    except BadSignatureError as e:
        raise SignatureVerificationError("verify failed: signature mismatch") from e
    except NaclValueError as e:
        raise SignatureVerificationError(f"verify failed: {e}") from e
