"""
ICU SL4 Proof Pack

Binds a decision to the exact input, assessment, policy, build and
configuration that produced it. The signature covers the canonical form of
the unsigned envelope:

    {input_hash, ast_hash, policy_hash, binary_hash, config_hash,
     decision_time, tsa_token: null, sign: null, link_prev: <link or null>}

Verification rebuilds that envelope from a stored pack by nulling the
signature and time-anchor fields while keeping the stored chain link, so a
time-anchor token attached later does not invalidate the signature.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .canonicalization import canonicalize
from .errors import SerializationError, SignatureVerificationError
from .hashing import assessment_hash, input_hash
from .models import Assessment, Input
from .signing import SIGNATURE_ALGORITHM, KeyPair, verify_signature


@dataclass(frozen=True)
class SignatureBlock:
    alg: str
    pubkey: str
    sig: str

    def to_dict(self) -> Dict[str, Any]:
        return {"alg": self.alg, "pubkey": self.pubkey, "sig": self.sig}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SignatureBlock':
        if not isinstance(data, dict):
            raise SignatureVerificationError("missing sign block")
        for key in ("alg", "pubkey", "sig"):
            if not isinstance(data.get(key), str):
                raise SignatureVerificationError(f"missing sign.{key}")
        return cls(alg=data["alg"], pubkey=data["pubkey"], sig=data["sig"])


@dataclass(frozen=True)
class ProofPack:
    """
    Signed bundle of content identifiers. Immutable once built.

    tsa_token and link_prev are populated later by collaborators (time-anchor
    service, ledger) and are None when the pack leaves the builder.
    """
    input_hash: str
    ast_hash: str
    policy_hash: str
    binary_hash: str
    config_hash: str
    decision_time: str
    sign: SignatureBlock
    tsa_token: Optional[str] = None
    link_prev: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_hash": self.input_hash,
            "ast_hash": self.ast_hash,
            "policy_hash": self.policy_hash,
            "binary_hash": self.binary_hash,
            "config_hash": self.config_hash,
            "decision_time": self.decision_time,
            "tsa_token": self.tsa_token,
            "sign": self.sign.to_dict(),
            "link_prev": self.link_prev,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProofPack':
        if not isinstance(data, dict):
            raise SignatureVerificationError("proof pack must be an object")
        return cls(
            input_hash=data.get("input_hash"),
            ast_hash=data.get("ast_hash"),
            policy_hash=data.get("policy_hash"),
            binary_hash=data.get("binary_hash"),
            config_hash=data.get("config_hash"),
            decision_time=data.get("decision_time"),
            sign=SignatureBlock.from_dict(data.get("sign")),
            tsa_token=data.get("tsa_token"),
            link_prev=data.get("link_prev"),
        )


def unsigned_envelope(
    input_hash: str,
    ast_hash: str,
    policy_hash: str,
    binary_hash: str,
    config_hash: str,
    decision_time: str,
    link_prev: Optional[str] = None
) -> Dict[str, Any]:
    """The document whose canonical bytes are signed."""
    return {
        "input_hash": input_hash,
        "ast_hash": ast_hash,
        "policy_hash": policy_hash,
        "binary_hash": binary_hash,
        "config_hash": config_hash,
        "decision_time": decision_time,
        "tsa_token": None,
        "sign": None,
        "link_prev": link_prev,
    }


def build_proof_pack(
    input: Input,
    assessment: Assessment,
    policy_hash: str,
    binary_hash: str,
    config_hash: str,
    decision_time: str,
    keypair: KeyPair
) -> ProofPack:
    """
    Hash, canonicalize and sign.

    Args:
        input: The original observation
        assessment: The agreed assessment
        policy_hash: Content identifier of the policy
        binary_hash: Content identifier of the executing build
        config_hash: Content identifier of the active configuration
        decision_time: Caller-supplied timestamp (RFC 3339)
        keypair: Ed25519 signing key pair

    Returns:
        Signed ProofPack with null tsa_token and link_prev
    """
    computed_input_hash = input_hash(input.to_dict())
    computed_ast_hash = assessment_hash(assessment.to_dict())

    envelope = unsigned_envelope(
        computed_input_hash,
        computed_ast_hash,
        policy_hash,
        binary_hash,
        config_hash,
        decision_time,
    )
    signature = keypair.sign(canonicalize(envelope))

    return ProofPack(
        input_hash=computed_input_hash,
        ast_hash=computed_ast_hash,
        policy_hash=policy_hash,
        binary_hash=binary_hash,
        config_hash=config_hash,
        decision_time=decision_time,
        sign=SignatureBlock(
            alg=SIGNATURE_ALGORITHM,
            pubkey=keypair.public_key_hex,
            sig=signature.hex(),
        ),
    )


def verify_proof_pack(proof_pack: Dict[str, Any]) -> None:
    """
    Check a stored proof pack against its own embedded public key.

    Raises:
        SignatureVerificationError: on any mismatch, malformed hex, or
            wrong-length key/signature material
    """
    pp = ProofPack.from_dict(proof_pack)
    if pp.sign.alg != SIGNATURE_ALGORITHM:
        raise SignatureVerificationError(
            f"unsupported signature algorithm: {pp.sign.alg}",
            {"alg": pp.sign.alg}
        )

    envelope = unsigned_envelope(
        pp.input_hash,
        pp.ast_hash,
        pp.policy_hash,
        pp.binary_hash,
        pp.config_hash,
        pp.decision_time,
        link_prev=pp.link_prev,
    )
    # A tampered pack may carry values with no canonical form
    try:
        message = canonicalize(envelope)
    except SerializationError as e:
        raise SignatureVerificationError(f"canonical error: {e}") from e

    verify_signature(message, pp.sign.sig, pp.sign.pubkey)
