"""
ICU SL4 Decision Verification

Lets a third party confirm a persisted decision document after the fact,
without re-running the engine:

    1. Verify the proof-pack signature against its embedded public key
    2. Recompute ast_hash from the embedded assessment
    3. Recompute input_hash from the original Input (when supplied)
    4. Recompute policy_hash from the policy (when supplied)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .errors import SL4Error
from .hashing import assessment_hash, input_hash
from .logging_config import audit_log
from .models import Input
from .policy import Policy
from .proof_pack import verify_proof_pack


class VerificationOutcome(str, Enum):
    VALID = "VALID"
    INVALID = "INVALID"


@dataclass
class VerificationResult:
    """Result of verifying a decision document."""
    outcome: VerificationOutcome
    reason: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def is_valid(self) -> bool:
        return self.outcome == VerificationOutcome.VALID

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"outcome": self.outcome.value}
        if self.reason is not None:
            d["reason"] = self.reason
        if self.details:
            d["details"] = self.details
        return d

    @classmethod
    def valid(cls) -> 'VerificationResult':
        return cls(outcome=VerificationOutcome.VALID)

    @classmethod
    def invalid(cls, reason: str, details: Dict[str, Any] = None) -> 'VerificationResult':
        return cls(outcome=VerificationOutcome.INVALID, reason=reason, details=details)


def verify_decision(
    document: Dict[str, Any],
    input: Optional[Input] = None,
    policy: Optional[Policy] = None
) -> VerificationResult:
    """
    Verify a decision document {ast, decision, proof_pack, frontier}.

    Args:
        document: The decision document as persisted
        input: The original observation, to check input_hash
        policy: The policy, to check policy_hash

    Returns:
        VerificationResult; never raises for a malformed document
    """
    result = _verify(document, input, policy)
    pubkey = None
    if isinstance(document, dict) and isinstance(document.get("proof_pack"), dict):
        sign = document["proof_pack"].get("sign")
        if isinstance(sign, dict):
            pubkey = sign.get("pubkey")
    audit_log.verification_result(result.is_valid(), result.reason, pubkey)
    return result


def _verify(
    document: Dict[str, Any],
    input: Optional[Input],
    policy: Optional[Policy]
) -> VerificationResult:
    if not isinstance(document, dict):
        return VerificationResult.invalid("decision document must be an object")

    pp = document.get("proof_pack")
    if not isinstance(pp, dict):
        return VerificationResult.invalid("missing proof_pack")

    # Step 1: signature
    try:
        verify_proof_pack(pp)
    except SL4Error as e:
        return VerificationResult.invalid(e.message, {"code": e.code})

    # Step 2: ast_hash
    ast = document.get("ast")
    if ast is not None:
        try:
            computed = assessment_hash(ast)
        except SL4Error as e:
            return VerificationResult.invalid(e.message, {"code": e.code})
        if computed != pp.get("ast_hash"):
            return VerificationResult.invalid(
                "ast hash mismatch",
                {"computed": computed, "declared": pp.get("ast_hash")}
            )

    # Step 3: input_hash
    if input is not None:
        computed = input_hash(input.to_dict())
        if computed != pp.get("input_hash"):
            return VerificationResult.invalid(
                "input hash mismatch",
                {"computed": computed, "declared": pp.get("input_hash")}
            )

    # Step 4: policy_hash
    if policy is not None:
        computed = policy.get_hash()
        if computed != pp.get("policy_hash"):
            return VerificationResult.invalid(
                "policy hash mismatch",
                {"computed": computed, "declared": pp.get("policy_hash")}
            )

    return VerificationResult.valid()
