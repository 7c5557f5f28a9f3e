"""
ICU SL4 Decision Engine

Version: 0.1.0

Deterministic, auditable clinical decision support for acute hypoxemia.

Each observation is assessed by two independently written extraction
channels. Their outputs must agree exactly before anything is released; on
any disagreement the call fails closed with no decision and no proof.

Every released decision carries a proof pack that binds it, by BLAKE3 content
identifier, to the exact input, assessment, policy, build and configuration
that produced it, signed with Ed25519 over a canonical JSON encoding.

Usage:
    from icu_sl4 import Input, KeyPair, decide, load_policy_yaml, verify_decision

    policy = load_policy_yaml("policies/hypoxemia_acute.yaml")
    keypair = KeyPair.from_key_file("secrets/key.json")

    outcome = decide(
        Input(text="saturação 85%, taquicárdico", measured={"spo2_pct": 85, "hr_bpm": 125}),
        policy,
        binary_hash="blake3:demo-binary",
        config_hash="blake3:demo-config",
        keypair=keypair,
        decision_time="2025-01-01T00:00:00Z",
    )

    document = outcome.to_dict()   # {ast, decision, proof_pack, frontier}
    assert verify_decision(document).is_valid()
"""

__version__ = "0.1.0"

# Errors
from .errors import (
    SL4Error,
    PolicyParseError,
    KeyFormatError,
    DivergenceError,
    SerializationError,
    SignatureVerificationError,
    LedgerIOError,
    InputFormatError,
)

# Canonicalization and hashing
from .canonicalization import canonicalize, canonicalize_str, CANONICAL_FORM_VERSION
from .hashing import (
    blake3_hash,
    document_hash,
    input_hash,
    assessment_hash,
    policy_hash,
    verify_hash,
)

# Data model
from .models import (
    Input,
    Action,
    Severity,
    Assessment,
    Decision,
    FrontierCert,
    sort_actions,
)

# Extraction and consensus
from .channels import channel_a, channel_b
from .consensus import compare_assessments, require_consensus

# Policy
from .policy import Policy, apply_policy, load_policy_yaml, parse_policy_yaml

# Signing and proof packs
from .signing import KeyPair, verify_signature
from .proof_pack import ProofPack, SignatureBlock, build_proof_pack, verify_proof_pack

# Pipeline
from .frontier import frontier_certificates
from .engine import DecisionEngine, DecisionOutcome, decide

# Verification
from .verifier import VerificationOutcome, VerificationResult, verify_decision


__all__ = [
    # Version
    "__version__",

    # Errors
    "SL4Error",
    "PolicyParseError",
    "KeyFormatError",
    "DivergenceError",
    "SerializationError",
    "SignatureVerificationError",
    "LedgerIOError",
    "InputFormatError",

    # Canonicalization
    "canonicalize",
    "canonicalize_str",
    "CANONICAL_FORM_VERSION",

    # Hashing
    "blake3_hash",
    "document_hash",
    "input_hash",
    "assessment_hash",
    "policy_hash",
    "verify_hash",

    # Data model
    "Input",
    "Action",
    "Severity",
    "Assessment",
    "Decision",
    "FrontierCert",
    "sort_actions",

    # Extraction and consensus
    "channel_a",
    "channel_b",
    "compare_assessments",
    "require_consensus",

    # Policy
    "Policy",
    "apply_policy",
    "load_policy_yaml",
    "parse_policy_yaml",

    # Signing
    "KeyPair",
    "verify_signature",
    "ProofPack",
    "SignatureBlock",
    "build_proof_pack",
    "verify_proof_pack",

    # Pipeline
    "frontier_certificates",
    "DecisionEngine",
    "DecisionOutcome",
    "decide",

    # Verifier
    "VerificationOutcome",
    "VerificationResult",
    "verify_decision",
]
