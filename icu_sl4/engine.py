"""
ICU SL4 Decision Pipeline

Implements the end-to-end decision path:

    1. Run extraction channel A and channel B on the same Input
    2. Require consensus (fail closed on any divergence)
    3. Apply the policy to the agreed assessment
    4. Build and sign the proof pack
    5. Compute frontier certificates

The pipeline never reads the clock; decision_time is supplied by the caller.
On divergence nothing is produced and the DivergenceError propagates.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from .channels import Channel, channel_a as default_channel_a, channel_b as default_channel_b
from .consensus import require_consensus
from .frontier import frontier_certificates
from .logging_config import audit_log
from .models import Assessment, Decision, FrontierCert, Input
from .policy import DEFAULT_SENSITIVITY_BIAS, Policy, apply_policy
from .proof_pack import ProofPack, build_proof_pack
from .signing import KeyPair


@dataclass
class DecisionOutcome:
    """Everything released for one decision."""
    ast: Assessment
    decision: Decision
    proof_pack: ProofPack
    frontier: List[FrontierCert]

    def to_dict(self) -> Dict[str, Any]:
        """The decision document as persisted and returned to clients."""
        return {
            "ast": self.ast.to_dict(),
            "decision": self.decision.to_dict(),
            "proof_pack": self.proof_pack.to_dict(),
            "frontier": [c.to_dict() for c in self.frontier],
        }


class DecisionEngine:
    """
    Dual-channel decision engine.

    The channels are injectable so a diverging implementation can be
    substituted to exercise the consensus gate.
    """

    def __init__(
        self,
        channel_a: Channel = default_channel_a,
        channel_b: Channel = default_channel_b,
        sensitivity_bias: str = DEFAULT_SENSITIVITY_BIAS
    ):
        self.channel_a = channel_a
        self.channel_b = channel_b
        self.sensitivity_bias = sensitivity_bias

    def decide(
        self,
        input: Input,
        policy: Policy,
        binary_hash: str,
        config_hash: str,
        keypair: KeyPair,
        decision_time: str
    ) -> DecisionOutcome:
        """
        Produce a signed decision for one observation.

        Args:
            input: The clinical observation
            policy: The protocol to apply
            binary_hash: Identifier of the executing build
            config_hash: Identifier of the active configuration
            keypair: Signing key pair
            decision_time: RFC 3339 timestamp chosen by the caller

        Returns:
            DecisionOutcome

        Raises:
            DivergenceError: the channels disagreed
            SerializationError: a bound document has no canonical form
        """
        ast = require_consensus(self.channel_a(input), self.channel_b(input))

        decision = apply_policy(ast, policy, sensitivity_bias=self.sensitivity_bias)

        proof_pack = build_proof_pack(
            input,
            ast,
            policy.get_hash(),
            binary_hash,
            config_hash,
            decision_time,
            keypair,
        )

        frontier = frontier_certificates(input)

        audit_log.decision_issued(
            input_hash=proof_pack.input_hash,
            ast_hash=proof_pack.ast_hash,
            severity=ast.severity.value,
            require_human_ack=decision.require_human_ack,
        )

        return DecisionOutcome(ast=ast, decision=decision, proof_pack=proof_pack, frontier=frontier)


_default_engine = DecisionEngine()


def decide(
    input: Input,
    policy: Policy,
    binary_hash: str,
    config_hash: str,
    keypair: KeyPair,
    decision_time: str
) -> DecisionOutcome:
    """Run the default engine. See DecisionEngine.decide."""
    return _default_engine.decide(input, policy, binary_hash, config_hash, keypair, decision_time)
