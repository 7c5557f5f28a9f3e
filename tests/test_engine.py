"""
End-to-end decision pipeline.
"""

import dataclasses
import unittest

from icu_sl4 import (
    Action,
    DecisionEngine,
    Input,
    KeyPair,
    Policy,
    Severity,
    canonicalize,
    decide,
    input_hash,
    load_policy_yaml,
    policy_hash,
    verify_proof_pack,
)


SECRET_HEX = "000102030405060708090a0b0c0d0e0f101112131415161718191a1b1c1d1e1f"
DECISION_TIME = "2025-01-01T00:00:00Z"


class TestDecide(unittest.TestCase):

    def setUp(self):
        self.policy = load_policy_yaml("policies/hypoxemia_acute.yaml")
        self.keypair = KeyPair.from_secret_hex(SECRET_HEX)
        self.input = Input(
            text="saturação 85%, taquicárdico, sudorese",
            measured={"spo2_pct": 85, "hr_bpm": 125},
        )

    def run_decide(self, inp=None, **kwargs):
        return decide(
            inp or self.input,
            self.policy,
            kwargs.get("binary_hash", "blake3:demo-binary"),
            kwargs.get("config_hash", "blake3:demo-config"),
            self.keypair,
            kwargs.get("decision_time", DECISION_TIME),
        )

    def test_end_to_end_example(self):
        out = self.run_decide()

        self.assertEqual(
            set(out.ast.signals),
            {"hypoxemia", "severe_hypoxemia", "tachycardia", "diaphoresis"}
        )
        self.assertEqual(out.ast.severity, Severity.CRITICAL)
        self.assertEqual(
            [a.name for a in out.ast.actions],
            ["call_attending", "increase_O2_100", "prepare_intubation_kit"]
        )
        self.assertEqual(
            [a.name for a in out.decision.actions],
            ["call_attending", "increase_O2_100", "prepare_intubation_kit"]
        )
        self.assertTrue(out.decision.require_human_ack)
        self.assertEqual(out.decision.hazards, ["HYPOXEMIA_CRITICAL"])
        self.assertEqual(out.decision.sensitivity_bias, "ZFN")
        self.assertEqual([c.margin_to_flip for c in out.frontier], [5.0, 0.0, 25.0])

    def test_proof_pack_binds_inputs(self):
        out = self.run_decide()
        pp = out.proof_pack
        self.assertEqual(pp.input_hash, input_hash(self.input.to_dict()))
        self.assertEqual(pp.policy_hash, self.policy.get_hash())
        self.assertEqual(pp.binary_hash, "blake3:demo-binary")
        self.assertEqual(pp.config_hash, "blake3:demo-config")
        self.assertEqual(pp.decision_time, DECISION_TIME)
        verify_proof_pack(pp.to_dict())

    def test_document_shape(self):
        doc = self.run_decide().to_dict()
        self.assertEqual(sorted(doc), ["ast", "decision", "frontier", "proof_pack"])
        self.assertNotIn("deadline_s", doc["ast"]["actions"][0])
        self.assertIn("deadline_s", doc["decision"]["actions"][0])
        self.assertNotIn("normative", doc["ast"])

    def test_deterministic(self):
        """Identical arguments give byte-identical documents, signature included."""
        a = canonicalize(self.run_decide().to_dict())
        b = canonicalize(self.run_decide().to_dict())
        self.assertEqual(a, b)

    def test_decision_time_changes_only_signature_and_time(self):
        a = self.run_decide().to_dict()
        b = self.run_decide(decision_time="2025-01-01T00:00:01Z").to_dict()
        self.assertEqual(a["ast"], b["ast"])
        self.assertEqual(a["decision"], b["decision"])
        self.assertEqual(a["proof_pack"]["input_hash"], b["proof_pack"]["input_hash"])
        self.assertNotEqual(a["proof_pack"]["sign"]["sig"], b["proof_pack"]["sign"]["sig"])

    def test_routine_decision(self):
        out = self.run_decide(Input(text="estável", measured={"spo2_pct": 97, "hr_bpm": 80}))
        self.assertEqual(out.ast.severity, Severity.ROUTINE)
        self.assertFalse(out.decision.require_human_ack)
        self.assertEqual(out.decision.hazards, [])

    def test_engine_sensitivity_bias(self):
        engine = DecisionEngine(sensitivity_bias="ZFP")
        out = engine.decide(
            self.input, self.policy, "blake3:b", "blake3:c", self.keypair, DECISION_TIME
        )
        self.assertEqual(out.decision.sensitivity_bias, "ZFP")

    def test_decision_logged(self):
        with self.assertLogs("icu_sl4.audit", level="INFO") as logs:
            self.run_decide()
        self.assertTrue(any("DECISION_ISSUED" in line for line in logs.output))

    def test_policy_catalog_cannot_drift_from_signed_hash(self):
        self.run_decide()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            self.policy.actions = self.policy.actions + (Action(name="zzz_new", max_delay_s=5),)
        with self.assertRaises(AttributeError):
            self.policy.actions.append(Action(name="zzz_new", max_delay_s=5))

        out = self.run_decide()
        self.assertEqual(out.proof_pack.policy_hash, policy_hash(self.policy.to_dict()))
        self.assertNotIn("zzz_new", [a.name for a in out.decision.actions])

    def test_changed_catalog_gets_its_own_policy_hash(self):
        first = self.run_decide()
        doc = self.policy.to_dict()
        doc["actions"].append({"name": "zzz_new", "max_delay_s": 5})
        self.policy = Policy.from_dict(doc)

        second = self.run_decide()
        self.assertIn("zzz_new", [a.name for a in second.decision.actions])
        self.assertEqual(second.proof_pack.policy_hash, policy_hash(doc))
        self.assertNotEqual(second.proof_pack.policy_hash, first.proof_pack.policy_hash)


if __name__ == "__main__":
    unittest.main(verbosity=2)
