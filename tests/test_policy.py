"""
Policy documents and policy application.
"""

import unittest

import yaml

from icu_sl4 import (
    Assessment,
    PolicyParseError,
    Severity,
    apply_policy,
    load_policy_yaml,
    parse_policy_yaml,
)


POLICY_PATH = "policies/hypoxemia_acute.yaml"


def assessment(severity):
    return Assessment(severity=severity, signals=[], protocols=[], actions=[])


class TestPolicyParsing(unittest.TestCase):

    def setUp(self):
        with open(POLICY_PATH, "r", encoding="utf-8") as f:
            self.doc = yaml.safe_load(f)

    def dump(self):
        return yaml.safe_dump(self.doc)

    def test_load_fixture_policy(self):
        policy = load_policy_yaml(POLICY_PATH)
        self.assertEqual(policy.protocol_id, "hypoxemia_acute")
        self.assertEqual(policy.version, "1.0.0")
        self.assertEqual(policy.severity, Severity.URGENT)
        self.assertEqual(
            [(a.name, a.max_delay_s) for a in policy.actions],
            [("increase_O2_100", 0), ("call_attending", 30), ("prepare_intubation_kit", 60)]
        )

    def test_policy_hash_stable(self):
        a = load_policy_yaml(POLICY_PATH)
        b = parse_policy_yaml(self.dump())
        self.assertTrue(a.get_hash().startswith("blake3:"))
        self.assertEqual(a.get_hash(), b.get_hash())

    def test_policy_hash_changes_with_content(self):
        base = parse_policy_yaml(self.dump()).get_hash()
        self.doc["actions"][0]["max_delay_s"] = 5
        self.assertNotEqual(parse_policy_yaml(self.dump()).get_hash(), base)

    def test_normative_references_default(self):
        del self.doc["normative_references"]
        self.assertEqual(parse_policy_yaml(self.dump()).normative_references, ())

    def test_missing_field(self):
        del self.doc["protocol_id"]
        with self.assertRaises(PolicyParseError) as ctx:
            parse_policy_yaml(self.dump())
        self.assertEqual(ctx.exception.details, {"field": "protocol_id"})

    def test_invalid_yaml(self):
        with self.assertRaises(PolicyParseError):
            parse_policy_yaml("protocol_id: [unclosed")

    def test_not_a_mapping(self):
        with self.assertRaises(PolicyParseError):
            parse_policy_yaml("- just\n- a list\n")

    def test_unknown_severity(self):
        self.doc["severity"] = "HIGH"
        with self.assertRaises(PolicyParseError):
            parse_policy_yaml(self.dump())

    def test_negative_delay(self):
        self.doc["actions"][1]["max_delay_s"] = -1
        with self.assertRaises(PolicyParseError):
            parse_policy_yaml(self.dump())

    def test_missing_delay(self):
        del self.doc["actions"][1]["max_delay_s"]
        with self.assertRaises(PolicyParseError):
            parse_policy_yaml(self.dump())

    def test_triggers_must_be_strings(self):
        self.doc["triggers"] = [1, 2]
        with self.assertRaises(PolicyParseError):
            parse_policy_yaml(self.dump())


class TestApplyPolicy(unittest.TestCase):

    def setUp(self):
        self.policy = load_policy_yaml(POLICY_PATH)

    def test_critical(self):
        d = apply_policy(assessment(Severity.CRITICAL), self.policy)
        self.assertTrue(d.require_human_ack)
        self.assertEqual(d.hazards, ["HYPOXEMIA_CRITICAL"])
        self.assertEqual(d.sensitivity_bias, "ZFN")
        self.assertFalse(d.watchdog_armed)

    def test_urgent(self):
        d = apply_policy(assessment(Severity.URGENT), self.policy)
        self.assertTrue(d.require_human_ack)
        self.assertEqual(d.hazards, ["HYPOXEMIA_MODERATE"])

    def test_routine(self):
        d = apply_policy(assessment(Severity.ROUTINE), self.policy)
        self.assertFalse(d.require_human_ack)
        self.assertEqual(d.hazards, [])

    def test_actions_from_catalog_sorted_with_deadlines(self):
        d = apply_policy(assessment(Severity.ROUTINE), self.policy)
        self.assertEqual(
            [a.to_dict() for a in d.actions],
            [
                {"name": "call_attending", "max_delay_s": 30, "deadline_s": 30},
                {"name": "increase_O2_100", "max_delay_s": 0, "deadline_s": 0},
                {"name": "prepare_intubation_kit", "max_delay_s": 60, "deadline_s": 60},
            ]
        )

    def test_custom_bias(self):
        d = apply_policy(assessment(Severity.URGENT), self.policy, sensitivity_bias="ZFP")
        self.assertEqual(d.sensitivity_bias, "ZFP")


if __name__ == "__main__":
    unittest.main(verbosity=2)
