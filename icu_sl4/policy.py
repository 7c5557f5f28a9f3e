"""
ICU SL4 Policy Loading and Application

A policy is an operator-authored protocol document (YAML), loaded per call
and treated as immutable input. apply_policy() combines it with the agreed
assessment into the final Decision.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .errors import PolicyParseError
from .hashing import policy_hash
from .models import Action, Assessment, Decision, Severity, sort_actions


DEFAULT_SENSITIVITY_BIAS = "ZFN"

HAZARDS_BY_SEVERITY = {
    Severity.CRITICAL: ["HYPOXEMIA_CRITICAL"],
    Severity.URGENT: ["HYPOXEMIA_MODERATE"],
    Severity.ROUTINE: [],
}

_REQUIRED_STRINGS = ("protocol_id", "version", "jurisdiction", "source")


@dataclass(frozen=True)
class Policy:
    """
    A versioned clinical protocol. Immutable once loaded, so the cached
    hash always names the content that produced a decision.

    Contains:
    - protocol_id, version, jurisdiction, source: provenance
    - triggers: human-readable trigger expressions
    - severity: default severity of the protocol
    - actions: the action catalog applied to decisions
    - normative_references: citations backing the protocol
    """
    protocol_id: str
    version: str
    jurisdiction: str
    source: str
    triggers: Tuple[str, ...]
    severity: Severity
    actions: Tuple[Action, ...]
    normative_references: Tuple[str, ...] = ()

    _hash: Optional[str] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocol_id": self.protocol_id,
            "version": self.version,
            "jurisdiction": self.jurisdiction,
            "source": self.source,
            "triggers": list(self.triggers),
            "severity": self.severity.value,
            "actions": [a.to_dict() for a in self.actions],
            "normative_references": list(self.normative_references),
        }

    def get_hash(self) -> str:
        """Compute and cache the policy content identifier."""
        if self._hash is None:
            object.__setattr__(self, "_hash", policy_hash(self.to_dict()))
        return self._hash

    @classmethod
    def from_dict(cls, data: Any) -> 'Policy':
        """
        Create a Policy from a parsed document.

        Raises:
            PolicyParseError: on missing fields or wrong types
        """
        if not isinstance(data, dict):
            raise PolicyParseError("policy document must be a mapping")

        for key in _REQUIRED_STRINGS:
            if key not in data:
                raise PolicyParseError(f"missing field: {key}", {"field": key})
            if not isinstance(data[key], str):
                raise PolicyParseError(f"{key} must be a string", {"field": key})

        triggers = data.get("triggers")
        if not isinstance(triggers, list) or not all(isinstance(t, str) for t in triggers):
            raise PolicyParseError("triggers must be a list of strings", {"field": "triggers"})

        try:
            severity = Severity.parse(data.get("severity"))
        except ValueError as e:
            raise PolicyParseError(str(e), {"field": "severity"}) from e

        raw_actions = data.get("actions")
        if not isinstance(raw_actions, list):
            raise PolicyParseError("actions must be a list", {"field": "actions"})
        actions = [_parse_action(a, i) for i, a in enumerate(raw_actions)]

        refs = data.get("normative_references") or []
        if not isinstance(refs, list) or not all(isinstance(r, str) for r in refs):
            raise PolicyParseError(
                "normative_references must be a list of strings",
                {"field": "normative_references"}
            )

        return cls(
            protocol_id=data["protocol_id"],
            version=data["version"],
            jurisdiction=data["jurisdiction"],
            source=data["source"],
            triggers=tuple(triggers),
            severity=severity,
            actions=tuple(actions),
            normative_references=tuple(refs),
        )


def _parse_action(raw: Any, index: int) -> Action:
    where = {"field": f"actions[{index}]"}
    if not isinstance(raw, dict):
        raise PolicyParseError("action must be a mapping", where)
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise PolicyParseError("action name must be a non-empty string", where)
    delays = {}
    for key in ("max_delay_s", "deadline_s"):
        value = raw.get(key)
        if value is None:
            delays[key] = None
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise PolicyParseError(f"{key} must be a non-negative integer", where)
        delays[key] = value
    if delays["max_delay_s"] is None:
        raise PolicyParseError("max_delay_s is required", where)
    return Action(name=name, max_delay_s=delays["max_delay_s"], deadline_s=delays["deadline_s"])


def parse_policy_yaml(text: str) -> Policy:
    """Parse a YAML policy document."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise PolicyParseError(f"policy parse error: {e}") from e
    return Policy.from_dict(data)


def load_policy_yaml(path: Union[str, Path]) -> Policy:
    """Load a YAML policy document from disk."""
    with open(path, "r", encoding="utf-8") as f:
        return parse_policy_yaml(f.read())


def apply_policy(
    assessment: Assessment,
    policy: Policy,
    sensitivity_bias: str = DEFAULT_SENSITIVITY_BIAS
) -> Decision:
    """
    Combine the agreed assessment with the policy.

    Actions come from the policy catalog only, each with its deadline set to
    its own max delay, sorted by name. Detected actions are not merged in.
    """
    actions = sort_actions([
        Action(name=a.name, max_delay_s=a.max_delay_s, deadline_s=a.max_delay_s)
        for a in policy.actions
    ])

    return Decision(
        sensitivity_bias=sensitivity_bias,
        require_human_ack=assessment.severity in (Severity.CRITICAL, Severity.URGENT),
        actions=actions,
        hazards=list(HAZARDS_BY_SEVERITY[assessment.severity]),
        watchdog_armed=False,
    )
