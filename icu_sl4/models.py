"""
ICU SL4 Data Model

Observation input, actions, severity, assessment (Ast), decision and
frontier certificate types. Every type serializes through to_dict() into the
exact document shape that is canonicalized, hashed and signed.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import InputFormatError


class Severity(str, Enum):
    """
    Closed severity catalog.

    Ordering is the explicit rank table below (CRITICAL > URGENT > ROUTINE),
    never the lexical order of the names.
    """
    CRITICAL = "CRITICAL"
    URGENT = "URGENT"
    ROUTINE = "ROUTINE"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: Any) -> 'Severity':
        if isinstance(value, Severity):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Invalid severity {value!r}: must be one of {[s.value for s in cls]}"
            )


_SEVERITY_RANK = {
    Severity.ROUTINE: 0,
    Severity.URGENT: 1,
    Severity.CRITICAL: 2,
}


@dataclass
class Input:
    """
    A clinical observation supplied per call.

    text: free text, possibly multilingual
    measured: named numeric measurements (e.g. "spo2_pct", "hr_bpm")
    """
    text: str
    measured: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        self._validate()

    def _validate(self):
        if not isinstance(self.text, str):
            raise InputFormatError("text must be a string")
        if not isinstance(self.measured, dict):
            raise InputFormatError("measured must be an object/dict")

        normalized = {}
        for name, value in self.measured.items():
            if not isinstance(name, str):
                raise InputFormatError("measurement names must be strings", {"name": repr(name)})
            # bool is an int subclass; reject it explicitly
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InputFormatError(
                    f"measurement {name!r} must be a number",
                    {"name": name, "value": repr(value)}
                )
            value = float(value)
            if not math.isfinite(value):
                raise InputFormatError(f"measurement {name!r} must be finite", {"name": name})
            normalized[name] = value
        self.measured = normalized

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "measured": dict(self.measured)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Input':
        if not isinstance(data, dict):
            raise InputFormatError("input must be an object")
        if "text" not in data:
            raise InputFormatError("input.text is required")
        return cls(text=data["text"], measured=data.get("measured") or {})


@dataclass(frozen=True)
class Action:
    """
    A recommended action with a maximum allowed delay.

    Actions sort by name. Equality is structural so that two channels
    recommending the same name with different delays do not agree.
    """
    name: str
    max_delay_s: int
    deadline_s: Optional[int] = None

    def __lt__(self, other: 'Action') -> bool:
        if not isinstance(other, Action):
            return NotImplemented
        return self.name < other.name

    def to_dict(self) -> Dict[str, Any]:
        d = {"name": self.name, "max_delay_s": self.max_delay_s}
        if self.deadline_s is not None:
            d["deadline_s"] = self.deadline_s
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Action':
        return cls(
            name=data["name"],
            max_delay_s=data["max_delay_s"],
            deadline_s=data.get("deadline_s"),
        )


def sort_actions(actions: List[Action]) -> List[Action]:
    """Sort actions by name."""
    return sorted(actions, key=lambda a: a.name)


@dataclass
class Assessment:
    """
    Structured output of signal extraction (the Ast).

    Produced independently by each extraction channel and released only when
    both channels agree.
    """
    severity: Severity
    signals: List[str]
    protocols: List[str]
    actions: List[Action]
    normative: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "severity": self.severity.value,
            "signals": list(self.signals),
            "protocols": list(self.protocols),
            "actions": [a.to_dict() for a in self.actions],
        }
        if self.normative is not None:
            d["normative"] = dict(self.normative)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Assessment':
        return cls(
            severity=Severity.parse(data["severity"]),
            signals=list(data.get("signals", [])),
            protocols=list(data.get("protocols", [])),
            actions=[Action.from_dict(a) for a in data.get("actions", [])],
            normative=data.get("normative"),
        )


@dataclass
class Decision:
    """Final decision derived from the agreed assessment and the policy."""
    sensitivity_bias: str
    require_human_ack: bool
    actions: List[Action]
    hazards: List[str]
    watchdog_armed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sensitivity_bias": self.sensitivity_bias,
            "require_human_ack": self.require_human_ack,
            "actions": [a.to_dict() for a in self.actions],
            "hazards": list(self.hazards),
            "watchdog_armed": self.watchdog_armed,
        }


@dataclass(frozen=True)
class FrontierCert:
    """How far a measurement sits from flipping a threshold classification."""
    feature: str
    threshold: float
    relation: str
    margin_to_flip: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feature": self.feature,
            "threshold": self.threshold,
            "relation": self.relation,
            "margin_to_flip": self.margin_to_flip,
        }
