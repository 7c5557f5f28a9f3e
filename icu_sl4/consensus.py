"""
ICU SL4 Consensus Gate

Fail-closed comparator over the two extraction channels. Only structurally
identical assessments proceed; any mismatch aborts the whole decision.
"""

from typing import Any, Dict, List

from .errors import DivergenceError
from .logging_config import audit_log
from .models import Assessment


def compare_assessments(a: Assessment, b: Assessment) -> Dict[str, Dict[str, Any]]:
    """
    Return the fields on which two assessments differ.

    Signals compare as sets; actions compare as the already-sorted lists.
    An empty result means the channels agree.
    """
    mismatches: Dict[str, Dict[str, Any]] = {}

    if a.severity != b.severity:
        mismatches["severity"] = {"a": a.severity.value, "b": b.severity.value}

    if set(a.signals) != set(b.signals):
        mismatches["signals"] = {"a": sorted(a.signals), "b": sorted(b.signals)}

    if list(a.actions) != list(b.actions):
        mismatches["actions"] = {
            "a": [x.to_dict() for x in a.actions],
            "b": [x.to_dict() for x in b.actions],
        }

    return mismatches


def require_consensus(a: Assessment, b: Assessment) -> Assessment:
    """
    Gate on agreement between channel A and channel B.

    Returns:
        The agreed assessment (channel A's instance)

    Raises:
        DivergenceError: on any mismatch; never downgraded to a warning
    """
    mismatches = compare_assessments(a, b)
    if mismatches:
        fields: List[str] = sorted(mismatches)
        audit_log.divergence_detected(fields)
        raise DivergenceError(
            "dual-channel divergence; entering safe mode",
            {"fields": mismatches}
        )
    return a
