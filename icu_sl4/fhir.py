"""
FHIR Observation -> Input mapping.

Accepts a (simplified) FHIR R4 Observation as a plain dict, in either the
wire form (camelCase: valueQuantity, resourceType) or snake_case. Recognized
LOINC codes populate measurements; everything readable becomes free text.
"""

from typing import Any, Dict, List, Optional

from .errors import InputFormatError
from .models import Input


LOINC_SYSTEM = "http://loinc.org"

# LOINC code -> (measurement name, text suffix)
LOINC_MEASUREMENTS = {
    "2708-6": ("spo2_pct", "%"),
    "8867-4": ("hr_bpm", " bpm"),
}

DEFAULT_TEXT = "FHIR Observation"


def _get(obj: Dict[str, Any], snake: str, camel: str) -> Any:
    value = obj.get(snake)
    if value is None:
        value = obj.get(camel)
    return value


def _loinc_code(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    prefix = LOINC_SYSTEM + "|"
    if code.startswith(prefix):
        return code[len(prefix):]
    return code


def _format_value(v: float) -> str:
    if float(v).is_integer():
        return str(int(v))
    return repr(float(v))


def _quantity_value(holder: Dict[str, Any]) -> Optional[float]:
    qty = _get(holder, "value_quantity", "valueQuantity")
    if not isinstance(qty, dict):
        return None
    v = qty.get("value")
    if v is None:
        return None
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise InputFormatError("valueQuantity.value must be a number", {"value": repr(v)})
    return float(v)


def _codings(holder: Dict[str, Any]) -> List[Dict[str, Any]]:
    code = holder.get("code")
    if not isinstance(code, dict):
        return []
    return [c for c in code.get("coding") or [] if isinstance(c, dict)]


def observation_to_input(obs: Dict[str, Any]) -> Input:
    """
    Convert an Observation into an engine Input.

    - note[].text entries become text
    - valueQuantity with LOINC 2708-6 -> spo2_pct, 8867-4 -> hr_bpm
    - component[] values are mapped with the same codes
    - an observation with nothing readable gets the text "FHIR Observation"

    Raises:
        InputFormatError: obs is not an object or holds non-numeric values
    """
    if not isinstance(obs, dict):
        raise InputFormatError("observation must be an object")

    text_parts: List[str] = []
    measured: Dict[str, float] = {}

    for note in obs.get("note") or []:
        if isinstance(note, dict) and note.get("text"):
            text_parts.append(note["text"])

    v = _quantity_value(obs)
    if v is not None and isinstance(obs.get("code"), dict):
        for coding in _codings(obs):
            code = _loinc_code(coding.get("code"))
            if code is None:
                continue
            display = coding.get("display")
            if code in LOINC_MEASUREMENTS:
                name, suffix = LOINC_MEASUREMENTS[code]
                measured[name] = v
            else:
                suffix = ""
            if display:
                text_parts.append(f"{display}: {_format_value(v)}{suffix}")
        if obs["code"].get("text"):
            text_parts.append(obs["code"]["text"])

    for comp in obs.get("component") or []:
        if not isinstance(comp, dict):
            continue
        v = _quantity_value(comp)
        if v is None:
            continue
        for coding in _codings(comp):
            code = _loinc_code(coding.get("code"))
            if code in LOINC_MEASUREMENTS:
                measured[LOINC_MEASUREMENTS[code][0]] = v
            if coding.get("display"):
                text_parts.append(f"{coding['display']}: {_format_value(v)}")

    text = ", ".join(text_parts) if text_parts else DEFAULT_TEXT
    return Input(text=text, measured=measured)
