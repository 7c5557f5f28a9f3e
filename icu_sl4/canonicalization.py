"""
ICU SL4 Canonical JSON Encoding

Every hash and signature in the system is computed over the bytes produced
here, so this output format is a frozen, versioned contract. Changing any rule
below invalidates every previously issued proof pack and ledger hash.
"""

import json
import math
from typing import Any, Dict, List, Union

from .errors import SerializationError


CANONICAL_FORM_VERSION = "sl4-cje/1"


def canonicalize(obj: Any) -> bytes:
    """
    Convert a document to its canonical byte form.

    Rules (sl4-cje/1):
    - Object keys must be strings, emitted in byte-wise order of their
      UTF-8 encoding
    - Arrays preserve order; elements are canonicalized recursively
    - null, booleans, integers, finite floats and strings pass unchanged
    - No insignificant whitespace
    - UTF-8 output without escaping non-ASCII characters
    - Floats use the shortest round-tripping representation

    Raises:
        SerializationError: if the document holds a value with no
            canonical representation (sets, bytes, NaN, non-string keys...)
    """
    canonical = _canonicalize_value(obj)
    try:
        encoded = json.dumps(
            canonical,
            separators=(',', ':'),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot serialize document: {e}") from e
    return encoded.encode('utf-8')


def canonicalize_str(obj: Any) -> str:
    """Return canonical JSON as string."""
    return canonicalize(obj).decode('utf-8')


def _canonicalize_value(value: Any) -> Any:
    if value is None:
        return None
    elif isinstance(value, bool):
        return value
    elif isinstance(value, int):
        return value
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationError(
                "Non-finite number has no canonical form",
                {"value": repr(value)}
            )
        return value
    elif isinstance(value, str):
        _require_utf8(value)
        return value
    elif isinstance(value, dict):
        return _canonicalize_object(value)
    elif isinstance(value, (list, tuple)):
        return _canonicalize_array(value)
    else:
        raise SerializationError(
            f"Cannot canonicalize type: {type(value).__name__}",
            {"type": type(value).__name__}
        )


def _canonicalize_object(obj: Dict[str, Any]) -> Dict[str, Any]:
    """Rebuild a mapping with keys in byte-wise UTF-8 order."""
    for key in obj:
        if not isinstance(key, str):
            raise SerializationError(
                "Object keys must be strings",
                {"key": repr(key)}
            )
        _require_utf8(key)
    sorted_keys = sorted(obj.keys(), key=lambda k: k.encode('utf-8'))
    return {k: _canonicalize_value(obj[k]) for k in sorted_keys}


def _canonicalize_array(arr: Union[List, tuple]) -> List:
    return [_canonicalize_value(item) for item in arr]


def _require_utf8(s: str) -> None:
    # Lone surrogates cannot be encoded
    try:
        s.encode('utf-8')
    except UnicodeEncodeError as e:
        raise SerializationError("String is not valid Unicode", {"value": repr(s)}) from e
