"""
ICU SL4 Error Taxonomy

Every failure the engine surfaces is an SL4Error subclass carrying a stable
machine-readable code. Boundary layers (CLI, HTTP) map these to exit codes and
protocol responses; the engine itself never downgrades them.
"""

from typing import Any, Dict, Optional


SL4_E_POLICY_PARSE = "SL4_E_POLICY_PARSE"
SL4_E_KEY_FORMAT = "SL4_E_KEY_FORMAT"
SL4_E_DIVERGENCE = "SL4_E_DIVERGENCE"
SL4_E_SERIALIZATION = "SL4_E_SERIALIZATION"
SL4_E_SIGNATURE = "SL4_E_SIGNATURE"
SL4_E_LEDGER_IO = "SL4_E_LEDGER_IO"
SL4_E_INPUT = "SL4_E_INPUT"


class SL4Error(Exception):
    """Base exception with a stable error code."""

    code = "SL4_E_INTERNAL"
    http_status = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def as_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "http_status": self.http_status,
        }
        if self.details:
            d["details"] = self.details
        return d

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class PolicyParseError(SL4Error):
    """The policy document is malformed."""
    code = SL4_E_POLICY_PARSE


class KeyFormatError(SL4Error):
    """Key material has the wrong encoding or length."""
    code = SL4_E_KEY_FORMAT


class DivergenceError(SL4Error):
    """
    The two extraction channels disagreed.

    Always fatal to the call: no Decision and no ProofPack are released.
    """
    code = SL4_E_DIVERGENCE
    http_status = 422


class SerializationError(SL4Error):
    """A document contains a value with no canonical representation."""
    code = SL4_E_SERIALIZATION


class SignatureVerificationError(SL4Error):
    """Bad signature, malformed key/signature hex, or wrong-length material."""
    code = SL4_E_SIGNATURE


class LedgerIOError(SL4Error):
    """The ledger file could not be read or written."""
    code = SL4_E_LEDGER_IO
    http_status = 500


class InputFormatError(SL4Error):
    """The observation input document is malformed."""
    code = SL4_E_INPUT
