"""
Utility functions for ICU SL4 boundary layers.

The engine itself never reads the clock; only the CLI and HTTP service
call these.
"""

from datetime import datetime, timezone


def utc_now_rfc3339() -> str:
    """Current UTC time as an RFC 3339 string with a Z suffix."""
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def tsa_stub_token(ledger_head: str, now: str) -> str:
    """
    Placeholder RFC 3161 token binding a ledger head to a time.

    Format: rfc3161:stub:<now>:<first 16 chars of head>. No authority is
    contacted.
    """
    return f"rfc3161:stub:{now}:{ledger_head.strip()[:16]}"
