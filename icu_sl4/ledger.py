"""
ICU SL4 Append-Only Ledger

Line-oriented store of decision documents. Each call appends exactly one line

    {"entry": <canonical entry>, "hash": "blake3:<hex>"}

where hash is the digest of the canonical entry itself. Records are never
rewritten or removed. Hashes are content addresses, not a hash chain: an
append does not read the previous record.

The ledger assumes exclusive access for the duration of one append and does
no locking of its own; concurrent writers must be serialized by the caller.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .canonicalization import canonicalize, canonicalize_str
from .errors import LedgerIOError, SerializationError
from .hashing import blake3_hash
from .logging_config import audit_log


PathLike = Union[str, Path]


def append(path: PathLike, entry: Dict[str, Any]) -> str:
    """
    Append one record and return its content hash.

    Raises:
        SerializationError: entry has no canonical form (nothing is written)
        LedgerIOError: the file could not be written
    """
    canonical = canonicalize(entry)
    block_hash = blake3_hash(canonical)
    line = canonicalize_str({"hash": block_hash, "entry": json.loads(canonical)})

    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        audit_log.ledger_append_failed(str(path), str(e))
        raise LedgerIOError(f"ledger append failed: {e}", {"path": str(path)}) from e

    audit_log.ledger_appended(str(path), block_hash)
    return block_hash


def read_records(path: PathLike) -> Iterator[Dict[str, Any]]:
    """
    Iterate parsed ledger records in file order.

    Raises:
        LedgerIOError: unreadable file or a line that is not a JSON object
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as e:
                    raise LedgerIOError(
                        f"ledger line {lineno} is not valid JSON",
                        {"line": lineno}
                    ) from e
                if not isinstance(record, dict):
                    raise LedgerIOError(f"ledger line {lineno} is not an object", {"line": lineno})
                yield record
    except OSError as e:
        raise LedgerIOError(f"ledger read failed: {e}", {"path": str(path)}) from e


def head(path: PathLike) -> Optional[str]:
    """Hash of the last record, or None for a missing or empty ledger."""
    if not Path(path).exists():
        return None
    last = None
    for record in read_records(path):
        last = record.get("hash")
    return last


@dataclass
class LedgerReport:
    """Result of re-hashing every record in a ledger."""
    records: int = 0
    mismatched_lines: List[int] = field(default_factory=list)

    def is_valid(self) -> bool:
        return not self.mismatched_lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "records": self.records,
            "valid": self.is_valid(),
            "mismatched_lines": list(self.mismatched_lines),
        }


def verify_ledger(path: PathLike) -> LedgerReport:
    """
    Recompute each record's hash from its entry.

    Detects edits to individual records. Because records are not chained,
    removal of whole lines is not detectable here.
    """
    report = LedgerReport()
    for index, record in enumerate(read_records(path), start=1):
        report.records += 1
        entry = record.get("entry")
        try:
            computed = blake3_hash(canonicalize(entry))
        except SerializationError:
            computed = None
        if computed is None or computed != record.get("hash"):
            report.mismatched_lines.append(index)
    return report
