"""
ICU SL4 Hashing

All content identifiers use BLAKE3 over canonical bytes, formatted as
"<algorithm>:<lowercase-hex>".
"""

from typing import Any, Union

import blake3

from .canonicalization import canonicalize


HASH_ALGORITHM = "blake3"


def blake3_hash(data: Union[bytes, str]) -> str:
    """
    Compute a BLAKE3 digest string.

    Returns:
        Hash string in format "blake3:abcdef..."
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    digest = blake3.blake3(data).hexdigest().lower()
    return f"{HASH_ALGORITHM}:{digest}"


def document_hash(obj: Any) -> str:
    """document_hash = BLAKE3(CJE(obj))"""
    return blake3_hash(canonicalize(obj))


def input_hash(input_doc: dict) -> str:
    """Content identifier of an observation Input document."""
    return document_hash(input_doc)


def assessment_hash(ast_doc: dict) -> str:
    """Content identifier of an assessment (Ast) document."""
    return document_hash(ast_doc)


def policy_hash(policy_doc: dict) -> str:
    """Content identifier of a policy document."""
    return document_hash(policy_doc)


def verify_hash(declared_hash: str, data: Union[bytes, str]) -> bool:
    """
    Verify that data matches a declared hash.

    Verifiers must recompute hashes from source data; an unknown algorithm
    prefix never verifies.
    """
    if not isinstance(declared_hash, str):
        return False
    if declared_hash.startswith(f"{HASH_ALGORITHM}:"):
        return blake3_hash(data) == declared_hash
    return False
