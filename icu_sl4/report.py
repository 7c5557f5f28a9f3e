"""
Decision proof report.

Renders a persisted decision document into a one-page PDF carrying its
BLAKE3 digest and a detached Ed25519 signature over its canonical JSON, and
writes the signature next to the document as <decision>.json.sig.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Union
from xml.sax.saxutils import escape

from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from .canonicalization import canonicalize_str
from .errors import InputFormatError
from .hashing import blake3_hash
from .signing import KeyPair


REPORT_TITLE = "ICU SL4 Decision Proof"
SNIPPET_CHARS = 1024

VERIFICATION_NOTE = (
    "Verification: recompute the canonical JSON (sorted keys, minified), "
    "re-hash it with BLAKE3, and check the Ed25519 signature above against "
    "the public key."
)


@dataclass(frozen=True)
class ReportResult:
    decision_hash: str
    public_key_hex: str
    signature_hex: str
    pdf_path: Path
    sig_path: Path


def _styles():
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "ReportTitle", parent=base["Title"], alignment=TA_CENTER, fontSize=16
        ),
        "body": ParagraphStyle("ReportBody", parent=base["BodyText"], leading=14),
        "label": ParagraphStyle(
            "ReportLabel", parent=base["BodyText"], fontName="Helvetica-Oblique"
        ),
        "code": ParagraphStyle(
            "ReportCode", parent=base["Code"], fontSize=7, leading=9
        ),
    }


def sidecar_path(decision_path: Union[str, Path]) -> Path:
    """decision.json -> decision.json.sig"""
    return Path(decision_path).with_suffix(".json.sig")


def render_report(
    decision_path: Union[str, Path],
    keypair: KeyPair,
    out_pdf: Union[str, Path]
) -> ReportResult:
    """
    Sign a decision document and render its proof report.

    Raises:
        InputFormatError: the decision file is not valid JSON
        SerializationError: the document has no canonical form
    """
    decision_path = Path(decision_path)
    out_pdf = Path(out_pdf)

    with open(decision_path, "r", encoding="utf-8") as f:
        try:
            document = json.load(f)
        except json.JSONDecodeError as e:
            raise InputFormatError(f"decision file is not valid JSON: {e}") from e

    canonical = canonicalize_str(document)
    decision_hash = blake3_hash(canonical)
    signature_hex = keypair.sign(canonical.encode("utf-8")).hex()
    public_key_hex = keypair.public_key_hex

    S = _styles()
    elems = [
        Paragraph(REPORT_TITLE, S["title"]),
        Spacer(1, 6 * mm),
        Paragraph(f"Decision file: {escape(str(decision_path))}", S["body"]),
        Paragraph(f"Decision BLAKE3: {decision_hash}", S["body"]),
        Paragraph(f"Public Key (Ed25519): {public_key_hex}", S["body"]),
        Paragraph(f"Detached Signature (hex): {signature_hex}", S["body"]),
        Spacer(1, 4 * mm),
        Paragraph(VERIFICATION_NOTE, S["body"]),
        Spacer(1, 4 * mm),
        Paragraph(f"Canonical JSON (first {SNIPPET_CHARS} chars):", S["label"]),
        Paragraph(escape(canonical[:SNIPPET_CHARS]), S["code"]),
    ]

    out_pdf.parent.mkdir(parents=True, exist_ok=True)
    doc = SimpleDocTemplate(
        str(out_pdf),
        pagesize=A4,
        title=REPORT_TITLE,
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
    )
    doc.build(elems)

    sig_path = sidecar_path(decision_path)
    sig_path.write_text(signature_hex, encoding="utf-8")

    return ReportResult(
        decision_hash=decision_hash,
        public_key_hex=public_key_hex,
        signature_hex=signature_hex,
        pdf_path=out_pdf,
        sig_path=sig_path,
    )
