import json

import pytest

from icu_sl4.canonicalization import canonicalize
from icu_sl4.engine import decide
from icu_sl4.errors import InputFormatError
from icu_sl4.hashing import blake3_hash
from icu_sl4.report import render_report, sidecar_path
from icu_sl4.signing import verify_signature

DECISION_TIME = "2025-01-01T00:00:00Z"


@pytest.fixture
def decision_file(tmp_path, critical_input, policy, keypair):
    doc = decide(critical_input, policy, "blake3:b", "blake3:c", keypair, DECISION_TIME).to_dict()
    path = tmp_path / "decision.json"
    path.write_text(json.dumps(doc, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def test_render_report(tmp_path, decision_file, keypair):
    out_pdf = tmp_path / "reports" / "decision.pdf"
    result = render_report(decision_file, keypair, out_pdf)

    assert out_pdf.read_bytes().startswith(b"%PDF")
    assert result.pdf_path == out_pdf
    assert result.sig_path == tmp_path / "decision.json.sig"
    assert result.sig_path.read_text(encoding="utf-8") == result.signature_hex

    doc = json.loads(decision_file.read_text(encoding="utf-8"))
    assert result.decision_hash == blake3_hash(canonicalize(doc))
    assert result.public_key_hex == keypair.public_key_hex
    verify_signature(canonicalize(doc), result.signature_hex, keypair.public_key_hex)


def test_signature_independent_of_file_formatting(tmp_path, decision_file, keypair):
    doc = json.loads(decision_file.read_text(encoding="utf-8"))
    compact = tmp_path / "compact.json"
    compact.write_text(json.dumps(doc, separators=(",", ":")), encoding="utf-8")

    a = render_report(decision_file, keypair, tmp_path / "a.pdf")
    b = render_report(compact, keypair, tmp_path / "b.pdf")
    assert a.signature_hex == b.signature_hex
    assert a.decision_hash == b.decision_hash


def test_invalid_json(tmp_path, keypair):
    bad = tmp_path / "bad.json"
    bad.write_text("{", encoding="utf-8")
    with pytest.raises(InputFormatError):
        render_report(bad, keypair, tmp_path / "out.pdf")


def test_sidecar_path():
    assert str(sidecar_path("out/decision.json")).endswith("decision.json.sig")
