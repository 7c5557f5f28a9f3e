import copy
import json

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)

SECRET_HEX = "000102030405060708090a0b0c0d0e0f101112131415161718191a1b1c1d1e1f"


def load(p):
    with open(p, "r", encoding="utf-8") as f:
        return f.read() if p.endswith(".yaml") else json.load(f)


def decide_body(**overrides):
    body = {
        "input": load("fixtures/input_critical.json"),
        "policy_yaml": load("policies/hypoxemia_acute.yaml"),
        "keypair_secret_hex": SECRET_HEX,
        "binary_hash": "blake3:http-demo-binary",
        "config_hash": "blake3:http-demo-config",
    }
    body.update(overrides)
    return body


def test_healthz():
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.text == "ok"


def test_request_id_echoed():
    r = client.get("/healthz", headers={"X-Request-ID": "req-42"})
    assert r.headers["X-Request-ID"] == "req-42"


def test_decide_then_verify():
    r = client.post("/decide", json=decide_body())
    assert r.status_code == 200
    doc = r.json()
    assert doc["ast"]["severity"] == "CRITICAL"
    assert [a["name"] for a in doc["decision"]["actions"]] == [
        "call_attending", "increase_O2_100", "prepare_intubation_kit"
    ]
    assert doc["proof_pack"]["binary_hash"] == "blake3:http-demo-binary"
    assert doc["proof_pack"]["decision_time"].endswith("Z")

    v = client.post("/verify", json={"decision": doc})
    assert v.status_code == 200
    assert v.json() == {"ok": True}


def test_decide_uses_configured_policy_when_omitted():
    body = decide_body()
    del body["policy_yaml"]
    r = client.post("/decide", json=body)
    assert r.status_code == 200
    assert r.json()["decision"]["hazards"] == ["HYPOXEMIA_CRITICAL"]


def test_decide_bad_key():
    r = client.post("/decide", json=decide_body(keypair_secret_hex="abcd"))
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "SL4_E_KEY_FORMAT"


def test_decide_bad_policy():
    r = client.post("/decide", json=decide_body(policy_yaml="protocol_id: ["))
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "SL4_E_POLICY_PARSE"


def test_decide_rejects_malformed_input():
    r = client.post("/decide", json=decide_body(input={"measured": {"spo2_pct": 85}}))
    assert r.status_code == 422


def test_decide_appends_to_ledger(tmp_path):
    ledger = tmp_path / "ledger.ndjson"
    r = client.post("/decide", json=decide_body(ledger_path=str(ledger)))
    assert r.status_code == 200
    lines = ledger.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["entry"] == r.json()


def test_ledger_failure_does_not_fail_request(tmp_path):
    # A directory cannot be appended to
    r = client.post("/decide", json=decide_body(ledger_path=str(tmp_path)))
    assert r.status_code == 200


def test_fhir_observation():
    body = decide_body(observation=load("fixtures/observation_spo2.json"))
    del body["input"]
    r = client.post("/fhir/observation", json=body)
    assert r.status_code == 200
    doc = r.json()
    assert doc["fhir_observation_id"] == "obs-123"
    assert doc["ast"]["severity"] == "CRITICAL"
    assert "diaphoresis" in doc["ast"]["signals"]


def test_verify_rejects_tampering():
    doc = client.post("/decide", json=decide_body()).json()
    bad = copy.deepcopy(doc)
    bad["proof_pack"]["input_hash"] = "blake3:" + "0" * 64
    r = client.post("/verify", json={"decision": bad})
    assert r.status_code == 400
    assert r.json()["detail"]["outcome"] == "INVALID"


def test_tsa_anchor_stub():
    r = client.post("/tsa/anchor", content="blake3:abcdef0123456789abcdef")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["token"].startswith("rfc3161:stub:")
    assert body["token"].endswith(":blake3:abcdef012")
