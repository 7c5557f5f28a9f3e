import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from icu_sl4 import config
from icu_sl4.engine import decide
from icu_sl4.errors import LedgerIOError, SL4Error
from icu_sl4.fhir import observation_to_input
from icu_sl4.ledger import append as ledger_append
from icu_sl4.logging_config import configure_logging, set_request_id
from icu_sl4.models import Input
from icu_sl4.policy import Policy, parse_policy_yaml
from icu_sl4.signing import KeyPair
from icu_sl4.util import tsa_stub_token, utc_now_rfc3339
from icu_sl4.verifier import verify_decision
from .models import DecideRequest, FhirDecideRequest, VerifyRequest, VerifyResponse, TsaAnchorResponse

logger = logging.getLogger(__name__)

app = FastAPI(title="ICU SL4 Decision Service")

@app.on_event("startup")
def _startup():
    configure_logging(level=config.LOG_LEVEL, json_format=config.LOG_JSON)

@app.middleware("http")
async def _request_id(request: Request, call_next):
    rid = set_request_id(request.headers.get("x-request-id"))
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response

def http_error(err: SL4Error) -> HTTPException:
    return HTTPException(err.http_status, detail=err.as_dict())

def load_policy(policy_yaml) -> Policy:
    if policy_yaml is None:
        try:
            policy_yaml = config.load_policy_text_cached()
        except OSError:
            raise HTTPException(500, "POLICY_UNAVAILABLE")
    return parse_policy_yaml(policy_yaml)

def run_decision(inp: Input, req) -> dict:
    policy = load_policy(req.policy_yaml)
    keypair = KeyPair.from_secret_hex(req.keypair_secret_hex)
    binary_hash = req.binary_hash or config.BINARY_HASH
    config_hash = req.config_hash or config.effective_config_hash()
    return decide(inp, policy, binary_hash, config_hash, keypair, utc_now_rfc3339()).to_dict()

def append_best_effort(path, document: dict) -> None:
    # The decision is already signed; it is returned even if the ledger write fails
    try:
        ledger_append(path, document)
    except LedgerIOError as e:
        logger.warning("decision returned without ledger record: %s", e)

@app.get("/healthz", response_class=PlainTextResponse)
def healthz():
    return "ok"

@app.post("/decide")
def decide_ep(req: DecideRequest):
    try:
        inp = Input.from_dict(req.input.model_dump())
        document = run_decision(inp, req)
    except SL4Error as e:
        raise http_error(e)

    ledger_path = req.ledger_path or config.LEDGER_PATH
    if ledger_path:
        append_best_effort(ledger_path, document)
    return document

@app.post("/fhir/observation")
def fhir_observation_ep(req: FhirDecideRequest):
    try:
        inp = observation_to_input(req.observation.model_dump(exclude_none=True))
        document = run_decision(inp, req)
    except SL4Error as e:
        raise http_error(e)

    document["fhir_observation_id"] = req.observation.id
    ledger_path = req.ledger_path or config.LEDGER_PATH
    if ledger_path:
        append_best_effort(ledger_path, document)
    return document

@app.post("/verify", response_model=VerifyResponse)
def verify_ep(req: VerifyRequest):
    result = verify_decision(req.decision)
    if not result.is_valid():
        raise HTTPException(400, detail=result.to_dict())
    return VerifyResponse(ok=True)

@app.post("/tsa/anchor", response_model=TsaAnchorResponse)
async def tsa_anchor(request: Request):
    # Stub: body is the plain ledger head string
    head = (await request.body()).decode("utf-8", errors="replace")
    return TsaAnchorResponse(ok=True, token=tsa_stub_token(head, utc_now_rfc3339()))

def main():
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=config.PORT)

if __name__ == "__main__":
    main()
