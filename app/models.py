from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Any, List, Optional

class InputModel(BaseModel):
    text: str
    measured: Dict[str, float] = Field(default_factory=dict)

class DecideRequest(BaseModel):
    input: InputModel
    # YAML text; falls back to ICU_SL4_POLICY_PATH when omitted
    policy_yaml: Optional[str] = None
    # DEV ONLY: raw Ed25519 secret (32-byte hex)
    keypair_secret_hex: str
    binary_hash: Optional[str] = None
    config_hash: Optional[str] = None
    ledger_path: Optional[str] = None

class VerifyRequest(BaseModel):
    decision: Dict[str, Any]

class VerifyResponse(BaseModel):
    ok: bool

class TsaAnchorResponse(BaseModel):
    ok: bool
    token: str

# FHIR R4 Observation (subset). Wire names are camelCase; snake_case is accepted too.

class FhirCoding(BaseModel):
    system: Optional[str] = None
    code: Optional[str] = None
    display: Optional[str] = None

class FhirCodeableConcept(BaseModel):
    coding: Optional[List[FhirCoding]] = None
    text: Optional[str] = None

class FhirQuantity(BaseModel):
    value: Optional[float] = None
    unit: Optional[str] = None
    system: Optional[str] = None
    code: Optional[str] = None

class FhirObservationComponent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: Optional[FhirCodeableConcept] = None
    value_quantity: Optional[FhirQuantity] = Field(default=None, alias="valueQuantity")

class FhirAnnotation(BaseModel):
    text: Optional[str] = None

class FhirObservation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    resource_type: str = Field(default="Observation", alias="resourceType")
    id: Optional[str] = None
    status: Optional[str] = None
    code: Optional[FhirCodeableConcept] = None
    effective_date_time: Optional[str] = Field(default=None, alias="effectiveDateTime")
    value_quantity: Optional[FhirQuantity] = Field(default=None, alias="valueQuantity")
    component: Optional[List[FhirObservationComponent]] = None
    note: Optional[List[FhirAnnotation]] = None

class FhirDecideRequest(BaseModel):
    observation: FhirObservation
    policy_yaml: Optional[str] = None
    keypair_secret_hex: str
    binary_hash: Optional[str] = None
    config_hash: Optional[str] = None
    ledger_path: Optional[str] = None
