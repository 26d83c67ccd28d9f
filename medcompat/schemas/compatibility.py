from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional


class Status(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    UNSAFE = "unsafe"


class RiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


# Lock-step pairing; risk level is never computed on its own
RISK_FOR_STATUS = {
    Status.SAFE: RiskLevel.LOW,
    Status.CAUTION: RiskLevel.MODERATE,
    Status.UNSAFE: RiskLevel.HIGH,
}


class Outcome(str, Enum):
    TRIGGERED = "triggered"
    PASSED = "passed"
    NOT_APPLICABLE = "not_applicable"  # data the rule needs is missing


class Severity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class RuleOutcome(BaseModel):
    rule_id: str
    outcome: Outcome
    delta: int = 0
    override_score: Optional[int] = None


class SideEffect(BaseModel):
    name: str
    probability: int = Field(..., ge=0, le=100, description="Percent likelihood")
    severity: Severity
    description: str
    timeframe: str
    risk_factors: List[str] = Field(default_factory=list)


class CompatibilityResult(BaseModel):
    medicine: str
    drug_class: Optional[str] = None
    score: int = Field(..., ge=0, le=100)
    status: Status
    risk_level: RiskLevel
    reasons: List[str] = Field(default_factory=list)
    alternatives: Optional[List[str]] = None
    explanation: str
    hard_override: bool = False
    rule_outcomes: List[RuleOutcome] = Field(default_factory=list)
    side_effects: List[SideEffect] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


# 1. Input Schemas (Dashboard -> API)
# The patient stays a raw dict here so that profile validation happens inside the
# engine and surfaces as InvalidInputError, same as for direct Python callers.
class EvaluationRequest(BaseModel):
    medicine_name: str = Field("", description="Free-text medicine name, e.g. 'Metformin 500mg'")
    patient: Optional[Dict[str, Any]] = Field(None, description="PatientProfile payload")

    model_config = ConfigDict(extra="forbid")


class BatchEvaluationRequest(BaseModel):
    medicine_names: List[str] = Field(..., min_length=1)
    patient: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")
