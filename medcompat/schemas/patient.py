import structlog
from pydantic import BaseModel, Field, ConfigDict, TypeAdapter, ValidationError, field_validator
from typing import Any, List, Optional

logger = structlog.get_logger()


class ReferenceRange(BaseModel):
    low: Optional[float] = None
    high: Optional[float] = None


class LabValue(BaseModel):
    name: str = Field(..., min_length=1, description="Lab name (e.g. 'HbA1c', 'eGFR', 'creatinine')")
    value: float = Field(..., allow_inf_nan=False)
    unit: Optional[str] = Field(None, description="e.g. 'mg/dL', 'mL/min/1.73m2'")
    reference_range: Optional[ReferenceRange] = None


_LAB_ADAPTER = TypeAdapter(LabValue)


class PatientProfile(BaseModel):
    """
    Everything the engine knows about a patient.
    The engine never reads ambient patient state; callers pass this in.
    """
    patient_id: Optional[str] = None
    name: Optional[str] = None
    age: int = Field(..., ge=0, strict=True, description="Age in whole years")
    sex: Optional[str] = None
    conditions: List[str] = Field(default_factory=list, description="e.g. 'Diabetes', 'Heart Disease'")
    medical_history: List[str] = Field(default_factory=list, description="Free-text history entries")
    labs: List[LabValue] = Field(default_factory=list)

    # Strict config
    model_config = ConfigDict(extra="forbid")

    @field_validator("labs", mode="before")
    @classmethod
    def drop_malformed_labs(cls, labs: Any) -> Any:
        """
        Lab results are optional data. An entry that does not parse (no value,
        'pending', NaN...) is dropped, so the rules needing it report not_applicable.
        """
        if not isinstance(labs, (list, tuple)):
            return labs

        parsed = []
        for index, raw in enumerate(labs):
            try:
                parsed.append(_LAB_ADAPTER.validate_python(raw))
            except ValidationError as e:
                logger.warning(
                    "malformed_lab_dropped",
                    index=index,
                    lab=raw.get("name") if isinstance(raw, dict) else None,
                    errors=[err["msg"] for err in e.errors()],
                )
        return parsed

    @property
    def display_name(self) -> str:
        return self.name or self.patient_id or "the patient"
