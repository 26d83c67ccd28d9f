from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport

from medcompat.main import app
from medcompat.schemas.patient import LabValue, PatientProfile
from medcompat.services.compatibility_engine import CompatibilityEngine


@pytest.fixture(scope="function")
async def client() -> AsyncGenerator[AsyncClient, None]:
    """
    In-process client against the ASGI app. The engine is stateless,
    so no per-test overrides are needed.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def engine() -> CompatibilityEngine:
    return CompatibilityEngine()


def make_patient(age: int = 45, conditions=None, history=None, labs=None, **extra) -> PatientProfile:
    """Helper: build a PatientProfile from a compact {lab_name: value} dict."""
    return PatientProfile(
        age=age,
        conditions=conditions or [],
        medical_history=history or [],
        labs=[LabValue(name=name, value=value) for name, value in (labs or {}).items()],
        **extra,
    )


@pytest.fixture
def patient_factory():
    return make_patient


# --- Patients modelled on the dashboard's mock records ---

@pytest.fixture
def elderly_patient() -> PatientProfile:
    return make_patient(age=70, name="Sunita Devi")


@pytest.fixture
def renal_patient() -> PatientProfile:
    # Reduced renal function, no other risk factors
    return make_patient(age=50, name="Rajesh Kumar", labs={"eGFR": 40})


@pytest.fixture
def high_creatinine_patient() -> PatientProfile:
    return make_patient(age=50, patient_id="pat-004", labs={"creatinine": 1.8})


@pytest.fixture
def cardiac_patient() -> PatientProfile:
    return make_patient(age=30, name="Vikram Patel", conditions=["Coronary Artery Disease"])


@pytest.fixture
def patient_payload() -> dict:
    return {
        "patient_id": "pat-001",
        "name": "Rajesh Kumar",
        "age": 45,
        "sex": "Male",
        "conditions": ["Hypertension", "Diabetes"],
        "medical_history": [
            "Diagnosed with Type 2 Diabetes in 2020",
            "Hypertension since 2018",
            "No known allergies",
        ],
        "labs": [
            {"name": "HbA1c", "value": 8.2, "unit": "%", "reference_range": {"low": 4, "high": 6}},
            {"name": "LDL", "value": 142, "unit": "mg/dL"},
            {"name": "eGFR", "value": 58, "unit": "mL/min/1.73m2"},
        ],
    }
