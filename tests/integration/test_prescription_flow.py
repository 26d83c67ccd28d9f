import copy

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_prescription_review_end_to_end(client: AsyncClient, patient_payload):
    # 1. Score the whole prescription for an uncontrolled diabetic with borderline renal function
    payload = {"medicine_names": ["Metformin 500mg", "Lisinopril 10mg"], "patient": patient_payload}
    response = await client.post("/v1/compatibility/batch", json=payload)
    assert response.status_code == 200
    metformin, lisinopril = response.json()

    assert metformin["status"] == "unsafe"
    assert metformin["score"] == 45
    assert "Poor glycemic control (HbA1c 8.2% > 7%)" in metformin["reasons"]
    assert metformin["alternatives"][0] == "Alternative: Dapagliflozin (Cardiorenal benefit in T2DM)"

    # 2. The ACE bonus is evaluated but withheld while eGFR < 60
    bonus = next(o for o in lisinopril["rule_outcomes"] if o["rule_id"] == "bonus_ace_diabetic_renal")
    assert bonus["outcome"] == "passed"

    # 3. Follow an alternative into the catalog
    response = await client.get("/v1/medicines", params={"q": "Dapagliflozin"})
    assert [m["id"] for m in response.json()] == ["med-010"]

    # 4. Re-score after the labs improve
    improved = copy.deepcopy(patient_payload)
    improved["labs"] = [
        {"name": "HbA1c", "value": 6.5, "unit": "%"},
        {"name": "LDL", "value": 100, "unit": "mg/dL"},
        {"name": "eGFR", "value": 75, "unit": "mL/min/1.73m2"},
    ]
    response = await client.post("/v1/compatibility/batch", json={**payload, "patient": improved})
    metformin, lisinopril = response.json()

    assert (metformin["score"], metformin["status"]) == (72, "caution")
    assert (lisinopril["score"], lisinopril["status"]) == (82, "caution")
    assert metformin["alternatives"] is None


@pytest.mark.asyncio
async def test_class_allergy_blocks_whole_class(client: AsyncClient, patient_payload):
    patient = copy.deepcopy(patient_payload)
    patient["medical_history"].append("Allergic to penicillin (rash, 2019)")

    response = await client.post(
        "/v1/compatibility/evaluate",
        json={"medicine_name": "Amoxicillin 250mg", "patient": patient},
    )
    assert response.status_code == 200
    result = response.json()

    assert result["hard_override"] is True
    assert result["score"] == 20
    assert result["status"] == "unsafe"
    assert "Documented allergy to Amoxicillin 250mg or its class (Penicillin)" in result["reasons"]
    assert result["alternatives"][0] == "Alternative: Azithromycin (Usable in penicillin allergy)"

    # The suggested swap is a real catalog entry
    response = await client.get("/v1/medicines", params={"q": "azithromycin"})
    assert response.json()[0]["drug_class"] == "Macrolide"
