import pytest

from medcompat.services.catalog import default_catalog
from medcompat.services.rules import RULES, RuleContext, canonical_lab_name


def _context(medicine, patient):
    drug_class = default_catalog.get_class(default_catalog.classify(medicine))
    return RuleContext.build(medicine, drug_class, default_catalog.identify(medicine), patient)


@pytest.mark.parametrize("raw, expected", [
    ("HbA1c", "hba1c"),
    ("Hemoglobin A1c", "hba1c"),
    ("LDL-C", "ldl"),
    ("e_GFR", "egfr"),
    ("Serum Creatinine", "creatinine"),
    ("SGPT", "alt"),
    ("  Fasting Glucose ", "glucose"),
    ("Ferritin", "ferritin"),
])
def test_canonical_lab_name(raw, expected):
    assert canonical_lab_name(raw) == expected


def test_rule_ids_are_unique():
    ids = [rule.id for rule in RULES]
    assert len(ids) == len(set(ids))


def test_hard_overrides_carry_no_delta():
    for rule in RULES:
        if rule.is_hard_override:
            assert rule.delta == 0
            assert 0 <= rule.override_score <= 100


def test_allergy_terms_cover_class_and_names(patient_factory):
    ctx = _context("Aspirin 75mg", patient_factory())
    assert {"antiplatelet", "salicylate", "aspirin", "acetylsalicylic acid"} <= set(ctx.allergy_terms)


def test_context_normalises_patient_text(patient_factory):
    patient = patient_factory(conditions=["  Type 2 DIABETES ", ""], history=["Allergic to Sulfa"])
    ctx = _context("Metformin", patient)
    assert ctx.conditions == ("type 2 diabetes",)
    assert ctx.history == ("allergic to sulfa",)
    assert ctx.has_condition("diabet")


def test_reason_template_formats_labs_without_trailing_zeros(patient_factory):
    rule = next(r for r in RULES if r.id == "lab_egfr_reduced")
    ctx = _context("Metformin", patient_factory(labs={"eGFR": 42.0}))
    assert rule.predicate(ctx) is True
    assert rule.reason(ctx).startswith("Reduced renal function (eGFR 42 < 60)")


@pytest.mark.parametrize("history, expected", [
    ([], None),
    (["No known allergies"], False),
    (["Denies drug allergies"], False),
    (["Appendectomy 2015"], False),
    (["Allergy to shellfish"], False),
    (["Severe anti-inflammatory allergy"], True),
])
def test_class_allergy_predicate(patient_factory, history, expected):
    rule = next(r for r in RULES if r.id == "hard_class_allergy")
    ctx = _context("Ibuprofen", patient_factory(history=history))
    assert rule.predicate(ctx) is expected
