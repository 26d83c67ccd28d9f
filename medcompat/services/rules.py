"""
Canonical clinical rule table for the compatibility engine.

Each rule is a data record: a predicate over a RuleContext, a signed score delta
(or a fixed override score for hard contraindications) and a reason template.
Predicates return:
    None  -> rule not applicable (the data it needs is missing)
    False -> rule applicable, did not fire
    True  -> rule fired

New rules are added to RULES; the engine's dispatch loop never changes.
Evaluation order is the order of RULES, and reasons are reported in that order.
"""
import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from medcompat.schemas.medicine import CatalogMedicine, DrugClass
from medcompat.schemas.patient import PatientProfile

# Normalised lab name -> canonical key
LAB_ALIASES: Dict[str, str] = {
    "hba1c": "hba1c",
    "a1c": "hba1c",
    "hemoglobina1c": "hba1c",
    "glycatedhemoglobin": "hba1c",
    "ldl": "ldl",
    "ldlc": "ldl",
    "ldlcholesterol": "ldl",
    "egfr": "egfr",
    "creatinine": "creatinine",
    "serumcreatinine": "creatinine",
    "scr": "creatinine",
    "glucose": "glucose",
    "bloodglucose": "glucose",
    "fastingglucose": "glucose",
    "alt": "alt",
    "sgpt": "alt",
    "liverenzymes": "alt",
    "alanineaminotransferase": "alt",
}

NEGATION_PREFIXES = ("no known", "no history of", "no ", "denies", "nkda", "negative for")

CARDIOVASCULAR_TERMS = (
    "heart", "coronary", "cardiac", "cardiovascular", "hypertension",
    "hyperlipidemia", "hypercholesterolemia", "stroke",
)


def canonical_lab_name(name: str) -> str:
    key = re.sub(r"[\s\-_]", "", name.strip().lower())
    return LAB_ALIASES.get(key, key)


def _is_negated(entry: str) -> bool:
    return entry.startswith(NEGATION_PREFIXES)


def _fmt(value: float) -> str:
    return format(value, "g")


@dataclass(frozen=True)
class RuleContext:
    medicine: str                      # as given by the caller
    drug_class: str
    catalog_entry: Optional[CatalogMedicine]
    age: int
    conditions: Tuple[str, ...]        # lowercased
    history: Tuple[str, ...]           # lowercased, stripped
    labs: Dict[str, float]             # canonical lab key -> value
    allergy_terms: Tuple[str, ...]     # lowercased names identifying this medicine/class

    @classmethod
    def build(
        cls,
        medicine: str,
        drug_class: DrugClass,
        catalog_entry: Optional[CatalogMedicine],
        patient: PatientProfile,
    ) -> "RuleContext":
        labs: Dict[str, float] = {}
        # Later entries win for repeated lab names
        for lab in patient.labs:
            labs[canonical_lab_name(lab.name)] = lab.value

        med_lower = medicine.lower()
        terms = {drug_class.name.lower(), *drug_class.allergy_terms}
        terms.update(k for k in drug_class.keywords if k in med_lower)
        if catalog_entry:
            terms.update({catalog_entry.name.lower(), catalog_entry.generic_name.lower()})

        return cls(
            medicine=medicine,
            drug_class=drug_class.name,
            catalog_entry=catalog_entry,
            age=patient.age,
            conditions=tuple(c.strip().lower() for c in patient.conditions if c.strip()),
            history=tuple(h.strip().lower() for h in patient.medical_history if h.strip()),
            labs=labs,
            allergy_terms=tuple(sorted(terms)),
        )

    @property
    def medicine_lower(self) -> str:
        return self.medicine.lower()

    def lab(self, name: str) -> Optional[float]:
        return self.labs.get(canonical_lab_name(name))

    def has_condition(self, *terms: str) -> bool:
        return any(term in condition for condition in self.conditions for term in terms)

    def medicine_mentions(self, *terms: str) -> bool:
        return any(term in self.medicine_lower for term in terms)

    def template_values(self) -> Dict[str, str]:
        values = {
            "medicine": self.medicine,
            "drug_class": self.drug_class,
            "age": str(self.age),
        }
        values.update({key: _fmt(value) for key, value in self.labs.items()})
        return values


@dataclass(frozen=True)
class Rule:
    id: str
    predicate: Callable[[RuleContext], Optional[bool]]
    reason_template: str
    delta: int = 0
    # Hard contraindication: pins the score and forces unsafe/high
    override_score: Optional[int] = None
    # The contraindication applies to every member of the drug class
    class_wide: bool = False

    @property
    def is_hard_override(self) -> bool:
        return self.override_score is not None

    def reason(self, ctx: RuleContext) -> str:
        return self.reason_template.format_map(ctx.template_values())


# --- Predicates ---

def _condition_rule(*terms: str) -> Callable[[RuleContext], Optional[bool]]:
    def predicate(ctx: RuleContext) -> Optional[bool]:
        if not ctx.conditions:
            return None
        return ctx.has_condition(*terms)
    return predicate


def _lab_rule(name: str, test: Callable[[float], bool], medicine_terms: Tuple[str, ...] = (),
              drug_class: Optional[str] = None) -> Callable[[RuleContext], Optional[bool]]:
    def predicate(ctx: RuleContext) -> Optional[bool]:
        value = ctx.lab(name)
        if value is None:
            return None
        if medicine_terms and not ctx.medicine_mentions(*medicine_terms):
            return False
        if drug_class and ctx.drug_class != drug_class:
            return False
        return test(value)
    return predicate


def _allergy_history(ctx: RuleContext) -> Optional[bool]:
    if not ctx.history:
        return None
    return any(
        ("allerg" in entry or "adverse" in entry) and not _is_negated(entry)
        for entry in ctx.history
    )


def _class_allergy(ctx: RuleContext) -> Optional[bool]:
    if not ctx.history:
        return None
    for entry in ctx.history:
        if _is_negated(entry) or not ("allerg" in entry or "adverse" in entry):
            continue
        if any(term in entry for term in ctx.allergy_terms):
            return True
    return False


def _aspirin_cardiovascular(ctx: RuleContext) -> Optional[bool]:
    if not ctx.conditions:
        return None
    return ctx.medicine_mentions("aspirin", "acetylsalicylic") and ctx.has_condition(*CARDIOVASCULAR_TERMS)


def _ace_diabetic_renal(ctx: RuleContext) -> Optional[bool]:
    egfr = ctx.lab("egfr")
    if not ctx.conditions or egfr is None:
        return None
    return ctx.drug_class == "ACE Inhibitor" and ctx.has_condition("diabet") and egfr >= 60


RULES: Tuple[Rule, ...] = (
    # Age bands
    Rule("age_elderly", lambda ctx: ctx.age > 65, "Patient age ({age}) affects drug metabolism and clearance", delta=-10),
    Rule("age_pediatric", lambda ctx: ctx.age < 18, "Paediatric patient (age {age}) needs weight-based dosing", delta=-5),

    # Conditions; all that apply accumulate
    Rule("condition_diabetes", _condition_rule("diabet"), "Diabetes may affect drug absorption and glycaemic control", delta=-8),
    Rule("condition_hypertension", _condition_rule("hypertension"), "Hypertension requires blood pressure monitoring", delta=-5),
    Rule("condition_heart_disease", _condition_rule("heart", "coronary", "cardiac"),
         "Heart disease increases the cardiovascular risk of drug therapy", delta=-12),

    # History
    Rule("history_allergy_adverse", _allergy_history, "Documented allergy/adverse-event history", delta=-15),

    # Labs
    Rule("lab_hba1c_high", _lab_rule("hba1c", lambda v: v > 7.0), "Poor glycemic control (HbA1c {hba1c}% > 7%)", delta=-20),
    Rule("lab_ldl_high", _lab_rule("ldl", lambda v: v > 130), "Elevated LDL ({ldl} mg/dL > 130)", delta=-10),
    Rule("lab_glucose_high", _lab_rule("glucose", lambda v: v > 180), "Elevated blood glucose ({glucose} mg/dL > 180)", delta=-5),
    Rule("lab_egfr_reduced", _lab_rule("egfr", lambda v: v < 60),
         "Reduced renal function (eGFR {egfr} < 60); adjust renally cleared drugs", delta=-30),
    Rule("lab_egfr_metformin", _lab_rule("egfr", lambda v: v < 45, medicine_terms=("metformin",)),
         "Metformin contraindication risk with eGFR {egfr} < 45", delta=-25),
    Rule("lab_creatinine_metformin", _lab_rule("creatinine", lambda v: v > 1.4, medicine_terms=("metformin",)),
         "Creatinine {creatinine} mg/dL > 1.4 on metformin; monitor kidney function closely", delta=-15),

    # Favourable matches
    Rule("bonus_aspirin_cardiovascular", _aspirin_cardiovascular,
         "Low-dose aspirin supports cardiovascular risk reduction", delta=15),
    Rule("bonus_ace_diabetic_renal", _ace_diabetic_renal,
         "ACE inhibitor offers renal protection in diabetes with preserved renal function (eGFR {egfr})", delta=10),

    # Hard contraindications
    Rule("hard_nsaid_creatinine", _lab_rule("creatinine", lambda v: v > 1.5, drug_class="NSAID"),
         "High creatinine ({creatinine} mg/dL > 1.5) with {drug_class}: kidney damage risk",
         override_score=25, class_wide=True),
    Rule("hard_class_allergy", _class_allergy,
         "Documented allergy to {medicine} or its class ({drug_class})",
         override_score=20, class_wide=True),
    Rule("hard_hepatic_paracetamol", _lab_rule("alt", lambda v: v > 120, drug_class="Analgesic"),
         "ALT {alt} U/L > 120 with {medicine}: hepatotoxicity risk",
         override_score=30),
)
