import structlog
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union
from pydantic import ValidationError

from medcompat.core.config import ScoringPolicy, settings
from medcompat.core.exceptions import InvalidInputError
from medcompat.schemas.compatibility import (
    RISK_FOR_STATUS,
    CompatibilityResult,
    Outcome,
    RuleOutcome,
    Status,
)
from medcompat.schemas.patient import PatientProfile
from medcompat.services.catalog import MedicineCatalog, default_catalog
from medcompat.services.rules import RULES, Rule, RuleContext

logger = structlog.get_logger()

PatientInput = Union[PatientProfile, Mapping[str, Any]]

DOSE_REDUCTION_SUGGESTION = "Lower dosage: Reduce initial dose by 25-50%"
NON_PHARMACOLOGICAL_SUGGESTION = "Alternative therapy: Consider non-pharmacological options"

EXPLANATIONS = {
    Status.SAFE: "{medicine} shows excellent compatibility with {patient}'s current health profile and is safe to prescribe with standard monitoring.",
    Status.CAUTION: "{medicine} can be prescribed to {patient} but requires enhanced monitoring due to identified risk factors.",
    Status.UNSAFE: "{medicine} presents significant risks for {patient}; consider alternatives or specialist consultation before prescribing.",
}
UNRECOGNIZED_EXPLANATION = "A valid medicine name is required to assess compatibility for {patient}."


class CompatibilityEngine:
    """
    Scores how compatible a medicine is with a patient.

    Stateless after construction: the policy, rule table and catalog are immutable,
    so one engine may serve any number of concurrent callers.
    """

    def __init__(
        self,
        policy: Optional[ScoringPolicy] = None,
        rules: Iterable[Rule] = RULES,
        catalog: Optional[MedicineCatalog] = None,
    ):
        self.policy = (policy or settings.SCORING_POLICY).check()
        self.rules = tuple(rules)
        self.catalog = catalog or default_catalog

    @staticmethod
    def validate_patient(patient: Optional[PatientInput]) -> PatientProfile:
        """
        Turns caller input into a PatientProfile.
        Raises InvalidInputError on any contract violation; never coerces.
        """
        if patient is None:
            raise InvalidInputError("Patient profile is required")

        if isinstance(patient, PatientProfile):
            # model_construct() skips validation, so re-check the one hard constraint
            if not isinstance(patient.age, int) or isinstance(patient.age, bool) or patient.age < 0:
                raise InvalidInputError("Patient age must be a non-negative integer", context={"age": patient.age})
            return patient

        if not isinstance(patient, Mapping):
            raise InvalidInputError(
                "Patient must be a PatientProfile or a mapping",
                context={"type": type(patient).__name__},
            )
        if not patient:
            raise InvalidInputError("Patient profile is empty")

        try:
            return PatientProfile.model_validate(dict(patient))
        except ValidationError as e:
            errors = [
                {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ]
            logger.warning("invalid_patient_profile", error_count=len(errors))
            raise InvalidInputError("Invalid patient profile", context={"errors": errors}) from e

    def evaluate(self, medicine_name: str, patient: PatientInput) -> CompatibilityResult:
        profile = self.validate_patient(patient)
        return self._evaluate(medicine_name, profile)

    def evaluate_many(self, medicine_names: Sequence[str], patient: PatientInput) -> List[CompatibilityResult]:
        profile = self.validate_patient(patient)
        return [self._evaluate(name, profile) for name in medicine_names]

    def classify(self, score: int) -> Status:
        if score >= self.policy.safe_threshold:
            return Status.SAFE
        if score >= self.policy.caution_threshold:
            return Status.CAUTION
        return Status.UNSAFE

    def _evaluate(self, medicine_name: str, profile: PatientProfile) -> CompatibilityResult:
        medicine = (medicine_name or "").strip()
        drug_class = self.catalog.get_class(self.catalog.classify(medicine))
        if drug_class is None:
            return self._unrecognized(medicine, profile)

        entry = self.catalog.identify(medicine)
        ctx = RuleContext.build(medicine, drug_class, entry, profile)

        outcomes: List[RuleOutcome] = []
        reasons: List[str] = []
        total_delta = 0
        fired_overrides: List[Rule] = []

        for rule in self.rules:
            fired = rule.predicate(ctx)
            if fired is None:
                outcomes.append(RuleOutcome(rule_id=rule.id, outcome=Outcome.NOT_APPLICABLE))
                continue
            if not fired:
                outcomes.append(RuleOutcome(rule_id=rule.id, outcome=Outcome.PASSED))
                continue

            reasons.append(rule.reason(ctx))
            if rule.is_hard_override:
                fired_overrides.append(rule)
                outcomes.append(RuleOutcome(rule_id=rule.id, outcome=Outcome.TRIGGERED, override_score=rule.override_score))
            else:
                total_delta += rule.delta
                outcomes.append(RuleOutcome(rule_id=rule.id, outcome=Outcome.TRIGGERED, delta=rule.delta))

        if fired_overrides:
            # Most severe contraindication wins
            score = min(rule.override_score for rule in fired_overrides)
            status = Status.UNSAFE
            logger.info(
                "hard_override_applied",
                medicine=medicine,
                rules=[rule.id for rule in fired_overrides],
                score=score,
            )
        else:
            raw = self.policy.base_score + total_delta
            score = max(self.policy.min_score, min(self.policy.max_score, raw))
            status = self.classify(score)

        alternatives = None
        if status == Status.UNSAFE:
            class_wide = [rule for rule in fired_overrides if rule.class_wide]
            alternatives = self._alternatives(medicine, drug_class.name, entry.id if entry else None, class_wide, profile)

        logger.info(
            "compatibility_evaluated",
            medicine=medicine,
            drug_class=drug_class.name,
            patient_id=profile.patient_id,
            score=score,
            status=status.value,
            triggered=len(reasons),
        )

        return CompatibilityResult(
            medicine=medicine,
            drug_class=drug_class.name,
            score=score,
            status=status,
            risk_level=RISK_FOR_STATUS[status],
            reasons=reasons,
            alternatives=alternatives,
            explanation=EXPLANATIONS[status].format(medicine=medicine, patient=profile.display_name),
            hard_override=bool(fired_overrides),
            rule_outcomes=outcomes,
            side_effects=self.catalog.side_effects_for(drug_class.name),
        )

    def _alternatives(
        self,
        medicine: str,
        drug_class: str,
        exclude_id: Optional[str],
        class_wide: List[Rule],
        profile: PatientProfile,
    ) -> List[str]:
        lowered = medicine.lower()
        suggestions = [
            f"Alternative: {alt.name} ({alt.reason})"
            for alt in self.catalog.suggest_alternatives(drug_class, exclude_id, include_same_class=not class_wide)
            if alt.name.lower() not in lowered and not self._also_contraindicated(alt.name, class_wide, profile)
        ]
        suggestions.append(DOSE_REDUCTION_SUGGESTION)
        suggestions.append(NON_PHARMACOLOGICAL_SUGGESTION)
        return suggestions

    def _also_contraindicated(self, candidate: str, class_wide: List[Rule], profile: PatientProfile) -> bool:
        """
        True when a class-wide contraindication that fired for the prescribed medicine
        fires for the candidate too (e.g. an "antibiotics" allergy covers both classes).
        """
        if not class_wide:
            return False
        entry = self.catalog.identify(candidate)
        drug_class = self.catalog.get_class(entry.drug_class if entry else None)
        if drug_class is None:
            return False
        ctx = RuleContext.build(candidate, drug_class, entry, profile)
        return any(rule.predicate(ctx) for rule in class_wide)

    def _unrecognized(self, medicine: str, profile: PatientProfile) -> CompatibilityResult:
        logger.warning("unrecognized_medicine", medicine=medicine)
        if medicine:
            reason = f"Unrecognized medicine '{medicine}': medicine name required for analysis"
        else:
            reason = "Medicine name required for analysis"

        return CompatibilityResult(
            medicine=medicine,
            drug_class=None,
            score=self.policy.unknown_medicine_score,
            status=Status.CAUTION,
            risk_level=RISK_FOR_STATUS[Status.CAUTION],
            reasons=[reason],
            alternatives=None,
            explanation=UNRECOGNIZED_EXPLANATION.format(patient=profile.display_name),
        )


default_engine = CompatibilityEngine()


def evaluate(medicine_name: str, patient: PatientInput) -> CompatibilityResult:
    return default_engine.evaluate(medicine_name, patient)


def evaluate_many(medicine_names: Sequence[str], patient: PatientInput) -> List[CompatibilityResult]:
    return default_engine.evaluate_many(medicine_names, patient)
