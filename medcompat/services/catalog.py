import structlog
from typing import Dict, Iterable, List, Optional, Tuple

from medcompat.schemas.compatibility import SideEffect, Severity
from medcompat.schemas.medicine import Alternative, CatalogMedicine, DrugClass

logger = structlog.get_logger()

# --- Static reference data ---

DRUG_CLASSES: Tuple[DrugClass, ...] = (
    DrugClass(name="Analgesic", keywords=["paracetamol", "acetaminophen"]),
    DrugClass(
        name="NSAID",
        keywords=["ibuprofen", "naproxen", "diclofenac", "celecoxib", "nsaid"],
        allergy_terms=["nsaid", "anti-inflammator"],
        interchangeable_with=["Analgesic"],
    ),
    DrugClass(name="Antiplatelet", keywords=["aspirin", "acetylsalicylic", "clopidogrel"], allergy_terms=["salicylate"]),
    DrugClass(
        name="Penicillin",
        keywords=["amoxicillin", "ampicillin", "penicillin"],
        allergy_terms=["penicillin", "beta-lactam", "antibiotic"],
        interchangeable_with=["Macrolide"],
    ),
    DrugClass(
        name="Macrolide",
        keywords=["azithromycin", "clarithromycin", "erythromycin"],
        allergy_terms=["macrolide", "antibiotic"],
    ),
    DrugClass(name="Antidiabetic", keywords=["metformin", "dapagliflozin", "sitagliptin", "glimepiride"]),
    DrugClass(
        name="ACE Inhibitor",
        keywords=["lisinopril", "ramipril", "enalapril", "ace inhibitor"],
        allergy_terms=["ace inhibitor"],
        interchangeable_with=["Angiotensin Receptor Blocker"],
    ),
    DrugClass(
        name="Angiotensin Receptor Blocker",
        keywords=["losartan", "telmisartan", "valsartan"],
        interchangeable_with=["ACE Inhibitor"],
    ),
    DrugClass(name="Calcium Channel Blocker", keywords=["amlodipine", "nifedipine"]),
    DrugClass(name="Statin", keywords=["atorvastatin", "rosuvastatin", "simvastatin", "statin"]),
    DrugClass(name="Proton Pump Inhibitor", keywords=["omeprazole", "pantoprazole"]),
)

CATALOG: Tuple[CatalogMedicine, ...] = (
    CatalogMedicine(id="med-001", name="Paracetamol", generic_name="Acetaminophen", drug_class="Analgesic", strength="500mg",
                    note="Analgesic without renal or GI toxicity at standard doses"),
    CatalogMedicine(id="med-002", name="Amoxicillin", generic_name="Amoxicillin Trihydrate", drug_class="Penicillin",
                    strength="250mg", note="Broad-spectrum first-line cover"),
    CatalogMedicine(id="med-003", name="Metformin", generic_name="Metformin HCl", drug_class="Antidiabetic", strength="500mg"),
    CatalogMedicine(id="med-004", name="Lisinopril", generic_name="Lisinopril", drug_class="ACE Inhibitor", strength="10mg",
                    note="Once-daily ACE inhibitor"),
    CatalogMedicine(id="med-005", name="Amlodipine", generic_name="Amlodipine Besylate", drug_class="Calcium Channel Blocker",
                    strength="5mg"),
    CatalogMedicine(id="med-006", name="Ibuprofen", generic_name="Ibuprofen", drug_class="NSAID", strength="400mg"),
    CatalogMedicine(id="med-007", name="Aspirin", generic_name="Acetylsalicylic Acid", drug_class="Antiplatelet", strength="75mg"),
    CatalogMedicine(id="med-008", name="Atorvastatin", generic_name="Atorvastatin Calcium", drug_class="Statin", strength="20mg",
                    note="High-intensity statin option"),
    CatalogMedicine(id="med-009", name="Omeprazole", generic_name="Omeprazole", drug_class="Proton Pump Inhibitor", strength="20mg"),
    CatalogMedicine(id="med-010", name="Dapagliflozin", generic_name="Dapagliflozin Propanediol", drug_class="Antidiabetic",
                    strength="10mg", note="Cardiorenal benefit in T2DM"),
    CatalogMedicine(id="med-011", name="Sitagliptin", generic_name="Sitagliptin Phosphate", drug_class="Antidiabetic",
                    strength="100mg", note="Weight neutral; low hypo risk"),
    CatalogMedicine(id="med-012", name="Losartan", generic_name="Losartan Potassium", drug_class="Angiotensin Receptor Blocker",
                    strength="50mg", note="Use when ACE inhibitor cough or potassium issues"),
    CatalogMedicine(id="med-013", name="Naproxen", generic_name="Naproxen Sodium", drug_class="NSAID", strength="250mg",
                    note="Longer-acting NSAID"),
    CatalogMedicine(id="med-014", name="Diclofenac", generic_name="Diclofenac Sodium", drug_class="NSAID", strength="50mg",
                    note="Topical form limits systemic exposure"),
    CatalogMedicine(id="med-015", name="Clopidogrel", generic_name="Clopidogrel Bisulfate", drug_class="Antiplatelet",
                    strength="75mg", note="Antiplatelet without salicylate exposure"),
    CatalogMedicine(id="med-016", name="Azithromycin", generic_name="Azithromycin Dihydrate", drug_class="Macrolide",
                    strength="500mg", note="Usable in penicillin allergy"),
    CatalogMedicine(id="med-017", name="Ramipril", generic_name="Ramipril", drug_class="ACE Inhibitor", strength="5mg",
                    note="ACE inhibitor with cardioprotective evidence"),
    CatalogMedicine(id="med-018", name="Rosuvastatin", generic_name="Rosuvastatin Calcium", drug_class="Statin", strength="10mg",
                    note="Fewer CYP3A4 interactions"),
    CatalogMedicine(id="med-019", name="Pantoprazole", generic_name="Pantoprazole Sodium", drug_class="Proton Pump Inhibitor",
                    strength="40mg", note="Fewer clopidogrel interactions"),
)

SIDE_EFFECTS: Dict[str, Tuple[SideEffect, ...]] = {
    "Analgesic": (
        SideEffect(name="Hepatotoxicity", probability=2, severity=Severity.SEVERE,
                   description="Liver injury, mostly with overdose or pre-existing liver disease",
                   timeframe="Anytime", risk_factors=["ALT > 120"]),
    ),
    "NSAID": (
        SideEffect(name="Acute kidney injury", probability=8, severity=Severity.SEVERE,
                   description="Reduced renal perfusion; creatinine may rise",
                   timeframe="First 1-4 weeks", risk_factors=["creatinine > 1.5", "eGFR < 60"]),
        SideEffect(name="GI irritation", probability=25, severity=Severity.MODERATE,
                   description="Dyspepsia, rarely ulceration or bleeding", timeframe="Anytime"),
        SideEffect(name="Fluid retention", probability=10, severity=Severity.MILD,
                   description="Oedema and raised blood pressure", timeframe="First 2 weeks",
                   risk_factors=["Hypertension", "Heart Disease"]),
    ),
    "Antiplatelet": (
        SideEffect(name="Mild GI irritation", probability=15, severity=Severity.MILD,
                   description="Take with food", timeframe="Anytime"),
        SideEffect(name="Bleeding risk (low)", probability=3, severity=Severity.MODERATE,
                   description="Bruising, rarely GI bleeding", timeframe="Anytime"),
    ),
    "Penicillin": (
        SideEffect(name="Diarrhoea", probability=20, severity=Severity.MILD,
                   description="Disturbed gut flora", timeframe="During course"),
        SideEffect(name="Allergic reaction", probability=5, severity=Severity.SEVERE,
                   description="Rash, rarely anaphylaxis", timeframe="First doses",
                   risk_factors=["penicillin allergy"]),
    ),
    "Macrolide": (
        SideEffect(name="GI upset", probability=15, severity=Severity.MILD,
                   description="Nausea and abdominal cramps", timeframe="During course"),
        SideEffect(name="QT prolongation", probability=1, severity=Severity.SEVERE,
                   description="Arrhythmia risk with other QT-prolonging drugs", timeframe="Anytime",
                   risk_factors=["Heart Disease"]),
    ),
    "Antidiabetic": (
        SideEffect(name="GI upset", probability=32, severity=Severity.MILD,
                   description="Nausea / diarrhea may occur initially", timeframe="First 1-2 weeks"),
        SideEffect(name="Lactic acidosis", probability=1, severity=Severity.SEVERE,
                   description="Rare but serious; risk increases with renal impairment",
                   timeframe="Anytime", risk_factors=["eGFR < 45"]),
    ),
    "ACE Inhibitor": (
        SideEffect(name="Dry cough", probability=15, severity=Severity.MILD,
                   description="Persistent non-productive cough", timeframe="First 1-2 weeks"),
        SideEffect(name="Hyperkalaemia", probability=5, severity=Severity.MODERATE,
                   description="Raised potassium, check electrolytes", timeframe="First month",
                   risk_factors=["eGFR < 60"]),
    ),
    "Angiotensin Receptor Blocker": (
        SideEffect(name="Dizziness", probability=10, severity=Severity.MILD,
                   description="Postural hypotension at initiation", timeframe="First week"),
    ),
    "Calcium Channel Blocker": (
        SideEffect(name="Ankle oedema", probability=10, severity=Severity.MILD,
                   description="Dose-related peripheral oedema", timeframe="First month"),
    ),
    "Statin": (
        SideEffect(name="Myalgia", probability=10, severity=Severity.MILD,
                   description="Muscle aches; check CK if severe", timeframe="First 3 months"),
    ),
    "Proton Pump Inhibitor": (
        SideEffect(name="Headache", probability=5, severity=Severity.MILD,
                   description="Usually transient", timeframe="First week"),
    ),
}


class MedicineCatalog:
    """
    Read-only lookup over a fixed set of medicines and drug classes.
    """

    def __init__(
        self,
        medicines: Iterable[CatalogMedicine] = CATALOG,
        drug_classes: Iterable[DrugClass] = DRUG_CLASSES,
        side_effects: Optional[Dict[str, Tuple[SideEffect, ...]]] = None,
    ):
        self.medicines: Tuple[CatalogMedicine, ...] = tuple(medicines)
        self.drug_classes: Tuple[DrugClass, ...] = tuple(drug_classes)
        self._side_effects = SIDE_EFFECTS if side_effects is None else side_effects
        self._classes_by_name = {c.name.lower(): c for c in self.drug_classes}

    def get_class(self, drug_class: Optional[str]) -> Optional[DrugClass]:
        if not drug_class:
            return None
        return self._classes_by_name.get(drug_class.strip().lower())

    def identify(self, medicine_name: str) -> Optional[CatalogMedicine]:
        """
        Finds the catalog entry whose name or generic name is contained in the free text.
        The longest matching name wins ("Acetylsalicylic Acid 75mg" -> Aspirin).
        """
        text = (medicine_name or "").strip().lower()
        if not text:
            return None

        best: Optional[CatalogMedicine] = None
        best_len = 0
        for med in self.medicines:
            for candidate in (med.name.lower(), med.generic_name.lower()):
                if candidate in text and len(candidate) > best_len:
                    best, best_len = med, len(candidate)
        return best

    def classify(self, medicine_name: str) -> Optional[str]:
        med = self.identify(medicine_name)
        if med:
            return med.drug_class

        text = (medicine_name or "").strip().lower()
        if not text:
            return None
        for drug_class in self.drug_classes:
            if any(keyword in text for keyword in drug_class.keywords):
                return drug_class.name
        return None

    def suggest_alternatives(
        self,
        drug_class: Optional[str],
        exclude_id: Optional[str] = None,
        include_same_class: bool = True,
    ) -> List[Alternative]:
        """
        Same-class medicines first, then members of interchangeable classes, in catalog order.
        Never returns the excluded medicine. include_same_class=False is for contraindications
        that rule out the whole class.
        """
        cls = self.get_class(drug_class)
        if cls is None:
            return []

        class_names = list(cls.interchangeable_with)
        if include_same_class:
            class_names.insert(0, cls.name)

        alternatives = []
        for class_name in class_names:
            for med in self.medicines:
                if med.drug_class.lower() != class_name.lower() or med.id == exclude_id:
                    continue
                if class_name == cls.name:
                    reason = med.note or f"Same drug class ({med.drug_class})"
                else:
                    reason = med.note or f"Interchangeable with {cls.name}"
                alternatives.append(Alternative(name=med.name, reason=reason))
        return alternatives

    def search(self, term: str = "") -> List[CatalogMedicine]:
        needle = (term or "").strip().lower()
        if not needle:
            return list(self.medicines)
        return [
            med for med in self.medicines
            if needle in med.name.lower()
            or needle in med.generic_name.lower()
            or needle in med.drug_class.lower()
        ]

    def side_effects_for(self, drug_class: Optional[str]) -> List[SideEffect]:
        cls = self.get_class(drug_class)
        if cls is None:
            return []
        return list(self._side_effects.get(cls.name, ()))


default_catalog = MedicineCatalog()


def suggest_alternatives(drug_class: Optional[str], exclude_id: Optional[str] = None) -> List[Alternative]:
    return default_catalog.suggest_alternatives(drug_class, exclude_id)


def search_medicines(term: str = "") -> List[CatalogMedicine]:
    results = default_catalog.search(term)
    logger.debug("catalog_search", term=term, hits=len(results))
    return results
